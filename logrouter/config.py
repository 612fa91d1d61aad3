"""logrouter: Service configuration.

Configuration is loaded from (in order of increasing priority):
    1. Built-in defaults (this file)
    2. Environment variables prefixed with LOGROUTER_ (nested with ``__``,
       e.g. ``LOGROUTER_BUS__URL=nats://bus:4222``)
    3. System config: /etc/logrouter/config.yaml
    4. User config:   ~/.logrouter/config.yaml
    5. An explicit ``--config`` file

Top-level blocks read from YAML replace the whole block, so a file that sets
``bus:`` shadows every ``LOGROUTER_BUS__*`` variable.

Call ``Settings.load()`` once at startup and hand the instance to the
service; everything downstream receives its own config block explicitly.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from logrouter.subjects import DIRECTORY_FIND, DIRECTORY_SET, STREAM_LOGS


# ---------------------------------------------------------------------------
# Sub-configuration blocks
# ---------------------------------------------------------------------------


class BusConfig(BaseModel):
    url: str = Field(
        default="nats://127.0.0.1:4222",
        description="Bus server URL. 'memory://' runs an in-process bus (local development).",
    )
    request_timeout: Annotated[float, Field(gt=0, le=60)] = Field(
        default=1.0,
        description="Seconds to wait for a request/reply round trip before failing.",
    )
    connect_timeout: Annotated[float, Field(gt=0, le=120)] = 5.0


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = Field(default=22001, ge=1, le=65535)


class StorageConfig(BaseModel):
    config_dir: Path = Path("~/.logrouter")
    state_file: str = Field(
        default=".logger",
        description="File name (inside config_dir) holding the persisted adapter configs.",
    )
    default_logfile: Path | None = Field(
        default=Path("~/.logrouter/logger.log"),
        description="Log file for the mandatory basic adapter when none was ever persisted.",
    )

    @field_validator("config_dir", "default_logfile", mode="after")
    @classmethod
    def expand_user(cls, v: Path | None) -> Path | None:
        return v.expanduser() if v is not None else None

    @property
    def state_path(self) -> Path:
        return self.config_dir / self.state_file


class DirectoryConfig(BaseModel):
    find_subject: str = DIRECTORY_FIND
    update_subjects: list[str] = Field(
        default_factory=lambda: [DIRECTORY_SET],
        description="Subjects carrying credential-holder create/update notifications.",
    )
    wait_on_startup: bool = Field(
        default=True,
        description="Block startup until the directory answers once.",
    )
    retry_interval: Annotated[float, Field(gt=0, le=300)] = 3.0


class RedactionConfig(BaseModel):
    marker: str = Field(default="[OBFUSCATED]", min_length=1)
    failure_sentinel: str = "[ An error occurred trying to obfuscate this message ]"


class StreamConfig(BaseModel):
    default_stream: str = STREAM_LOGS
    queue_size: Annotated[int, Field(ge=1, le=1_000_000)] = Field(
        default=1000,
        description="Per-viewer buffered records; the oldest is dropped when full.",
    )


class AuthConfig(BaseModel):
    jwt_secret: str | None = Field(
        default=None,
        description="HS256 secret used to verify live-stream viewer tokens. None = stream disabled.",
    )
    jwt_algorithm: Literal["HS256", "HS384", "HS512"] = "HS256"
    require_admin: bool = True


class AdapterDefaultsConfig(BaseModel):
    http_timeout: Annotated[float, Field(gt=0, le=60)] = Field(
        default=1.0,
        description="Timeout (seconds) for the logstash shipper when its config sets none.",
    )


class LoggingConfig(BaseModel):
    level: Literal["debug", "info", "warning", "error", "critical"] = "info"
    format: Literal["json", "console"] = "console"
    file: Path | None = None


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="LOGROUTER_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    bus: BusConfig = Field(default_factory=BusConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    directory: DirectoryConfig = Field(default_factory=DirectoryConfig)
    redaction: RedactionConfig = Field(default_factory=RedactionConfig)
    stream: StreamConfig = Field(default_factory=StreamConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    adapters: AdapterDefaultsConfig = Field(default_factory=AdapterDefaultsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, config_file: Path | None = None) -> "Settings":
        """Load settings from file + environment variables."""
        data: dict[str, object] = {}

        candidates = [
            Path("/etc/logrouter/config.yaml"),
            Path.home() / ".logrouter" / "config.yaml",
        ]
        if config_file:
            candidates.append(config_file)

        for path in candidates:
            if path.exists():
                import yaml  # lazy import, only needed when a file exists

                with path.open() as f:
                    loaded = yaml.safe_load(f) or {}
                    data.update(loaded)

        return cls(**data)


# Module-level singleton, replaced by ``Settings.load()`` at startup.
_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def override_settings(settings: Settings) -> None:
    """Replace the module-level singleton. Used in tests."""
    global _settings
    _settings = settings
