"""logrouter: Bus-wide log routing and credential redaction service.

Every message published on the bus is received, stripped of credential-like
values and fanned out to a dynamically configurable set of sinks.

Architecture layers (bottom to top):
    1. Bus        transport seam (NATS, in-memory) and subject constants
    2. Redaction  credential discovery in loosely-typed JSON + secret directory
    3. Adapters   file, HTTP shipper, crash-report and live-stream sinks
    4. Registry   one live adapter per kind, persisted and replayed at boot
    5. Router     catch-all subscriber feeding the live log stream
    6. API/CLI    FastAPI websocket + health surface, typer CLI
"""

__version__ = "0.1.0"
__license__ = "MPL-2.0"

from logrouter.redaction.engine import Redactor, scrub_credentials

__all__ = [
    "__version__",
    "Redactor",
    "scrub_credentials",
]
