"""Envelope decoding: the shapes a credential-carrying payload can take.

Producers on the bus are heterogeneous and nothing tells the redactor which
schema a message follows, so every payload is probed as:

  1. a single envelope object,
  2. a list of envelope objects,
  3. a mapping wrapper ``{"mapping": "<escaped json>"}`` around either of the above,
  4. a bare list of credential-holder records (first element only).

Each probe returns a (possibly empty) result and never raises: malformed
JSON, a wrong top-level type or wrongly typed fields simply contribute
nothing.
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, ValidationError


def _str_or_none(v: Any) -> str | None:
    return v if isinstance(v, str) else None


def _objects_only(v: Any) -> list[Any]:
    return [i for i in v if isinstance(i, dict)] if isinstance(v, list) else []


def _object_or_none(v: Any) -> Any:
    return v if isinstance(v, dict) else None


# A credential field that is present but not a string counts as absent.
LenientStr = Annotated[Optional[str], BeforeValidator(_str_or_none)]


class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class CredentialRecord(_Record):
    """A credential holder (datacenter) as it appears nested in envelopes,
    in ``datacenters.items`` lists and as directory entries."""

    password: LenientStr = None
    aws_access_key_id: LenientStr = None
    aws_secret_access_key: LenientStr = None
    azure_subscription_id: LenientStr = None
    azure_client_id: LenientStr = None
    azure_client_secret: LenientStr = None
    azure_tenant_id: LenientStr = None


class Component(_Record):
    """An entry of an envelope's ``components`` list."""

    datacenter_password: LenientStr = None
    aws_access_key_id: LenientStr = None
    aws_secret_access_key: LenientStr = None
    azure_subscription_id: LenientStr = None
    azure_client_id: LenientStr = None
    azure_client_secret: LenientStr = None
    azure_tenant_id: LenientStr = None


class ItemList(_Record):
    items: Annotated[list[CredentialRecord], BeforeValidator(_objects_only)] = []


class Envelope(_Record):
    """The general structure of any credential-carrying message."""

    datacenter: Annotated[Optional[CredentialRecord], BeforeValidator(_object_or_none)] = None
    datacenters: Annotated[Optional[ItemList], BeforeValidator(_object_or_none)] = None
    components: Annotated[list[Component], BeforeValidator(_objects_only)] = []

    datacenter_password: LenientStr = None
    password: LenientStr = None
    aws_access_key_id: LenientStr = None
    aws_secret_access_key: LenientStr = None
    datacenter_access_token: LenientStr = None
    datacenter_access_key: LenientStr = None
    token: LenientStr = None
    secret: LenientStr = None
    azure_subscription_id: LenientStr = None
    azure_client_id: LenientStr = None
    azure_client_secret: LenientStr = None
    azure_tenant_id: LenientStr = None


# ---------------------------------------------------------------------------
# Decode attempt chain
# ---------------------------------------------------------------------------


def _loads(raw: str) -> Any:
    try:
        return json.loads(raw)
    except (ValueError, TypeError, RecursionError):
        return None


def _envelope(obj: Any) -> Envelope | None:
    if not isinstance(obj, dict):
        return None
    try:
        return Envelope.model_validate(obj)
    except ValidationError:
        return None


def decode_envelopes(raw: str) -> list[Envelope]:
    """Stages (a) and (b): *raw* as one envelope, else as a list of envelopes."""
    data = _loads(raw)
    if isinstance(data, dict):
        single = _envelope(data)
        return [single] if single is not None else []
    if isinstance(data, list):
        return [env for env in (_envelope(item) for item in data) if env is not None]
    return []


def unwrap_mapping(raw: str) -> str | None:
    """Return the unescaped inner message of a ``{"mapping": ...}`` wrapper."""
    data = _loads(raw)
    if not isinstance(data, dict):
        return None
    inner = data.get("mapping")
    if not isinstance(inner, str) or not inner:
        return None
    return inner.replace('\\"', '"')


def first_listed_record(raw: str) -> str | None:
    """Return the first element of a bare credential-record list, re-encoded
    as a single JSON object, or None when *raw* is not such a list."""
    data = _loads(raw)
    if not isinstance(data, list) or not data or not isinstance(data[0], dict):
        return None
    try:
        record = CredentialRecord.model_validate(data[0])
    except ValidationError:
        return None
    return record.model_dump_json(exclude_none=True)
