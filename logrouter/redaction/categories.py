"""Credential categories and where each one lives inside an envelope.

Extraction is a pure function of (category, envelope): it reads every known
field location for the category and returns the non-empty values in a
stable order: component list first, then ``datacenters.items``, then the
direct fields, then the nested ``datacenter`` record.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from logrouter.redaction.envelope import Envelope


class Category(str, Enum):
    """Credential categories, in the order the redaction pass processes them."""

    PASSWORD = "password"
    ACCESS_KEY = "access_key"
    SECRET_KEY = "secret_key"
    SUBSCRIPTION_ID = "subscription_id"
    CLIENT_ID = "client_id"
    CLIENT_SECRET = "client_secret"
    TENANT_ID = "tenant_id"


@dataclass(frozen=True)
class FieldLocations:
    component: str            # field on each ``components[]`` entry
    record: str               # field on ``datacenters.items[]`` and ``datacenter``
    direct: tuple[str, ...]   # top-level envelope fields, including legacy aliases


LOCATIONS: dict[Category, FieldLocations] = {
    Category.PASSWORD: FieldLocations(
        component="datacenter_password",
        record="password",
        direct=("datacenter_password", "password"),
    ),
    Category.ACCESS_KEY: FieldLocations(
        component="aws_access_key_id",
        record="aws_access_key_id",
        direct=("aws_access_key_id", "datacenter_access_token", "token"),
    ),
    Category.SECRET_KEY: FieldLocations(
        component="aws_secret_access_key",
        record="aws_secret_access_key",
        direct=("aws_secret_access_key", "datacenter_access_key", "secret"),
    ),
    Category.SUBSCRIPTION_ID: FieldLocations(
        component="azure_subscription_id",
        record="azure_subscription_id",
        direct=("azure_subscription_id",),
    ),
    Category.CLIENT_ID: FieldLocations(
        component="azure_client_id",
        record="azure_client_id",
        direct=("azure_client_id",),
    ),
    Category.CLIENT_SECRET: FieldLocations(
        component="azure_client_secret",
        record="azure_client_secret",
        direct=("azure_client_secret",),
    ),
    Category.TENANT_ID: FieldLocations(
        component="azure_tenant_id",
        record="azure_tenant_id",
        direct=("azure_tenant_id",),
    ),
}


def extract(category: Category, envelope: Envelope) -> list[str]:
    """Return every non-empty value of *category* present in *envelope*."""
    where = LOCATIONS[category]
    found: list[str | None] = []

    found.extend(getattr(c, where.component) for c in envelope.components)
    if envelope.datacenters is not None:
        found.extend(getattr(item, where.record) for item in envelope.datacenters.items)
    found.extend(getattr(envelope, name) for name in where.direct)
    if envelope.datacenter is not None:
        found.append(getattr(envelope.datacenter, where.record))

    return [value for value in found if value]


def extract_all(category: Category, envelopes: list[Envelope]) -> list[str]:
    return [value for env in envelopes for value in extract(category, env)]
