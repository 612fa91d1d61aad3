"""Redaction layer: credential discovery, secret directory and the engine."""

from logrouter.redaction.categories import Category, extract
from logrouter.redaction.directory import SecretDirectory
from logrouter.redaction.engine import Redactor, scrub_credentials

__all__ = ["Category", "extract", "SecretDirectory", "Redactor", "scrub_credentials"]
