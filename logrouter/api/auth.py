"""Live-stream viewer authentication (PyJWT)."""

from __future__ import annotations

from dataclasses import dataclass

import jwt

from logrouter.config import AuthConfig
from logrouter.exceptions import StreamAuthError


@dataclass(frozen=True)
class Viewer:
    username: str | None
    admin: bool


def verify_token(token: str, auth: AuthConfig) -> Viewer:
    """Validate a viewer token and return who it belongs to.

    The token must be signed with ``auth.jwt_secret`` using
    ``auth.jwt_algorithm``; when ``auth.require_admin`` is set its ``admin``
    claim must be ``true``.

    Raises:
        StreamAuthError: streaming is disabled, or the token is rejected.
    """
    if not auth.jwt_secret:
        raise StreamAuthError("Live streaming is disabled: no jwt_secret configured")
    try:
        claims = jwt.decode(token, auth.jwt_secret, algorithms=[auth.jwt_algorithm])
    except jwt.InvalidTokenError as exc:
        raise StreamAuthError(f"Invalid token: {exc}") from exc

    admin = claims.get("admin") is True
    if auth.require_admin and not admin:
        raise StreamAuthError("Token lacks admin privileges")

    username = claims.get("username")
    return Viewer(username=username if isinstance(username, str) else None, admin=admin)
