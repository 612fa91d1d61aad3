"""Unit tests: api/auth.py (verify_token)."""

from __future__ import annotations

import time

import pytest

from logrouter.api.auth import Viewer, verify_token
from logrouter.config import AuthConfig
from logrouter.exceptions import StreamAuthError

SECRET = "another-test-secret-of-32-bytes!!!"


@pytest.fixture
def auth() -> AuthConfig:
    return AuthConfig(jwt_secret=SECRET)


@pytest.mark.unit
class TestVerifyToken:
    def test_admin_token_is_accepted(self, auth: AuthConfig, make_token) -> None:
        viewer = verify_token(make_token(SECRET, username="erin"), auth)
        assert viewer == Viewer(username="erin", admin=True)

    def test_wrong_secret(self, auth: AuthConfig, make_token) -> None:
        with pytest.raises(StreamAuthError, match="Invalid token"):
            verify_token(make_token("a-completely-different-secret-value"), auth)

    def test_garbage_token(self, auth: AuthConfig) -> None:
        with pytest.raises(StreamAuthError):
            verify_token("not.a.jwt", auth)

    def test_expired_token(self, auth: AuthConfig, make_token) -> None:
        with pytest.raises(StreamAuthError):
            verify_token(make_token(SECRET, exp=int(time.time()) - 60), auth)

    def test_non_admin_is_rejected(self, auth: AuthConfig, make_token) -> None:
        with pytest.raises(StreamAuthError, match="admin"):
            verify_token(make_token(SECRET, admin=False), auth)

    def test_admin_claim_must_be_boolean_true(self, auth: AuthConfig, make_token) -> None:
        with pytest.raises(StreamAuthError):
            verify_token(make_token(SECRET, admin="yes"), auth)

    def test_non_admin_allowed_when_not_required(self, make_token) -> None:
        auth = AuthConfig(jwt_secret=SECRET, require_admin=False)
        viewer = verify_token(make_token(SECRET, admin=False, username=42), auth)
        assert viewer == Viewer(username=None, admin=False)

    def test_disabled_without_secret(self, make_token) -> None:
        with pytest.raises(StreamAuthError, match="disabled"):
            verify_token(make_token(SECRET), AuthConfig())
