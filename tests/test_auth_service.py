"""
tests/test_auth_service.py -- Unit tests for auth/service.py.

AuthService runs against a real AdminStore on in-memory SQLite and real
tokens; only time-based behaviour is driven by issuing with negative lifetimes.

Covers:
  - signup -> login round trip with non-empty tokens
  - duplicate signup (pre-check or insert race) is CONFLICT and leaves the stored hash and refresh token alone
  - wrong password is UNAUTHORIZED and persists nothing
  - two logins leave exactly the latest refresh token on the record
  - get_profile taxonomy: missing, expired, invalid, unknown admin
  - refresh only accepts the current refresh token
  - store failures become INTERNAL with the original message attached
"""

from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from auth.results import ErrorKind
from auth.service import AuthService
from auth.store import AdminStore
from auth.tokens import TokenIssuer, TokenVerifier

SECRET = "s" * 64


@pytest.fixture
def store():
    s = AdminStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def service(store) -> AuthService:
    issuer = TokenIssuer(SECRET, access_expire_seconds=300, refresh_expire_seconds=3600)
    return AuthService(store, issuer, TokenVerifier(SECRET))


class TestSignup:
    def test_signup_returns_tokens_and_admin(self, service) -> None:
        result = service.signup("alice", "s3cret")
        assert result.ok
        session = result.value
        assert session.access_token
        assert session.refresh_token
        assert session.admin.username == "alice"
        assert session.admin.id is not None

    def test_signup_hashes_password(self, service, store) -> None:
        service.signup("alice", "s3cret")
        assert store.get_by_username("alice").hashed_password != "s3cret"

    def test_signup_persists_refresh_token(self, service, store) -> None:
        session = service.signup("alice", "s3cret").value
        assert store.get_by_username("alice").refresh_token == session.refresh_token

    def test_signup_admin_carries_stored_created_at(self, service, store) -> None:
        admin = service.signup("alice", "s3cret").value.admin
        assert admin.created_at
        assert admin.created_at == store.get_by_username("alice").created_at

    def test_signup_starts_with_empty_headings(self, service) -> None:
        admin = service.signup("alice", "s3cret").value.admin
        assert admin.table_headings == {}
        assert admin.malware_headings == {}
        assert admin.victim_headings == {}

    @pytest.mark.parametrize("username,password", [("", "pw"), ("alice", ""), ("", "")])
    def test_signup_missing_fields(self, service, username, password) -> None:
        result = service.signup(username, password)
        assert result.error.kind is ErrorKind.MISSING_FIELD
        assert result.error.kind.status_code == 400

    def test_duplicate_signup_is_conflict_and_keeps_record(self, service, store) -> None:
        service.signup("alice", "s3cret")
        before = store.get_by_username("alice")

        result = service.signup("alice", "other-password")

        assert result.error.kind is ErrorKind.CONFLICT
        assert result.error.kind.status_code == 400
        after = store.get_by_username("alice")
        assert after.hashed_password == before.hashed_password
        assert after.refresh_token == before.refresh_token

    def test_insert_race_is_conflict_and_keeps_record(self, service, store, monkeypatch) -> None:
        service.signup("alice", "s3cret")
        before = store.get_by_username("alice")

        # The pre-check misses the existing row, as when a concurrent signup wins the insert.
        monkeypatch.setattr(store, "get_by_username", lambda username: None)
        result = service.signup("alice", "other-password")
        monkeypatch.undo()

        assert result.error.kind is ErrorKind.CONFLICT
        after = store.get_by_username("alice")
        assert after.hashed_password == before.hashed_password
        assert after.refresh_token == before.refresh_token


class TestLogin:
    def test_signup_then_login(self, service) -> None:
        signup = service.signup("alice", "s3cret")
        login = service.login("alice", "s3cret")
        assert signup.ok and login.ok
        assert signup.value.access_token
        assert login.value.access_token
        assert login.value.admin.username == "alice"

    def test_unknown_admin_is_not_found(self, service) -> None:
        result = service.login("ghost", "pw")
        assert result.error.kind is ErrorKind.NOT_FOUND
        assert result.error.kind.status_code == 404

    def test_missing_fields(self, service) -> None:
        assert service.login("", "pw").error.kind is ErrorKind.MISSING_FIELD
        assert service.login("alice", "").error.kind is ErrorKind.MISSING_FIELD

    def test_wrong_password_is_unauthorized_and_persists_nothing(self, service, store) -> None:
        service.signup("alice", "s3cret")
        before = store.get_by_username("alice").refresh_token

        result = service.login("alice", "wrong")

        assert result.error.kind is ErrorKind.UNAUTHORIZED
        assert result.error.code == "bad_credentials"
        assert result.value is None
        assert store.get_by_username("alice").refresh_token == before

    def test_second_login_overwrites_refresh_token(self, service, store) -> None:
        service.signup("alice", "s3cret")
        first = service.login("alice", "s3cret").value.refresh_token
        second = service.login("alice", "s3cret").value.refresh_token

        assert first != second
        assert store.get_by_username("alice").refresh_token == second


class TestProfile:
    def test_profile_returns_username_and_fresh_token(self, service) -> None:
        session = service.signup("alice", "s3cret").value
        result = service.get_profile(session.access_token)
        assert result.ok
        assert result.value.admin.username == "alice"
        assert result.value.access_token
        assert result.value.access_token != session.access_token

    def test_missing_token(self, service) -> None:
        assert service.get_profile(None).error.kind is ErrorKind.MISSING_FIELD
        assert service.get_profile("").error.kind is ErrorKind.MISSING_FIELD

    def test_expired_token(self, service, store) -> None:
        admin = service.signup("alice", "s3cret").value.admin
        expired = TokenIssuer(SECRET, access_expire_seconds=-10, refresh_expire_seconds=-5)
        result = service.get_profile(expired.issue_access_token(admin.id, admin.username))
        assert result.error.kind is ErrorKind.UNAUTHORIZED
        assert result.error.code == "expired_token"

    def test_invalid_token(self, service) -> None:
        result = service.get_profile("garbage")
        assert result.error.kind is ErrorKind.UNAUTHORIZED
        assert result.error.code == "invalid_token"

    def test_foreign_secret_token(self, service) -> None:
        admin = service.signup("alice", "s3cret").value.admin
        foreign = TokenIssuer("f" * 64, access_expire_seconds=300, refresh_expire_seconds=3600)
        result = service.get_profile(foreign.issue_access_token(admin.id, admin.username))
        assert result.error.code == "invalid_token"

    def test_unknown_admin(self, service) -> None:
        issuer = TokenIssuer(SECRET, access_expire_seconds=300, refresh_expire_seconds=3600)
        result = service.get_profile(issuer.issue_access_token(4242, "ghost"))
        assert result.error.kind is ErrorKind.NOT_FOUND


class TestRefresh:
    def test_current_refresh_token_is_exchanged(self, service) -> None:
        session = service.signup("alice", "s3cret").value
        result = service.refresh(session.refresh_token)
        assert result.ok
        assert result.value.access_token

    def test_superseded_refresh_token_is_rejected(self, service) -> None:
        first = service.signup("alice", "s3cret").value.refresh_token
        service.login("alice", "s3cret")
        result = service.refresh(first)
        assert result.error.code == "invalid_token"

    def test_access_token_cannot_refresh(self, service) -> None:
        session = service.signup("alice", "s3cret").value
        assert service.refresh(session.access_token).error.code == "invalid_token"

    def test_missing_refresh_token(self, service) -> None:
        assert service.refresh(None).error.kind is ErrorKind.MISSING_FIELD


class TestInternalErrors:
    def test_store_failure_is_internal_with_detail(self, service, store, monkeypatch) -> None:
        def boom(username):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(store, "get_by_username", boom)
        result = service.login("alice", "s3cret")
        assert result.error.kind is ErrorKind.INTERNAL
        assert result.error.kind.status_code == 500
        assert "database is locked" in result.error.detail
