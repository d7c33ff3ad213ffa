"""
auth/service.py -- Signup, login, profile and refresh orchestration.

AuthService composes the Credential Store (AdminStore), the password helpers,
and the token issuer/verifier. Each call is independent; nothing is kept
between requests beyond what the token encodes and what the store holds.

Session policy:
  Every successful signup or login overwrites Admin.refresh_token. Only the
  latest refresh token can be exchanged via refresh(). This is a single
  session per admin, not a multi-device allowlist.

Error policy:
  Validation failures return immediately as AuthError values. Store, hashing
  and signing failures are caught, logged, and returned as INTERNAL with the
  original message in detail. Nothing is retried.

Layer rule: no imports from api/, tracker/, or notify/.
"""

from __future__ import annotations

import hmac
import logging

from jose import JWTError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.models import Admin
from auth.passwords import hash_password, verify_password
from auth.results import AuthError, AuthResult, AuthSession, ErrorKind, ProfileGrant
from auth.store import AdminStore
from auth.tokens import REFRESH, TokenExpired, TokenInvalid, TokenIssuer, TokenVerifier

logger = logging.getLogger("incidentadmin.auth")

_INTERNAL_ERRORS = (SQLAlchemyError, JWTError, ValueError)

_CONFLICT = AuthError(ErrorKind.CONFLICT, "conflict", "Admin already exists.")
_ADMIN_NOT_FOUND = AuthError(ErrorKind.NOT_FOUND, "not_found", "Admin not found.")
_BAD_CREDENTIALS = AuthError(ErrorKind.UNAUTHORIZED, "bad_credentials", "Invalid credentials.")
_EXPIRED_TOKEN = AuthError(ErrorKind.UNAUTHORIZED, "expired_token", "Token expired, please log in again.")
_INVALID_TOKEN = AuthError(ErrorKind.UNAUTHORIZED, "invalid_token", "Invalid token.")


def _missing(message: str) -> AuthResult:
    return AuthResult(error=AuthError(ErrorKind.MISSING_FIELD, "missing_field", message))


def _internal(operation: str, exc: Exception) -> AuthResult:
    logger.exception("%s failed", operation)
    return AuthResult(
        error=AuthError(ErrorKind.INTERNAL, "internal_error", "Internal server error.", detail=str(exc))
    )


class AuthService:
    def __init__(self, store: AdminStore, issuer: TokenIssuer, verifier: TokenVerifier) -> None:
        self.store = store
        self.issuer = issuer
        self.verifier = verifier

    # ------------------------------------------------------------------
    # Signup / login
    # ------------------------------------------------------------------

    def signup(self, username: str, password: str) -> AuthResult[AuthSession]:
        """Create an admin and open its first session.

        The password is hashed here, before the record exists. A username
        that is already taken returns CONFLICT and leaves the existing record
        untouched, including when a concurrent signup wins the insert race.
        """
        if not username or not password:
            return _missing("Username and password are required.")
        try:
            if self.store.get_by_username(username) is not None:
                return AuthResult(error=_CONFLICT)
            try:
                admin_id = self.store.create_admin(Admin(username=username, hashed_password=hash_password(password)))
            except IntegrityError:
                return AuthResult(error=_CONFLICT)
            # Reload so the session carries the stored created_at.
            admin = self.store.get_by_id(admin_id)
            if admin is None:
                return AuthResult(error=_ADMIN_NOT_FOUND)
            session = self._open_session(admin)
        except _INTERNAL_ERRORS as exc:
            return _internal("Signup", exc)
        logger.info("Admin created (id=%d)", admin.id)
        return AuthResult(value=session)

    def login(self, username: str, password: str) -> AuthResult[AuthSession]:
        """Check credentials and rotate the admin's refresh token.

        A wrong password issues nothing and writes nothing.
        """
        if not username or not password:
            return _missing("Username and password are required.")
        try:
            admin = self.store.get_by_username(username)
            if admin is None:
                return AuthResult(error=_ADMIN_NOT_FOUND)
            if not verify_password(password, admin.hashed_password):
                logger.info("Rejected login for admin id=%d: bad credentials", admin.id)
                return AuthResult(error=_BAD_CREDENTIALS)
            session = self._open_session(admin)
        except _INTERNAL_ERRORS as exc:
            return _internal("Login", exc)
        return AuthResult(value=session)

    def _open_session(self, admin: Admin) -> AuthSession:
        access_token = self.issuer.issue_access_token(admin.id, admin.username)
        refresh_token = self.issuer.issue_refresh_token(admin.id, admin.username)
        # Overwrite, never append: the previous refresh token stops being current.
        self.store.update_admin(admin.id, refresh_token=refresh_token)
        admin.refresh_token = refresh_token
        return AuthSession(access_token=access_token, refresh_token=refresh_token, admin=admin)

    # ------------------------------------------------------------------
    # Token-based operations
    # ------------------------------------------------------------------

    def resolve_access_token(self, token: str | None) -> AuthResult[Admin]:
        """Verify an access token and load the admin it names.

        Used by get_profile() and by the Bearer dependency that guards the
        incident, heading and user routes.
        """
        if not token:
            return _missing("Token is required.")
        try:
            claims = self.verifier.verify(token)
        except TokenExpired:
            return AuthResult(error=_EXPIRED_TOKEN)
        except TokenInvalid:
            return AuthResult(error=_INVALID_TOKEN)
        try:
            admin = self.store.get_by_id(claims.admin_id)
        except _INTERNAL_ERRORS as exc:
            return _internal("Admin lookup", exc)
        if admin is None:
            return AuthResult(error=_ADMIN_NOT_FOUND)
        return AuthResult(value=admin)

    def get_profile(self, token: str | None) -> AuthResult[ProfileGrant]:
        """Return the admin behind an access token along with a fresh access token."""
        resolved = self.resolve_access_token(token)
        if not resolved.ok:
            return AuthResult(error=resolved.error)
        admin = resolved.value
        try:
            access_token = self.issuer.issue_access_token(admin.id, admin.username)
        except _INTERNAL_ERRORS as exc:
            return _internal("Profile token rotation", exc)
        return AuthResult(value=ProfileGrant(access_token=access_token, admin=admin))

    def refresh(self, refresh_token: str | None) -> AuthResult[ProfileGrant]:
        """Exchange the admin's current refresh token for a new access token.

        A refresh token that has been overwritten by a later login verifies
        cryptographically but is rejected as invalid_token because it no
        longer matches the stored value.
        """
        if not refresh_token:
            return _missing("Refresh token is required.")
        try:
            claims = self.verifier.verify(refresh_token, expected_type=REFRESH)
        except TokenExpired:
            return AuthResult(error=_EXPIRED_TOKEN)
        except TokenInvalid:
            return AuthResult(error=_INVALID_TOKEN)
        try:
            admin = self.store.get_by_id(claims.admin_id)
            if admin is None:
                return AuthResult(error=_ADMIN_NOT_FOUND)
            if not hmac.compare_digest(admin.refresh_token or "", refresh_token):
                return AuthResult(error=_INVALID_TOKEN)
            access_token = self.issuer.issue_access_token(admin.id, admin.username)
        except _INTERNAL_ERRORS as exc:
            return _internal("Token refresh", exc)
        return AuthResult(value=ProfileGrant(access_token=access_token, admin=admin))
