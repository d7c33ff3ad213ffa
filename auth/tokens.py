"""
auth/tokens.py -- JWT issuance and verification.

Security design decisions:
  JWT: python-jose with HS256. Access and refresh tokens share one signing
       secret and carry sub (admin id), username, type, iat, exp and a random
       jti. The "type" claim keeps a refresh token from being accepted where
       an access token is expected, and vice versa.

  Secret: passed explicitly to TokenIssuer / TokenVerifier. The FastAPI
       lifespan builds both from core.config.get_settings(), which validates
       the key once at startup. Nothing in this module reads settings itself.

  Failure taxonomy: TokenVerifier.verify() raises TokenExpired when the
       signature checks out but exp has passed, and TokenInvalid for every
       other failure (bad signature, malformed, missing, wrong type). python-jose
       verifies the signature before it looks at claims, so a forged token
       with a past exp is reported as invalid, never as expired.

Layer rule: no imports from api/, tracker/, or notify/.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt

_ALGORITHM = "HS256"

ACCESS = "access"
REFRESH = "refresh"


class TokenError(Exception):
    """Base class for token verification failures."""


class TokenExpired(TokenError):
    """Signature is valid but the token is past its expiry."""


class TokenInvalid(TokenError):
    """Signature mismatch, malformed token, missing token, or wrong token type."""


@dataclass(frozen=True)
class TokenClaims:
    admin_id: int
    username: str
    token_type: str
    expires_at: datetime


class TokenIssuer:
    """Create signed, time-bounded access and refresh tokens.

    Lifetimes are in seconds. A non-positive lifetime yields a token that is
    already expired, which tests use to exercise the TokenExpired path.
    """

    def __init__(self, secret_key: str, access_expire_seconds: int, refresh_expire_seconds: int) -> None:
        self._secret_key = secret_key
        self.access_expire_seconds = access_expire_seconds
        self.refresh_expire_seconds = refresh_expire_seconds

    def issue_access_token(self, admin_id: int, username: str) -> str:
        return self._issue(admin_id, username, ACCESS, self.access_expire_seconds)

    def issue_refresh_token(self, admin_id: int, username: str) -> str:
        return self._issue(admin_id, username, REFRESH, self.refresh_expire_seconds)

    def _issue(self, admin_id: int, username: str, token_type: str, lifetime: int) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(admin_id),
            "username": username,
            "type": token_type,
            "iat": now,
            "exp": now + timedelta(seconds=lifetime),
            # Two tokens issued for the same admin within one second would
            # otherwise be byte-identical.
            "jti": secrets.token_hex(8),
        }
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)


class TokenVerifier:
    """Validate a token's signature and expiry and recover the admin identity.

    Does not consult any store; looking the admin up is the caller's step.
    """

    def __init__(self, secret_key: str) -> None:
        self._secret_key = secret_key

    def verify(self, token: str | None, expected_type: str = ACCESS) -> TokenClaims:
        if not token:
            raise TokenInvalid("Token is missing.")
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[_ALGORITHM])
        except ExpiredSignatureError as exc:
            raise TokenExpired("Token has expired.") from exc
        except JWTError as exc:
            raise TokenInvalid("Token could not be verified.") from exc

        if payload.get("type") != expected_type:
            raise TokenInvalid(f"Expected a {expected_type} token.")
        try:
            admin_id = int(payload["sub"])
            username = str(payload["username"])
            expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
        except (KeyError, TypeError, ValueError) as exc:
            raise TokenInvalid("Token is missing required claims.") from exc
        return TokenClaims(admin_id=admin_id, username=username, token_type=expected_type, expires_at=expires_at)
