"""
api/routes/v1/admin.py -- Admin authentication endpoints.

Routes:
  POST /signup    -- create admin; 201 with access + refresh tokens
  POST /login     -- username/password login; 200 with access + refresh tokens
  POST /profile   -- access token in body; 200 with username + fresh access token
  POST /refresh   -- current refresh token in body; 200 with fresh access token

All four are public: they are how a client obtains credentials.

AuthService returns AuthResult values. _raise_for() is the single place where
an AuthError becomes an HTTP status and error envelope:
  missing_field 400, conflict 400, not_found 404,
  bad_credentials / expired_token / invalid_token 401, internal_error 500.

Security:
  /signup and /login are rate-limited per client IP (LOGIN_RATE_LIMIT).
  Cache-Control: no-store on every response that carries a token.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request, Response

from api.limiter import AUTH_RATE_LIMIT, limiter
from api.models import (
    AdminOut,
    CredentialsRequest,
    ProfileRequest,
    ProfileResponse,
    RefreshRequest,
    RefreshResponse,
    SessionResponse,
)
from auth.results import AuthError, AuthSession
from auth.service import AuthService
from core.config import get_settings

logger = logging.getLogger("incidentadmin.api")

router = APIRouter()


def _raise_for(error: AuthError) -> None:
    """Translate an AuthError into an HTTPException carrying the error envelope.

    The original exception text of an internal error is only exposed when
    DEBUG is on; otherwise it stays in the server log.
    """
    detail: dict = {"code": error.code, "message": error.message}
    if error.detail and get_settings().debug:
        detail["detail"] = error.detail
    raise HTTPException(status_code=error.kind.status_code, detail=detail)


def _session_response(session: AuthSession, message: str) -> SessionResponse:
    return SessionResponse(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        admin=AdminOut.from_admin(session.admin),
        message=message,
    )


@limiter.limit(AUTH_RATE_LIMIT)
@router.post("/signup", response_model=SessionResponse, status_code=201)
def signup(request: Request, response: Response, body: CredentialsRequest) -> SessionResponse:
    """Create an admin account and open its first session."""
    service: AuthService = request.app.state.auth_service
    result = service.signup(body.username or "", body.password or "")
    response.headers["Cache-Control"] = "no-store"
    if not result.ok:
        _raise_for(result.error)
    return _session_response(result.value, "Admin created successfully")


@limiter.limit(AUTH_RATE_LIMIT)
@router.post("/login", response_model=SessionResponse)
def login(request: Request, response: Response, body: CredentialsRequest) -> SessionResponse:
    """Authenticate with username and password.

    Issues a new access/refresh pair. The refresh token replaces whatever the
    admin had stored before, so older sessions can no longer refresh.
    """
    service: AuthService = request.app.state.auth_service
    result = service.login(body.username or "", body.password or "")
    response.headers["Cache-Control"] = "no-store"
    if not result.ok:
        _raise_for(result.error)
    return _session_response(result.value, "Login successful")


@router.post("/profile", response_model=ProfileResponse)
def profile(request: Request, response: Response, body: ProfileRequest) -> ProfileResponse:
    """Return the admin's username with a freshly issued access token.

    Expired tokens get 401 expired_token ("log in again"); anything else
    that fails verification gets 401 invalid_token.
    """
    service: AuthService = request.app.state.auth_service
    result = service.get_profile(body.token)
    response.headers["Cache-Control"] = "no-store"
    if not result.ok:
        _raise_for(result.error)
    grant = result.value
    return ProfileResponse(username=grant.admin.username, access_token=grant.access_token)


@router.post("/refresh", response_model=RefreshResponse)
def refresh(request: Request, response: Response, body: RefreshRequest) -> RefreshResponse:
    """Exchange the admin's current refresh token for a new access token."""
    service: AuthService = request.app.state.auth_service
    result = service.refresh(body.refresh_token)
    response.headers["Cache-Control"] = "no-store"
    if not result.ok:
        _raise_for(result.error)
    return RefreshResponse(access_token=result.value.access_token)
