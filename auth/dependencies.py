"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Only one method is accepted: an access token in the
"Authorization: Bearer <token>" header. Verification and the admin lookup
are delegated to AuthService.resolve_access_token() so the route guard and
POST /profile apply exactly the same rules.

Layer rule: no imports from api/, tracker/, or notify/.
  auth/dependencies.py may import from fastapi because it is part of the
  FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.models import Admin
from auth.results import ErrorKind
from auth.service import AuthService


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None


def get_current_admin(request: Request) -> Admin:
    """Require a valid access token. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(admin: Admin = Depends(get_current_admin)): ...

    A token for an admin that no longer exists is treated as unauthenticated.
    """
    token = _bearer_token(request)
    if token is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    service: AuthService = request.app.state.auth_service
    result = service.resolve_access_token(token)
    if result.ok:
        return result.value

    error = result.error
    if error.kind is ErrorKind.NOT_FOUND:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    raise HTTPException(
        status_code=error.kind.status_code,
        detail={"code": error.code, "message": error.message},
    )
