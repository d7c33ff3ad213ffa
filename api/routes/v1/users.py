"""
api/routes/v1/users.py -- End-user listing for admins.

Routes:
  GET /users -- every registered end user

Store failures are logged and returned as 500 internal_error rather than an
empty or missing body.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError

from api.models import UserListResponse, UserOut
from auth.dependencies import get_current_admin
from tracker.store import TrackerStore

logger = logging.getLogger("incidentadmin.api")

router = APIRouter(dependencies=[Depends(get_current_admin)])


@router.get("/users", response_model=UserListResponse)
def list_users(request: Request) -> UserListResponse:
    tracker: TrackerStore = request.app.state.tracker
    try:
        users = tracker.list_users()
    except SQLAlchemyError as exc:
        logger.exception("Listing users failed")
        raise HTTPException(
            status_code=500,
            detail={"code": "internal_error", "message": "Could not retrieve users."},
        ) from exc
    return UserListResponse(data=[UserOut.from_user(u) for u in users])
