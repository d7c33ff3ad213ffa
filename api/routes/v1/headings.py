"""
api/routes/v1/headings.py -- Per-admin table column headings.

Routes:
  GET /headings/{kind}  -- the authenticated admin's mapping for one table
  PUT /headings/{kind}  -- replace that mapping

kind is one of table | malware | victim. The three mappings are stored in
separate columns and never affect each other. PUT replaces the whole mapping;
keys missing from the body are dropped.
"""

from fastapi import APIRouter, Depends, HTTPException, Request

from api.models import AdminOut, HeadingKind, HeadingsResponse, HeadingsUpdate, HeadingsUpdatedResponse
from auth.dependencies import get_current_admin
from auth.models import Admin
from auth.store import AdminStore

router = APIRouter()


@router.get("/headings/{kind}", response_model=HeadingsResponse)
def get_headings(kind: HeadingKind, admin: Admin = Depends(get_current_admin)) -> HeadingsResponse:
    """Return the current admin's headings for one table kind ({} when never set)."""
    return HeadingsResponse(data=getattr(admin, kind.field_name))


@router.put("/headings/{kind}", response_model=HeadingsUpdatedResponse)
def update_headings(
    request: Request,
    kind: HeadingKind,
    body: HeadingsUpdate,
    admin: Admin = Depends(get_current_admin),
) -> HeadingsUpdatedResponse:
    store: AdminStore = request.app.state.admin_store
    if not store.update_admin(admin.id, **{kind.field_name: body.headings}):
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "Admin not found."},
        )
    updated = store.get_by_id(admin.id)
    if updated is None:
        raise HTTPException(
            status_code=500,
            detail={"code": "internal_error", "message": "Admin not found after write."},
        )
    return HeadingsUpdatedResponse(data=AdminOut.from_admin(updated))
