"""
api/routes/v1/incidents.py -- Incident listing and status updates.

Routes:
  GET   /incidents?start=0&end=10  -- skip/limit page of incidents
  PATCH /incidents/status          -- set an incident's status

Pagination is skip/limit: `start` rows are skipped and at most `end - start`
are returned, at most _MAX_PAGE per request. The pagination block echoes
start/end and the number of rows actually returned.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from api.limiter import limiter
from api.models import IncidentListResponse, IncidentOut, IncidentStatusResponse, IncidentStatusUpdate, Pagination
from auth.dependencies import get_current_admin
from tracker.store import TrackerStore

# Auth policy: every incident route requires a valid access token.
router = APIRouter(dependencies=[Depends(get_current_admin)])

_MAX_PAGE = 100


@limiter.limit("60/minute")
@router.get("/incidents", response_model=IncidentListResponse)
def list_incidents(
    request: Request,
    start: int = Query(default=0, ge=0),
    end: int = Query(default=10, ge=0),
) -> IncidentListResponse:
    """Return the incidents in the window [start, end), ordered by id."""
    if end < start:
        raise HTTPException(
            status_code=400,
            detail={"code": "validation_error", "message": "end must be greater than or equal to start."},
        )
    if end - start > _MAX_PAGE:
        raise HTTPException(
            status_code=400,
            detail={"code": "validation_error", "message": f"At most {_MAX_PAGE} incidents per page."},
        )
    tracker: TrackerStore = request.app.state.tracker
    incidents = tracker.list_incidents(start=start, end=end)
    return IncidentListResponse(
        data=[IncidentOut.from_incident(i) for i in incidents],
        pagination=Pagination(start=start, end=end, count=len(incidents)),
    )


@limiter.limit("30/minute")
@router.patch("/incidents/status", response_model=IncidentStatusResponse)
def update_incident_status(request: Request, body: IncidentStatusUpdate) -> IncidentStatusResponse:
    """Overwrite the status of one incident."""
    if body.id is None:
        raise HTTPException(
            status_code=400,
            detail={"code": "missing_field", "message": "Incident id is required."},
        )
    if not body.status:
        raise HTTPException(
            status_code=400,
            detail={"code": "missing_field", "message": "Status is required."},
        )
    tracker: TrackerStore = request.app.state.tracker
    updated = tracker.update_incident_status(body.id, body.status)
    if updated is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "Incident not found."},
        )
    return IncidentStatusResponse(updated_incident=IncidentOut.from_incident(updated))
