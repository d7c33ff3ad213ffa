"""
API request and response models for the Incident Admin REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
separate from the dataclasses in auth/models.py and tracker/models.py, which
own the internal domain representation. Route handlers map between the two.

Wire format: JSON keys are camelCase (accessToken, tableHeadings, ...).
Python attributes stay snake_case; _CamelModel generates the aliases and
accepts either spelling on input.

Credential fields are Optional so a missing or null value reaches the
service layer and comes back as 400 missing_field, not as a 422 schema error.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from auth.models import Admin
from tracker.models import Incident, User

# ---------------------------------------------------------------------------
# Error envelope and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MessageResponse(_CamelModel):
    message: str


# ---------------------------------------------------------------------------
# Auth -- requests
# ---------------------------------------------------------------------------


class CredentialsRequest(_CamelModel):
    """Request body for POST /login and POST /signup."""

    username: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, max_length=255)

    @field_validator("username")
    @classmethod
    def strip_username(cls, value: Optional[str]) -> Optional[str]:
        # Passwords are taken verbatim; only the login key is normalized.
        return value.strip() if value is not None else None


class ProfileRequest(_CamelModel):
    """Request body for POST /profile."""

    token: Optional[str] = None


class RefreshRequest(_CamelModel):
    """Request body for POST /refresh."""

    refresh_token: Optional[str] = None


# ---------------------------------------------------------------------------
# Auth -- responses
# ---------------------------------------------------------------------------


class AdminOut(_CamelModel):
    """Public view of an Admin. The password hash and refresh token are never serialized."""

    id: int
    username: str
    table_headings: dict[str, str] = Field(default_factory=dict)
    malware_headings: dict[str, str] = Field(default_factory=dict)
    victim_headings: dict[str, str] = Field(default_factory=dict)
    created_at: Optional[str] = None

    @classmethod
    def from_admin(cls, admin: Admin) -> "AdminOut":
        return cls(
            id=admin.id,
            username=admin.username,
            table_headings=admin.table_headings,
            malware_headings=admin.malware_headings,
            victim_headings=admin.victim_headings,
            created_at=admin.created_at,
        )


class SessionResponse(_CamelModel):
    """Response for POST /login (200) and POST /signup (201)."""

    access_token: str
    refresh_token: str
    admin: AdminOut
    message: str


class ProfileResponse(_CamelModel):
    """Response for POST /profile."""

    username: str
    access_token: str
    message: str = "Profile fetched successfully"


class RefreshResponse(_CamelModel):
    """Response for POST /refresh."""

    access_token: str
    message: str = "Access token refreshed"


# ---------------------------------------------------------------------------
# Incidents
# ---------------------------------------------------------------------------


class IncidentOut(_CamelModel):
    id: int
    title: str
    description: str
    category: str
    status: str
    reported_at: str
    updated_at: Optional[str] = None

    @classmethod
    def from_incident(cls, incident: Incident) -> "IncidentOut":
        return cls(
            id=incident.id,
            title=incident.title,
            description=incident.description,
            category=incident.category,
            status=incident.status,
            reported_at=incident.reported_at,
            updated_at=incident.updated_at,
        )


class Pagination(_CamelModel):
    start: int
    end: int
    count: int


class IncidentListResponse(_CamelModel):
    """Response for GET /incidents."""

    success: bool = True
    data: list[IncidentOut]
    pagination: Pagination


class IncidentStatusUpdate(_CamelModel):
    """Request body for PATCH /incidents/status."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    id: Optional[int] = None
    status: Optional[str] = Field(default=None, max_length=50)


class IncidentStatusResponse(_CamelModel):
    success: bool = True
    message: str = "Status successfully changed"
    updated_incident: IncidentOut


# ---------------------------------------------------------------------------
# Table headings
# ---------------------------------------------------------------------------


class HeadingKind(str, Enum):
    table = "table"
    malware = "malware"
    victim = "victim"

    @property
    def field_name(self) -> str:
        """Admin attribute (and store column) holding this kind of heading."""
        return f"{self.value}_headings"


class HeadingsUpdate(_CamelModel):
    """Request body for PUT /headings/{kind}. The mapping replaces the stored one."""

    headings: dict[str, str] = Field(max_length=100)


class HeadingsResponse(_CamelModel):
    message: str = "Table headings retrieved successfully!"
    data: dict[str, str]


class HeadingsUpdatedResponse(_CamelModel):
    message: str = "Heading changed successfully!"
    data: AdminOut


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserOut(_CamelModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    is_verified: bool
    created_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserOut":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            phone=user.phone,
            is_verified=user.is_verified,
            created_at=user.created_at,
        )


class UserListResponse(_CamelModel):
    """Response for GET /users."""

    message: str = "Users retrieved successfully!"
    data: list[UserOut]


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class DestinationRequest(_CamelModel):
    """Request body for the send-otp and send-reset-password-code routes.

    destination is an email address or phone number; the notifier decides
    how to reach it.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    destination: Optional[str] = Field(default=None, max_length=255)


class CodeVerifyRequest(DestinationRequest):
    code: Optional[str] = Field(default=None, max_length=12)


class VerifyResponse(_CamelModel):
    verified: bool
    message: str


class PurchaseConfirmationRequest(DestinationRequest):
    order_id: str = Field(min_length=1, max_length=64)
    item: str = Field(min_length=1, max_length=255)
    amount: float = Field(ge=0)


class DeletionRequest(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    email: Optional[str] = Field(default=None, max_length=255)
    reason: str = Field(default="", max_length=1000)
