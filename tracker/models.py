"""
tracker/models.py -- Domain dataclasses for the incident tracker.

Pure data containers with zero logic. Persistence lives in tracker/store.py.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Incident:
    """A reported incident.

    status is free text set by admins ("open", "investigating", "resolved", ...).
    id is None before the record is written to the database.
    """

    title: str
    description: str = ""
    category: str = ""
    status: str = "open"
    id: Optional[int] = None
    reported_at: str = ""  # ISO 8601, set by store on insert
    updated_at: Optional[str] = None


@dataclass
class User:
    """An end user of the incident reporting app. Read-only from the admin side."""

    name: str
    email: str
    phone: Optional[str] = None
    is_verified: bool = False
    id: Optional[int] = None
    created_at: str = ""
