"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). The store and the
service do the work.

Layer rule: no imports from api/, tracker/, or notify/.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Admin:
    """An administrator of the incident tracker.

    hashed_password is the bcrypt hash computed once at signup; the plaintext
    never reaches this object.

    refresh_token holds the most recent refresh token only. Every successful
    signup or login overwrites it, so an admin has at most one live session
    (single-session policy, no token history).

    The three heading mappings are independent column-key -> display-label
    dicts used by the dashboard tables. They start empty.
    """

    username: str
    hashed_password: str
    id: int | None = None
    refresh_token: str | None = None
    table_headings: dict[str, str] = field(default_factory=dict)
    malware_headings: dict[str, str] = field(default_factory=dict)
    victim_headings: dict[str, str] = field(default_factory=dict)
    created_at: str | None = None
