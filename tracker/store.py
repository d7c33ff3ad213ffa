"""
tracker/store.py -- SQLAlchemy-backed persistence for incidents and users.

Uses SQLAlchemy Core (not ORM) so the dataclasses in tracker/models.py stay
the authoritative domain representation.

Pattern: Repository + Data Mapper. TrackerStore is the repository; the
_row_to_* functions are the mappers.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = TrackerStore()
    incident_id = store.create_incident(Incident(title="Phishing wave"))
    page = store.list_incidents(start=0, end=10)
    store.update_incident_status(incident_id, "resolved")
    store.close()
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine

from core.config import get_settings
from tracker.models import Incident, User

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_incidents = Table(
    "incidents",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255), nullable=False),
    Column("description", Text),
    Column("category", String(100)),
    Column("status", String(50), nullable=False, server_default="open"),
    Column("reported_at", String(32), nullable=False),
    Column("updated_at", String(32)),
)

_users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("phone", String(32)),
    Column("is_verified", Integer, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class TrackerStore:
    def __init__(self, db_url: Optional[str] = None) -> None:
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite") and "memory" not in db_url:
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Incidents
    # ------------------------------------------------------------------

    def create_incident(self, incident: Incident) -> int:
        """Insert an incident and return its assigned ID."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _incidents.insert().values(
                    title=incident.title,
                    description=incident.description,
                    category=incident.category,
                    status=incident.status,
                    reported_at=incident.reported_at or _now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def list_incidents(self, start: int = 0, end: int = 10) -> list[Incident]:
        """Return the incidents in the half-open window [start, end), ordered by id.

        Skip/limit pagination: skip `start` rows, return at most `end - start`.
        Callers validate that 0 <= start <= end.
        """
        with self.engine.connect() as conn:
            rows = conn.execute(
                _incidents.select().order_by(_incidents.c.id).offset(start).limit(end - start)
            ).fetchall()
        return [_row_to_incident(r) for r in rows]

    def get_incident(self, incident_id: int) -> Optional[Incident]:
        with self.engine.connect() as conn:
            row = conn.execute(_incidents.select().where(_incidents.c.id == incident_id)).fetchone()
        return _row_to_incident(row) if row is not None else None

    def update_incident_status(self, incident_id: int, status: str) -> Optional[Incident]:
        """Set the status of an incident and return the updated record.

        Returns None if no incident has that ID.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _incidents.update()
                .where(_incidents.c.id == incident_id)
                .values(status=status, updated_at=_now_iso())
            )
            conn.commit()
        if result.rowcount == 0:
            return None
        return self.get_incident(incident_id)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert an end user. Raises IntegrityError on a duplicate email."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    name=user.name,
                    email=user.email,
                    phone=user.phone,
                    is_verified=1 if user.is_verified else 0,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def list_users(self) -> list[User]:
        """Return every end user ordered by id."""
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.id)).fetchall()
        return [_row_to_user(r) for r in rows]

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_incident(row) -> Incident:
    return Incident(
        id=row.id,
        title=row.title,
        description=row.description or "",
        category=row.category or "",
        status=row.status,
        reported_at=row.reported_at,
        updated_at=row.updated_at,
    )


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        phone=row.phone,
        is_verified=bool(row.is_verified),
        created_at=row.created_at,
    )
