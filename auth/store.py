"""
auth/store.py -- SQLAlchemy Core persistence layer for Admin records.

Pattern: Repository + Data Mapper. AdminStore is the repository;
_row_to_admin is the mapper. Route and service code never touches SQL.

Security:
  All queries use bound parameters. No f-strings in SQL.

Heading mappings are stored as JSON text. NULL and "" both read back as an
empty dict so older rows without headings behave like fresh ones.

Layer rule: no imports from api/, tracker/, or notify/.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine

from auth.models import Admin
from core.config import get_settings

# Columns callers may change through update_admin(). username, id and
# created_at are immutable after insert.
_MUTABLE_FIELDS = frozenset(
    {"hashed_password", "refresh_token", "table_headings", "malware_headings", "victim_headings"}
)
_JSON_FIELDS = frozenset({"table_headings", "malware_headings", "victim_headings"})

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_admins = Table(
    "admins",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("refresh_token", Text),
    Column("table_headings", Text),  # JSON object
    Column("malware_headings", Text),  # JSON object
    Column("victim_headings", Text),  # JSON object
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block during writes."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _dump_headings(headings: dict[str, str] | None) -> str:
    return json.dumps(headings or {})


def _load_headings(raw: str | None) -> dict[str, str]:
    if not raw:
        return {}
    return json.loads(raw)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AdminStore:
    """Repository for Admin entities.

    Usage:
        store = AdminStore()
        admin_id = store.create_admin(Admin(username="alice", hashed_password=hash_password("s3cret")))
        admin = store.get_by_username("alice")
        store.update_admin(admin_id, refresh_token=token)
        store.close()
    """

    def __init__(self, db_url: str | None = None) -> None:
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            # FastAPI runs sync handlers in a thread pool.
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite") and "memory" not in db_url:
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    def create_admin(self, admin: Admin) -> int:
        """Insert a new admin and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the username already exists.
        The service treats that as a Conflict: two concurrent signups for the
        same name can both pass the get_by_username() pre-check.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _admins.insert().values(
                    username=admin.username,
                    hashed_password=admin.hashed_password,
                    refresh_token=admin.refresh_token,
                    table_headings=_dump_headings(admin.table_headings),
                    malware_headings=_dump_headings(admin.malware_headings),
                    victim_headings=_dump_headings(admin.victim_headings),
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_by_username(self, username: str) -> Admin | None:
        """Look up an admin by exact username (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_admins.select().where(_admins.c.username == username)).fetchone()
        return _row_to_admin(row) if row is not None else None

    def get_by_id(self, admin_id: int) -> Admin | None:
        """Look up an admin by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_admins.select().where(_admins.c.id == admin_id)).fetchone()
        return _row_to_admin(row) if row is not None else None

    def list_admins(self) -> list[Admin]:
        """Return all admins ordered by username."""
        with self.engine.connect() as conn:
            rows = conn.execute(_admins.select().order_by(_admins.c.username)).fetchall()
        return [_row_to_admin(r) for r in rows]

    def update_admin(self, admin_id: int, **fields) -> bool:
        """Overwrite mutable fields on an existing admin.

        Accepted fields: hashed_password, refresh_token, table_headings,
        malware_headings, victim_headings. Values replace what is stored;
        heading dicts are not merged.

        Returns True if a row was updated, False if admin_id was not found.
        Unknown field names raise ValueError.
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown or immutable admin fields: {sorted(unknown)!r}")
        if not fields:
            return self.get_by_id(admin_id) is not None
        values = {k: (_dump_headings(v) if k in _JSON_FIELDS else v) for k, v in fields.items()}
        with self.engine.connect() as conn:
            result = conn.execute(_admins.update().where(_admins.c.id == admin_id).values(**values))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_admin(row) -> Admin:
    return Admin(
        id=row.id,
        username=row.username,
        hashed_password=row.hashed_password,
        refresh_token=row.refresh_token,
        table_headings=_load_headings(row.table_headings),
        malware_headings=_load_headings(row.malware_headings),
        victim_headings=_load_headings(row.victim_headings),
        created_at=row.created_at,
    )
