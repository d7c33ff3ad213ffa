"""
notify/codes.py -- Storage and verification of one-time codes.

Codes are 6 random digits from secrets.randbelow(). Only
HMAC-SHA256(secret_key, "purpose:destination:code") is persisted, so a copy
of the database does not reveal live codes.

Rules:
  - One live code per (destination, purpose). Issuing a new code deletes the
    previous one in the same transaction.
  - Codes expire expire_seconds after issue.
  - Codes are single use: a successful verify deletes the row.
  - Comparison uses hmac.compare_digest.
  - After max_attempts wrong guesses the code is deleted; the correct code
    no longer verifies and a new one must be issued.

Purposes are a closed set (PURPOSES) so the same table can back OTP login
codes and password-reset codes without them being interchangeable.
"""

import hashlib
import hmac
import secrets
import time
from typing import Callable, Optional

from sqlalchemy import Column, Float, Integer, MetaData, String, Table, UniqueConstraint, create_engine, event, text
from sqlalchemy.engine import Engine

from core.config import get_settings

OTP = "otp"
RESET_PASSWORD = "reset_password"
PURPOSES = frozenset({OTP, RESET_PASSWORD})

_CODE_DIGITS = 6
DEFAULT_MAX_ATTEMPTS = 5

metadata = MetaData()

_codes = Table(
    "verification_codes",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("destination", String(255), nullable=False),
    Column("purpose", String(30), nullable=False),
    Column("code_hash", String(64), nullable=False),  # HMAC-SHA256 hex
    Column("expires_at", Float, nullable=False),  # epoch seconds
    Column("attempts", Integer, nullable=False, default=0),  # wrong guesses so far
    UniqueConstraint("destination", "purpose", name="uq_destination_purpose"),
)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


class CodeStore:
    """Issue and verify one-time codes.

    Usage:
        codes = CodeStore(secret_key=settings.secret_key, expire_seconds=600)
        code = codes.issue("alice@example.com", OTP)
        codes.verify("alice@example.com", OTP, code)   # True once, then False
    """

    def __init__(
        self,
        secret_key: str,
        expire_seconds: int,
        db_url: Optional[str] = None,
        clock: Callable[[], float] = time.time,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        self._secret_key = secret_key.encode()
        self.expire_seconds = expire_seconds
        self.max_attempts = max_attempts
        self._clock = clock
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite") and "memory" not in db_url:
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)
        self._ensure_attempts_column()

    def _ensure_attempts_column(self) -> None:
        """Add the attempts column to verification_codes tables created before it existed."""
        if self.engine.dialect.name != "sqlite":
            return
        with self.engine.connect() as conn:
            rows = conn.execute(text("PRAGMA table_info(verification_codes)")).fetchall()
            existing_cols = {row[1] for row in rows}
            if "attempts" not in existing_cols:
                conn.execute(text("ALTER TABLE verification_codes ADD COLUMN attempts INTEGER NOT NULL DEFAULT 0"))
                conn.commit()

    def _hash(self, destination: str, purpose: str, code: str) -> str:
        message = f"{purpose}:{destination}:{code}".encode()
        return hmac.new(self._secret_key, message, hashlib.sha256).hexdigest()

    def issue(self, destination: str, purpose: str) -> str:
        """Create a fresh code for destination, replacing any live one, and return it."""
        if purpose not in PURPOSES:
            raise ValueError(f"Unknown code purpose: {purpose!r}")
        code = f"{secrets.randbelow(10**_CODE_DIGITS):0{_CODE_DIGITS}d}"
        where = (_codes.c.destination == destination) & (_codes.c.purpose == purpose)
        with self.engine.begin() as conn:
            conn.execute(_codes.delete().where(where))
            conn.execute(
                _codes.insert().values(
                    destination=destination,
                    purpose=purpose,
                    code_hash=self._hash(destination, purpose, code),
                    expires_at=self._clock() + self.expire_seconds,
                )
            )
        return code

    def verify(self, destination: str, purpose: str, code: str) -> bool:
        """Return True if code is the live code for destination and consume it.

        Expired codes are deleted on sight and never verify. A wrong code
        leaves the live code in place until max_attempts wrong guesses have
        been made, at which point the code is deleted.
        """
        if purpose not in PURPOSES:
            raise ValueError(f"Unknown code purpose: {purpose!r}")
        where = (_codes.c.destination == destination) & (_codes.c.purpose == purpose)
        with self.engine.begin() as conn:
            row = conn.execute(_codes.select().where(where)).fetchone()
            if row is None:
                return False
            if self._clock() >= row.expires_at:
                conn.execute(_codes.delete().where(_codes.c.id == row.id))
                return False
            if not hmac.compare_digest(row.code_hash, self._hash(destination, purpose, code)):
                if row.attempts + 1 >= self.max_attempts:
                    conn.execute(_codes.delete().where(_codes.c.id == row.id))
                else:
                    conn.execute(
                        _codes.update().where(_codes.c.id == row.id).values(attempts=row.attempts + 1)
                    )
                return False
            conn.execute(_codes.delete().where(_codes.c.id == row.id))
        return True

    def close(self) -> None:
        self.engine.dispose()
