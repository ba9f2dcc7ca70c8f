"""
auth/store.py -- SQLAlchemy Core persistence layer for identity records.

Pattern: Repository + Data Mapper.
IdentityStore is the repository; _row_to_identity is the mapper.
Route and service code never touches SQL directly.

Failure contract of lookup():
  - record present            -> IdentityRecord
  - record absent             -> IdentityNotFoundError
  - connection failure/timeout -> StoreUnavailableError
  Anything else (programming errors, schema drift) propagates unchanged so it
  is never mistaken for a wrong password.

Security:
  All queries use bound parameters. No f-strings in SQL.
  email is matched case-sensitively; it is the natural key.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DisconnectionError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from auth.errors import IdentityNotFoundError, StoreUnavailableError
from auth.models import IdentityRecord

logger = logging.getLogger("authgate.store")

_DEFAULT_DB_URL = "sqlite:///authgate.db"

# Errors that mean "the store did not answer", as opposed to "the store
# answered and there is no such record".
_TRANSIENT_ERRORS = (OperationalError, DisconnectionError, PoolTimeoutError, TimeoutError, ConnectionError)

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False, server_default=""),
    Column("email", String(255), nullable=False, unique=True),
    Column("password", Text, nullable=False),  # bcrypt hash
    Column("created_at", String(32), nullable=False),
)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers never block on a writer."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class IdentityStore:
    """Repository for IdentityRecord entities.

    Usage:
        store = IdentityStore("sqlite:///authgate.db")
        store.create_identity(IdentityRecord(email="a@example.com", password_hash=hash_password("secret")))
        record = store.lookup("a@example.com")
        store.close()

    timeout bounds every wait on the store: SQLite's busy timeout, or the
    connection pool checkout for server databases.
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL, timeout: float = 5.0) -> None:
        connect_args: dict = {}
        engine_kwargs: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
            connect_args["timeout"] = timeout
        else:
            engine_kwargs["pool_timeout"] = timeout
            engine_kwargs["pool_pre_ping"] = True
        self.engine: Engine = create_engine(db_url, connect_args=connect_args, **engine_kwargs)
        if db_url.startswith("sqlite") and ":memory:" not in db_url and "mode=memory" not in db_url:
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def lookup(self, identifier: str) -> IdentityRecord:
        """Fetch the identity record for identifier (exact, case-sensitive match).

        Raises IdentityNotFoundError if no record exists and
        StoreUnavailableError if the store could not be reached in time.
        """
        if not identifier:
            raise ValueError("identifier must be a non-empty string")
        try:
            with self.engine.connect() as conn:
                row = conn.execute(_users.select().where(_users.c.email == identifier)).fetchone()
        except _TRANSIENT_ERRORS as exc:
            logger.error("Identity store lookup failed: %s", type(exc).__name__)
            raise StoreUnavailableError("Identity store unavailable") from exc
        if row is None:
            raise IdentityNotFoundError(identifier)
        return _row_to_identity(row)

    def count_identities(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return result or 0

    # ------------------------------------------------------------------
    # Provisioning (never called on the sign-in path)
    # ------------------------------------------------------------------

    def create_identity(self, record: IdentityRecord) -> int:
        """Insert a new identity and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    name=record.name,
                    email=record.email,
                    password=record.password_hash,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_identity(row) -> IdentityRecord:
    return IdentityRecord(
        id=row.id,
        name=row.name,
        email=row.email,
        password_hash=row.password,
        created_at=row.created_at,
    )
