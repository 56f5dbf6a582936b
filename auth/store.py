"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user is the mapper.
Route, guard and CLI code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

Uniqueness:
  username and email carry UNIQUE constraints. They are the authority on
  "account already exists": create_user() lets IntegrityError propagate so
  callers can treat an insert-time violation exactly like a failed
  pre-check, and ensure_user() uses the same violation to make the admin
  bootstrap idempotent without a read-then-write race.

DB URL: Settings.database_url (SQLite file beside the app by default).
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, or_, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import DEFAULT_PROFILE_PICTURE, User

logger = logging.getLogger("usermgmt.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("profile_picture", String(512), nullable=False, server_default=DEFAULT_PROFILE_PICTURE),
    Column("is_admin", Integer, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore("sqlite:///users.db")
        uid = store.create_user(User(username="alice", email="a@x.com", hashed_password=hash_password("pw")))
        user = store.get_by_email("a@x.com")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite") and ":memory:" not in db_url and "mode=memory" not in db_url:
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the username or email is
        already taken. Registration treats that as "already exists" even when
        its own pre-check passed -- a concurrent request may have won.
        """
        with self.engine.begin() as conn:
            result = conn.execute(
                _users.insert().values(
                    username=user.username,
                    email=user.email,
                    hashed_password=user.hashed_password,
                    profile_picture=user.profile_picture or DEFAULT_PROFILE_PICTURE,
                    is_admin=1 if user.is_admin else 0,
                    created_at=_now_iso(),
                )
            )
            return result.inserted_primary_key[0]

    def ensure_user(self, user: User) -> bool:
        """Insert user unless the username or email is already taken.

        Returns True if the record was created, False if it already existed.
        There is no existence check before the insert: the UNIQUE constraints
        decide, so two processes bootstrapping the same account at once end
        up with exactly one record.
        """
        try:
            self.create_user(user)
        except IntegrityError:
            return False
        return True

    def toggle_admin(self, user_id: int) -> bool | None:
        """Flip is_admin for user_id and return the new value.

        Returns None if no such user exists. The flip is a single UPDATE, so
        two concurrent toggles always net out to the original value.
        """
        with self.engine.begin() as conn:
            result = conn.execute(
                _users.update().where(_users.c.id == user_id).values(is_admin=1 - _users.c.is_admin)
            )
            if result.rowcount == 0:
                return None
            value = conn.execute(select(_users.c.is_admin).where(_users.c.id == user_id)).scalar()
        return bool(value)

    def set_password(self, user_id: int, hashed_password: str) -> bool:
        """Replace the stored hash. Returns False if user_id was not found."""
        with self.engine.begin() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(hashed_password=hashed_password))
        return result.rowcount > 0

    def delete_user(self, user_id: int) -> bool:
        """Permanently delete a user record. Returns True if deleted, False if not found.

        Tokens already issued to the user stay cryptographically valid; the
        auth gate rejects them because the id no longer resolves.
        """
        with self.engine.begin() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_username(self, username: str) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def exists(self, username: str, email: str) -> bool:
        """Return True if any user already has this username or this email."""
        with self.engine.connect() as conn:
            row = conn.execute(
                select(_users.c.id)
                .where(or_(_users.c.username == username, _users.c.email == email))
                .limit(1)
            ).fetchone()
        return row is not None

    def list_users(self) -> list[User]:
        """Return all users in registration order. Admin-only operation."""
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.id)).fetchall()
        return [_row_to_user(r) for r in rows]

    def count_users(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(text("SELECT COUNT(*) FROM users")).scalar()
        return result or 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query. Used by /api/health."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception:
            logger.exception("Database ping failed")
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        email=row.email,
        hashed_password=row.hashed_password,
        profile_picture=row.profile_picture,
        is_admin=bool(row.is_admin),
        created_at=row.created_at,
    )
