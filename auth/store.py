"""
auth/store.py -- SQLAlchemy Core persistence layer for accounts and sessions.

Pattern: Repository + Data Mapper.
CredentialStore is the repository; _row_to_account is the mapper.
Session manager and route code never touch SQL directly.

Session state lives in one nullable column, users.refresh_fingerprint. NULL
means no session; a value is the fingerprint of the single live refresh
token. Every write that depends on the current fingerprint is a single
conditional UPDATE (WHERE refresh_fingerprint = :expected) whose rowcount
tells the caller whether it won. Workers may run in separate processes, so
the database row is the only serialization point -- there is no in-process
lock.

Security:
  All queries use bound parameters. No f-strings in SQL.
  Raw refresh tokens never reach this module, only fingerprints.

Errors:
  IntegrityError (duplicate username/email) propagates unchanged so callers
  can report a conflict. Every other SQLAlchemyError is wrapped in
  StorageError.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import StorageError
from auth.models import Account

logger = logging.getLogger("sessiongate.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("first_name", String(50), nullable=False),
    Column("middle_name", String(50)),
    Column("last_name", String(50), nullable=False),
    Column("username", String(20), nullable=False, unique=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    # NULL = no live session. UNIQUE allows many NULLs in SQLite and Postgres.
    Column("refresh_fingerprint", String(64), unique=True),
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


class CredentialStore:
    """Repository for Account rows and their refresh fingerprints.

    Usage:
        store = CredentialStore("sqlite:///sessiongate.db")
        account_id = store.create_account(Account(...))
        store.set_refresh_fingerprint(account_id, fingerprint)
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    @contextmanager
    def _connection(self) -> Iterator[Connection]:
        try:
            with self.engine.connect() as conn:
                yield conn
        except IntegrityError:
            raise
        except SQLAlchemyError as exc:
            raise StorageError(f"credential store failure ({exc.__class__.__name__})") from exc

    @contextmanager
    def _transaction(self) -> Iterator[Connection]:
        """Yield a connection inside BEGIN; commit on exit, roll back on any exception.

        Unlike _connection, constraint failures are StorageErrors too: nothing
        run in a transaction here is expected to violate one.
        """
        try:
            with self.engine.begin() as conn:
                yield conn
        except SQLAlchemyError as exc:
            raise StorageError(f"credential store failure ({exc.__class__.__name__})") from exc

    # ------------------------------------------------------------------
    # Account queries
    # ------------------------------------------------------------------

    def has_accounts(self) -> bool:
        with self._connection() as conn:
            row = conn.execute(select(_users.c.id).limit(1)).fetchone()
        return row is not None

    def create_account(self, account: Account) -> int:
        """Insert a new account and return its assigned database ID.

        New accounts start with no session. Raises IntegrityError if the
        username or email is already taken.
        """
        with self._connection() as conn:
            result = conn.execute(
                _users.insert().values(
                    first_name=account.first_name,
                    middle_name=account.middle_name,
                    last_name=account.last_name,
                    username=account.username,
                    email=account.email,
                    password_hash=account.password_hash,
                    refresh_fingerprint=None,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_by_username(self, username: str) -> Account | None:
        """Look up an account by exact username (case-sensitive)."""
        with self._connection() as conn:
            row = conn.execute(_users.select().where(_users.c.username == username)).fetchone()
        return _row_to_account(row) if row is not None else None

    def get_by_id(self, account_id: int) -> Account | None:
        with self._connection() as conn:
            row = conn.execute(_users.select().where(_users.c.id == account_id)).fetchone()
        return _row_to_account(row) if row is not None else None

    def get_by_refresh_fingerprint(self, fingerprint: str) -> Account | None:
        """Return the account whose live session has this fingerprint, if any."""
        with self._connection() as conn:
            row = conn.execute(_users.select().where(_users.c.refresh_fingerprint == fingerprint)).fetchone()
        return _row_to_account(row) if row is not None else None

    def update_profile(
        self,
        account_id: int,
        *,
        first_name: str,
        middle_name: str | None,
        last_name: str,
        email: str,
    ) -> bool:
        """Overwrite the editable profile fields. Returns False if the account is gone.

        Raises IntegrityError if email belongs to another account.
        """
        with self._connection() as conn:
            result = conn.execute(
                _users.update()
                .where(_users.c.id == account_id)
                .values(first_name=first_name, middle_name=middle_name, last_name=last_name, email=email)
            )
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Password hash
    # ------------------------------------------------------------------

    def get_password_hash(self, account_id: int) -> str | None:
        with self._connection() as conn:
            return conn.execute(select(_users.c.password_hash).where(_users.c.id == account_id)).scalar()

    def set_password_hash(self, account_id: int, password_hash: str, *, end_session: bool = True) -> bool:
        """Store a new password hash. Returns False if the account does not exist.

        With end_session (the default) the live refresh fingerprint is cleared
        in the same UPDATE, so a password change and the session it ends can
        never be observed separately.
        """
        values: dict = {"password_hash": password_hash}
        if end_session:
            values["refresh_fingerprint"] = None
        with self._connection() as conn:
            result = conn.execute(_users.update().where(_users.c.id == account_id).values(**values))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Session fingerprint
    # ------------------------------------------------------------------

    def set_refresh_fingerprint(self, account_id: int, fingerprint: str | None) -> bool:
        """Unconditionally replace (or clear, with None) an account's fingerprint.

        Used by login, which supersedes any prior session regardless of its
        state. Returns False if the account does not exist.
        """
        with self._connection() as conn:
            result = conn.execute(
                _users.update().where(_users.c.id == account_id).values(refresh_fingerprint=fingerprint)
            )
            conn.commit()
        return result.rowcount > 0

    def replace_refresh_fingerprint(self, account_id: int, expected: str, new: str) -> bool:
        """Swap expected for new only if expected is still the live fingerprint.

        Of two concurrent rotations presenting the same token, exactly one
        sees rowcount 1. The loser must treat its token as superseded.
        """
        with self._connection() as conn:
            result = conn.execute(
                _users.update()
                .where((_users.c.id == account_id) & (_users.c.refresh_fingerprint == expected))
                .values(refresh_fingerprint=new)
            )
            conn.commit()
        return result.rowcount > 0

    def clear_refresh_fingerprint(self, fingerprint: str) -> bool:
        """End the session whose live fingerprint equals fingerprint.

        Returns True if a session was cleared, False if no account currently
        holds that fingerprint (already rotated away or logged out).
        """
        with self._connection() as conn:
            result = conn.execute(
                _users.update().where(_users.c.refresh_fingerprint == fingerprint).values(refresh_fingerprint=None)
            )
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    def delete_account_and_sessions(self, account_id: int) -> bool:
        """Clear the session and remove the account row in one transaction.

        Returns False if the account does not exist. If the row cannot be
        removed after its session was cleared, the transaction is rolled back
        and StorageError is raised, leaving both the row and its fingerprint
        exactly as they were.
        """
        with self._transaction() as conn:
            cleared = conn.execute(
                _users.update().where(_users.c.id == account_id).values(refresh_fingerprint=None)
            )
            if cleared.rowcount == 0:
                return False
            deleted = conn.execute(_users.delete().where(_users.c.id == account_id))
            if deleted.rowcount != 1:
                logger.error("Delete of account %s affected %d rows; rolling back", account_id, deleted.rowcount)
                raise StorageError(f"account {account_id} row was not removed; deletion rolled back")
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        first_name=row.first_name,
        middle_name=row.middle_name,
        last_name=row.last_name,
        username=row.username,
        email=row.email,
        password_hash=row.password_hash,
        refresh_fingerprint=row.refresh_fingerprint,
        created_at=row.created_at,
    )
