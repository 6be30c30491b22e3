"""
auth/store.py -- SQLAlchemy Core persistence layer for principals.

Pattern: Repository + Data Mapper. PrincipalStore is the repository;
_row_to_principal is the mapper. Route and auth code never touches SQL.

Security:
  All queries use bound parameters. No f-strings in SQL.

  The store never hashes. It accepts only a field named hashed_password, so a
  plaintext password cannot be written through update() by accident.

  sqlite_autoincrement=True stops SQLite from reusing the id of a deleted
  row. Tokens carry that id; reuse would let a deleted account's token resolve
  to whoever registered next.

Favorites:
  favorite_movies is a JSON array serialized as text. add_favorite() skips ids
  already present, so the list behaves as a set. Both favorite writes are a
  single UPDATE using SQLite's JSON1 functions, so the membership check and the
  write happen in one statement and concurrent writers cannot lose entries. Removing a movie from the
  catalog does NOT clean up references to it here (known integrity gap).

Errors:
  IntegrityError (duplicate email) propagates to the caller, which answers 409.
  Every other DBAPIError (database unreachable, locked, corrupt, missing table)
  is wrapped in StoreFault, which the API answers with 500. Nothing is retried
  here.

DB path: auth/myflix_auth.db unless DATABASE_URL is set.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, IntegrityError

from auth.errors import StoreFault
from auth.models import Principal

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'myflix_auth.db'}"

# Columns update() may touch. Anything else is a programming error.
_UPDATABLE_FIELDS = frozenset({"email", "firstname", "lastname", "hashed_password", "birthday"})

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("firstname", String(100), nullable=False),
    Column("lastname", String(100), nullable=False),
    Column("hashed_password", Text, nullable=False),
    Column("birthday", String(10)),  # YYYY-MM-DD
    Column("favorite_movies", Text, nullable=False, server_default="[]"),  # JSON array
    Column("created_at", String(32), nullable=False),
    sqlite_autoincrement=True,
)

# Favorites are changed in place with one statement each. The membership test
# and the write cannot interleave with another writer.
_ADD_FAVORITE = text(
    "UPDATE users SET favorite_movies = json_insert(favorite_movies, '$[#]', :movie_id) "
    "WHERE email = :email "
    "AND NOT EXISTS (SELECT 1 FROM json_each(users.favorite_movies) WHERE json_each.value = :movie_id)"
)

_REMOVE_FAVORITE = text(
    "UPDATE users SET favorite_movies = "
    "(SELECT json_group_array(json_each.value) FROM json_each(users.favorite_movies) "
    "WHERE json_each.value != :movie_id) "
    "WHERE email = :email"
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked during writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@contextmanager
def _store_errors() -> Iterator[None]:
    try:
        yield
    except IntegrityError:
        raise
    except DBAPIError as exc:
        raise StoreFault("Principal store is unavailable.") from exc


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class PrincipalStore:
    """Repository for Principal records.

    Usage:
        store = PrincipalStore()
        alice = store.create(Principal(email="alice@example.com", firstname="Alice",
                                       lastname="Liddell", hashed_password=hash_password("longpass1")))
        store.find_by_email("alice@example.com")
        store.close()
    """

    def __init__(self, db_url: str | None = None) -> None:
        db_url = db_url or _DEFAULT_DB_URL
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite") and ":memory:" not in db_url and "mode=memory" not in db_url:
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_by_email(self, email: str) -> Principal | None:
        """Look up a principal by exact email (case-sensitive). Returns None if not found."""
        with _store_errors(), self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_principal(row) if row is not None else None

    def find_by_id(self, user_id: int) -> Principal | None:
        """Look up a principal by primary key. Returns None if not found."""
        with _store_errors(), self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_principal(row) if row is not None else None

    def ping(self) -> bool:
        """Return True if the database answers a trivial query. Used by /health."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except DBAPIError:
            return False
        return True

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, principal: Principal) -> Principal:
        """Insert a new principal and return it as stored (id and created_at set).

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        """
        with _store_errors(), self.engine.begin() as conn:
            result = conn.execute(
                _users.insert().values(
                    email=principal.email,
                    firstname=principal.firstname,
                    lastname=principal.lastname,
                    hashed_password=principal.hashed_password,
                    birthday=principal.birthday,
                    favorite_movies=json.dumps(_dedupe(principal.favorite_movies)),
                    created_at=_now_iso(),
                )
            )
            row = conn.execute(_users.select().where(_users.c.id == result.inserted_primary_key[0])).fetchone()
        return _row_to_principal(row)

    def update(self, current_email: str, /, **fields) -> Principal | None:
        """Update mutable fields on the principal identified by current_email.

        current_email is positional-only so `email` stays free as a field name.

        Accepted fields: email, firstname, lastname, hashed_password, birthday.
        Unknown keys raise ValueError rather than being silently ignored.

        Returns the updated Principal, or None if current_email was not found.
        Raises IntegrityError if the new email belongs to another account.
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown principal fields: {sorted(unknown)!r}")
        with _store_errors(), self.engine.begin() as conn:
            user_id = conn.execute(select(_users.c.id).where(_users.c.email == current_email)).scalar()
            if user_id is None:
                return None
            if fields:
                conn.execute(_users.update().where(_users.c.id == user_id).values(**fields))
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_principal(row)

    def delete(self, email: str) -> bool:
        """Permanently delete a principal. Returns True if deleted, False if not found."""
        with _store_errors(), self.engine.begin() as conn:
            result = conn.execute(_users.delete().where(_users.c.email == email))
        return result.rowcount > 0

    def add_favorite(self, email: str, movie_id: str) -> Principal | None:
        """Add movie_id to the principal's favorites. Adding a present id is a no-op.

        Returns the updated Principal, or None if email was not found.
        """
        with _store_errors(), self.engine.begin() as conn:
            conn.execute(_ADD_FAVORITE, {"email": email, "movie_id": movie_id})
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_principal(row) if row is not None else None

    def remove_favorite(self, email: str, movie_id: str) -> Principal | None:
        """Remove movie_id from the principal's favorites. Removing an absent id is a no-op.

        Returns the updated Principal, or None if email was not found.
        """
        with _store_errors(), self.engine.begin() as conn:
            conn.execute(_REMOVE_FAVORITE, {"email": email, "movie_id": movie_id})
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_principal(row) if row is not None else None

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _dedupe(values: list[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for v in values:
        if v not in seen:
            seen.add(v)
            result.append(v)
    return result


def _row_to_principal(row) -> Principal:
    return Principal(
        id=row.id,
        email=row.email,
        firstname=row.firstname,
        lastname=row.lastname,
        hashed_password=row.hashed_password,
        birthday=row.birthday,
        favorite_movies=json.loads(row.favorite_movies or "[]"),
        created_at=row.created_at,
    )
