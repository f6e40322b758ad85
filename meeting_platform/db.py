from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Sequence
from urllib.parse import urlparse

from meeting_platform.schema import get_schema_sql


def _debug(msg: str) -> None:
    print(f"[db] {msg}")


def detect_dialect(dsn: str) -> str:
    """Return 'postgres' or 'sqlite'."""
    s = (dsn or "").strip()
    if not s:
        return "sqlite"
    scheme = urlparse(s).scheme.lower()
    if scheme in ("postgres", "postgresql"):
        return "postgres"
    # sqlite:///path, a bare file path or ':memory:'
    return "sqlite"


def _qmark_to_pct(sql: str) -> str:
    """Convert SQLite qmark placeholders (?) to psycopg2 placeholders (%s).

    Question marks inside quoted literals are left alone. Literal '%' is
    doubled so psycopg2 does not read it as a placeholder.
    """
    out: List[str] = []
    quote: str | None = None
    for ch in sql:
        if quote is not None:
            out.append("%%" if ch == "%" else ch)
            if ch == quote:
                quote = None
            continue
        if ch in ("'", '"'):
            quote = ch
            out.append(ch)
        elif ch == "?":
            out.append("%s")
        elif ch == "%":
            out.append("%%")
        else:
            out.append(ch)
    return "".join(out)


class PGCursor:
    def __init__(self, cur: Any):
        self._cur = cur

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> "PGCursor":
        self._cur.execute(_qmark_to_pct(sql), tuple(params or ()))
        return self

    def fetchone(self) -> Any:
        return self._cur.fetchone()

    def fetchall(self) -> Any:
        return self._cur.fetchall()

    @property
    def rowcount(self) -> int:
        return int(self._cur.rowcount or 0)

    def close(self) -> None:
        self._cur.close()

    def __getattr__(self, name: str) -> Any:
        return getattr(self._cur, name)


class PGConnection:
    """A tiny adapter that makes psycopg2 connections look like sqlite3 connections."""

    dialect = "postgres"

    def __init__(self, conn: Any):
        self._conn = conn

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> PGCursor:
        return PGCursor(self._conn.cursor()).execute(sql, params)

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        self._conn.close()


@contextmanager
def connect(db_dsn: str) -> Iterator[Any]:
    """Connect to SQLite or Postgres; commit on success, roll back on error.

    - SQLite: sqlite3.Row rows, foreign keys enforced.
    - Postgres: psycopg2 with RealDictCursor so rows behave like dicts.
    """
    dsn = (db_dsn or "").strip()

    if detect_dialect(dsn) == "postgres":
        try:
            import psycopg2
            import psycopg2.extras
        except ImportError as e:
            raise RuntimeError(
                "Postgres selected but psycopg2 is not installed. "
                "Install the 'postgres' extra (psycopg2-binary) and try again."
            ) from e

        raw = psycopg2.connect(dsn, cursor_factory=psycopg2.extras.RealDictCursor)
        conn: Any = PGConnection(raw)
    else:
        if dsn.lower().startswith("sqlite:///"):
            dsn = dsn[len("sqlite:///") :]
        if dsn != ":memory:":
            Path(dsn).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(dsn, timeout=30, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA busy_timeout=5000;")  # 5s
        conn.execute("PRAGMA foreign_keys = ON;")

    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def is_unique_violation(exc: BaseException) -> bool:
    """True when exc is the store rejecting a duplicate key."""
    if isinstance(exc, sqlite3.IntegrityError):
        return "UNIQUE" in str(exc).upper()
    # psycopg2 reports SQLSTATE 23505 for unique_violation
    return getattr(exc, "pgcode", None) == "23505"


def init_db(db_dsn: str) -> None:
    """Create all tables and run lightweight migrations."""
    dialect = detect_dialect(db_dsn)
    _debug(f"Initializing DB ({dialect}) at {db_dsn}")
    with connect(db_dsn) as conn:
        ddl = get_schema_sql(dialect)
        if dialect == "postgres":
            # One process at a time runs DDL.
            conn.execute("SELECT pg_advisory_lock(2147483646);")
            try:
                for stmt in (s.strip() for s in ddl.split(";")):
                    if stmt:
                        conn.execute(stmt)
                _migrate(conn)
            finally:
                conn.execute("SELECT pg_advisory_unlock(2147483646);")
        else:
            conn.executescript(ddl)
            _migrate(conn)


def _migrate(conn: Any) -> None:
    """Lightweight forward-only migrations for existing DBs."""
    # entity_users tables created before entity_users.email was UNIQUE
    conn.execute("DROP INDEX IF EXISTS idx_entity_users_email")
    dupes = conn.execute(
        """
        SELECT email, COUNT(*) AS n
        FROM entity_users
        GROUP BY email
        HAVING COUNT(*) > 1
        """
    ).fetchall()
    if dupes:
        emails = ", ".join(str(r["email"]) for r in dupes)
        _debug(f"entity_users.email is not unique yet; resolve duplicates for: {emails}")
        return
    conn.execute("CREATE UNIQUE INDEX IF NOT EXISTS uq_entity_users_email ON entity_users (email)")


def insert_returning(conn: Any, sql: str, params: Sequence[Any]) -> Any:
    """Run an INSERT ... RETURNING statement and return its single row.

    fetchall() drains the statement so SQLite has nothing in progress at commit.
    """
    rows = conn.execute(sql, params).fetchall()
    return rows[0]
