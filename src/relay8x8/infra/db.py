"""psycopg2 helpers for the Postgres session store.

Only used when SESSION_STORE_BACKEND=postgres. Each store operation opens its
own short transaction; there is no pool.
"""

import os
from contextlib import contextmanager
from typing import Iterator

import psycopg2
from psycopg2.extensions import connection as PgConnection, cursor as PgCursor


def get_conn() -> PgConnection:
    """Open a connection to DATABASE_URL (URL or libpq DSN).

    Raises:
        RuntimeError: If DATABASE_URL is missing.
        psycopg2.Error: If the server cannot be reached.
    """
    dsn = os.environ.get("DATABASE_URL")
    if not dsn:
        raise RuntimeError("DATABASE_URL is required for the postgres session store")
    return psycopg2.connect(dsn)


@contextmanager
def txn(conn: PgConnection | None = None) -> Iterator[PgCursor]:
    """Run a short transaction, committing on success and rolling back on error.

    If conn is None, a new connection is opened and closed on exit.

    Example:
        with txn() as cur:
            cur.execute("DELETE FROM session_records WHERE expires_at <= now()")
    """
    owns_conn = conn is None
    if owns_conn:
        conn = get_conn()

    try:
        with conn.cursor() as cur:
            yield cur
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        if owns_conn:
            conn.close()
