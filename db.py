# db.py
from contextlib import contextmanager

from psycopg2.pool import ThreadedConnectionPool

from settings import settings

_pool: ThreadedConnectionPool | None = None

# webhook bursts run store calls on the threadpool; one connection per worker thread
POOL_MIN = 1
POOL_MAX = 10


def init_pool(dsn: str | None = None) -> ThreadedConnectionPool:
    """
    Create the PostgreSQL pool on first use.
    Only the Postgres transaction store gets here; without DATABASE_URL the app runs in-memory.
    """
    global _pool
    if _pool is None:
        dsn = (dsn or settings.DATABASE_URL or "").strip()
        if not dsn:
            raise RuntimeError("DATABASE_URL is not set.")
        _pool = ThreadedConnectionPool(
            minconn=POOL_MIN,
            maxconn=POOL_MAX,
            dsn=dsn,
            connect_timeout=5,
        )
    return _pool


def close_pool() -> None:
    global _pool
    if _pool:
        _pool.closeall()
        _pool = None


@contextmanager
def get_conn():
    """
    One transaction per block: commit on success, rollback on any error.
    """
    pool = init_pool()
    conn = pool.getconn()

    try:
        # a stuck row lock must not hang a webhook delivery
        with conn.cursor() as cur:
            cur.execute("SET statement_timeout = '5000ms';")
            cur.execute("SET lock_timeout = '3000ms';")
            cur.execute("SET application_name = 'santim_gateway';")

        yield conn
        conn.commit()

    except Exception:
        conn.rollback()
        raise

    finally:
        pool.putconn(conn)
