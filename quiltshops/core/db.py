"""Database helpers for the shop directory tables."""

import logging
import re
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

import psycopg2
from psycopg2 import extras, pool

from quiltshops.core.config import get_settings
from quiltshops.etl.transform import to_shop_row
from quiltshops.models import ShopRecord

logger = logging.getLogger(__name__)

_connection_pool: Optional[pool.SimpleConnectionPool] = None
_IDENTIFIER_REGEX = re.compile(r"^[a-z_][a-z0-9_]*$")


def init_pool(minconn: int = 1, maxconn: int = 5) -> pool.SimpleConnectionPool:
    """Initialise and return the shared connection pool."""
    global _connection_pool
    if _connection_pool is None:
        settings = get_settings()
        if not settings.database_url:
            raise RuntimeError("DATABASE_URL is required for database connections")
        _connection_pool = pool.SimpleConnectionPool(
            minconn,
            maxconn,
            dsn=settings.database_url,
            connect_timeout=10,
        )
        logger.info("Database connection pool initialised")
    return _connection_pool


@contextmanager
def get_connection():
    """Context manager yielding a pooled connection."""
    pg_pool = init_pool()
    conn = pg_pool.getconn()
    try:
        yield conn
    finally:
        pg_pool.putconn(conn)


def table_name(name: str) -> str:
    """Validate a table name before it is interpolated into SQL."""
    if not _IDENTIFIER_REGEX.match(name or ""):
        raise ValueError(f"invalid table name: {name!r}")
    return name


_CREATE_SHOP_TABLE = """
CREATE TABLE IF NOT EXISTS {table} (
    id SERIAL PRIMARY KEY,
    name TEXT NOT NULL,
    address TEXT,
    city TEXT NOT NULL,
    phone TEXT,
    email TEXT,
    {website_column}created_at TIMESTAMPTZ DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS idx_{table}_city ON {table}(city);
CREATE INDEX IF NOT EXISTS idx_{table}_name ON {table}(name);
"""

_GEOCODE_COLUMNS = """
ALTER TABLE {table} ADD COLUMN IF NOT EXISTS latitude DOUBLE PRECISION;
ALTER TABLE {table} ADD COLUMN IF NOT EXISTS longitude DOUBLE PRECISION;
ALTER TABLE {table} ADD COLUMN IF NOT EXISTS geocode_attempted_at TIMESTAMPTZ;
CREATE INDEX IF NOT EXISTS idx_{table}_coordinates ON {table}(latitude, longitude);
"""


def create_shop_table(table: str, include_website: bool = True) -> None:
    table = table_name(table)
    website_column = "website TEXT,\n    " if include_website else ""
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute(_CREATE_SHOP_TABLE.format(table=table, website_column=website_column))
        conn.commit()
    logger.info("Ensured table %s exists", table)


def clear_shop_table(table: str) -> None:
    table = table_name(table)
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute(f"TRUNCATE TABLE {table} RESTART IDENTITY")
        conn.commit()
    logger.info("Cleared table %s", table)


def insert_shops(table: str, records: Iterable[ShopRecord], include_website: bool = True) -> int:
    """Insert records one by one; a failing row is logged and skipped."""
    table = table_name(table)
    columns = ["name", "address", "city", "phone", "email"]
    if include_website:
        columns.append("website")
    placeholders = ", ".join(f"%({column})s" for column in columns)
    statement = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"

    inserted = 0
    with get_connection() as conn:
        for record in records:
            row = to_shop_row(record, include_website=include_website)
            try:
                with conn.cursor() as cur:
                    cur.execute(statement, row)
                conn.commit()
            except psycopg2.Error as exc:
                conn.rollback()
                logger.warning("Failed to insert shop %s: %s", record.name, exc)
                continue
            inserted += 1
    logger.info("Inserted %d shops into %s", inserted, table)
    return inserted


def ensure_geocode_columns(table: str) -> None:
    table = table_name(table)
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute(_GEOCODE_COLUMNS.format(table=table))
        conn.commit()


def fetch_shops_to_geocode(table: str, include_attempted: bool = False) -> List[Dict[str, Any]]:
    """Return shops without coordinates, oldest first."""
    table = table_name(table)
    query = f"SELECT id, name, address, city FROM {table} WHERE latitude IS NULL"
    if not include_attempted:
        query += " AND geocode_attempted_at IS NULL"
    query += " ORDER BY id"

    with get_connection() as conn:
        with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
            cur.execute(query)
            rows = cur.fetchall()
    return [dict(row) for row in rows]


def mark_geocode_attempt(
    table: str,
    shop_id: int,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
) -> None:
    """Record a geocode attempt, storing coordinates when it succeeded."""
    table = table_name(table)
    attempted_at = datetime.now(timezone.utc)
    with get_connection() as conn:
        with conn.cursor() as cur:
            if latitude is not None and longitude is not None:
                cur.execute(
                    f"UPDATE {table} SET latitude = %(latitude)s, longitude = %(longitude)s, "
                    "geocode_attempted_at = %(attempted_at)s WHERE id = %(id)s",
                    {"latitude": latitude, "longitude": longitude, "attempted_at": attempted_at, "id": shop_id},
                )
            else:
                cur.execute(
                    f"UPDATE {table} SET geocode_attempted_at = %(attempted_at)s WHERE id = %(id)s",
                    {"attempted_at": attempted_at, "id": shop_id},
                )
        conn.commit()
