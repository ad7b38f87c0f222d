"""Merge per-region shop tables into a single geocoded directory table."""

import argparse
import logging
from typing import Dict, Iterable, List, Optional

from quiltshops.core.db import get_connection, init_pool, table_name
from quiltshops.core.regions import REGIONS, Region

logger = logging.getLogger(__name__)

MERGED_TABLE = "quilt_shops"

_MERGED_SCHEMA = """
DROP TABLE IF EXISTS {table};
CREATE TABLE {table} (
    id SERIAL PRIMARY KEY,
    name TEXT NOT NULL,
    address TEXT,
    city TEXT NOT NULL,
    state TEXT NOT NULL,
    phone TEXT,
    email TEXT,
    website TEXT,
    latitude DOUBLE PRECISION NOT NULL,
    longitude DOUBLE PRECISION NOT NULL,
    created_at TIMESTAMPTZ DEFAULT NOW(),
    geocode_attempted_at TIMESTAMPTZ
);
CREATE INDEX idx_{table}_city ON {table}(city);
CREATE INDEX idx_{table}_state ON {table}(state);
CREATE INDEX idx_{table}_coordinates ON {table}(latitude, longitude);
"""

_HAS_COLUMN = """
SELECT COUNT(*) FROM information_schema.columns
WHERE table_schema = current_schema()
  AND table_name = %(table)s
  AND column_name = %(column)s
"""


def has_column(conn, table: str, column: str) -> bool:
    with conn.cursor() as cur:
        cur.execute(_HAS_COLUMN, {"table": table, "column": column})
        (count,) = cur.fetchone()
    return bool(count)


def create_merged_table(conn, table: str = MERGED_TABLE) -> None:
    table = table_name(table)
    with conn.cursor() as cur:
        cur.execute(_MERGED_SCHEMA.format(table=table))


def merge_region(conn, source_table: str, state: str, target_table: str = MERGED_TABLE) -> int:
    """Copy geocoded rows from ``source_table`` tagged with ``state``.

    Source tables built without a website column are merged with a NULL
    website.
    """
    source_table = table_name(source_table)
    target_table = table_name(target_table)
    website_expr = "website" if has_column(conn, source_table, "website") else "NULL"

    statement = f"""
        INSERT INTO {target_table} (
            name, address, city, state, phone, email, website,
            latitude, longitude, created_at, geocode_attempted_at
        )
        SELECT name, address, city, %(state)s, phone, email, {website_expr},
               latitude, longitude, created_at, geocode_attempted_at
        FROM {source_table}
        WHERE latitude IS NOT NULL AND longitude IS NOT NULL
        ORDER BY id
    """
    with conn.cursor() as cur:
        cur.execute(statement, {"state": state})
        count = cur.rowcount
    logger.info("Merged %d %s shops with coordinates", count, state)
    return count


def count_rows(conn, table: str = MERGED_TABLE) -> int:
    table = table_name(table)
    with conn.cursor() as cur:
        cur.execute(f"SELECT COUNT(*) FROM {table}")
        (count,) = cur.fetchone()
    return count


def merge_all(regions: Optional[Iterable[Region]] = None, target_table: str = MERGED_TABLE) -> Dict[str, int]:
    """Rebuild the merged table from every region table, then vacuum it."""
    selected: List[Region] = list(regions) if regions is not None else list(REGIONS.values())
    init_pool()

    counts: Dict[str, int] = {}
    with get_connection() as conn:
        try:
            create_merged_table(conn, target_table)
            for region in selected:
                counts[region.code] = merge_region(conn, region.table, region.code, target_table)
            total = count_rows(conn, target_table)
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        logger.info("Total shops in merged table: %d", total)

        previous_autocommit = conn.autocommit
        conn.autocommit = True
        try:
            with conn.cursor() as cur:
                cur.execute(f"VACUUM ANALYZE {table_name(target_table)}")
        finally:
            conn.autocommit = previous_autocommit
        logger.info("Table %s optimized with VACUUM", target_table)

    return counts


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Merge region tables into one directory table")
    parser.add_argument(
        "--region",
        dest="regions",
        action="append",
        choices=sorted(code.lower() for code in REGIONS),
        help="Region to include (repeatable); defaults to all regions",
    )
    parser.add_argument("--target", default=MERGED_TABLE, help="Merged table name")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    args = build_parser().parse_args(argv)
    regions = [REGIONS[code.upper()] for code in args.regions] if args.regions else None

    try:
        counts = merge_all(regions, target_table=args.target)
    except RuntimeError as exc:
        logger.error("Configuration error: %s", exc)
        raise SystemExit(2) from exc

    logger.info("Merged shops per region: %s", counts)


if __name__ == "__main__":
    main()
