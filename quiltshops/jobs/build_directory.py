"""CLI job to build and geocode a region's quilt shop table."""

import argparse
import logging
from dataclasses import dataclass
from typing import List, Optional

from quiltshops.core.config import Settings, get_settings
from quiltshops.core.db import (
    clear_shop_table,
    create_shop_table,
    ensure_geocode_columns,
    fetch_shops_to_geocode,
    init_pool,
    insert_shops,
    mark_geocode_attempt,
)
from quiltshops.core.regions import REGIONS, SOURCE_HTML, Region, get_region, policy_for_region
from quiltshops.etl.html_blocks import extract_from_html
from quiltshops.etl.state_machine import extract_from_text
from quiltshops.etl.transform import geocode_query
from quiltshops.models import ShopRecord
from quiltshops.vendors import nominatim, sources

logger = logging.getLogger(__name__)


@dataclass
class GeocodeSummary:
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    rate_limited: int = 0


def extract_region(region: Region, settings: Optional[Settings] = None) -> List[ShopRecord]:
    """Fetch a region's source document and extract its shop records."""
    settings = settings or get_settings()
    policy = policy_for_region(region, settings)

    if region.source_kind == SOURCE_HTML:
        logger.info("Fetching %s quilt shops from %s", region.name, settings.ca_source_url)
        soup = sources.fetch_html(settings.ca_source_url)
        return extract_from_html(soup, policy)

    logger.info("Parsing %s quilt shops from %s", region.name, settings.va_pdf_path)
    pdf_path = sources.download_pdf(settings.va_pdf_url, settings.va_pdf_path)
    text = sources.extract_pdf_text(pdf_path)
    return extract_from_text(text, policy)


def build_region(region_code: str, *, append: bool = False) -> int:
    region = get_region(region_code)
    settings = get_settings()
    init_pool()

    shops = extract_region(region, settings)
    logger.info("Found %d %s quilt shops", len(shops), region.name)

    create_shop_table(region.table, include_website=region.include_website)
    if not append:
        clear_shop_table(region.table)
    inserted = insert_shops(region.table, shops, include_website=region.include_website)

    logger.info("Stored %d of %d shops in %s", inserted, len(shops), region.table)
    return inserted


def _record_attempt(table: str, shop, latitude: Optional[float] = None, longitude: Optional[float] = None) -> bool:
    try:
        mark_geocode_attempt(table, shop["id"], latitude, longitude)
    except Exception as exc:  # noqa: BLE001
        logger.error("Failed to record geocode attempt for %s: %s", shop["name"], exc)
        return False
    return True


def geocode_region(region_code: str, *, retry_failed: bool = False) -> GeocodeSummary:
    region = get_region(region_code)
    settings = get_settings()
    init_pool()

    ensure_geocode_columns(region.table)
    shops = fetch_shops_to_geocode(region.table, include_attempted=retry_failed)
    summary = GeocodeSummary(total=len(shops))
    if not shops:
        logger.info("No shops need geocoding. All done!")
        return summary

    logger.info("Geocoding %d shops...", len(shops))
    state_code = region.code if region.append_locality else None

    for index, shop in enumerate(shops, start=1):
        logger.info("[%d/%d] %s", index, len(shops), shop["name"])

        query = geocode_query(shop, state_code)
        if not query:
            logger.warning("Skipping %s - no address on file", shop["name"])
            _record_attempt(region.table, shop)
            summary.skipped += 1
            continue

        logger.info("Looking up %s", query)
        try:
            coords = nominatim.geocode_address(query, settings=settings)
        except nominatim.GeocodeRateLimited as exc:
            logger.warning("Geocoding %s rate limited: %s", shop["name"], exc)
            _record_attempt(region.table, shop)
            summary.rate_limited += 1
            continue
        except nominatim.GeocodeError as exc:
            logger.warning("Geocoding %s failed: %s", shop["name"], exc)
            _record_attempt(region.table, shop)
            summary.failed += 1
            continue

        if not _record_attempt(region.table, shop, coords.latitude, coords.longitude):
            summary.failed += 1
            continue

        logger.info("Located %s at %.4f, %.4f", shop["name"], coords.latitude, coords.longitude)
        summary.succeeded += 1

    logger.info(
        "Completed geocoding: succeeded=%d failed=%d skipped=%d rate_limited=%d",
        summary.succeeded,
        summary.failed,
        summary.skipped,
        summary.rate_limited,
    )
    return summary


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Build quilt shop directory tables")
    subparsers = parser.add_subparsers(dest="command", required=True)
    region_choices = sorted(code.lower() for code in REGIONS)

    build = subparsers.add_parser("build", help="Fetch, extract and store a region's shops")
    build.add_argument("--region", required=True, choices=region_choices, help="Source region")
    build.add_argument("--append", action="store_true", help="Keep rows from earlier builds")

    geocode = subparsers.add_parser("geocode", help="Add coordinates to stored shops")
    geocode.add_argument("--region", required=True, choices=region_choices, help="Source region")
    geocode.add_argument(
        "--retry-failed",
        dest="retry_failed",
        action="store_true",
        help="Also retry shops whose earlier geocode attempt failed",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        if args.command == "build":
            build_region(args.region, append=args.append)
        else:
            geocode_region(args.region, retry_failed=args.retry_failed)
    except (sources.SourceFetchError, sources.SourceParseError) as exc:
        logger.error("Source error: %s", exc)
        raise SystemExit(1) from exc
    except RuntimeError as exc:
        logger.error("Configuration error: %s", exc)
        raise SystemExit(2) from exc


if __name__ == "__main__":
    main()
