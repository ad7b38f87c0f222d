"""Static per-region source configuration and extraction vocabularies."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from quiltshops.core.config import Settings, get_settings
from quiltshops.etl.policy import CityStrategy, ExtractionPolicy, html_policy, pdf_policy

SOURCE_HTML = "html"
SOURCE_PDF = "pdf"

# Bold text on the California page that is navigation or promo, not a shop.
CA_SKIP_NAMES = frozenset(
    {
        "click here",
        "related posts",
        "quilt shop lists",
        "list of quilt shows",
        "quilt shops",
        "find a quilt shop",
        "california",
        "big quilter's bucket list",
        "planning your next quilting adventure",
        "travel tips for your next road trip",
        "create a realistic road trip budget",
        "traveling quilters group",
        "facebook",
        "more on the blog",
        "from the e-store",
        "quilt shop lists in the us",
    }
)

# Page headers and footers repeated throughout the Virginia PDF.
VA_SKIP_LINES = frozenset({"Quilt Shops", "2025-V1.0"})

# Short capitalised description lines that look like city headers.
VA_NON_CITY_PHRASES = frozenset(
    {
        "Closed Sunday",
        "Events",
        "Hours",
        "Classes",
        "Services",
        "Machines",
        "Founded",
        "Located",
        "Open",
        "Spreading",
        "Emily Isaman",
        "Owner",
        "Becky Garriner",
        "Louann Gram",
        "Authorized",
    }
)

VA_KNOWN_CITIES = frozenset(
    {
        "Abingdon",
        "Alexandria",
        "Ashland",
        "Bedford",
        "Blacksburg",
        "Bristol",
        "Charlottesville",
        "Chesapeake",
        "Christiansburg",
        "Culpeper",
        "Danville",
        "Farmville",
        "Fredericksburg",
        "Front Royal",
        "Galax",
        "Gloucester",
        "Hampton",
        "Harrisonburg",
        "Leesburg",
        "Lexington",
        "Luray",
        "Lynchburg",
        "Manassas",
        "Martinsville",
        "Mechanicsville",
        "Midlothian",
        "Newport News",
        "Norfolk",
        "Petersburg",
        "Portsmouth",
        "Richmond",
        "Roanoke",
        "Salem",
        "Smithfield",
        "South Boston",
        "Staunton",
        "Suffolk",
        "Virginia Beach",
        "Warrenton",
        "Waynesboro",
        "Williamsburg",
        "Winchester",
        "Woodbridge",
        "Wytheville",
        "Yorktown",
    }
)


@dataclass(frozen=True)
class Region:
    code: str
    name: str
    table: str
    source_kind: str
    include_website: bool
    append_locality: bool


REGIONS: Dict[str, Region] = {
    "CA": Region(
        code="CA",
        name="California",
        table="quilt_shops_ca",
        source_kind=SOURCE_HTML,
        include_website=False,
        append_locality=False,
    ),
    "VA": Region(
        code="VA",
        name="Virginia",
        table="quilt_shops_va",
        source_kind=SOURCE_PDF,
        include_website=True,
        append_locality=True,
    ),
}


def get_region(code: str) -> Region:
    region = REGIONS.get((code or "").strip().upper())
    if region is None:
        raise ValueError(f"Unknown region {code!r}; expected one of {', '.join(sorted(REGIONS))}")
    return region


def policy_for_region(region: Region, settings: Optional[Settings] = None) -> ExtractionPolicy:
    """Build the extraction policy used for a region's source format."""
    if region.source_kind == SOURCE_HTML:
        return html_policy(region.code, skip_names=CA_SKIP_NAMES)

    settings = settings or get_settings()
    return pdf_policy(
        region.code,
        city_strategy=CityStrategy(settings.va_city_strategy),
        known_cities=VA_KNOWN_CITIES,
        non_city_phrases=VA_NON_CITY_PHRASES,
        skip_lines=VA_SKIP_LINES,
    )
