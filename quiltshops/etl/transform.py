"""Utilities for transforming extracted shop records into database rows."""

import logging
from typing import Any, Dict, Mapping, Optional

from quiltshops.models import ShopRecord

logger = logging.getLogger(__name__)


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def to_shop_row(record: ShopRecord, include_website: bool = True) -> Dict[str, Any]:
    row = {
        "name": record.name.strip(),
        "address": _blank_to_none(record.address),
        "city": record.city.strip(),
        "phone": _blank_to_none(record.phone),
        "email": _blank_to_none(record.email),
    }
    if include_website:
        row["website"] = _blank_to_none(record.website)
    return row


def geocode_query(row: Mapping[str, Any], state_code: Optional[str] = None) -> Optional[str]:
    """Compose the free-form geocoder query for a stored shop row.

    When ``state_code`` is given the city and state are appended, for sources
    whose address column holds only the street part.
    """
    address = (row.get("address") or "").strip()
    if address.endswith(","):
        address = address[:-1].rstrip()
    if not address:
        return None
    if state_code:
        return f"{address}, {row.get('city')}, {state_code}"
    return address
