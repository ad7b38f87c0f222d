"""Core data models shared by the extraction and persistence layers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(slots=True)
class ShopRecord:
    """Normalized directory entry for a single quilt shop."""

    name: str
    city: str
    address: str = ""
    phone: str = ""
    email: str = ""
    website: str = ""
    geocode_attempted_at: Optional[datetime] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    def key(self) -> str:
        return f"{self.name.lower()}|{self.city.lower()}"

    def is_complete(self) -> bool:
        """A record may only be emitted once both name and city are known."""
        return bool(self.name) and bool(self.city)

    def has_contact(self) -> bool:
        return bool(self.phone or self.email or self.website)

    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None
