"""Assemble address fragments and contact lines into shop records."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict, Iterable, Tuple

from quiltshops.etl.classify import LineKind
from quiltshops.models import ShopRecord

logger = logging.getLogger(__name__)

CONTACT_FIELDS: Dict[LineKind, str] = {
    LineKind.PHONE: "phone",
    LineKind.EMAIL: "email",
    LineKind.WEBSITE: "website",
}


def join_address(fragments: Iterable[str]) -> str:
    joined = ", ".join(fragment.strip() for fragment in fragments if fragment.strip())
    if joined.endswith(","):
        joined = joined[:-1].rstrip()
    return joined


@dataclass(frozen=True)
class FragmentBuffer:
    """Bounded, ordered address lines for the record under construction."""

    cap: int
    lines: Tuple[str, ...] = ()

    def append(self, line: str) -> "FragmentBuffer":
        if len(self.lines) >= self.cap:
            logger.debug("Fragment cap %d reached; dropping %r", self.cap, line)
            return self
        return replace(self, lines=self.lines + (line,))

    def clear(self) -> "FragmentBuffer":
        return replace(self, lines=())

    def join(self) -> str:
        return join_address(self.lines)

    def __len__(self) -> int:
        return len(self.lines)


def finalize_record(record: ShopRecord, fragments: FragmentBuffer) -> ShopRecord:
    if not fragments:
        return record
    return replace(record, address=fragments.join())


def with_contact(record: ShopRecord, kind: LineKind, value: str) -> ShopRecord:
    """Return the record with a contact field set, keeping any earlier value."""
    field_name = CONTACT_FIELDS[kind]
    if getattr(record, field_name):
        logger.debug("Ignoring extra %s %r for %r", field_name, value, record.name)
        return record
    return replace(record, **{field_name: value})
