"""Extraction policies for the two directory source formats.

The PDF line-stream and the HTML block extractors solve the same problem with
different tuning. Each knob lives here so a caller can change one variant
without silently changing the other.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterable, List, Tuple

from quiltshops.etl.classify import LineKind
from quiltshops.etl.dedupe import Deduplicator
from quiltshops.models import ShopRecord

logger = logging.getLogger(__name__)

DEFAULT_FRAGMENT_CAP = 4


class AcceptanceGate(str, Enum):
    NAME_CITY = "name_city"
    CONTACT_REQUIRED = "contact_required"
    ADDRESS_OR_PHONE = "address_or_phone"

    def accepts(self, record: ShopRecord) -> bool:
        if not record.is_complete():
            return False
        if self is AcceptanceGate.CONTACT_REQUIRED:
            return record.has_contact()
        if self is AcceptanceGate.ADDRESS_OR_PHONE:
            return bool(record.address or record.phone)
        return True


class CityStrategy(str, Enum):
    HEURISTIC = "heuristic"
    KNOWN = "known"
    KNOWN_THEN_HEURISTIC = "known_then_heuristic"

    @property
    def uses_known_cities(self) -> bool:
        return self is not CityStrategy.HEURISTIC

    @property
    def uses_heuristic(self) -> bool:
        return self is not CityStrategy.KNOWN


@dataclass(frozen=True)
class ExtractionPolicy:
    """Per-variant tuning for classification, assembly and acceptance."""

    state_code: str
    gate: AcceptanceGate
    dedupe: bool
    strict_patterns: bool
    contact_kinds: Tuple[LineKind, ...]
    fragment_cap: int = DEFAULT_FRAGMENT_CAP
    city_strategy: CityStrategy = CityStrategy.HEURISTIC
    known_cities: FrozenSet[str] = frozenset()
    non_city_phrases: FrozenSet[str] = frozenset()
    skip_lines: FrozenSet[str] = frozenset()
    skip_names: FrozenSet[str] = frozenset()

    def accepts(self, record: ShopRecord) -> bool:
        return self.gate.accepts(record)


def pdf_policy(
    state_code: str = "VA",
    *,
    city_strategy: CityStrategy = CityStrategy.HEURISTIC,
    known_cities: Iterable[str] = (),
    non_city_phrases: Iterable[str] = (),
    skip_lines: Iterable[str] = (),
    fragment_cap: int = DEFAULT_FRAGMENT_CAP,
    gate: AcceptanceGate = AcceptanceGate.CONTACT_REQUIRED,
    dedupe: bool = False,
) -> ExtractionPolicy:
    """Policy for PDF-flattened text: strict regexes, websites, no dedupe."""
    return ExtractionPolicy(
        state_code=state_code,
        gate=gate,
        dedupe=dedupe,
        strict_patterns=True,
        contact_kinds=(LineKind.EMAIL, LineKind.PHONE, LineKind.WEBSITE),
        fragment_cap=fragment_cap,
        city_strategy=CityStrategy(city_strategy),
        known_cities=frozenset(known_cities),
        non_city_phrases=frozenset(non_city_phrases),
        skip_lines=frozenset(skip_lines),
    )


def html_policy(
    state_code: str = "CA",
    *,
    skip_names: Iterable[str] = (),
    fragment_cap: int = DEFAULT_FRAGMENT_CAP,
    gate: AcceptanceGate = AcceptanceGate.ADDRESS_OR_PHONE,
    dedupe: bool = True,
) -> ExtractionPolicy:
    """Policy for HTML verse blocks: loose checks, no websites, dedupe on."""
    return ExtractionPolicy(
        state_code=state_code,
        gate=gate,
        dedupe=dedupe,
        strict_patterns=False,
        contact_kinds=(LineKind.EMAIL, LineKind.PHONE),
        fragment_cap=fragment_cap,
        skip_names=frozenset(name.lower() for name in skip_names),
    )


def apply_policy(candidates: Iterable[ShopRecord], policy: ExtractionPolicy) -> List[ShopRecord]:
    """Filter candidate records through the acceptance gate and optional dedupe."""
    deduplicator = Deduplicator() if policy.dedupe else None
    selected: List[ShopRecord] = []
    for record in candidates:
        if not policy.accepts(record):
            logger.debug("Rejected %r by %s gate", record.name, policy.gate.value)
            continue
        if deduplicator is not None and not deduplicator.admit(record):
            continue
        selected.append(record)
    return selected
