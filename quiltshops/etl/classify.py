"""Line classification for loosely formatted shop listings.

Classifiers run in a fixed priority order: blank, skip pattern, city/state/zip
terminator, email, phone, website, city header, then plain text. Email must be
checked before phone and the terminator before the city-header heuristics
because short lines can satisfy more than one predicate.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import TYPE_CHECKING, Callable, Iterable, List, Pattern, Sequence, Tuple

if TYPE_CHECKING:
    from quiltshops.etl.policy import ExtractionPolicy

PHONE_STRICT_REGEX = re.compile(
    r"^\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}(?:\s*(?:x|ext\.?)\s*\d{1,5})?",
    re.IGNORECASE,
)
EMAIL_STRICT_REGEX = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
WEBSITE_PREFIXES = ("www.", "http://", "https://")
TITLE_DENY_SUBSTRINGS = ("suite", "shopping")
MAX_HEADER_WORDS = 3

_PHONE_SEPARATORS = str.maketrans("", "", "-(). +")
_DIGIT_REGEX = re.compile(r"\d")


class LineKind(str, Enum):
    BLANK = "blank"
    SKIP = "skip"
    TERMINATOR = "terminator"
    EMAIL = "email"
    PHONE = "phone"
    WEBSITE = "website"
    CITY_HEADER = "city_header"
    TEXT = "text"


@dataclass(frozen=True)
class ClassifiedLine:
    kind: LineKind
    text: str


def is_phone_loose(line: str) -> bool:
    """True when the line is nothing but a 10 or 11 digit phone number."""
    cleaned = line.translate(_PHONE_SEPARATORS)
    if len(cleaned) < 10 or len(cleaned) > 11:
        return False
    return cleaned.isascii() and cleaned.isdigit()


def is_phone_strict(line: str) -> bool:
    return PHONE_STRICT_REGEX.match(line) is not None


def is_email_loose(line: str) -> bool:
    return "@" in line and "." in line


def is_email_strict(line: str) -> bool:
    return EMAIL_STRICT_REGEX.match(line) is not None


def is_website(line: str) -> bool:
    return line.lower().startswith(WEBSITE_PREFIXES)


def is_short_title_case(line: str) -> bool:
    """Heuristic for city headers: a few capitalised words, no address noise."""
    words = line.split()
    if not words or len(words) > MAX_HEADER_WORDS:
        return False
    if "," in line or _DIGIT_REGEX.search(line):
        return False
    lowered = line.lower()
    if any(token in lowered for token in TITLE_DENY_SUBSTRINGS):
        return False
    return "A" <= line[0] <= "Z"


def match_known_city(line: str, known_cities: Iterable[str]) -> bool:
    return line in known_cities


@lru_cache(maxsize=8)
def city_state_zip_pattern(state_code: str) -> Pattern[str]:
    return re.compile(rf"^(.+),\s*{re.escape(state_code)}\s+\d{{5,6}}")


def is_city_state_zip(line: str, state_code: str) -> bool:
    return city_state_zip_pattern(state_code).match(line) is not None


def merge_city_tokens(lines: Sequence[str], known_cities: Iterable[str]) -> List[str]:
    """Re-join known two-word city names that were split across lines.

    The two-token form is tried before the single token, so "Virginia" followed
    by "Beach" becomes one "Virginia Beach" line when that city is known.
    """
    known = frozenset(known_cities)
    merged: List[str] = []
    index = 0
    while index < len(lines):
        current = lines[index].strip()
        if current and index + 1 < len(lines):
            pair = f"{current} {lines[index + 1].strip()}"
            if pair in known:
                merged.append(pair)
                index += 2
                continue
        merged.append(lines[index])
        index += 1
    return merged


class LineClassifier:
    """Tag single lines according to an extraction policy."""

    def __init__(self, policy: "ExtractionPolicy") -> None:
        self.policy = policy
        self._terminator = city_state_zip_pattern(policy.state_code)
        is_email = is_email_strict if policy.strict_patterns else is_email_loose
        is_phone = is_phone_strict if policy.strict_patterns else is_phone_loose
        self._contact_rules: Tuple[Tuple[LineKind, Callable[[str], bool]], ...] = tuple(
            (kind, predicate)
            for kind, predicate in (
                (LineKind.EMAIL, is_email),
                (LineKind.PHONE, is_phone),
                (LineKind.WEBSITE, is_website),
            )
            if kind in policy.contact_kinds
        )
        self._rules: Tuple[Tuple[LineKind, Callable[[str], bool]], ...] = (
            (LineKind.SKIP, self.is_skip),
            (LineKind.TERMINATOR, self.is_terminator),
            *self._contact_rules,
            (LineKind.CITY_HEADER, self.is_city_header),
        )

    def is_skip(self, line: str) -> bool:
        return line in self.policy.skip_lines

    def is_terminator(self, line: str) -> bool:
        return self._terminator.match(line) is not None

    def is_city_header(self, line: str) -> bool:
        if line in self.policy.non_city_phrases:
            return False
        strategy = self.policy.city_strategy
        if strategy.uses_known_cities and match_known_city(line, self.policy.known_cities):
            return True
        return strategy.uses_heuristic and is_short_title_case(line)

    def classify(self, raw: str) -> ClassifiedLine:
        line = raw.strip()
        if not line:
            return ClassifiedLine(LineKind.BLANK, line)
        for kind, predicate in self._rules:
            if predicate(line):
                return ClassifiedLine(kind, line)
        return ClassifiedLine(LineKind.TEXT, line)

    def classify_contact(self, raw: str) -> ClassifiedLine:
        """Classify with contact rules only, for blocks without structural lines."""
        line = raw.strip()
        if not line:
            return ClassifiedLine(LineKind.BLANK, line)
        for kind, predicate in self._contact_rules:
            if predicate(line):
                return ClassifiedLine(kind, line)
        return ClassifiedLine(LineKind.TEXT, line)
