"""Line-stream state machine that groups classified lines into shop records.

Used for PDF-flattened directories where a city header is followed by one or
more shops, each laid out as a name line, address lines ending in a
"<city>, <ST> <zip>" line, then contact lines and free-form description.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from quiltshops.etl.assembler import CONTACT_FIELDS, FragmentBuffer, finalize_record, with_contact
from quiltshops.etl.classify import ClassifiedLine, LineClassifier, LineKind, merge_city_tokens
from quiltshops.etl.policy import DEFAULT_FRAGMENT_CAP, ExtractionPolicy, apply_policy
from quiltshops.models import ShopRecord

logger = logging.getLogger(__name__)


class ExtractionState(str, Enum):
    LOOKING_FOR_CITY_HEADER = "looking_for_city_header"
    EXPECTING_SHOP_NAME = "expecting_shop_name"
    COLLECTING_ADDRESS = "collecting_address"
    COLLECTING_CONTACT_INFO = "collecting_contact_info"


_CITY_HEADER_STATES = (
    ExtractionState.LOOKING_FOR_CITY_HEADER,
    ExtractionState.COLLECTING_CONTACT_INFO,
)


@dataclass(frozen=True)
class ExtractionContext:
    fragments: FragmentBuffer
    current_city: str = ""
    current_record: Optional[ShopRecord] = None

    @classmethod
    def initial(cls, fragment_cap: int = DEFAULT_FRAGMENT_CAP) -> "ExtractionContext":
        return cls(fragments=FragmentBuffer(cap=fragment_cap))


Step = Tuple[ExtractionState, ExtractionContext, Optional[ShopRecord]]


def transition(state: ExtractionState, context: ExtractionContext, line: ClassifiedLine) -> Step:
    """Advance the machine by one classified line.

    Returns the next state, the next context and the record completed by this
    line, if any. Neither argument is mutated.
    """
    kind = line.kind

    if kind in (LineKind.BLANK, LineKind.SKIP):
        return state, context, None

    if kind is LineKind.TERMINATOR:
        if state is not ExtractionState.COLLECTING_ADDRESS or context.current_record is None:
            return state, context, None
        record = finalize_record(context.current_record, context.fragments)
        next_context = replace(context, current_record=record, fragments=context.fragments.clear())
        return ExtractionState.COLLECTING_CONTACT_INFO, next_context, None

    if kind in CONTACT_FIELDS:
        if context.current_record is None:
            return state, context, None
        record = with_contact(context.current_record, kind, line.text)
        return state, replace(context, current_record=record), None

    if state in _CITY_HEADER_STATES:
        if kind is not LineKind.CITY_HEADER:
            return state, context, None
        emitted = _completed(context)
        next_context = ExtractionContext(fragments=context.fragments.clear(), current_city=line.text)
        return ExtractionState.EXPECTING_SHOP_NAME, next_context, emitted

    if state is ExtractionState.EXPECTING_SHOP_NAME:
        record = ShopRecord(name=line.text, city=context.current_city)
        return ExtractionState.COLLECTING_ADDRESS, replace(context, current_record=record), None

    return state, replace(context, fragments=context.fragments.append(line.text)), None


def finish(context: ExtractionContext) -> Optional[ShopRecord]:
    """Flush the record still under construction at end of input."""
    return _completed(context)


def _completed(context: ExtractionContext) -> Optional[ShopRecord]:
    record = context.current_record
    if record is None or not record.is_complete():
        return None
    return finalize_record(record, context.fragments)


def run_state_machine(
    lines: Iterable[ClassifiedLine],
    fragment_cap: int = DEFAULT_FRAGMENT_CAP,
) -> List[ShopRecord]:
    state = ExtractionState.LOOKING_FOR_CITY_HEADER
    context = ExtractionContext.initial(fragment_cap)
    records: List[ShopRecord] = []
    for line in lines:
        state, context, emitted = transition(state, context, line)
        if emitted is not None:
            records.append(emitted)
    last = finish(context)
    if last is not None:
        records.append(last)
    return records


def extract_from_lines(lines: Iterable[str], policy: ExtractionPolicy) -> List[ShopRecord]:
    classifier = LineClassifier(policy)
    candidates = run_state_machine((classifier.classify(line) for line in lines), policy.fragment_cap)
    records = apply_policy(candidates, policy)
    logger.info("Extracted %d of %d candidate shops", len(records), len(candidates))
    return records


def extract_from_text(text: str, policy: ExtractionPolicy) -> List[ShopRecord]:
    """Extract shop records from a flattened text document."""
    lines = text.splitlines()
    if policy.city_strategy.uses_known_cities:
        lines = merge_city_tokens(lines, policy.known_cities)
    return extract_from_lines(lines, policy)
