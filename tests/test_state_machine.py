from quiltshops.core.regions import VA_NON_CITY_PHRASES, VA_SKIP_LINES
from quiltshops.etl.assembler import FragmentBuffer
from quiltshops.etl.classify import ClassifiedLine, LineKind
from quiltshops.etl.policy import AcceptanceGate, CityStrategy, pdf_policy
from quiltshops.etl.state_machine import (
    ExtractionContext,
    ExtractionState,
    extract_from_text,
    finish,
    transition,
)
from quiltshops.models import ShopRecord

VA_TEXT = """Quilt Shops
Abingdon
Quilt Corner
123 Main Street
Suite 4
Abingdon, VA 24210
276-555-0100
info@quiltcorner.com
www.quiltcorner.com
Hours
Open daily except holidays
Roanoke
Fabric Attic
45 Market St
Roanoke, VA 24011
(540) 555-0199
540-555-0000
2025-V1.0
"""


def _policy(**overrides):
    options = dict(non_city_phrases=VA_NON_CITY_PHRASES, skip_lines=VA_SKIP_LINES)
    options.update(overrides)
    return pdf_policy(**options)


def test_extract_from_text_builds_records():
    shops = extract_from_text(VA_TEXT, _policy())

    assert [shop.name for shop in shops] == ["Quilt Corner", "Fabric Attic"]
    corner, attic = shops
    assert corner.city == "Abingdon"
    assert corner.address == "123 Main Street, Suite 4"
    assert corner.phone == "276-555-0100"
    assert corner.email == "info@quiltcorner.com"
    assert corner.website == "www.quiltcorner.com"
    assert attic.city == "Roanoke"
    assert attic.address == "45 Market St"
    assert attic.phone == "(540) 555-0199"


def test_extraction_is_deterministic():
    policy = _policy()
    assert extract_from_text(VA_TEXT, policy) == extract_from_text(VA_TEXT, policy)


def test_city_header_at_end_of_input_yields_no_record():
    shops = extract_from_text("Salem\n", _policy(gate=AcceptanceGate.NAME_CITY))
    assert shops == []


def test_contact_gate_rejects_record_without_contact():
    text = "Salem\nQuilt Corner\n1 Main St\nSalem, VA 24153\n"
    assert extract_from_text(text, _policy()) == []

    shops = extract_from_text(text, _policy(gate=AcceptanceGate.NAME_CITY))
    assert shops == [ShopRecord(name="Quilt Corner", city="Salem", address="1 Main St")]


def test_fragment_cap_truncates_without_losing_contacts():
    text = "\n".join(
        [
            "Salem",
            "Quilt Corner",
            "Line 1",
            "Line 2",
            "Line 3",
            "Line 4",
            "Line 5",
            "540-555-0100",
            "Line 6",
            "Salem, VA 24153",
            "shop@corner.com",
        ]
    )
    shops = extract_from_text(text, _policy())

    assert len(shops) == 1
    assert shops[0].address == "Line 1, Line 2, Line 3, Line 4"
    assert shops[0].phone == "540-555-0100"
    assert shops[0].email == "shop@corner.com"


def test_pending_fragments_flushed_at_end_of_input():
    text = "Salem\nQuilt Corner\n1 Main St\n540-555-0100\n"
    shops = extract_from_text(text, _policy())
    assert shops[0].address == "1 Main St"
    assert shops[0].phone == "540-555-0100"


def test_pdf_variant_keeps_duplicates_unless_enabled():
    text = VA_TEXT + VA_TEXT
    assert len(extract_from_text(text, _policy())) == 4
    assert len(extract_from_text(text, _policy(dedupe=True))) == 2


def test_known_city_strategy_joins_split_city_names():
    text = "Virginia\nBeach\nSeaside Stitches\n9 Ocean Ave\nVirginia Beach, VA 23451\n757-555-0101\n"
    policy = _policy(city_strategy=CityStrategy.KNOWN, known_cities={"Virginia Beach"})
    shops = extract_from_text(text, policy)

    assert len(shops) == 1
    assert shops[0].city == "Virginia Beach"
    assert shops[0].name == "Seaside Stitches"


def test_transition_city_header_emits_previous_record():
    record = ShopRecord(name="Quilt Corner", city="Salem", phone="540-555-0100")
    context = ExtractionContext(fragments=FragmentBuffer(cap=4), current_city="Salem", current_record=record)

    state, next_context, emitted = transition(
        ExtractionState.COLLECTING_CONTACT_INFO,
        context,
        ClassifiedLine(LineKind.CITY_HEADER, "Roanoke"),
    )

    assert state is ExtractionState.EXPECTING_SHOP_NAME
    assert emitted == record
    assert next_context.current_city == "Roanoke"
    assert next_context.current_record is None
    assert context.current_record is record


def test_transition_ignores_text_while_collecting_contact_info():
    context = ExtractionContext.initial()
    state, next_context, emitted = transition(
        ExtractionState.COLLECTING_CONTACT_INFO,
        context,
        ClassifiedLine(LineKind.TEXT, "Longarm rental available"),
    )
    assert state is ExtractionState.COLLECTING_CONTACT_INFO
    assert next_context is context
    assert emitted is None


def test_transition_shop_name_then_terminator():
    context = ExtractionContext(fragments=FragmentBuffer(cap=4), current_city="Salem")
    state, context, _ = transition(
        ExtractionState.EXPECTING_SHOP_NAME,
        context,
        ClassifiedLine(LineKind.CITY_HEADER, "Quilt Corner"),
    )
    assert state is ExtractionState.COLLECTING_ADDRESS
    assert context.current_record.name == "Quilt Corner"
    assert context.current_record.city == "Salem"

    state, context, _ = transition(state, context, ClassifiedLine(LineKind.TEXT, "1 Main St"))
    state, context, _ = transition(state, context, ClassifiedLine(LineKind.TERMINATOR, "Salem, VA 24153"))

    assert state is ExtractionState.COLLECTING_CONTACT_INFO
    assert context.current_record.address == "1 Main St"
    assert len(context.fragments) == 0


def test_terminator_outside_address_collection_is_skipped():
    context = ExtractionContext.initial()
    state, next_context, emitted = transition(
        ExtractionState.LOOKING_FOR_CITY_HEADER,
        context,
        ClassifiedLine(LineKind.TERMINATOR, "Salem, VA 24153"),
    )
    assert state is ExtractionState.LOOKING_FOR_CITY_HEADER
    assert next_context is context
    assert emitted is None


def test_finish_requires_name_and_city():
    context = ExtractionContext.initial()
    assert finish(context) is None

    nameless = ExtractionContext(fragments=context.fragments, current_record=ShopRecord(name="", city="Salem"))
    assert finish(nameless) is None


def test_terminator_with_empty_buffer_moves_to_contact_info():
    record = ShopRecord(name="Quilt Corner", city="Salem")
    context = ExtractionContext(fragments=FragmentBuffer(cap=4), current_city="Salem", current_record=record)

    state, next_context, emitted = transition(
        ExtractionState.COLLECTING_ADDRESS,
        context,
        ClassifiedLine(LineKind.TERMINATOR, "Salem, VA 24153"),
    )

    assert state is ExtractionState.COLLECTING_CONTACT_INFO
    assert next_context.current_record.address == ""
    assert emitted is None


def test_second_website_does_not_replace_first():
    record = ShopRecord(name="Quilt Corner", city="Salem", website="www.quiltcorner.com")
    context = ExtractionContext(fragments=FragmentBuffer(cap=4), current_city="Salem", current_record=record)

    state, next_context, _ = transition(
        ExtractionState.COLLECTING_CONTACT_INFO,
        context,
        ClassifiedLine(LineKind.WEBSITE, "https://facebook.com/quiltcorner"),
    )

    assert state is ExtractionState.COLLECTING_CONTACT_INFO
    assert next_context.current_record.website == "www.quiltcorner.com"


def test_second_website_in_text_keeps_first():
    text = "Salem\nQuilt Corner\n1 Main St\nSalem, VA 24153\nwww.quiltcorner.com\nhttps://facebook.com/qc\n"
    shops = extract_from_text(text, _policy())
    assert shops[0].website == "www.quiltcorner.com"
