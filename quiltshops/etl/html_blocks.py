"""Shop extraction for directory pages laid out as per-city HTML sections.

Each city is an ``<h3>`` header; the shops for that city follow as
``pre.wp-block-verse`` blocks where every ``<strong>`` marks a shop name and
the next few lines hold its address, phone and email.
"""

from __future__ import annotations

import logging
from typing import Iterator, List, Optional, Tuple, Union

from bs4 import BeautifulSoup, Tag

from quiltshops.etl.assembler import CONTACT_FIELDS, join_address, with_contact
from quiltshops.etl.classify import LineClassifier
from quiltshops.etl.dedupe import Deduplicator
from quiltshops.etl.policy import ExtractionPolicy, html_policy
from quiltshops.models import ShopRecord

logger = logging.getLogger(__name__)

SECTION_TAG = "h3"
VERSE_CLASS = "wp-block-verse"


def parse_shop_block(
    block_text: str,
    shop_name: str,
    city: str,
    policy: Optional[ExtractionPolicy] = None,
) -> ShopRecord:
    """Build one record from the lines that follow ``shop_name`` in a block."""
    policy = policy or html_policy()
    classifier = LineClassifier(policy)
    record = ShopRecord(name=shop_name, city=city)

    found_shop = False
    lines_after_shop = 0
    for raw_line in block_text.split("\n"):
        line = raw_line.strip()
        if not line:
            continue
        if shop_name in line:
            found_shop = True
            continue
        if not found_shop:
            continue

        lines_after_shop += 1
        if lines_after_shop > policy.fragment_cap:
            break

        classified = classifier.classify_contact(line)
        if classified.kind in CONTACT_FIELDS:
            record = with_contact(record, classified.kind, classified.text)
        elif not record.address:
            record.address = join_address([classified.text])
        else:
            # Unclassified text after the address belongs to the next listing.
            break

    return record


def iter_city_sections(soup: BeautifulSoup) -> Iterator[Tuple[str, List[Tag]]]:
    """Yield each lowercased city header with the siblings listed under it."""
    for header in soup.find_all(SECTION_TAG):
        city = header.get_text().strip().lower()
        members: List[Tag] = []
        for sibling in header.find_next_siblings():
            if sibling.name == SECTION_TAG or sibling.find(SECTION_TAG) is not None:
                break
            members.append(sibling)
        yield city, members


def _verse_blocks(element: Tag) -> List[Tag]:
    blocks = element.select(f"pre.{VERSE_CLASS}")
    if element.name == "pre" and VERSE_CLASS in (element.get("class") or []):
        blocks.insert(0, element)
    return blocks


def extract_from_html(
    markup: Union[str, BeautifulSoup],
    policy: Optional[ExtractionPolicy] = None,
) -> List[ShopRecord]:
    """Extract accepted, de-duplicated shop records from a directory page."""
    policy = policy or html_policy()
    soup = markup if isinstance(markup, BeautifulSoup) else BeautifulSoup(markup, "html.parser")
    deduplicator = Deduplicator() if policy.dedupe else None

    records: List[ShopRecord] = []
    for city, members in iter_city_sections(soup):
        for member in members:
            for block in _verse_blocks(member):
                block_text = block.get_text()
                for strong in block.find_all("strong"):
                    shop_name = strong.get_text().strip()
                    if not shop_name or shop_name.lower() in policy.skip_names:
                        continue

                    record = parse_shop_block(block_text, shop_name, city, policy)
                    if not policy.accepts(record):
                        logger.debug("Rejected %r in %s by %s gate", shop_name, city, policy.gate.value)
                        continue
                    if deduplicator is not None and not deduplicator.admit(record):
                        logger.debug("Skipping duplicate %r in %s", shop_name, city)
                        continue
                    records.append(record)

    logger.info("Extracted %d shops from HTML directory", len(records))
    return records
