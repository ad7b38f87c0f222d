from bs4 import BeautifulSoup

from quiltshops.core.regions import CA_SKIP_NAMES
from quiltshops.etl.html_blocks import extract_from_html, iter_city_sections, parse_shop_block
from quiltshops.etl.policy import AcceptanceGate, html_policy

PAGE = """
<html><body>
<h2>Quilt Shops</h2>
<h3>Anaheim</h3>
<div>
<pre class="wp-block-verse"><strong>Mel's Sewing &amp; Fabric Center</strong>
1189 N Euclid St, Anaheim, CA 92801
714-774-3460
info@melssewing.com

<strong>M &amp; L Fabrics Discount Store</strong>
3430 W Ball Rd, Anaheim, CA 92804
714-995-3178</pre>
</div>
<pre class="wp-block-verse"><strong>Mel's Sewing &amp; Fabric Center</strong>
1189 N Euclid St, Anaheim, CA 92801</pre>
<h3>Bakersfield</h3>
<div>
<pre class="wp-block-verse"><strong>Click Here</strong>
for more shops

<strong>Name Only Quilts</strong></pre>
<pre class="wp-block-verse"><strong>Valley Quilters</strong>
661-555-0110</pre>
</div>
<div><h3>Related Posts</h3></div>
<pre class="wp-block-verse"><strong>Hidden Shop</strong>
1 Secret Way, Nowhere, CA 90000</pre>
</body></html>
"""


def test_parse_shop_block_complete_shop():
    block = """Mel's Sewing & Fabric Center
1189 N Euclid St, Anaheim, CA 92801
714-774-3460
info@melssewing.com"""

    shop = parse_shop_block(block, "Mel's Sewing & Fabric Center", "anaheim")

    assert shop.address == "1189 N Euclid St, Anaheim, CA 92801"
    assert shop.phone == "714-774-3460"
    assert shop.email == "info@melssewing.com"
    assert shop.city == "anaheim"


def test_parse_shop_block_without_email():
    block = """M & L Fabrics Discount Store
3430 W Ball Rd, Anaheim, CA 92804
714-995-3178"""

    shop = parse_shop_block(block, "M & L Fabrics Discount Store", "anaheim")

    assert shop.address == "3430 W Ball Rd, Anaheim, CA 92804"
    assert shop.phone == "714-995-3178"
    assert shop.email == ""


def test_parse_shop_block_stops_at_next_listing():
    block = """First Shop
10 Elm St, Fresno, CA 93701
Second Shop
559-555-0100"""

    shop = parse_shop_block(block, "First Shop", "fresno")

    assert shop.address == "10 Elm St, Fresno, CA 93701"
    assert shop.phone == ""


def test_parse_shop_block_respects_line_cap_and_first_wins():
    block = """Cap Shop
info@capshop.com
other@capshop.com
559-555-0100
559-555-0199
22 Oak St, Fresno, CA 93701"""

    shop = parse_shop_block(block, "Cap Shop", "fresno")

    assert shop.email == "info@capshop.com"
    assert shop.phone == "559-555-0100"
    assert shop.address == ""


def test_iter_city_sections_stops_at_next_header():
    soup = BeautifulSoup(PAGE, "html.parser")
    sections = list(iter_city_sections(soup))

    assert [city for city, _ in sections] == ["anaheim", "bakersfield", "related posts"]
    anaheim_members = sections[0][1]
    assert [member.name for member in anaheim_members] == ["div", "pre"]
    assert sections[2][1] == []


def test_extract_from_html_dedupes_and_applies_gate():
    shops = extract_from_html(PAGE, html_policy(skip_names=CA_SKIP_NAMES))

    assert [(shop.name, shop.city) for shop in shops] == [
        ("Mel's Sewing & Fabric Center", "anaheim"),
        ("M & L Fabrics Discount Store", "anaheim"),
        ("Valley Quilters", "bakersfield"),
    ]
    assert shops[0].email == "info@melssewing.com"
    assert shops[2].phone == "661-555-0110"


def test_extract_from_html_policy_knobs_are_independent():
    policy = html_policy(skip_names=CA_SKIP_NAMES, dedupe=False, gate=AcceptanceGate.NAME_CITY)
    names = [shop.name for shop in extract_from_html(PAGE, policy)]

    assert names.count("Mel's Sewing & Fabric Center") == 2
    assert "Name Only Quilts" in names
    assert "Click Here" not in names
