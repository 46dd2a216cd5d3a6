# tests/test_share.py
import uuid
from datetime import datetime, timezone
from urllib.parse import parse_qs, urlparse

import pytest

from finzoo.domain.pet import Pet
from finzoo.services.share_service import (
    format_price,
    generate_qr_bytes,
    pet_detail_url,
    strip_markdown,
    whatsapp_link,
)

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_pet(**fields) -> Pet:
    data = dict(
        id=uuid.uuid4(),
        name="Bubbles",
        species="Fish",
        breed="Betta",
        age="4 months",
        price=1500.0,
        created_at=NOW,
        updated_at=NOW,
    )
    data.update(fields)
    return Pet(**data)


def test_detail_url():
    pet_id = uuid.uuid4()
    assert pet_detail_url("http://shop.test/", pet_id) == f"http://shop.test/pets/{pet_id}"


def test_price_formatting():
    assert format_price(make_pet()) == "Rs 1,500"
    assert format_price(make_pet(price_type="pair")) == "Rs 1,500 per pair"


def test_whatsapp_link_carries_inquiry():
    link = whatsapp_link("+94 77 123 4567", make_pet())
    parsed = urlparse(link)

    assert parsed.netloc == "wa.me"
    assert parsed.path == "/94771234567"
    text = parse_qs(parsed.query)["text"][0]
    for part in ("Bubbles", "Fish", "Betta", "4 months", "Rs 1,500"):
        assert part in text


def test_whatsapp_link_needs_a_number():
    with pytest.raises(ValueError):
        whatsapp_link("", make_pet())


def test_strip_markdown():
    assert strip_markdown("# Title\n**bold** and [link](http://x)") == "Title bold and link"
    assert strip_markdown(None) == ""


def test_strip_markdown_keeps_underscores_inside_words():
    assert strip_markdown("A golden_retriever_pup, _very_ playful") == (
        "A golden_retriever_pup, very playful"
    )
    assert strip_markdown("See http://x.test/a_b_c") == "See http://x.test/a_b_c"


def test_qr_code_is_png():
    png = generate_qr_bytes("http://shop.test/pets/1")
    assert png.startswith(b"\x89PNG\r\n\x1a\n")
