# finzoo/services/share_service.py
import io
import re
from urllib.parse import quote

import qrcode

from finzoo.domain.pet import Pet


def strip_markdown(text: str | None) -> str:
    """Plain-text rendering of a Markdown description for previews."""
    if not text:
        return ""
    text = re.sub(r"\*\*(.*?)\*\*", r"\1", text)
    text = re.sub(r"(?<!\w)__(.+?)__(?!\w)", r"\1", text)
    text = re.sub(r"\*(.*?)\*", r"\1", text)
    text = re.sub(r"(?<!\w)_(.+?)_(?!\w)", r"\1", text)
    text = re.sub(r"`([^`]+)`", r"\1", text)
    text = re.sub(r"\[([^\]]+)\]\(([^)]+)\)", r"\1", text)
    text = re.sub(r"^#+\s+", "", text, flags=re.MULTILINE)
    text = re.sub(r"^-\s+", "", text, flags=re.MULTILINE)
    text = re.sub(r"^\d+\.\s+", "", text, flags=re.MULTILINE)
    return text.replace("\n", " ").strip()


def pet_detail_url(site_url: str, pet_id) -> str:
    return f"{site_url.rstrip('/')}/pets/{pet_id}"


def format_price(pet: Pet) -> str:
    amount = f"Rs {pet.price:,.0f}"
    return f"{amount} per pair" if pet.price_type == "pair" else amount


def inquiry_message(pet: Pet) -> str:
    return (
        f"Hi! I'm interested in *{pet.display_name}*\n\n"
        f"Species: {pet.species}\n"
        f"Breed: {pet.breed}\n"
        f"Age: {pet.age}\n"
        f"Price: {format_price(pet)}\n\n"
        "Could you please share more details?"
    )


def whatsapp_link(phone_number: str, pet: Pet) -> str:
    """wa.me deep link with the inquiry message pre-filled."""
    digits = re.sub(r"\D", "", phone_number)
    if not digits:
        raise ValueError("WhatsApp number is not configured")
    return f"https://wa.me/{digits}?text={quote(inquiry_message(pet), safe='')}"


def generate_qr_bytes(data: str) -> bytes:
    """
    Generate a QR code PNG for a given data string.
    """
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=4,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
