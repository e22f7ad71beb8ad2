"""
Free-text input helpers shared by request schemas.
"""
import re

_PINCODE_RE = re.compile(r"^\d{6}$")


def sanitize_user_input(text: str, max_length: int = 10000) -> str:
    """
    Strip null bytes and control characters and clip to `max_length`.

    Gift messages and delivery instructions end up on printed cards and
    vendor dashboards, so only printable text and line breaks survive.
    """
    if not text:
        return ""

    if len(text) > max_length:
        text = text[:max_length]

    text = text.replace('\x00', '')
    text = ''.join(char for char in text if ord(char) >= 32 or char in '\n\r\t')

    return text.strip()


def normalize_pincode(value: str) -> str:
    """Six-digit Indian postal code, surrounding whitespace removed."""
    value = (value or "").strip().replace(" ", "")
    if not _PINCODE_RE.match(value):
        raise ValueError("Pincode must be 6 digits")
    return value
