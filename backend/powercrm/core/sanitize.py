"""Input cleanup for request payloads and phone numbers.

Text typed on Arabic keyboard layouts is folded onto the Persian letters so that
searches over titles and names match regardless of the keyboard used.
"""

from __future__ import annotations

import re
import unicodedata

_SPACES_RE = re.compile(r"[^\S\n]+")
_BLANK_LINES_RE = re.compile(r"\n{3,}")
_PHONE_NOISE_RE = re.compile(r"[\s\-\(\)]")
IRAN_MOBILE_RE = re.compile(r"^(\+98|0098|0)?9\d{9}$")

_PERSIAN_LETTERS = str.maketrans({"ي": "ی", "ى": "ی", "ك": "ک"})
_DIGIT_MAP = str.maketrans("۰۱۲۳۴۵۶۷۸۹٠١٢٣٤٥٦٧٨٩", "01234567890123456789")
_ZWNJ = "\u200c"


def _keep(ch: str, allow_newlines: bool) -> bool:
    if ch == "\n":
        return allow_newlines
    if ch == _ZWNJ:
        return True
    return unicodedata.category(ch) not in {"Cc", "Cf"} or ch == "\t"


def clean_text(value: str | None, *, allow_newlines: bool = False) -> str:
    if value is None:
        return ""
    text = str(value).replace("\r\n", "\n").replace("\r", "\n").translate(_PERSIAN_LETTERS)
    if not allow_newlines:
        text = text.replace("\n", " ")
    text = "".join(ch for ch in text if _keep(ch, allow_newlines))
    lines = [_SPACES_RE.sub(" ", line).strip() for line in text.split("\n")]
    return _BLANK_LINES_RE.sub("\n\n", "\n".join(lines)).strip()


def clean_single_line(value: str | None) -> str:
    return clean_text(value)


def clean_multiline(value: str | None) -> str:
    return clean_text(value, allow_newlines=True)


def clean_optional(value: str | None) -> str | None:
    return clean_single_line(value) or None


def _digits_only(value: str | None) -> str:
    return _PHONE_NOISE_RE.sub("", (value or "").translate(_DIGIT_MAP))


def is_valid_phone(value: str | None) -> bool:
    return bool(value) and bool(IRAN_MOBILE_RE.match(_digits_only(value)))


def normalize_phone(value: str | None) -> str:
    """Bring an Iranian mobile number to the local ``09xxxxxxxxx`` form."""
    phone = _digits_only(value)
    for prefix in ("+98", "0098"):
        if phone.startswith(prefix):
            return "0" + phone[len(prefix):]
    if phone.startswith("98") and len(phone) == 12:
        return "0" + phone[2:]
    if phone and not phone.startswith("0"):
        return "0" + phone
    return phone
