"""Vietnamese money-in-words and date helpers used by receipts."""

import re
from datetime import date, datetime, timezone

_ONES = ["", "một", "hai", "ba", "bốn", "năm", "sáu", "bảy", "tám", "chín"]
_TENS = [
    "",
    "mười",
    "hai mươi",
    "ba mươi",
    "bốn mươi",
    "năm mươi",
    "sáu mươi",
    "bảy mươi",
    "tám mươi",
    "chín mươi",
]
_UNITS = ["", " nghìn", " triệu", " tỷ", " nghìn tỷ", " triệu tỷ"]

_VN_DATE_RE = re.compile(r"ngày\s+(\d+)\s+tháng\s+(\d+)\s+năm\s+(\d+)", re.IGNORECASE)


def _read_three_digits(num: int) -> str:
    hundred, ten, one = num // 100, (num % 100) // 10, num % 10
    words: list[str] = []

    if hundred > 0:
        words.append(f"{_ONES[hundred]} trăm")
        if ten == 0 and one > 0:
            words.append("lẻ")

    if ten > 0:
        words.append(_TENS[ten])
        if one == 1 and ten > 1:
            words.append("mốt")
            return " ".join(words)
        if one == 5:
            words.append("lăm")
            return " ".join(words)

    if one > 0:
        words.append(_ONES[one])

    return " ".join(words)


def amount_in_words(amount: int) -> str:
    """Spell a VND amount in Vietnamese, e.g. 1500000 -> "Một triệu năm trăm nghìn đồng"."""
    if amount == 0:
        return "không đồng"
    if amount < 0:
        return "âm " + amount_in_words(-amount)

    result = ""
    unit_index = 0
    while amount > 0:
        group = amount % 1000
        if group > 0:
            part = _read_three_digits(group) + _UNITS[unit_index]
            result = part + (" " + result if result else "")
        amount //= 1000
        unit_index += 1

    return result[0].upper() + result[1:] + " đồng"


def format_vietnamese_date(value: date) -> str:
    """Format as ``ngày D tháng M năm YYYY``."""
    return f"ngày {value.day} tháng {value.month} năm {value.year}"


def parse_date_to_iso(value: str | None) -> str | None:
    """Parse the date spellings legacy clients send into an ISO-8601 string.

    Accepts ISO timestamps, ``ngày X tháng Y năm Z`` and ``DD/MM/YYYY``.

    Returns:
        ISO string, or None if the value is empty or unparseable
    """
    if not value or not value.strip():
        return None
    value = value.strip()

    if "T" in value or value.endswith("Z"):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            parsed = None
        if parsed is not None:
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed.isoformat()

    match = _VN_DATE_RE.search(value)
    if match:
        day, month, year = (int(g) for g in match.groups())
        return _safe_date(year, month, day)

    parts = value.split("/")
    if len(parts) == 3 and all(p.strip().isdigit() for p in parts):
        day, month, year = (int(p) for p in parts)
        return _safe_date(year, month, day)

    try:
        return date.fromisoformat(value).isoformat()
    except ValueError:
        return None


def _safe_date(year: int, month: int, day: int) -> str | None:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None
