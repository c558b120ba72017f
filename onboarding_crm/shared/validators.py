"""Shared validation and normalization utilities"""

import re
from typing import Optional

EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"


def normalize_email(email: Optional[str]) -> Optional[str]:
    """Trim and lower-case an email; blank values become None"""
    if email is None:
        return None
    email = str(email).strip().lower()
    return email or None


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    if not re.match(EMAIL_PATTERN, email):
        raise ValueError("Invalid email format")

    return email


def digits_only(value) -> str:
    """Strip everything but digits from a phone-like value"""
    if value is None:
        return ""
    return re.sub(r"\D", "", str(value))


def last_10_digits(value) -> Optional[str]:
    """
    Reduce a phone number to its last 10 digits.

    WhatsApp JIDs, E.164 numbers and formatted US numbers all collapse to the
    same key this way, so it is what cross-system phone matching compares on.
    """
    digits = digits_only(value)
    if not digits:
        return None
    return digits if len(digits) <= 10 else digits[-10:]


def split_full_name(name: Optional[str]) -> tuple[str, str]:
    """Split "First Middle Last" into ("First", "Middle Last")"""
    parts = (name or "").strip().split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def format_full_name(first_name: Optional[str], last_name: Optional[str]) -> str:
    return " ".join(p for p in (first_name, last_name) if p).strip()


def parse_int(value) -> Optional[int]:
    """Leading integer of a value ("7", "8/10", " 9 ") or None"""
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    match = re.match(r"^\s*(-?\d+)", str(value))
    return int(match.group(1)) if match else None


def parse_money(value) -> Optional[float]:
    """Parse "$5,000.00" style amounts"""
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)

    cleaned = re.sub(r"[^0-9.-]", "", str(value))
    if not cleaned:
        return None
    try:
        return float(cleaned)
    except ValueError:
        return None
