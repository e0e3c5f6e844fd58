"""Shared utilities used across the clinic booking engine."""

import re
from datetime import date, datetime
from typing import Optional


def normalize_phone(value: str) -> str:
    """Normalize a phone number by stripping everything except digits and a leading +.

    Examples:
        >>> normalize_phone("0101 234 5678")
        '01012345678'
        >>> normalize_phone("+20 (101) 055-7102")
        '+201010557102'
    """
    value = value.strip()
    if value.startswith("+"):
        return "+" + re.sub(r"[^\d]", "", value[1:])
    return re.sub(r"[^\d]", "", value)


def parse_iso_date(value: str) -> Optional[date]:
    """Parse a YYYY-MM-DD string, returning None when it doesn't parse."""
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError:
        return None
