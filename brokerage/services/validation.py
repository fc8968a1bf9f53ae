"""
Field-level validation primitives shared by every product form.

Each check takes the raw string typed by the user and answers True/False;
callers attach the field-scoped message.
"""

import re

_ALPHA_RE = re.compile(r"[A-Za-zÁáÉéÍíÓóÚúÑñÜü\s]+")
_EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
_DIGITS_RE = re.compile(r"\d+")
_DECIMAL_RE = re.compile(r"(\d+\.?\d*|\.\d+)")
# Shape only: 2024-02-30 passes.
_ISO_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}")


def _matches(pattern: re.Pattern, value) -> bool:
    if not isinstance(value, str):
        return False
    return pattern.fullmatch(value) is not None


def is_alpha(value) -> bool:
    """Letters (accented Latin included) and spaces."""
    return _matches(_ALPHA_RE, value)


def is_email(value) -> bool:
    return _matches(_EMAIL_RE, value)


def is_digits_only(value) -> bool:
    return _matches(_DIGITS_RE, value)


def is_decimal(value) -> bool:
    """Digits with at most one decimal point."""
    return _matches(_DECIMAL_RE, value)


def is_iso_date(value) -> bool:
    """YYYY-MM-DD shape, no calendar check."""
    return _matches(_ISO_DATE_RE, value)
