"""Field extractors that turn raw vendor scalars into typed values.

Every function here is pure and never raises on bad input: unexpected
payloads degrade to an empty string, ``Decimal("0")`` or ``None`` so a
single odd field cannot abort a parse.
"""
from __future__ import annotations

import json
import re
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

TEXT_KEY = "#text"

_COMPACT_DATE = re.compile(r"^(\d{4})(\d{2})(\d{2})$")
_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:[T ].*)?$")
_COMPACT_TIME = re.compile(r"^(\d{2})(\d{2})(\d{2})$")
_NON_NUMERIC = re.compile(r"[^\d.\-]")
_TRUE_WORDS = frozenset({"true", "t", "yes", "y", "1", "on"})
# Numeric fields must stay below 10**MAX_INTEGER_DIGITS in magnitude.
MAX_INTEGER_DIGITS = 18


def extract_text(raw: Any) -> str:
    """Return the literal text held by ``raw``.

    Plain strings come back unchanged and numbers are rendered with ``str``.
    A text-node wrapper (a mapping holding ``#text``) yields its text. Any
    other structure is serialized to sorted-key JSON so that unexpected
    vendor payloads stay visible instead of failing the parse.
    """

    if raw is None:
        return ""
    if isinstance(raw, str):
        return raw
    if isinstance(raw, bool):
        return "true" if raw else "false"
    if isinstance(raw, (int, float, Decimal)):
        return str(raw)
    if isinstance(raw, dict) and TEXT_KEY in raw:
        return extract_text(raw[TEXT_KEY])
    try:
        return json.dumps(raw, sort_keys=True, default=str)
    except (TypeError, ValueError):
        return str(raw)


def _within_range(value: Decimal) -> bool:
    return value.is_finite() and value.adjusted() < MAX_INTEGER_DIGITS


def _to_decimal(raw: Any) -> Optional[Decimal]:
    if isinstance(raw, Decimal):
        return raw if _within_range(raw) else None
    text = extract_text(raw).strip()
    if not text:
        return None

    try:
        value = Decimal(text)
    except InvalidOperation:
        negative = text.startswith("(") and text.endswith(")")
        cleaned = _NON_NUMERIC.sub("", text)
        if negative and not cleaned.startswith("-"):
            cleaned = f"-{cleaned}"
        try:
            value = Decimal(cleaned)
        except InvalidOperation:
            return None
    return value if _within_range(value) else None


def extract_decimal(raw: Any) -> Decimal:
    """Parse a money or quantity value, yielding ``Decimal("0")`` on failure.

    Currency symbols and group separators are dropped (``"$1,234.56"``) and
    accounting negatives such as ``"(12.50)"`` keep their sign. The exponent
    of the source text is preserved, so ``"450.00"`` stays two places.
    Values with ``MAX_INTEGER_DIGITS`` or more integer digits count as
    failures, as do ``NaN`` and infinities.
    """

    value = _to_decimal(raw)
    return Decimal("0") if value is None else value


def extract_int(raw: Any, default: Optional[int] = 0) -> Optional[int]:
    """Return the integer part of a numeric field, or ``default``."""

    text = extract_text(raw).strip()
    if not any(ch.isdigit() for ch in text):
        return default
    value = _to_decimal(text)
    return default if value is None else int(value)


def extract_bool(raw: Any) -> bool:
    """Interpret indicator fields such as ``Y``, ``1`` or ``true``."""

    return extract_text(raw).strip().lower() in _TRUE_WORDS


def extract_date(raw: Any) -> Optional[date]:
    """Parse ``YYYYMMDD`` or ``YYYY-MM-DD`` text, returning ``None`` when invalid."""

    text = extract_text(raw).strip()
    if not text:
        return None

    match = _COMPACT_DATE.match(text) or _ISO_DATE.match(text)
    if not match:
        return None

    year, month, day = (int(part) for part in match.groups())
    if not 1900 <= year <= 2100:
        return None
    try:
        return date(year, month, day)
    except ValueError:
        return None


def extract_datetime(raw_date: Any, raw_time: Any = None) -> Optional[datetime]:
    """Combine a date with an optional ``HHMMSS`` time of day.

    A missing or unreadable time falls back to midnight; a missing date
    yields ``None``.
    """

    day = extract_date(raw_date)
    if day is None:
        return None

    moment = time()
    match = _COMPACT_TIME.match(extract_text(raw_time).strip())
    if match:
        hours, minutes, seconds = (int(part) for part in match.groups())
        try:
            moment = time(hours, minutes, seconds)
        except ValueError:
            moment = time()
    return datetime.combine(day, moment)


def extract_timestamp(raw: Any) -> Optional[datetime]:
    """Parse an ISO date-time such as ``2025-01-15T10:30:00``."""

    text = extract_text(raw).strip()
    if not text:
        return None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return extract_datetime(text)
    if not 1900 <= parsed.year <= 2100:
        return None
    return parsed


def format_phone(raw: Any) -> str:
    """Format North American numbers as ``(XXX) XXX-XXXX``.

    Anything that is not a ten digit number (after dropping a leading
    country code ``1``) is returned as the original trimmed text.
    """

    phone = extract_text(raw).strip()
    digits = re.sub(r"\D", "", phone)
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    if len(digits) == 10:
        return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
    return phone
