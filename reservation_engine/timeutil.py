from __future__ import annotations

from datetime import datetime
import re

DEFAULT_OFFSET = "+09:00"

_QUALIFIED_RE = re.compile(r"(?:[Zz]|[+-]\d{2}:\d{2})$")
_OFFSET_RE = re.compile(r"^[+-](?:[01]\d|2[0-3]):[0-5]\d$")


class InvalidRange(ValueError):
    """Raised when reservation bounds cannot be parsed or do not form a forward range."""


def is_valid_offset(offset: str) -> bool:
    return isinstance(offset, str) and _OFFSET_RE.match(offset) is not None


def normalize_datetime(raw: str | None, default_offset: str = DEFAULT_OFFSET) -> str | None:
    """Return ``raw`` with an explicit UTC marker or offset.

    Strings already ending in ``Z``/``z`` or ``+HH:MM``/``-HH:MM`` are returned
    as-is, so normalizing twice is a no-op. Empty input is passed through.
    The calendar part is not validated here; see :func:`parse_instant`.
    """
    if not raw:
        return raw
    if _QUALIFIED_RE.search(raw):
        return raw
    return raw + default_offset


def parse_instant(raw: str | None, default_offset: str = DEFAULT_OFFSET) -> datetime:
    """Normalize ``raw`` and parse it into a timezone-aware datetime."""
    if raw is not None and not isinstance(raw, str):
        raise InvalidRange(f"datetime value must be a string, got {type(raw).__name__}")
    normalized = normalize_datetime(raw, default_offset)
    if not normalized:
        raise InvalidRange("datetime value is empty")

    text = normalized.strip()
    if text[-1] in "Zz":
        text = text[:-1] + "+00:00"

    try:
        value = datetime.fromisoformat(text)
    except ValueError as error:
        raise InvalidRange(f"Could not parse datetime: {raw!r}") from error

    if value.tzinfo is None:
        raise InvalidRange(f"datetime has no usable offset after normalization: {raw!r}")
    return value
