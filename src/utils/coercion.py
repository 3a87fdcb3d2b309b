"""Coerce-with-flag helpers used by the document normalizer.

Extraction output is untrusted: enum values drift outside their closed
vocabularies, coordinates arrive as MGRS strings, dates arrive as DTGs.
The normalizer never fails an order for one bad sub-field.  Instead each
helper here returns a usable value and, when it had to guess, appends a
:class:`~src.models.hierarchy.ReviewFlag` to the caller's flag list.

Flag policy:
    - missing enum value       -> default, no flag
    - present but unknown enum -> default, flagged
    - missing / bad coordinate -> 0.0, flagged
    - bad date                 -> fallback, flagged
    - missing integer          -> default, no flag
    - non-numeric, out of the
      SQLite INTEGER range or
      below the minimum        -> default, flagged
"""

from __future__ import annotations

import contextlib
import re
from datetime import datetime, timezone
from typing import Any, TypeVar

from dateutil import parser as dateutil_parser

from src.models.enums import Vocabulary
from src.models.hierarchy import ReviewFlag

V = TypeVar("V", bound=Vocabulary)

# Confidence attached to flags raised by local coercion (as opposed to the
# flags the extraction model reports about itself).
COERCION_FLAG_CONFIDENCE = 0.3

# Military date-time group, e.g. "251200ZFEB26" or "251200Z FEB 2026".
_DTG_RE = re.compile(
    r"^(?P<day>\d{2})(?P<hour>\d{2})(?P<minute>\d{2})Z\s*"
    r"(?P<month>[A-Z]{3})\s*(?P<year>\d{2}|\d{4})$",
    re.IGNORECASE,
)

# Signed 64-bit bounds; SQLite rejects Python ints outside them.
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

_MONTHS = {
    "JAN": 1, "FEB": 2, "MAR": 3, "APR": 4, "MAY": 5, "JUN": 6,
    "JUL": 7, "AUG": 8, "SEP": 9, "OCT": 10, "NOV": 11, "DEC": 12,
}


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def flag(
    flags: list[ReviewFlag],
    field: str,
    raw_value: Any,
    reason: str,
    confidence: float = COERCION_FLAG_CONFIDENCE,
) -> None:
    """Append one review flag; ``raw_value`` is stringified."""
    flags.append(
        ReviewFlag(
            field=field,
            raw_value="" if raw_value is None else str(raw_value),
            confidence=confidence,
            reason=reason,
        )
    )


def coerce_enum(
    vocabulary: type[V],
    raw: Any,
    field: str,
    flags: list[ReviewFlag],
) -> V:
    """Map *raw* onto *vocabulary*, falling back to ``vocabulary.default()``.

    Matching is case-insensitive and treats spaces and hyphens as
    underscores, so ``"isr space"`` resolves to ``ISR_SPACE``.
    """
    default = vocabulary.default()
    if is_blank(raw):
        return default

    key = re.sub(r"[\s\-]+", "_", str(raw).strip()).upper()
    try:
        return vocabulary(key)
    except ValueError:
        flag(
            flags,
            field,
            raw,
            f"'{raw}' is not a recognized {vocabulary.__name__}; defaulted to {default.value}",
        )
        return default


def coerce_coordinate(
    raw: Any,
    field: str,
    flags: list[ReviewFlag],
    *,
    limit: float,
) -> float:
    """Return a decimal-degree coordinate within ``[-limit, limit]``.

    Anything that is not a number in range is stored as ``0.0`` and flagged.
    """
    if is_blank(raw):
        flag(flags, field, raw, "Coordinate missing; stored as 0.0")
        return 0.0

    value: float | None = None
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        value = float(raw)
    elif isinstance(raw, str):
        with contextlib.suppress(ValueError):
            value = float(raw.strip())

    if value is None or value != value or abs(value) > limit:  # NaN check
        flag(flags, field, raw, "Unparseable or out-of-range coordinate; stored as 0.0")
        return 0.0
    return value


def parse_datetime(raw: Any) -> datetime | None:
    """Parse ISO 8601, DTG or free-form dates into an aware UTC datetime.

    Returns ``None`` when the value cannot be understood.
    """
    if is_blank(raw):
        return None
    if isinstance(raw, datetime):
        parsed = raw
    else:
        text = str(raw).strip()
        parsed = _parse_dtg(text)
        if parsed is None:
            with contextlib.suppress(ValueError, OverflowError):
                parsed = dateutil_parser.isoparse(text)
        if parsed is None:
            with contextlib.suppress(ValueError, OverflowError):
                parsed = dateutil_parser.parse(text)
        if parsed is None:
            return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)  # noqa: UP017
    try:
        return parsed.astimezone(timezone.utc)  # noqa: UP017
    except OverflowError:
        # e.g. 9999-12-31T23:00-05:00 has no UTC representation.
        return None


def coerce_datetime(
    raw: Any,
    field: str,
    flags: list[ReviewFlag],
    fallback: datetime,
    *,
    flag_missing: bool = False,
) -> datetime:
    """Parse *raw*, substituting *fallback* (and flagging) when it fails."""
    if is_blank(raw):
        if flag_missing:
            flag(flags, field, raw, f"Date missing; defaulted to {fallback.isoformat()}")
        return fallback

    parsed = parse_datetime(raw)
    if parsed is None:
        flag(flags, field, raw, f"Unparseable date; defaulted to {fallback.isoformat()}")
        return fallback
    return parsed


def coerce_int(raw: Any) -> int | None:
    """Best-effort integer conversion.

    ``None`` for anything non-numeric or outside the signed 64-bit range.
    """
    if is_blank(raw) or isinstance(raw, bool):
        return None
    value: int | None = None
    if isinstance(raw, int):
        value = raw
    else:
        with contextlib.suppress(TypeError, ValueError, OverflowError):
            value = int(float(raw))
    if value is None or not INT64_MIN <= value <= INT64_MAX:
        return None
    return value


def coerce_bounded_int(
    raw: Any,
    field: str,
    flags: list[ReviewFlag],
    default: int | None,
    *,
    minimum: int | None = 1,
) -> int | None:
    """Integer sub-field with a documented default.

    A missing value silently takes *default*.  A present value that is not
    a storable integer, or is below *minimum*, takes *default* and is
    flagged.
    """
    if is_blank(raw):
        return default
    value = coerce_int(raw)
    if value is None or (minimum is not None and value < minimum):
        flag(flags, field, raw, f"Invalid integer; defaulted to {default}")
        return default
    return value


def coerce_float(raw: Any) -> float | None:
    if is_blank(raw) or isinstance(raw, bool):
        return None
    with contextlib.suppress(TypeError, ValueError):
        return float(raw)
    return None


def coerce_text(raw: Any, default: str = "") -> str:
    if is_blank(raw):
        return default
    return str(raw).strip()


def _parse_dtg(text: str) -> datetime | None:
    match = _DTG_RE.match(text.replace(" ", ""))
    if not match:
        return None
    month = _MONTHS.get(match["month"].upper())
    if month is None:
        return None
    year = int(match["year"])
    if year < 100:
        year += 2000
    try:
        return datetime(
            year,
            month,
            int(match["day"]),
            int(match["hour"]),
            int(match["minute"]),
            tzinfo=timezone.utc,  # noqa: UP017
        )
    except ValueError:
        return None
