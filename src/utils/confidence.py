"""Confidence score helpers.

Classification confidence comes back from the Generative Text Service as
whatever the model felt like emitting: ``0.92``, ``"0.9"``, ``92`` or
nothing at all.  :func:`clamp_confidence` turns that into a float in
[0.0, 1.0]; :func:`confidence_to_level` maps it to a tier for log lines
and CLI output.
"""

from enum import Enum
from typing import Any


class ConfidenceLevel(Enum):
    """Human-readable confidence tiers."""

    VERY_LOW = "very_low"    # < 0.2
    LOW = "low"              # 0.2 - 0.4
    MEDIUM = "medium"        # 0.4 - 0.6
    HIGH = "high"            # 0.6 - 0.8
    VERY_HIGH = "very_high"  # >= 0.8


def clamp_confidence(raw: Any, default: float = 0.0) -> float:
    """Normalize a model-reported confidence into [0.0, 1.0].

    Values above 1 but at most 100 are read as percentages.  Non-numeric
    input returns *default*.

    Args:
        raw: The value as reported.
        default: Returned when *raw* is missing or not a number.

    Returns:
        A float in [0.0, 1.0].
    """
    if raw is None or isinstance(raw, bool):
        return default
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return default
    if value != value:  # NaN
        return default
    if 1.0 < value <= 100.0:
        value /= 100.0
    return max(0.0, min(1.0, value))


def confidence_to_level(score: float) -> ConfidenceLevel:
    """Map a numeric confidence score to a :class:`ConfidenceLevel`."""
    if score < 0.2:
        return ConfidenceLevel.VERY_LOW
    if score < 0.4:
        return ConfidenceLevel.LOW
    if score < 0.6:
        return ConfidenceLevel.MEDIUM
    if score < 0.8:
        return ConfidenceLevel.HIGH
    return ConfidenceLevel.VERY_HIGH
