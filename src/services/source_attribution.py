"""Best-effort source attribution for persisted priority entries.

Given a document's raw text and the priorities extracted from it, find the
span of text each priority most likely came from so a reader can see which
characters produced which structured fact.

Matching is a plain exact substring search, tried per priority against
these candidates in order:

    1. the target id (BE number / target reference)
    2. the first 50 characters of the description
    3. the effect phrase

Candidates shorter than 3 characters are ignored.  The first occurrence
that does not overlap an already accepted span wins.  Priorities with no
match are dropped silently; attribution never raises for a miss.

Read-only: nothing here touches the store.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from src.models.records import AttributionSpan
from src.utils.logging import get_logger

logger = get_logger(__name__)

# Display colors, cycled by match order.
PALETTE: tuple[str, ...] = (
    "#60a5fa",
    "#f59e0b",
    "#34d399",
    "#f87171",
    "#a78bfa",
    "#38bdf8",
    "#fbbf24",
    "#818cf8",
    "#fb7185",
    "#2dd4bf",
)

_MIN_CANDIDATE_CHARS = 3
_DESCRIPTION_CHARS = 50


class AttributablePriority(Protocol):
    """Anything shaped like a priority entry (record or normalized item)."""

    rank: int
    effect: str
    description: str
    target_id: str | None


def _candidates(priority: AttributablePriority) -> list[tuple[str, str]]:
    """(kind, text) pairs in preference order."""
    found: list[tuple[str, str]] = []
    if priority.target_id:
        found.append(("target", priority.target_id.strip()))
    if priority.description:
        found.append(("description", priority.description.strip()[:_DESCRIPTION_CHARS]))
    if priority.effect:
        found.append(("effect", priority.effect.strip()))
    return [(kind, text) for kind, text in found if len(text) >= _MIN_CANDIDATE_CHARS]


def _overlaps(start: int, end: int, taken: list[tuple[int, int]]) -> bool:
    return any(start < t_end and t_start < end for t_start, t_end in taken)


def _first_free_occurrence(
    raw_text: str, needle: str, taken: list[tuple[int, int]]
) -> int | None:
    start = raw_text.find(needle)
    while start != -1:
        if not _overlaps(start, start + len(needle), taken):
            return start
        start = raw_text.find(needle, start + 1)
    return None


def find_entity_matches(
    raw_text: str,
    priorities: Sequence[AttributablePriority],
) -> list[AttributionSpan]:
    """Locate each priority's source span in *raw_text*.

    Args:
        raw_text: The document text exactly as ingested.
        priorities: Priority entries in the order they should claim spans.

    Returns:
        Non-overlapping spans sorted by ``char_start``.  The color of each
        span follows the order in which it was matched.
    """
    spans: list[AttributionSpan] = []
    taken: list[tuple[int, int]] = []

    for index, priority in enumerate(priorities):
        for kind, needle in _candidates(priority):
            start = _first_free_occurrence(raw_text, needle, taken)
            if start is None:
                continue
            end = start + len(needle)
            taken.append((start, end))
            spans.append(
                AttributionSpan(
                    id=f"priority-{priority.rank}-{index}",
                    label=f"Priority {priority.rank}",
                    kind=kind,
                    value=needle,
                    char_start=start,
                    char_end=end,
                    color=PALETTE[len(spans) % len(PALETTE)],
                    rank=priority.rank,
                    effect=priority.effect,
                )
            )
            break

    logger.debug(
        "source_attribution_complete",
        priorities=len(priorities),
        matched=len(spans),
    )
    return sorted(spans, key=lambda span: span.char_start)
