"""Lenient JSON extraction from Generative Text Service output.

Even in JSON mode, models occasionally wrap their answer in markdown
fences or prefix it with a sentence ("Here is the data: {...}").  Both the
classifier and the normalizer run responses through
:func:`parse_json_object` before touching any field.
"""

from __future__ import annotations

import json
import re
from typing import Any

# Captures the body of a ``` or ```json fenced block.
_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?\s*```", re.DOTALL)


def parse_json_object(response: str) -> dict[str, Any]:
    """Extract a JSON object from an LLM response string.

    Parameters
    ----------
    response:
        Raw completion text.

    Returns
    -------
    dict
        The parsed top-level object.

    Raises
    ------
    ValueError
        If the text is empty, no valid JSON can be extracted, or the
        top-level value is not an object.  (``json.JSONDecodeError`` is a
        ``ValueError`` subclass, so callers catch one type.)
    """
    text = (response or "").strip()
    if not text:
        raise ValueError("LLM response is empty")

    fence_match = _JSON_FENCE_RE.search(text)
    if fence_match:
        text = fence_match.group(1).strip()

    # Preamble before the object: keep the outermost brace pair.
    if not text.startswith("{"):
        brace_start = text.find("{")
        brace_end = text.rfind("}")
        if brace_start != -1 and brace_end > brace_start:
            text = text[brace_start : brace_end + 1]

    parsed = json.loads(text)

    if not isinstance(parsed, dict):
        raise ValueError("LLM response is not a JSON object")

    return parsed
