"""Utility modules for Overwatch.

- **confidence** -- Clamp model-reported confidence into [0, 1] and map it
  to a human-readable tier.
- **coercion** -- Coerce-with-flag helpers: closed-vocabulary enums,
  coordinates and dates degrade to documented defaults plus a review flag.
- **errors** -- Exception hierarchy rooted at OverwatchError; each
  ingestion stage raises its own subclass carrying the stage name.
- **llm_json** -- Lenient JSON object extraction from LLM output (fences,
  preamble text).
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
"""

# -- Confidence helpers ------------------------------------------------------
from src.utils.confidence import ConfidenceLevel, clamp_confidence, confidence_to_level

# -- Domain exception hierarchy ----------------------------------------------
from src.utils.errors import (
    ClassificationError,
    ConfigurationError,
    IngestionError,
    LLMError,
    NormalizationError,
    OverwatchError,
    PersistenceError,
)

# -- LLM output parsing -------------------------------------------------------
from src.utils.llm_json import parse_json_object

# -- Structured logging setup -------------------------------------------------
from src.utils.logging import bind_ingest_context, configure_logging, get_logger

__all__ = [
    "ClassificationError",
    "ConfidenceLevel",
    "ConfigurationError",
    "IngestionError",
    "LLMError",
    "NormalizationError",
    "OverwatchError",
    "PersistenceError",
    "bind_ingest_context",
    "clamp_confidence",
    "confidence_to_level",
    "configure_logging",
    "get_logger",
    "parse_json_object",
]
