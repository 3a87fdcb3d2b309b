"""Custom exception hierarchy for the Overwatch ingestion service.

All application exceptions inherit from :class:`OverwatchError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "anthropic", "sqlite") caused the failure.

The hierarchy is organized by pipeline stage:

    OverwatchError  (base -- catch-all for any Overwatch error)
    +-- IngestionError           (terminal failure of one ingestion attempt)
    |   +-- ClassificationError  (stage 1: hierarchy/type/format detection)
    |   +-- NormalizationError   (stage 2: structured payload extraction)
    |   +-- PersistenceError     (stage 3: linking + transactional write)
    +-- LLMError                 (any Generative Text Service call failure)
    +-- ConfigurationError       (startup / missing config)

Every :class:`IngestionError` knows the stage it was raised from, so the
API layer can tell the caller *where* the pipeline stopped without
parsing error strings.  None of them are retried inside the pipeline --
retry is the caller's decision.
"""

from __future__ import annotations

from src.models.pipeline import IngestStage


class OverwatchError(Exception):
    """Base exception for all Overwatch errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[openai] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Ingestion stage errors
# ---------------------------------------------------------------------------

class IngestionError(OverwatchError):
    """Terminal failure of a single ingestion attempt.

    Subclasses pin ``stage`` to the pipeline stage that failed.  Nothing
    from the failed document is ever visible in the store afterwards.
    """

    stage: IngestStage | None = None

    def __init__(
        self,
        message: str = "Document ingestion failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ClassificationError(IngestionError):
    """Raised when the classifier gets no content or an invalid hierarchy level."""

    stage = IngestStage.CLASSIFY

    def __init__(
        self,
        message: str = "Document classification failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class NormalizationError(IngestionError):
    """Raised when the extraction call returns nothing or unparseable output."""

    stage = IngestStage.NORMALIZE

    def __init__(
        self,
        message: str = "Document normalization failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class PersistenceError(IngestionError):
    """Raised when the transactional write of a document tree fails.

    The whole tree is rolled back before this is raised.
    """

    stage = IngestStage.PERSIST

    def __init__(
        self,
        message: str = "Document persistence failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# External service / configuration errors
# ---------------------------------------------------------------------------

class LLMError(OverwatchError):
    """Raised when a Generative Text Service call fails or returns nothing."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(OverwatchError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
