"""Abstract base class for Generative Text Service providers.

The ingestion pipeline only ever needs one capability from a language
model: turn a (system prompt, user prompt) pair into text, optionally as a
JSON object.  Implementations may wrap Anthropic, OpenAI (or any
OpenAI-compatible gateway) or a local Ollama server.  The adapter pattern
keeps the classifier and normalizer provider-agnostic.
"""

from __future__ import annotations

# ABC = Abstract Base Class: Python's way of defining interfaces.
# A concrete class that forgets an abstractmethod fails at instantiation,
# at startup rather than mid-ingestion.
from abc import ABC, abstractmethod
from enum import Enum


class ModelTier(str, Enum):  # noqa: UP042  (StrEnum requires Python 3.11+)
    """Which model class a call should run on.

    FAST is used for classification (short structured answer), MID for
    normalization (long structured extraction).
    """

    FAST = "fast"
    MID = "mid"


# Concrete implementations: AnthropicLLMProvider, OpenAILLMProvider, OllamaLLMProvider
# Located in: src/providers/llm/
class ILLMProvider(ABC):
    """Contract for the Generative Text Service."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        max_tokens: int = 4000,
        json_mode: bool = False,
        temperature: float = 0.1,
        model_tier: ModelTier = ModelTier.MID,
    ) -> str:
        """Generate a completion from the model.

        Parameters
        ----------
        system_prompt:
            Instruction message that sets the model's role and output schema.
        user_prompt:
            The document text (plus any hint) to operate on.
        max_tokens:
            Upper bound on response length.
        json_mode:
            Request a structured (JSON object) response.  Providers without
            native support fall back to instruction-only enforcement.
        temperature:
            Sampling temperature.
        model_tier:
            Fast or mid-range model; see :class:`ModelTier`.

        Returns
        -------
        str
            The model's text response.  Never empty.

        Raises
        ------
        src.utils.errors.LLMError
            If the API call fails or returns no content.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier such as ``"anthropic"`` or ``"ollama"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured.

        Must not make a network call for inference.
        """

    @abstractmethod
    async def validate_credentials(self) -> bool:
        """Contact the remote service to confirm it accepts our credentials."""
