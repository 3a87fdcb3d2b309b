"""Anthropic LLM provider adapter.

Wraps the ``anthropic`` async client to implement :class:`ILLMProvider`.

Differences from the OpenAI adapter:
    - The system prompt is a top-level ``system`` argument, not a message.
    - Responses are a list of content blocks; text blocks are joined.
    - There is no ``response_format`` switch, so JSON mode is enforced by
      an extra system instruction.  Callers still run the output through
      :func:`src.utils.llm_json.parse_json_object`, which tolerates fences.
"""

from __future__ import annotations

# The official Anthropic Python SDK (async client).
import anthropic
import structlog

from src.config.settings import Settings
from src.interfaces.llm_provider import ILLMProvider, ModelTier
from src.utils.errors import LLMError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_MODELS = {
    ModelTier.FAST: "claude-3-5-haiku-latest",
    ModelTier.MID: "claude-sonnet-4-20250514",
}

_JSON_INSTRUCTION = (
    "\n\nRespond with a single JSON object only. "
    "Do not wrap it in markdown and do not add commentary."
)


class AnthropicLLMProvider(ILLMProvider):
    """LLM provider backed by the Anthropic Messages API."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._api_key = settings.anthropic_api_key
        self._client = anthropic.AsyncAnthropic(api_key=self._api_key)
        self._models = {
            ModelTier.FAST: settings.llm_fast_model or _DEFAULT_MODELS[ModelTier.FAST],
            ModelTier.MID: settings.llm_mid_model or _DEFAULT_MODELS[ModelTier.MID],
        }

    # ------------------------------------------------------------------
    # ILLMProvider implementation
    # ------------------------------------------------------------------

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
        """Generate a completion via the Messages API."""
        model = self._models[model_tier]
        system = system_prompt + _JSON_INSTRUCTION if json_mode else system_prompt
        try:
            response = await self._client.messages.create(
                model=model,
                max_tokens=max_tokens,
                system=system,
                messages=[{"role": "user", "content": user_prompt}],
                temperature=temperature,
            )
        except anthropic.APIError as exc:
            raise LLMError(
                message=f"Anthropic API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        text_blocks = [block.text for block in response.content if block.type == "text"]
        result = "\n".join(text_blocks).strip()
        if not result:
            raise LLMError(
                message="Anthropic returned no text content",
                provider_name=self.get_provider_name(),
            )
        logger.info(
            "anthropic_completion",
            model=model,
            tier=model_tier.value,
            json_mode=json_mode,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
        return result

    def is_available(self) -> bool:
        """Return ``True`` if an Anthropic API key is configured."""
        return bool(self._api_key)

    async def validate_credentials(self) -> bool:
        """Send a minimal completion on the fast tier to verify the key."""
        if not self.is_available():
            return False
        try:
            await self._client.messages.create(
                model=self._models[ModelTier.FAST],
                max_tokens=10,
                messages=[{"role": "user", "content": "hi"}],
            )
            return True
        except anthropic.APIError:
            return False

    def get_provider_name(self) -> str:
        return "anthropic"
