"""OpenAI-compatible LLM provider adapter.

Wraps the ``openai`` async client to implement :class:`ILLMProvider`.
When ``OPENAI_BASE_URL`` is set, the client points at that gateway instead
of api.openai.com, so any OpenAI-compatible service works unchanged.

JSON mode maps to ``response_format={"type": "json_object"}``, the same
structured-output switch the classifier and normalizer rely on.
"""

from __future__ import annotations

# The official OpenAI Python SDK (async client).
import openai
import structlog

from src.config.settings import Settings
from src.interfaces.llm_provider import ILLMProvider, ModelTier
from src.utils.errors import LLMError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_MODELS = {
    ModelTier.FAST: "gpt-4o-mini",
    ModelTier.MID: "gpt-4o",
}


class OpenAILLMProvider(ILLMProvider):
    """LLM provider backed by an OpenAI-compatible chat completions API.

    Adapter pattern: the rest of the app talks to :class:`ILLMProvider`
    and never imports ``openai`` directly.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._api_key = settings.openai_api_key

        # Normalization of a 50-mission order can take a while; the
        # extraction tier gets a generous read timeout.
        client_kwargs: dict = {
            "api_key": self._api_key,
            "timeout": openai.Timeout(120.0, connect=5.0),
        }
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url

        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._models = {
            ModelTier.FAST: settings.llm_fast_model or _DEFAULT_MODELS[ModelTier.FAST],
            ModelTier.MID: settings.llm_mid_model or _DEFAULT_MODELS[ModelTier.MID],
        }
        self._provider_label = (
            "openai-compatible" if settings.openai_base_url else "openai"
        )

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
        """Generate a completion via the chat completions API."""
        model = self._models[model_tier]
        request: dict = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            request["response_format"] = {"type": "json_object"}

        try:
            response = await self._client.chat.completions.create(**request)
        except openai.APITimeoutError as exc:
            raise LLMError(
                message=f"{self._provider_label} request timed out",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIError as exc:
            raise LLMError(
                message=f"{self._provider_label} API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise LLMError(
                message=f"{self._provider_label} returned empty response",
                provider_name=self.get_provider_name(),
            )
        logger.info(
            "openai_completion",
            model=model,
            tier=model_tier.value,
            json_mode=json_mode,
            provider=self._provider_label,
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return content

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured (doesn't verify it works)."""
        return bool(self._api_key)

    async def validate_credentials(self) -> bool:
        """List models: confirms the key without paying for inference."""
        if not self.is_available():
            return False
        try:
            await self._client.models.list()
            return True
        except openai.APIError:
            return False

    def get_provider_name(self) -> str:
        return self._provider_label
