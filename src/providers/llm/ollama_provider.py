"""Ollama LLM provider adapter.

Talks to a local Ollama server through its OpenAI-compatible ``/v1``
endpoint using the ``openai`` SDK, so ingestion can run fully offline.
Ollama honours ``response_format={"type": "json_object"}`` for JSON mode.

Setup: install Ollama, ``ollama pull llama3.1``, and set
OLLAMA_BASE_URL=http://localhost:11434
"""

from __future__ import annotations

# httpx is used only for the reachability check against Ollama's native API.
import httpx
import openai
import structlog

from src.config.settings import Settings
from src.interfaces.llm_provider import ILLMProvider, ModelTier
from src.utils.errors import LLMError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_MODEL = "llama3.1"


class OllamaLLMProvider(ILLMProvider):
    """LLM provider backed by a local Ollama server."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._base_url = settings.ollama_base_url
        # Ollama ignores the key but the SDK requires a non-empty value.
        self._client = openai.AsyncOpenAI(
            base_url=f"{self._base_url.rstrip('/')}/v1",
            api_key="ollama",
        )
        self._models = {
            ModelTier.FAST: settings.llm_fast_model or _DEFAULT_MODEL,
            ModelTier.MID: settings.llm_mid_model or _DEFAULT_MODEL,
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
        """Generate a completion via Ollama's OpenAI-compatible API."""
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
        except openai.APIError as exc:
            raise LLMError(
                message=f"Ollama API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise LLMError(
                message="Ollama returned empty response",
                provider_name=self.get_provider_name(),
            )
        logger.info("ollama_completion", model=model, tier=model_tier.value, json_mode=json_mode)
        return content

    def is_available(self) -> bool:
        """Return ``True`` if the Ollama base URL is configured."""
        return bool(self._base_url)

    async def validate_credentials(self) -> bool:
        """Check the server is up via the native ``/api/tags`` endpoint."""
        if not self.is_available():
            return False
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                response = await client.get(f"{self._base_url.rstrip('/')}/api/tags")
                return response.status_code == 200
        except httpx.HTTPError:
            return False

    def get_provider_name(self) -> str:
        return "ollama"
