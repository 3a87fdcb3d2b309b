"""Generative Text Service adapters.

Three concrete implementations of ILLMProvider (src/interfaces/llm_provider.py):
    - AnthropicLLMProvider: Claude (fast tier: Haiku, mid tier: Sonnet)
    - OpenAILLMProvider:    gpt-4o-mini / gpt-4o, or any OpenAI-compatible gateway
    - OllamaLLMProvider:    local models via an Ollama server

At startup, main.py picks the first configured one in that order and
injects it into the classifier and normalizer.
"""

from src.providers.llm.anthropic_provider import AnthropicLLMProvider
from src.providers.llm.ollama_provider import OllamaLLMProvider
from src.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["AnthropicLLMProvider", "OpenAILLMProvider", "OllamaLLMProvider"]
