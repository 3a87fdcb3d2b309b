"""Public interface definitions for external collaborators.

The ingestion pipeline touches the outside world in exactly two places,
and each is reached only through an abstract base class defined here:

    Interface          →  Concrete implementations (in src/providers/)
    ─────────────────────────────────────────────────────────────────
    ILLMProvider       →  AnthropicLLMProvider, OpenAILLMProvider,
                          OllamaLLMProvider
    IHierarchyStore    →  SQLiteHierarchyStore

Services depend on these ABCs, main.py picks the concrete adapters, and
tests inject mocks built with ``MagicMock(spec=ILLMProvider)``.
"""

from src.interfaces.hierarchy_store import IHierarchyStore
from src.interfaces.llm_provider import ILLMProvider, ModelTier

__all__ = ["IHierarchyStore", "ILLMProvider", "ModelTier"]
