"""Overwatch ingestion FastAPI application entry point.

Wires together the Generative Text Service adapter, the hierarchy store,
the three stage services and the progress tracker via dependency
injection.  Loads configuration from ``.env`` and ``config/config.yaml``
and configures structured logging before anything else is built.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI, WebSocket

from src.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from src.api.routes import APP_VERSION
from src.api.routes import router as api_router
from src.api.websocket import websocket_ingest_progress
from src.config.loader import load_config
from src.config.settings import Settings
from src.interfaces.llm_provider import ILLMProvider
from src.pipeline.orchestrator import DocumentIngestionPipeline
from src.pipeline.progress_tracker import ProgressTracker
from src.providers.hierarchy.sqlite_hierarchy_store import SQLiteHierarchyStore
from src.providers.llm.anthropic_provider import AnthropicLLMProvider
from src.providers.llm.ollama_provider import OllamaLLMProvider
from src.providers.llm.openai_provider import OpenAILLMProvider
from src.services.document_classifier import DocumentClassifier
from src.services.document_normalizer import DocumentNormalizer
from src.services.hierarchy_persister import HierarchyPersister
from src.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings=settings)

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


def _build_llm_provider(app_settings: Settings) -> ILLMProvider:
    """Select the first configured Generative Text Service adapter.

    Priority order: Anthropic -> OpenAI -> Ollama (always constructed).
    """
    if app_settings.anthropic_api_key:
        return AnthropicLLMProvider(settings=app_settings)
    if app_settings.openai_api_key:
        return OpenAILLMProvider(settings=app_settings)
    return OllamaLLMProvider(settings=app_settings)


def build_components(
    app_settings: Settings,
    app_config: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``
    (or used directly by scripts).  The hierarchy store still needs
    ``await store.initialize()`` before first use.
    """
    ingest_cfg: dict[str, Any] = (app_config or {}).get("ingest", {})
    temperature = float(ingest_cfg.get("temperature", 0.1))

    llm = _build_llm_provider(app_settings)
    store = SQLiteHierarchyStore(db_path=app_settings.hierarchy_db_path)
    progress_tracker = ProgressTracker()

    pipeline = DocumentIngestionPipeline(
        classifier=DocumentClassifier(
            llm,
            max_tokens=int(ingest_cfg.get("classify_max_tokens", 500)),
            temperature=temperature,
        ),
        normalizer=DocumentNormalizer(
            llm,
            max_tokens=int(ingest_cfg.get("normalize_max_tokens", 8000)),
            temperature=temperature,
        ),
        persister=HierarchyPersister(store),
        progress_tracker=progress_tracker,
        preview_chars=app_settings.ingest_preview_chars,
    )

    return {
        "settings": app_settings,
        "llm_provider": llm,
        "hierarchy_store": store,
        "progress_tracker": progress_tracker,
        "pipeline": pipeline,
        "provider_registry": {
            "llm": llm.is_available(),
            "llm_provider": llm.get_provider_name(),
            "hierarchy_store": False,
        },
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Build components and initialise the store on startup."""
    components = build_components(settings, config)

    store: SQLiteHierarchyStore = components["hierarchy_store"]
    await store.initialize()
    components["provider_registry"]["hierarchy_store"] = True

    for key, value in components.items():
        setattr(application.state, key, value)

    _logger.info(
        "app_startup",
        version=APP_VERSION,
        environment=settings.app_env,
        llm_provider=components["provider_registry"]["llm_provider"],
        hierarchy_db=settings.hierarchy_db_path,
    )

    yield

    _logger.info("app_shutdown")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="Overwatch Ingest API",
        version=APP_VERSION,
        description=(
            "Ingest free-form military planning documents, classify them into "
            "the strategy / planning / order hierarchy, extract structured "
            "priorities and tasking-order trees, and link them to their parent "
            "documents with a full audit trail."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application, allowed_origins=settings.get_cors_origins())

    # -- API routes --
    application.include_router(api_router)

    # -- WebSocket --
    @application.websocket("/ws/ingest/{scenario_id}")
    async def ws_ingest(websocket: WebSocket, scenario_id: str) -> None:
        await websocket_ingest_progress(websocket, scenario_id)

    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "src.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
