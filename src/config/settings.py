"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK (Junior Developer Guide) ───────────────────────
#
# pydantic-settings reads each field from, in priority order:
#
#   1. Environment variables  (OPENAI_API_KEY=sk-...)   always wins
#   2. The .env file in the working directory           local development
#   3. The default declared below
#
# Field ``llm_fast_model`` maps to env var ``LLM_FAST_MODEL`` and so on;
# matching is case-insensitive.
#
# Keep secrets in .env (git-ignored).  .env.example lists every variable.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Overwatch ingestion service settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Generative Text Service ===
    # Empty key = provider not configured; selection in main.py falls
    # through Anthropic -> OpenAI -> Ollama.
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible gateway, empty = api.openai.com
    anthropic_api_key: str = ""
    ollama_base_url: str = "http://localhost:11434"

    # Model tiers.  The fast tier classifies, the mid tier extracts.
    # Empty = each provider's own default for that tier.
    llm_fast_model: str = ""
    llm_mid_model: str = ""

    # === Hierarchy store ===
    hierarchy_db_path: str = "data/hierarchy.db"

    # === Ingestion limits ===
    ingest_max_text_chars: int = 100_000
    ingest_batch_limit: int = 20
    ingest_preview_chars: int = 300
    ingest_log_limit: int = 50

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"
    cors_origins: str = "*"  # comma-separated

    def get_available_llm_providers(self) -> list[str]:
        """Return configured provider names in selection order."""
        providers: list[str] = []
        if self.anthropic_api_key:
            providers.append("anthropic")
        if self.openai_api_key:
            providers.append("openai")
        if self.ollama_base_url:
            providers.append("ollama")
        return providers

    def get_cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]
