"""
MoodLens Configuration
======================
All environment variables in one place. Pydantic Settings validates
types at startup so a missing or malformed value fails on boot rather
than on the first journal entry.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Loaded from environment variables or a .env file."""

    # --- Supabase ---
    supabase_url: str = "http://localhost:54321"
    supabase_service_key: str = ""  # service_role key for backend operations

    # --- OpenAI ---
    openai_api_key: str = ""
    openai_model: str = "gpt-3.5-turbo"

    # --- Database webhook ---
    # Shared secret sent by the Supabase webhook in X-Webhook-Secret.
    # Left empty, the webhook endpoint accepts unsigned calls (local dev).
    webhook_secret: str = ""

    # --- App settings ---
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:8081", "http://localhost:19006"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
