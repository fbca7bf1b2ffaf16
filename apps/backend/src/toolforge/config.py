from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Direct Anthropic API (only used by the optional metadata enhancer)
    anthropic_api_key: Optional[str] = None

    # Agent config
    default_model: str = "haiku"

    # ------------------------------------------------------------------
    # Metadata enhancer
    # ------------------------------------------------------------------
    # Off by default: compilation must be correct without it.
    enhancer_enabled: bool = False
    enhancer_max_turns: int = 1

    # ------------------------------------------------------------------
    # API catalog
    # ------------------------------------------------------------------
    catalog_base_url: Optional[str] = None    # https://catalog.internal
    catalog_timeout_seconds: float = 10.0
    catalog_lookup_workers: int = 8

    # ------------------------------------------------------------------
    # Sandboxed verification
    # ------------------------------------------------------------------
    verify_timeout_seconds: float = 10.0
    verify_concurrency: int = 4
    sandbox_python: Optional[str] = None          # defaults to sys.executable
    sandbox_workspace_root: Optional[str] = None  # defaults to the system temp dir

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
