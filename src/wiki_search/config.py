# -*- coding: utf-8 -*-
"""
Wiki search service configuration using Pydantic BaseSettings.
"""
from pathlib import Path
from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central service configuration loaded from environment variables.
    Values can also come from a .env file in the working directory.
    """

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8002

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # Database (SQLite + FTS5)
    DATABASE_PATH: Path = Path("data/wiki.db")

    # API Documentation (disable in production)
    DOCS_ENABLED: bool = True

    # ==========================================================================
    # Markup normalization
    # ==========================================================================

    # Upper bound on template resolution passes (nested {{...}} depth)
    TEMPLATE_MAX_ITERATIONS: int = Field(default=50, ge=1)

    # ==========================================================================
    # Search
    # ==========================================================================

    SEARCH_DEFAULT_LIMIT: int = Field(default=5, ge=1)
    SEARCH_MAX_LIMIT: int = Field(default=10, ge=1)

    # bm25 column weights: title matches outrank body-only matches
    SEARCH_TITLE_WEIGHT: float = 10.0
    SEARCH_BODY_WEIGHT: float = 1.0

    # FTS5 snippet() accepts at most 64 tokens
    SEARCH_SNIPPET_TOKENS: int = Field(default=50, ge=1, le=64)
    SEARCH_HIGHLIGHT_OPEN: str = "**"
    SEARCH_HIGHLIGHT_CLOSE: str = "**"
    SEARCH_ELLIPSIS: str = "..."
    SEARCH_SCORE_PRECISION: int = Field(default=3, ge=0)

    # All tokens must match (AND). Set to False to rank any-token matches (OR).
    SEARCH_MATCH_ALL: bool = True

    # ==========================================================================
    # Wiki retrieval (MediaWiki api.php)
    # ==========================================================================

    WIKI_API_URL: str = "https://sneaky-sasquatch.fandom.com/api.php"
    WIKI_BASE_URL: str = "https://sneaky-sasquatch.fandom.com/wiki/"
    USER_AGENT: str = "WikiSearchService/1.0 (wiki indexer; Python httpx)"

    # Timeouts (in seconds)
    HTTP_TIMEOUT: float = 30.0

    # Pause between API requests (in milliseconds)
    RATE_LIMIT_MS: int = Field(default=250, ge=0)

    # Pages per database transaction during a scrape
    SCRAPE_BATCH_SIZE: int = Field(default=25, ge=1)

    # Pages whose normalized text is shorter than this are skipped (stubs, redirects)
    MIN_CONTENT_LENGTH: int = Field(default=20, ge=0)

    # Retry
    RETRY_MAX_ATTEMPTS: int = 3
    RETRY_MIN_WAIT: int = 1
    RETRY_MAX_WAIT: int = 10

    # CORS
    CORS_ORIGINS: List[str] = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = False

    # Request tracking
    REQUEST_ID_HEADER: str = "X-Request-ID"

    # Compression
    GZIP_MIN_SIZE: int = 1000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


# Global configuration instance
settings = Settings()
