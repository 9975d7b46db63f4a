"""Runtime configuration loaded from environment variables (after load_dotenv)."""

import logging
import os
from dataclasses import dataclass, field
from typing import List

logger = logging.getLogger(__name__)


def _split_csv(value: str) -> List[str]:
    return [v.strip() for v in (value or '').split(',') if v.strip()]


@dataclass
class Config:
    """Configuration class with validation"""
    cryptopanic_auth_token: str
    openai_api_key: str
    openai_model: str = "gpt-4o-mini"

    # Storage
    db_path: str = "cryptowire.db"
    pg_dsn: str = ""

    # Headline feed
    news_currencies: str = "BTC"
    news_kind: str = "news"
    news_limit: int = 10
    ingest_interval_minutes: int = 60

    # Renderer
    render_marker_timeout_ms: int = 5000
    render_navigation_timeout_ms: int = 30000

    # HTTP
    request_timeout: int = 30   # seconds
    port: int = 3001
    cors_origins: List[str] = field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"]
    )

    @classmethod
    def from_env(cls) -> 'Config':
        """Load and validate configuration from environment variables"""
        config = cls(
            cryptopanic_auth_token=os.getenv('CRYPTOPANIC_AUTH_TOKEN', ''),
            openai_api_key=os.getenv('OPENAI_API_KEY', ''),
            openai_model=os.getenv('OPENAI_MODEL', 'gpt-4o-mini'),

            db_path=os.getenv('DB_PATH', 'cryptowire.db'),
            pg_dsn=os.getenv('PG_DSN', ''),

            news_currencies=os.getenv('NEWS_CURRENCIES', 'BTC'),
            news_kind=os.getenv('NEWS_KIND', 'news'),
            news_limit=int(os.getenv('NEWS_LIMIT', '10')),
            ingest_interval_minutes=int(os.getenv('INGEST_INTERVAL_MINUTES', '60')),

            render_marker_timeout_ms=int(os.getenv('RENDER_MARKER_TIMEOUT_MS', '5000')),
            render_navigation_timeout_ms=int(os.getenv('RENDER_NAVIGATION_TIMEOUT_MS', '30000')),

            request_timeout=int(os.getenv('REQUEST_TIMEOUT', '30')),
            port=int(os.getenv('PORT', '3001')),
            cors_origins=_split_csv(os.getenv('CORS_ORIGINS', 'http://localhost:5173,http://localhost:3000')),
        )

        config._validate()
        return config

    def _validate(self):
        """Validate configuration values"""
        errors = []

        if not self.cryptopanic_auth_token:
            errors.append("CRYPTOPANIC_AUTH_TOKEN is required")
        if not self.openai_api_key:
            errors.append("OPENAI_API_KEY is required")

        if not 1 <= self.news_limit <= 50:
            errors.append("NEWS_LIMIT should be between 1 and 50")
        if self.ingest_interval_minutes < 1:
            errors.append("INGEST_INTERVAL_MINUTES should be at least 1")
        if not 5000 <= self.render_marker_timeout_ms <= 10000:
            errors.append("RENDER_MARKER_TIMEOUT_MS should be between 5000 and 10000")
        if self.render_navigation_timeout_ms < 1000:
            errors.append("RENDER_NAVIGATION_TIMEOUT_MS should be at least 1000")
        if self.request_timeout < 5 or self.request_timeout > 300:
            errors.append("REQUEST_TIMEOUT should be between 5 and 300 seconds")

        if errors:
            error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {error}" for error in errors)
            raise ValueError(error_msg)

        logger.info(f"Configuration validated successfully. Storage: {'postgres' if self.pg_dsn else 'sqlite'}")
