"""LiveBadge: Central Configuration via Pydantic Settings."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # ── Database ──
    database_url: str = ""

    # ── Public URLs ──
    public_base_url: str = "http://localhost:8000"

    # ── Remote project probing ──
    probe_timeout_seconds: float = 10.0
    user_page_size: int = 1000
    user_max_pages: int = 50

    # ── Badges ──
    default_badge_color: str = "#4F46E5"
    badge_cache_max_age: int = 60  # seconds

    # ── App ──
    log_level: str = "INFO"
    serverless: bool = False  # read-only filesystem, e.g. Vercel or Lambda

    @property
    def effective_database_url(self) -> str:
        """Return the configured URL if set, otherwise fall back to SQLite."""
        if self.database_url:
            return self.database_url
        # Serverless filesystems are read-only; use /tmp for SQLite
        if self.serverless:
            return "sqlite:////tmp/livebadge.db"
        return "sqlite:///./livebadge.db"

    @property
    def base_url(self) -> str:
        return self.public_base_url.rstrip("/")

    def badge_url(self, badge_id: str) -> str:
        return f"{self.base_url}/badge/{badge_id}"

    def refresh_url(self, badge_id: str) -> str:
        return f"{self.base_url}/badge-refresh/{badge_id}"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


def load_settings() -> Settings:
    """Build settings from the environment; called once per application."""
    return Settings()
