"""Configuration management for the group media scraper."""

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent


def load_config(config_path: Optional[Path] = None) -> dict[str, Any]:
    """Load configuration from config.yaml."""
    config_path = config_path or Path(os.getenv("FB_GROUP_MEDIA_CONFIG", PROJECT_ROOT / "config.yaml"))
    if not config_path.exists():
        return {}
    with open(config_path, "r", encoding="utf-8") as f:
        config_data = yaml.safe_load(f)
    return config_data or {}


class Config:
    """Application configuration."""

    def __init__(self, data: Optional[dict[str, Any]] = None):
        self._config = load_config() if data is None else data

    def _section(self, name: str) -> dict[str, Any]:
        return self._config.get(name) or {}

    # Environment variables
    @property
    def database_path(self) -> Path:
        db_path = os.getenv("DATABASE_PATH", "data/fb_group_media.db")
        return PROJECT_ROOT / db_path

    @property
    def log_level(self) -> str:
        return os.getenv("LOG_LEVEL", self._config.get("log_level", "INFO")).upper()

    # Input
    @property
    def start_urls(self) -> list[str]:
        """Facebook group (or media) URLs to start crawling from."""
        urls = self._config.get("start_urls") or []
        return [u["url"] if isinstance(u, dict) else u for u in urls]

    @property
    def output_max_entries(self) -> Optional[int]:
        """Stop infinite scroll once more than this many links were enqueued."""
        return self._section("output").get("max_entries")

    # Crawler settings
    @property
    def max_concurrency(self) -> int:
        return self._section("crawler").get("max_concurrency", 5)

    @property
    def max_request_retries(self) -> int:
        return self._section("crawler").get("max_request_retries", 5)

    @property
    def request_handler_timeout_secs(self) -> int:
        """Timeout for a single page visit. Albums with many items need hours."""
        return self._section("crawler").get("request_handler_timeout_secs", 60 * 60 * 24)

    @property
    def headless(self) -> bool:
        return self._section("crawler").get("headless", True)

    @property
    def max_idle_scroll_ticks(self) -> int:
        """Scroll ticks without new items before infinite scroll gives up."""
        return self._section("crawler").get("max_idle_scroll_ticks", 3)

    @property
    def session_path(self) -> Path:
        return PROJECT_ROOT / self._section("crawler").get("session_path", "data/session")

    # Privacy
    @property
    def include_personal_data(self) -> bool:
        """If False, personal fields (author names, profile URLs, ...) are redacted."""
        return self._section("privacy").get("include_personal_data", False)

    # Images
    @property
    def fetch_image_metadata(self) -> bool:
        """Whether to download images to fill in size, MIME type and dimensions."""
        return self._section("images").get("fetch_metadata", True)

    # Scheduler
    @property
    def scheduler_interval_minutes(self) -> int:
        return self._section("scheduler").get("interval_minutes", 60)


# Global config instance
config = Config()
