"""
Shared configuration management for the Unified AI Proxy.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.logging import get_logger


@dataclass(frozen=True)
class FeedSource:
    """A configured RSS/Atom feed."""

    url: str
    name: Optional[str] = None

    @property
    def label(self) -> str:
        """Name shown to clients, falling back to the URL."""
        return self.name or self.url


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="PROXY_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Upstreams
    wikipedia_api_url: str = Field(default="https://en.wikipedia.org/w/api.php")
    wikipedia_user_agent: str = Field(default="FanBoxAppProxy/1.0")
    search_api_url: str = Field(default="https://ddg-api.herokuapp.com/search")
    generative_api_url: str = Field(default="https://generativelanguage.googleapis.com/v1beta")
    upstream_timeout_seconds: float = Field(default=15.0)

    # Generative fallback chain (comma separated, order is significant)
    generative_api_keys: str = Field(default="")
    generative_models: str = Field(default="gemini-1.5-flash,gemini-1.5-pro")
    generative_temperature: float = Field(default=0.7)
    generative_max_output_tokens: int = Field(default=1024)

    # Feeds
    feeds_file: str = Field(default="feeds.json")
    feed_preload_enabled: bool = Field(default=True)
    feed_preload_interval_seconds: float = Field(default=600.0)

    # Cache TTLs
    summary_ttl_seconds: float = Field(default=3600.0)
    feed_ttl_seconds: float = Field(default=600.0)
    search_ttl_seconds: float = Field(default=900.0)
    passthrough_ttl_seconds: float = Field(default=3600.0)
    default_ttl_seconds: float = Field(default=300.0)

    @property
    def api_keys(self) -> List[str]:
        return _split_csv(self.generative_api_keys)

    @property
    def models(self) -> List[str]:
        return _split_csv(self.generative_models)

    def cache_ttls(self) -> Dict[str, float]:
        """TTL per cache category, in seconds."""
        return {
            "summary": self.summary_ttl_seconds,
            "feed": self.feed_ttl_seconds,
            "search": self.search_ttl_seconds,
            "passthrough": self.passthrough_ttl_seconds,
        }


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str = "proxy"
    port: int = 3000
    host: str = "0.0.0.0"


def get_config(service_name: str, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, **overrides)


def load_feed_sources(path: str) -> List[FeedSource]:
    """
    Load the static feed list from a JSON file.

    The file holds ``{"rssFeeds": [{"name": ..., "url": ...}, ...]}``. A
    missing or malformed file yields an empty list so the proxy still starts.
    """
    logger = get_logger("proxy.config")
    feeds_path = Path(path)
    if not feeds_path.exists():
        logger.warning("Feeds file not found, starting without feeds", path=str(feeds_path))
        return []

    try:
        with feeds_path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except (ValueError, OSError) as exc:
        logger.error("Failed to read feeds file", path=str(feeds_path), error=str(exc))
        return []

    sources: List[FeedSource] = []
    for entry in payload.get("rssFeeds", []) if isinstance(payload, dict) else []:
        if isinstance(entry, str):
            sources.append(FeedSource(url=entry))
        elif isinstance(entry, dict) and entry.get("url"):
            sources.append(FeedSource(url=entry["url"], name=entry.get("name") or None))
        else:
            logger.warning("Skipping invalid feed entry", entry=entry)

    logger.info("Loaded feed sources", count=len(sources), path=str(feeds_path))
    return sources


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]
