"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"


class ConfigError(RuntimeError):
    """Raised when an environment value cannot be parsed."""


@dataclass(frozen=True)
class Settings:
    gemini_api_key: str
    gemini_model: str = DEFAULT_MODEL
    batch_size: int = 30
    max_batches: int = 8
    batch_timeout: float = 90.0
    default_radius_km: float = 10.0
    worker_port: int = 9000


def _env_number(name: str, default: str, cast):
    raw = os.getenv(name, default)
    try:
        return cast(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be numeric, got {raw!r}") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    gemini_api_key = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY", "")
    gemini_model = os.getenv("GEMINI_MODEL") or DEFAULT_MODEL
    batch_size = _env_number("SEARCH_BATCH_SIZE", "30", int)
    max_batches = _env_number("SEARCH_MAX_BATCHES", "8", int)
    batch_timeout = _env_number("SEARCH_BATCH_TIMEOUT", "90", float)
    default_radius_km = _env_number("SEARCH_DEFAULT_RADIUS_KM", "10", float)
    worker_port = _env_number("WORKER_PORT", "9000", int)

    if not gemini_api_key:
        logger.warning("GEMINI_API_KEY is not configured; generation requests will fail.")
    if batch_size < 1:
        logger.warning("SEARCH_BATCH_SIZE=%s is not positive; using 1.", batch_size)
        batch_size = 1
    if max_batches < 1:
        logger.warning("SEARCH_MAX_BATCHES=%s is not positive; using 1.", max_batches)
        max_batches = 1

    return Settings(
        gemini_api_key=gemini_api_key,
        gemini_model=gemini_model,
        batch_size=batch_size,
        max_batches=max_batches,
        batch_timeout=batch_timeout,
        default_radius_km=default_radius_km,
        worker_port=worker_port,
    )
