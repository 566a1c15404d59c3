"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://rvis.mohw.gov.tw/mgov-rvis/home/map"
DEFAULT_OUTPUT_CSV = "rvis_all_data.csv"


class ConfigError(RuntimeError):
    """Raised when an environment value cannot be used."""


@dataclass(frozen=True)
class Settings:
    base_url: str = DEFAULT_BASE_URL
    output_path: str = DEFAULT_OUTPUT_CSV
    request_timeout: float = 30.0
    page_delay: float = 1.0
    max_pages: int = 0
    log_level: str = "INFO"


def _get_number_env(name: str, default: str, cast):
    raw = os.getenv(name) or default
    try:
        value = cast(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be numeric, got {raw!r}") from exc
    if value < 0:
        raise ConfigError(f"{name} must not be negative, got {raw!r}")
    return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    base_url = (os.getenv("RVIS_BASE_URL") or DEFAULT_BASE_URL).strip()
    output_path = (os.getenv("RVIS_OUTPUT_CSV") or DEFAULT_OUTPUT_CSV).strip()
    request_timeout = _get_number_env("RVIS_REQUEST_TIMEOUT", "30", float)
    page_delay = _get_number_env("RVIS_PAGE_DELAY", "1", float)
    max_pages = _get_number_env("RVIS_MAX_PAGES", "0", int)
    log_level = (os.getenv("LOG_LEVEL") or "INFO").strip().upper()

    if request_timeout == 0:
        logger.warning("RVIS_REQUEST_TIMEOUT is 0; requests will fail immediately.")
    if page_delay == 0:
        logger.warning("RVIS_PAGE_DELAY is 0; pages will be requested back to back.")

    return Settings(
        base_url=base_url,
        output_path=output_path,
        request_timeout=request_timeout,
        page_delay=page_delay,
        max_pages=max_pages,
        log_level=log_level,
    )
