"""Application configuration using Pydantic Settings.

Loads settings from environment variables and .env file.
All settings have sensible defaults for local development.
"""

from __future__ import annotations

import json
import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Valid Python logging levels
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

# Page-settle conditions understood by Playwright's page.goto()
VALID_WAIT_UNTIL = {"load", "domcontentloaded", "networkidle", "commit"}

VALID_CRAWL_MODES = {"background", "sync"}

# Kept in sync with services.extractors.engines.ENGINE_REGISTRY
KNOWN_ENGINES = {"readability", "trafilatura", "newspaper"}


def _split_csv(raw: str) -> list[str]:
    raw = raw.strip()
    if raw.startswith("["):
        return [str(item).strip() for item in json.loads(raw) if str(item).strip()]
    return [item.strip() for item in raw.split(",") if item.strip()]


class Settings(BaseSettings):
    """Service-wide configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Server ---
    service_env: str = "development"
    host: str = "0.0.0.0"
    port: int = 3000
    debug: bool = False

    # --- Logging ---
    log_level: str = "INFO"
    log_requests: bool = True

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level to uppercase.

        Falls back to INFO if an invalid level is provided.
        """
        normalized = v.upper().strip()
        if normalized not in VALID_LOG_LEVELS:
            # Log a warning (to stderr since logging may not be configured yet)
            import sys

            print(
                f"WARNING: Invalid LOG_LEVEL '{v}'. "
                f"Valid levels are: {', '.join(sorted(VALID_LOG_LEVELS))}. "
                "Falling back to INFO.",
                file=sys.stderr,
            )
            return "INFO"
        return normalized

    def get_log_level_int(self) -> int:
        """Return the integer value of the configured log level.

        The ``debug`` toggle forces DEBUG regardless of ``log_level``.
        """
        if self.debug:
            return logging.DEBUG
        return getattr(logging, self.log_level, logging.INFO)

    # --- Request handling ---
    # "background" answers 202 right after validation and runs the crawl
    # detached; "sync" holds the request open until delivery.
    crawl_mode: str = "background"

    @field_validator("crawl_mode")
    @classmethod
    def validate_crawl_mode(cls, v: str) -> str:
        normalized = v.lower().strip()
        if normalized not in VALID_CRAWL_MODES:
            raise ValueError(
                f"crawl_mode must be one of {sorted(VALID_CRAWL_MODES)}, got '{v}'"
            )
        return normalized

    # --- Browser lifecycle ---
    browser_max_age_seconds: int = 24 * 60 * 60  # 24 hours
    browser_max_requests: int = 1000
    browser_headless: bool = True
    browser_launch_args: str = (
        "--no-sandbox,--disable-setuid-sandbox,--disable-dev-shm-usage,"
        "--disable-accelerated-2d-canvas,--disable-gpu"
    )
    browser_prelaunch: bool = True
    shutdown_grace_seconds: float = 1.0

    def get_browser_launch_args(self) -> list[str]:
        """Parse browser_launch_args as JSON list or comma-separated string."""
        return _split_csv(self.browser_launch_args)

    # --- Page ---
    navigation_timeout_seconds: float = 30.0
    page_wait_until: str = "networkidle"
    user_agent: str | None = None

    @field_validator("page_wait_until")
    @classmethod
    def validate_wait_until(cls, v: str) -> str:
        normalized = v.lower().strip()
        if normalized not in VALID_WAIT_UNTIL:
            raise ValueError(
                f"page_wait_until must be one of {sorted(VALID_WAIT_UNTIL)}, got '{v}'"
            )
        return normalized

    # --- Extraction ---
    extraction_engines: str = "readability"
    header_splice_enabled: bool = True
    conversion_timeout_seconds: float = 5.0

    @field_validator("extraction_engines")
    @classmethod
    def validate_extraction_engines(cls, v: str) -> str:
        names = _split_csv(v)
        if not names:
            raise ValueError("extraction_engines must name at least one engine")
        unknown = [name for name in names if name.lower() not in KNOWN_ENGINES]
        if unknown:
            raise ValueError(
                f"Unknown extraction engine(s): {', '.join(unknown)}. "
                f"Available: {', '.join(sorted(KNOWN_ENGINES))}"
            )
        return v

    def get_engine_names(self) -> list[str]:
        """Return the configured engine names in declaration order."""
        return [name.lower() for name in _split_csv(self.extraction_engines)]

    # --- Page sanitizer ---
    adblock_enabled: bool = True
    # Optional EasyList / hosts-format lists merged into the built-in list
    adblock_list_urls: str = ""
    consent_enabled: bool = True
    # Optional pre-bundled consent script (e.g. an autoconsent build)
    consent_script_path: str | None = None

    def get_adblock_list_urls(self) -> list[str]:
        return _split_csv(self.adblock_list_urls)

    # --- Chrome extensions ---
    # Headless Chromium does not load extensions; requires browser_headless=false
    extensions_enabled: bool = False
    extensions_dir: str = "./extensions"

    # --- Delivery ---
    callback_timeout_seconds: float = 30.0

    # --- CORS ---
    cors_origins: str = "*"

    def get_cors_origins(self) -> list[str]:
        """Parse cors_origins as JSON list or comma-separated string."""
        return _split_csv(self.cors_origins)

    def public_config(self) -> dict:
        """Return the non-sensitive settings reported by the health endpoint."""
        return {
            "environment": self.service_env,
            "crawlMode": self.crawl_mode,
            "navigationTimeoutSeconds": self.navigation_timeout_seconds,
            "pageWaitUntil": self.page_wait_until,
            "conversionTimeoutSeconds": self.conversion_timeout_seconds,
            "extractionEngines": self.get_engine_names(),
            "headerSplice": self.header_splice_enabled,
            "adblock": self.adblock_enabled,
            "consent": self.consent_enabled,
            "extensions": self.extensions_enabled,
            "headless": self.browser_headless,
            "debug": self.debug,
        }


settings = Settings()
