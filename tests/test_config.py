"""Configuration loading tests."""

from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from crawl_service.core.config import Settings


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


class TestConfigurationDefaults:
    def test_default_port(self) -> None:
        s = Settings(_env_file=None)  # type: ignore[call-arg]
        assert s.port == 3000

    def test_default_browser_limits(self) -> None:
        s = Settings(_env_file=None)  # type: ignore[call-arg]
        assert s.browser_max_age_seconds == 24 * 60 * 60
        assert s.browser_max_requests == 1000

    def test_default_page_settings(self) -> None:
        s = Settings(_env_file=None)  # type: ignore[call-arg]
        assert s.navigation_timeout_seconds == 30.0
        assert s.page_wait_until == "networkidle"
        assert s.conversion_timeout_seconds == 5.0

    def test_default_mode_and_engines(self) -> None:
        s = Settings(_env_file=None)  # type: ignore[call-arg]
        assert s.crawl_mode == "background"
        assert s.get_engine_names() == ["readability"]

    def test_default_launch_args(self) -> None:
        s = Settings(_env_file=None)  # type: ignore[call-arg]
        args = s.get_browser_launch_args()
        assert "--no-sandbox" in args
        assert "--disable-dev-shm-usage" in args

    def test_extensions_off_by_default(self) -> None:
        s = Settings(_env_file=None)  # type: ignore[call-arg]
        assert s.extensions_enabled is False


# ---------------------------------------------------------------------------
# Parsing and validation
# ---------------------------------------------------------------------------


class TestConfigurationParsing:
    def test_engines_from_env(self, monkeypatch) -> None:
        monkeypatch.setenv("EXTRACTION_ENGINES", "Readability, trafilatura")
        s = Settings(_env_file=None)  # type: ignore[call-arg]
        assert s.get_engine_names() == ["readability", "trafilatura"]

    def test_engines_as_json_list(self) -> None:
        s = Settings(
            _env_file=None,  # type: ignore[call-arg]
            extraction_engines='["newspaper", "readability"]',
        )
        assert s.get_engine_names() == ["newspaper", "readability"]

    def test_unknown_engine_rejected(self) -> None:
        with pytest.raises(ValidationError, match="Unknown extraction engine"):
            Settings(_env_file=None, extraction_engines="boilerpipe")  # type: ignore[call-arg]

    def test_empty_engines_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, extraction_engines=" , ")  # type: ignore[call-arg]

    def test_crawl_mode_normalized(self) -> None:
        s = Settings(_env_file=None, crawl_mode=" SYNC ")  # type: ignore[call-arg]
        assert s.crawl_mode == "sync"

    def test_invalid_crawl_mode_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, crawl_mode="eventually")  # type: ignore[call-arg]

    def test_invalid_wait_until_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, page_wait_until="networkidle0")  # type: ignore[call-arg]

    def test_invalid_log_level_falls_back(self) -> None:
        s = Settings(_env_file=None, log_level="chatty")  # type: ignore[call-arg]
        assert s.log_level == "INFO"

    def test_debug_forces_debug_level(self) -> None:
        s = Settings(_env_file=None, debug=True, log_level="WARNING")  # type: ignore[call-arg]
        assert s.get_log_level_int() == logging.DEBUG

    def test_adblock_list_urls(self) -> None:
        s = Settings(
            _env_file=None,  # type: ignore[call-arg]
            adblock_list_urls="https://a.example/list.txt,https://b.example/hosts",
        )
        assert s.get_adblock_list_urls() == [
            "https://a.example/list.txt",
            "https://b.example/hosts",
        ]

    def test_public_config_keys(self) -> None:
        s = Settings(_env_file=None)  # type: ignore[call-arg]
        config = s.public_config()
        assert config["crawlMode"] == "background"
        assert config["extractionEngines"] == ["readability"]
        assert config["pageWaitUntil"] == "networkidle"
