"""Shared browser lifecycle: one Chromium process, one isolated tab per request."""

from crawl_service.services.browser.manager import (
    BrowserManager,
    BrowserStats,
    TabHandle,
)

__all__ = [
    "BrowserManager",
    "BrowserStats",
    "TabHandle",
]
