"""Shared pytest fixtures.

Playwright objects are replaced by mocks so no test needs browser binaries,
and the HTTP tests override the app's dependencies so no real pipeline runs.

Usage in new test files:
    def test_something(shared_client, fake_pipeline):
        resp = shared_client.post("/crawl", json={...})
        ...
"""

from __future__ import annotations

from typing import Callable
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from crawl_service.dependencies import get_browser_manager, get_pipeline
from crawl_service.main import app
from crawl_service.services.browser.manager import BrowserManager


ARTICLE_HTML = """
<!DOCTYPE html>
<html lang="en">
<head>
<title>Test Article</title>
<meta name="author" content="Jane Writer">
</head>
<body>
<nav><a href="/home">Home</a> <a href="/about">About</a></nav>
<article>
<h1>Main Heading</h1>
<p>This is a substantial article with enough content to pass the minimum length requirement.
It contains multiple sentences and paragraphs to ensure proper extraction testing.</p>
<p>Second paragraph with more content for thorough testing of the extraction pipeline.
We need to make sure this has plenty of text to exceed the minimum threshold.</p>
<p>Third paragraph adds even more substantial content to guarantee we pass any
reasonable minimum content length requirements that might be configured.</p>
<p>Read the <a href="/docs/guide">guide</a> for more details.</p>
</article>
<footer>Footer content that should also be ignored</footer>
</body>
</html>
"""


# ------------------------------------------------------------------
# Playwright fakes
# ------------------------------------------------------------------


def make_page(html: str = ARTICLE_HTML, status: int = 200) -> MagicMock:
    """A Playwright Page mock whose async methods are AsyncMocks."""
    page = MagicMock()
    response = MagicMock()
    response.status = status
    page.goto = AsyncMock(return_value=response)
    page.content = AsyncMock(return_value=html)
    page.route = AsyncMock()
    page.add_init_script = AsyncMock()
    page.evaluate = AsyncMock(return_value=None)
    page.close = AsyncMock()
    return page


def make_browser(page: MagicMock | None = None) -> MagicMock:
    """A Playwright Browser mock handing out one context holding ``page``."""
    page = page or make_page()
    context = MagicMock()
    context.new_page = AsyncMock(return_value=page)
    context.close = AsyncMock()

    browser = MagicMock()
    browser.new_context = AsyncMock(return_value=context)
    browser.close = AsyncMock()
    return browser


@pytest.fixture()
def browser_factory() -> Callable[..., MagicMock]:
    return make_browser


@pytest.fixture()
def page_factory() -> Callable[..., MagicMock]:
    return make_page


@pytest.fixture()
def launched_manager() -> Callable[..., BrowserManager]:
    """Return a helper building a BrowserManager whose launch yields ``browser``."""

    def _build(browser: MagicMock | None = None, **kwargs) -> BrowserManager:
        manager = BrowserManager(**kwargs)
        manager._launch = AsyncMock(return_value=browser or make_browser())
        return manager

    return _build


# ------------------------------------------------------------------
# HTTP fixtures (shared_ prefix to avoid collisions)
# ------------------------------------------------------------------


@pytest.fixture()
def fake_pipeline() -> MagicMock:
    pipeline = MagicMock()
    pipeline.submit = MagicMock()
    pipeline.run = AsyncMock()
    return pipeline


@pytest.fixture()
def shared_client(fake_pipeline, monkeypatch):
    """TestClient with the pipeline replaced and no browser prelaunch."""
    from crawl_service.core.config import settings

    monkeypatch.setattr(settings, "browser_prelaunch", False)
    monkeypatch.setattr(settings, "adblock_list_urls", "")

    manager = BrowserManager(max_age_seconds=3600, max_requests=50)
    app.dependency_overrides[get_pipeline] = lambda: fake_pipeline
    app.dependency_overrides[get_browser_manager] = lambda: manager
    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc
    app.dependency_overrides.clear()
