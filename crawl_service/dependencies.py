"""FastAPI dependencies exposing the services created in the app lifespan."""

from __future__ import annotations

from fastapi import Request

from crawl_service.services.browser.manager import BrowserManager
from crawl_service.services.pipeline import CrawlPipeline


def get_pipeline(request: Request) -> CrawlPipeline:
    """Return the process-wide crawl pipeline."""
    return request.app.state.pipeline


def get_browser_manager(request: Request) -> BrowserManager:
    """Return the process-wide browser manager."""
    return request.app.state.browser_manager
