"""FastAPI application entry point for crawl-service.

Configures logging, middleware, the exception handler, the browser
lifecycle and routes.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from crawl_service.core.config import Settings, settings
from crawl_service.routes import crawl, health
from crawl_service.services.browser.extensions import extension_args_provider
from crawl_service.services.browser.manager import BrowserManager
from crawl_service.services.delivery import CallbackDelivery
from crawl_service.services.extractors import (
    ContentExtractor,
    MarkdownConverter,
    build_engines,
)
from crawl_service.services.pipeline import CrawlPipeline
from crawl_service.services.sanitizer import (
    ConsentHandler,
    PageSanitizer,
    load_network_filter,
)

# ---------------------------------------------------------------------------
# Logging Configuration
# ---------------------------------------------------------------------------

# Configure root logger with level from settings
logging.basicConfig(
    level=settings.get_log_level_int(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------


def build_browser_manager(config: Settings) -> BrowserManager:
    if config.extensions_enabled and config.browser_headless:
        logger.warning(
            "Chrome extensions are enabled but the browser is headless; "
            "headless Chromium does not load extensions"
        )
    return BrowserManager(
        max_age_seconds=config.browser_max_age_seconds,
        max_requests=config.browser_max_requests,
        headless=config.browser_headless,
        launch_args=config.get_browser_launch_args(),
        navigation_timeout_seconds=config.navigation_timeout_seconds,
        user_agent=config.user_agent,
        extra_args_provider=(
            extension_args_provider(config.extensions_dir)
            if config.extensions_enabled
            else None
        ),
    )


async def build_sanitizer(config: Settings) -> PageSanitizer:
    network_filter = None
    if config.adblock_enabled:
        network_filter = await load_network_filter(config.get_adblock_list_urls())
        logger.info("Ad/tracker filter ready (%d hosts)", network_filter.rule_count)
    consent = ConsentHandler(config.consent_script_path) if config.consent_enabled else None
    return PageSanitizer(network_filter=network_filter, consent=consent)


def build_pipeline(
    config: Settings, browser_manager: BrowserManager, sanitizer: PageSanitizer
) -> CrawlPipeline:
    extractor = ContentExtractor(
        engines=build_engines(config.get_engine_names()),
        converter=MarkdownConverter(timeout_seconds=config.conversion_timeout_seconds),
        splice_header=config.header_splice_enabled,
    )
    return CrawlPipeline(
        browser_manager=browser_manager,
        extractor=extractor,
        delivery=CallbackDelivery(timeout_seconds=config.callback_timeout_seconds),
        sanitizer=sanitizer,
        navigation_timeout_seconds=config.navigation_timeout_seconds,
        wait_until=config.page_wait_until,
    )


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application startup / shutdown lifecycle."""
    # --- Startup ---
    logger.info(
        "Starting crawl-service (env=%s, port=%d, mode=%s, engines=%s)",
        settings.service_env,
        settings.port,
        settings.crawl_mode,
        ",".join(settings.get_engine_names()),
    )

    browser_manager = build_browser_manager(settings)
    sanitizer = await build_sanitizer(settings)
    app.state.browser_manager = browser_manager
    app.state.pipeline = build_pipeline(settings, browser_manager, sanitizer)

    if settings.browser_prelaunch:
        await browser_manager.prelaunch()

    yield

    # --- Shutdown ---
    logger.info("Shutting down crawl-service")
    await browser_manager.shutdown(timeout=settings.shutdown_grace_seconds)


# ---------------------------------------------------------------------------
# App instance
# ---------------------------------------------------------------------------

app = FastAPI(
    title="crawl-service API",
    version="0.1.0",
    docs_url="/docs",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    """Log every request with method, path, status, and duration."""
    start = time.monotonic()
    response = await call_next(request)
    if settings.log_requests:
        duration_ms = (time.monotonic() - start) * 1000
        logger.info(
            "%s %s -> %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
    return response


# ---------------------------------------------------------------------------
# Global exception handler
# ---------------------------------------------------------------------------


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler that returns a structured JSON error."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error"},
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

app.include_router(health.router)
app.include_router(crawl.router)


def run() -> None:
    """Start the service with uvicorn on the configured host and port."""
    import uvicorn

    uvicorn.run(
        "crawl_service.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
