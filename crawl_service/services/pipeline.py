"""Per-request crawl pipeline.

One crawl moves through these stages in order:

    RECEIVED -> VALIDATED -> TAB_ACQUIRED -> SANITIZED -> NAVIGATED
             -> EXTRACTED -> DELIVERED

Any stage can end in ERRORED. The tab is always closed before the pipeline
returns; the shared browser never is. ``run()`` never raises: every failure
is logged and reported on the returned :class:`CrawlOutcome`.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from crawl_service.exceptions import (
    CrawlError,
    NavigationFailedError,
    ResourceUnavailableError,
)
from crawl_service.schemas.crawl import CrawlRequest, CrawlResult
from crawl_service.services.browser.manager import BrowserManager
from crawl_service.services.delivery import CallbackDelivery
from crawl_service.services.extractors.content_extractor import ContentExtractor
from crawl_service.services.sanitizer import PageSanitizer

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)


class CrawlStage(str, Enum):
    """Pipeline stages, in execution order (ERRORED is terminal)."""

    RECEIVED = "received"
    VALIDATED = "validated"
    TAB_ACQUIRED = "tab_acquired"
    SANITIZED = "sanitized"
    NAVIGATED = "navigated"
    EXTRACTED = "extracted"
    DELIVERED = "delivered"
    ERRORED = "errored"


@dataclass
class CrawlOutcome:
    """What happened to one crawl request."""

    request: CrawlRequest
    stage: CrawlStage = CrawlStage.VALIDATED
    failed_at: CrawlStage | None = None
    result: CrawlResult | None = None
    error: Exception | None = None
    delivered: bool = False

    @property
    def succeeded(self) -> bool:
        return self.stage == CrawlStage.DELIVERED

    def advance(self, stage: CrawlStage) -> None:
        logger.debug("[%s] %s -> %s", self.request.url, self.stage.value, stage.value)
        self.stage = stage

    def fail(self, error: Exception) -> None:
        """Record ``error`` against the stage that was being attempted."""
        self.failed_at = _next_stage(self.stage)
        self.stage = CrawlStage.ERRORED
        self.error = error


def _next_stage(stage: CrawlStage) -> CrawlStage:
    order = [s for s in CrawlStage if s is not CrawlStage.ERRORED]
    if stage not in order:
        return stage
    index = order.index(stage)
    return order[min(index + 1, len(order) - 1)]


class CrawlPipeline:
    """Render, sanitize, extract and deliver a single URL per request.

    Requests run concurrently; each owns its own tab. ``submit()`` runs a
    crawl detached from the caller (fire-and-forget), ``run()`` awaits it.
    """

    def __init__(
        self,
        browser_manager: BrowserManager,
        extractor: ContentExtractor,
        delivery: CallbackDelivery,
        sanitizer: PageSanitizer | None = None,
        *,
        navigation_timeout_seconds: float = 30.0,
        wait_until: str = "networkidle",
    ) -> None:
        self.browser_manager = browser_manager
        self.extractor = extractor
        self.delivery = delivery
        self.sanitizer = sanitizer or PageSanitizer()
        self.navigation_timeout_seconds = navigation_timeout_seconds
        self.wait_until = wait_until
        # Strong references so detached tasks are not garbage collected mid-run
        self._background_tasks: set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        """Number of detached crawls still running."""
        return len(self._background_tasks)

    def submit(self, request: CrawlRequest) -> None:
        """Start a crawl in the background and return immediately.

        The outcome is only observable through logs and the callback.
        """
        task = asyncio.get_running_loop().create_task(
            self.run(request), name=f"crawl:{request.url}"
        )
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def run(self, request: CrawlRequest) -> CrawlOutcome:
        """Run the full pipeline for a validated request. Never raises."""
        outcome = CrawlOutcome(request=request)
        start = time.monotonic()
        logger.info("Starting crawl for: %s", request.url)

        try:
            result = await self._render_and_extract(outcome)
            outcome.result = result
            outcome.advance(CrawlStage.EXTRACTED)
            await self._deliver(outcome, result)
            outcome.advance(CrawlStage.DELIVERED)
        except ResourceUnavailableError as e:
            outcome.fail(e)
            logger.exception("Crawl of %s failed: browser unavailable", request.url)
        except CrawlError as e:
            outcome.fail(e)
            logger.error(
                "Crawl of %s failed at %s: %s",
                request.url,
                outcome.failed_at.value,
                e,
            )
        except Exception as e:
            outcome.fail(e)
            logger.exception("Unexpected error while crawling %s", request.url)

        logger.info(
            "Crawl for %s finished: %s (%.0fms)",
            request.url,
            outcome.stage.value,
            (time.monotonic() - start) * 1000,
        )
        return outcome

    async def _render_and_extract(self, outcome: CrawlOutcome) -> CrawlResult:
        url = outcome.request.url
        async with self.browser_manager.tab() as tab:
            outcome.advance(CrawlStage.TAB_ACQUIRED)

            await self.sanitizer.prepare(tab.page)
            outcome.advance(CrawlStage.SANITIZED)

            html = await self._navigate(tab.page, url)
            outcome.advance(CrawlStage.NAVIGATED)

            content = await self.extractor.extract(html, url)

        return CrawlResult(
            url=url,
            title=content.title,
            byline=content.byline,
            markdown=content.markdown,
        )

    async def _navigate(self, page: Page, url: str) -> str:
        """Load ``url`` and return the rendered HTML.

        Raises:
            NavigationFailedError: On timeout or a network-level failure.
        """
        logger.debug("Navigating to %s (wait_until=%s)", url, self.wait_until)
        try:
            response = await page.goto(
                url,
                wait_until=self.wait_until,
                timeout=self.navigation_timeout_seconds * 1000,
            )
        except Exception as e:
            raise NavigationFailedError(f"Failed to navigate to {url}: {e}", url) from e

        if response is not None and response.status >= 400:
            logger.warning("%s answered HTTP %d, extracting anyway", url, response.status)

        await self.sanitizer.after_navigation(page)

        try:
            html = await page.content()
        except Exception as e:
            raise NavigationFailedError(
                f"Failed to read rendered content of {url}: {e}", url
            ) from e
        logger.debug("HTML content retrieved (%d chars)", len(html))
        return html

    async def _deliver(self, outcome: CrawlOutcome, result: CrawlResult) -> None:
        request = outcome.request
        if request.test:
            self.delivery.log_result(result)
            return
        # A failed callback is logged by the delivery and does not fail the crawl.
        outcome.delivered = await self.delivery.deliver(request.callback_url, result)
