"""Lifecycle manager for the single shared Playwright browser.

The manager owns exactly one Chromium process at a time. Requests get an
isolated tab (a fresh browser context plus page) via ``tab()``; the browser
is rotated when it gets too old, has served too many requests, or reports
that it disconnected.

Usage:
    manager = BrowserManager(max_age_seconds=86400, max_requests=1000)
    async with manager.tab() as tab:
        await tab.page.goto("https://example.com")
    await manager.shutdown()

Note: Playwright browsers must be installed separately:
    playwright install chromium
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, AsyncIterator, Awaitable, Callable

from crawl_service.exceptions import CleanupFailedError, ResourceUnavailableError

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page, Playwright

logger = logging.getLogger(__name__)

# Returns extra Chromium arguments (e.g. extension loading flags)
LaunchArgsProvider = Callable[[], Awaitable[list[str]]]


@dataclass(frozen=True)
class BrowserStats:
    """Read-only snapshot of the browser lifecycle for health reporting."""

    initialized: bool
    requests_served: int
    age_ms: int
    max_age_ms: int
    max_requests: int

    @property
    def age_minutes(self) -> int:
        return round(self.age_ms / 1000 / 60)

    @property
    def max_age_minutes(self) -> int:
        return round(self.max_age_ms / 1000 / 60)


@dataclass
class TabHandle:
    """An isolated browsing context owned by exactly one request."""

    context: BrowserContext
    page: Page


class BrowserManager:
    """Own the shared browser and hand out isolated tabs.

    ``acquire()`` is safe to call concurrently: the rotation check and any
    relaunch run under a single lock, so concurrent callers during a
    rotation wait for the one relaunch instead of starting their own.
    Request execution itself is never serialized.

    Attributes:
        max_age_seconds: Age after which the browser is replaced.
        max_requests: Number of acquisitions after which the browser is replaced.
    """

    def __init__(
        self,
        *,
        max_age_seconds: float = 24 * 60 * 60,
        max_requests: int = 1000,
        headless: bool = True,
        launch_args: list[str] | None = None,
        navigation_timeout_seconds: float = 30.0,
        user_agent: str | None = None,
        extra_args_provider: LaunchArgsProvider | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_age_seconds = max_age_seconds
        self.max_requests = max_requests
        self._headless = headless
        self._launch_args = list(launch_args or [])
        self._navigation_timeout_ms = navigation_timeout_seconds * 1000
        self._user_agent = user_agent
        self._extra_args_provider = extra_args_provider
        self._clock = clock

        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._launched_at: float | None = None
        self._requests_served = 0
        self._lock = asyncio.Lock()
        self._closed = False

    @property
    def is_initialized(self) -> bool:
        return self._browser is not None

    # ------------------------------------------------------------------
    # Acquisition and rotation
    # ------------------------------------------------------------------

    async def acquire(self) -> Browser:
        """Return the live browser, rotating it first when required.

        Each call counts as one served request.

        Raises:
            ResourceUnavailableError: If a (re)launch fails or the manager
                has been shut down. After a failed launch the next call
                retries it.
        """
        async with self._lock:
            if self._closed:
                raise ResourceUnavailableError("Browser manager is shut down")
            reason = self._rotation_reason()
            if reason is not None:
                logger.info("Browser restart: %s", reason)
                await self._rotate()
            if self._browser is None:
                raise ResourceUnavailableError("Browser is not available")
            self._requests_served += 1
            return self._browser

    def _rotation_reason(self) -> str | None:
        if self._browser is None:
            return "no live browser"
        age = self._age_seconds()
        if age > self.max_age_seconds:
            return f"max age reached ({round(age / 60)} minutes)"
        if self._requests_served >= self.max_requests:
            return f"max requests reached ({self._requests_served})"
        return None

    def _age_seconds(self) -> float:
        if self._launched_at is None:
            return 0.0
        return self._clock() - self._launched_at

    async def _rotate(self) -> None:
        """Tear down the current browser (best-effort) and launch a new one.

        Must be called with ``self._lock`` held.
        """
        previous = self._browser
        self._browser = None
        if previous is not None:
            await self._close_browser(previous)

        browser = await self._launch()
        if self._closed:
            # shutdown() ran while Chromium was starting
            await self._close_browser(browser)
            await self._stop_playwright()
            raise ResourceUnavailableError("Browser manager is shut down")
        browser.on("disconnected", self._on_disconnected)
        self._browser = browser
        self._launched_at = self._clock()
        self._requests_served = 0
        logger.info("Browser initialized successfully")

    async def _launch(self) -> Browser:
        """Launch a fresh Chromium process.

        Raises:
            ResourceUnavailableError: If Playwright or Chromium fails to start.
        """
        args = list(self._launch_args)
        if self._extra_args_provider is not None:
            try:
                extra = await self._extra_args_provider()
                args.extend(extra)
                if extra:
                    logger.info("Loading browser with %d extra argument(s)", len(extra))
            except Exception as e:
                logger.warning(
                    "Failed to prepare extra launch arguments, continuing without them: %s",
                    e,
                )

        logger.info(
            "Launching new browser instance (%s)",
            "headless" if self._headless else "visible",
        )
        try:
            if self._playwright is None:
                # Import here to avoid loading Playwright until needed
                from playwright.async_api import async_playwright

                self._playwright = await async_playwright().start()
            return await self._playwright.chromium.launch(
                headless=self._headless,
                args=args,
            )
        except Exception as e:
            logger.error("Failed to launch Playwright browser: %s", e)
            raise ResourceUnavailableError(f"Failed to launch browser: {e}") from e

    def _on_disconnected(self, browser: Browser) -> None:
        # Ignore the event fired by a browser we already rotated away from.
        if browser is self._browser:
            logger.warning("Browser disconnected, will reinitialize on next request")
            self._browser = None

    async def _close_browser(self, browser: Browser) -> None:
        try:
            await browser.close()
            logger.debug("Previous browser closed")
        except Exception as e:
            logger.warning(
                "%s", CleanupFailedError(f"Error closing old browser: {e}")
            )

    # ------------------------------------------------------------------
    # Tabs
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def tab(self) -> AsyncIterator[TabHandle]:
        """Acquire the browser and open an isolated tab for one request.

        The tab's context and page are always closed on exit; the browser
        itself is left running.

        Raises:
            ResourceUnavailableError: If the browser cannot be acquired or
                the tab cannot be created.
        """
        browser = await self.acquire()
        try:
            context = await browser.new_context(**self._context_options())
        except Exception as e:
            logger.error("Failed to open browser tab: %s", e)
            raise ResourceUnavailableError(f"Failed to open browser tab: {e}") from e

        try:
            context.set_default_navigation_timeout(self._navigation_timeout_ms)
            page = await context.new_page()
        except Exception as e:
            logger.error("Failed to open browser tab: %s", e)
            await self._close_context(context)
            raise ResourceUnavailableError(f"Failed to open browser tab: {e}") from e

        handle = TabHandle(context=context, page=page)
        try:
            yield handle
        finally:
            await self.close_tab(handle)

    def _context_options(self) -> dict[str, object]:
        options: dict[str, object] = {"java_script_enabled": True}
        if self._user_agent:
            options["user_agent"] = self._user_agent
        return options

    async def close_tab(self, handle: TabHandle) -> None:
        """Close a tab's page and context. Failures are logged, never raised."""
        try:
            await handle.page.close()
            await handle.context.close()
            logger.debug("Tab closed")
        except Exception as e:
            logger.warning("%s", CleanupFailedError(f"Error closing tab: {e}"))

    async def _close_context(self, context: BrowserContext) -> None:
        try:
            await context.close()
        except Exception as e:
            logger.warning("%s", CleanupFailedError(f"Error closing context: {e}"))

    # ------------------------------------------------------------------
    # Reporting and shutdown
    # ------------------------------------------------------------------

    def stats(self) -> BrowserStats:
        """Return a snapshot of the current browser lifecycle."""
        return BrowserStats(
            initialized=self.is_initialized,
            requests_served=self._requests_served,
            age_ms=round(self._age_seconds() * 1000),
            max_age_ms=round(self.max_age_seconds * 1000),
            max_requests=self.max_requests,
        )

    async def prelaunch(self) -> None:
        """Launch the browser ahead of the first request.

        Failures are logged; the first ``acquire()`` will retry.
        """
        try:
            async with self._lock:
                if self._browser is None:
                    await self._rotate()
            logger.info("Browser pre-initialized on startup")
        except ResourceUnavailableError as e:
            logger.warning("Failed to pre-initialize browser: %s", e)

    async def shutdown(self, timeout: float | None = None) -> None:
        """Close the browser and stop Playwright.

        Safe to call multiple times. When ``timeout`` is given, teardown is
        abandoned after that many seconds so shutdown never blocks. Once shut
        down the manager hands out no more browsers, and a launch still in
        progress closes what it started.
        """
        logger.info("Shutting down browser gracefully...")
        self._closed = True
        try:
            await asyncio.wait_for(self._teardown(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Browser teardown exceeded %.1fs, abandoning", timeout)
            self._browser = None
            self._playwright = None

    async def _teardown(self) -> None:
        browser, self._browser = self._browser, None
        if browser is not None:
            try:
                await browser.close()
                logger.info("Browser closed successfully")
            except Exception as e:
                logger.warning("%s", CleanupFailedError(f"Error closing browser: {e}"))

        await self._stop_playwright()

    async def _stop_playwright(self) -> None:
        playwright, self._playwright = self._playwright, None
        if playwright is not None:
            try:
                await playwright.stop()
                logger.debug("Playwright stopped")
            except Exception as e:
                logger.warning("%s", CleanupFailedError(f"Error stopping Playwright: {e}"))
