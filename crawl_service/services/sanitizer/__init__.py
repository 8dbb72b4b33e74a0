"""Page sanitizer: ad/tracker blocking and cookie-consent handling.

``PageSanitizer.prepare()`` runs after a tab is created and before it
navigates. Both steps are best-effort and independent of each other: a
failure is logged and the crawl continues.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from crawl_service.services.sanitizer.consent import ConsentHandler
from crawl_service.services.sanitizer.network_filter import (
    NetworkFilter,
    load_network_filter,
    parse_filter_list,
)

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)

__all__ = [
    "ConsentHandler",
    "NetworkFilter",
    "PageSanitizer",
    "load_network_filter",
    "parse_filter_list",
]


class PageSanitizer:
    """Configure a tab so ads, trackers and consent banners stay out of the content."""

    def __init__(
        self,
        network_filter: NetworkFilter | None = None,
        consent: ConsentHandler | None = None,
    ) -> None:
        self.network_filter = network_filter
        self.consent = consent

    async def prepare(self, page: Page) -> None:
        """Install request filtering and the consent script on ``page``."""
        if self.network_filter is not None:
            try:
                await self.network_filter.install(page)
                logger.debug(
                    "Network filter enabled (%d hosts)", self.network_filter.rule_count
                )
            except Exception as e:
                logger.warning("Network filter setup failed: %s", e)

        if self.consent is not None:
            try:
                await self.consent.install(page)
            except Exception as e:
                logger.warning("Consent script injection failed: %s", e)

    async def after_navigation(self, page: Page) -> None:
        """Attempt the post-load consent opt-out. Never raises."""
        if self.consent is None:
            return
        try:
            await self.consent.opt_out(page)
        except Exception as e:
            logger.info("Consent opt-out skipped: %s", e)
