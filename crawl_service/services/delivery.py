"""Delivery of crawl results to the caller's callback URL."""

from __future__ import annotations

import json
import logging

import httpx

from crawl_service.exceptions import DeliveryFailedError
from crawl_service.schemas.crawl import CrawlResult

logger = logging.getLogger(__name__)


class CallbackDelivery:
    """POST results as JSON to a callback URL, or log them in test mode.

    Delivery is attempted once. Failures are logged and reported through the
    return value; they never raise.
    """

    def __init__(
        self,
        timeout_seconds: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self._client = client

    async def deliver(self, callback_url: str, result: CrawlResult) -> bool:
        """POST ``result`` to ``callback_url``.

        Returns:
            True if the callback answered with a 2xx status, False otherwise.
        """
        payload = result.model_dump(mode="json")
        logger.info("Posting result for %s to callback %s", result.url, callback_url)
        try:
            if self._client is not None:
                response = await self._client.post(callback_url, json=payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    response = await client.post(callback_url, json=payload)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            self._log_failure(
                DeliveryFailedError(f"Callback request failed: {e}", callback_url)
            )
            return False

        if not response.is_success:
            self._log_failure(
                DeliveryFailedError(
                    f"Callback request failed with status {response.status_code}",
                    callback_url,
                    status_code=response.status_code,
                )
            )
            return False

        logger.info("Callback delivered to %s (%d)", callback_url, response.status_code)
        return True

    def log_result(self, result: CrawlResult) -> None:
        """Test mode: write the full result to the log instead of sending it."""
        logger.info(
            "Test mode - Article extracted:\n%s",
            json.dumps(result.model_dump(mode="json"), indent=2, ensure_ascii=False),
        )

    def _log_failure(self, error: DeliveryFailedError) -> None:
        logger.warning("%s (callback: %s)", error, error.callback_url)
