"""Exception hierarchy for the crawl pipeline.

Each class maps to one failure category of a crawl request. Only
``InvalidInputError`` is caller-facing; the rest are caught at the pipeline
boundary and turned into a logged outcome (and, in synchronous mode, an
HTTP status).
"""

from __future__ import annotations


class CrawlError(Exception):
    """Base exception for all crawl errors."""

    code = "CRAWL_ERROR"


class InvalidInputError(CrawlError):
    """Raised when the request body fails validation.

    Error Code: INVALID_INPUT
    """

    code = "INVALID_INPUT"


class ResourceUnavailableError(CrawlError):
    """Raised when the browser cannot be launched or a tab cannot be opened.

    Error Code: RESOURCE_UNAVAILABLE
    """

    code = "RESOURCE_UNAVAILABLE"


class NavigationFailedError(CrawlError):
    """Raised when the target URL times out or fails at the network level.

    Error Code: NAVIGATION_FAILED
    """

    code = "NAVIGATION_FAILED"

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class ExtractionFailedError(CrawlError):
    """Raised when no configured engine produced a usable article.

    Error Code: EXTRACTION_FAILED
    """

    code = "EXTRACTION_FAILED"


class DeliveryFailedError(CrawlError):
    """Callback POST failed. Logged only, never raised past delivery.

    Error Code: DELIVERY_FAILED
    """

    code = "DELIVERY_FAILED"

    def __init__(
        self, message: str, callback_url: str, status_code: int | None = None
    ) -> None:
        super().__init__(message)
        self.callback_url = callback_url
        self.status_code = status_code


class CleanupFailedError(CrawlError):
    """Releasing a tab or the browser failed. Logged only, never raised.

    Error Code: CLEANUP_FAILED
    """

    code = "CLEANUP_FAILED"
