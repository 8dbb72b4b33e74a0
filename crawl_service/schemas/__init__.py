from crawl_service.schemas.crawl import (
    CrawlAcceptedResponse,
    CrawlErrorResponse,
    CrawlRequest,
    CrawlResult,
    CrawlTestResponse,
)
from crawl_service.schemas.health import BrowserHealth, HealthResponse

__all__ = [
    "BrowserHealth",
    "CrawlAcceptedResponse",
    "CrawlErrorResponse",
    "CrawlRequest",
    "CrawlResult",
    "CrawlTestResponse",
    "HealthResponse",
]
