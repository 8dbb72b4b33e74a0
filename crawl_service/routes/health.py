from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from crawl_service.core.config import settings
from crawl_service.dependencies import get_browser_manager
from crawl_service.schemas.health import BrowserHealth, HealthResponse
from crawl_service.services.browser.manager import BrowserManager

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(
    browser_manager: BrowserManager = Depends(get_browser_manager),
) -> HealthResponse:
    stats = browser_manager.stats()
    return HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc),
        browser=BrowserHealth(
            initialized=stats.initialized,
            request_count=stats.requests_served,
            age_minutes=stats.age_minutes,
            max_requests=stats.max_requests,
            max_age_minutes=stats.max_age_minutes,
        ),
        config=settings.public_config(),
    )
