"""Crawl REST endpoint."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from crawl_service.core.config import settings
from crawl_service.dependencies import get_pipeline
from crawl_service.exceptions import (
    ExtractionFailedError,
    InvalidInputError,
    NavigationFailedError,
)
from crawl_service.schemas.crawl import (
    CrawlAcceptedResponse,
    CrawlErrorResponse,
    CrawlRequest,
    CrawlTestResponse,
)
from crawl_service.services.pipeline import CrawlOutcome, CrawlPipeline

logger = logging.getLogger(__name__)

router = APIRouter(tags=["crawl"])

ACCEPTED_MESSAGE = "Request accepted and processed"
CALLBACK_FAILED_MESSAGE = "Request accepted but callback failed"
TEST_MODE_MESSAGE = "Article extracted successfully (test mode)"


@router.post(
    "/crawl",
    status_code=202,
    responses={
        200: {"model": CrawlTestResponse, "description": "Sync test mode result"},
        202: {"model": CrawlAcceptedResponse},
        400: {"model": CrawlErrorResponse},
        500: {"model": CrawlErrorResponse},
        502: {"model": CrawlErrorResponse},
    },
)
async def crawl(
    request: Request, pipeline: CrawlPipeline = Depends(get_pipeline)
) -> JSONResponse:
    """Render a URL, extract its main article and deliver it as markdown.

    In background mode the response is 202 right after validation and the
    crawl continues detached. In sync mode the response waits for the
    whole pipeline and reports its outcome.

    Returns:
        202 accepted (background, or sync with callback), 200 with the result
        (sync test mode), 400 on invalid input, 502 on navigation or
        extraction failure, 500 otherwise.
    """
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        payload = None

    try:
        crawl_request = CrawlRequest.from_payload(payload)
    except InvalidInputError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})

    if settings.crawl_mode == "background":
        pipeline.submit(crawl_request)
        return JSONResponse(status_code=202, content={"message": ACCEPTED_MESSAGE})

    outcome = await pipeline.run(crawl_request)
    return _outcome_response(outcome)


def _outcome_response(outcome: CrawlOutcome) -> JSONResponse:
    """Map a finished synchronous crawl to its HTTP response."""
    if outcome.succeeded:
        if outcome.request.test:
            return JSONResponse(
                status_code=200,
                content={
                    "message": TEST_MODE_MESSAGE,
                    "result": outcome.result.model_dump(mode="json"),
                },
            )
        message = ACCEPTED_MESSAGE if outcome.delivered else CALLBACK_FAILED_MESSAGE
        return JSONResponse(status_code=202, content={"message": message})

    if isinstance(outcome.error, NavigationFailedError):
        return JSONResponse(status_code=502, content={"error": "Failed to navigate to URL"})
    if isinstance(outcome.error, ExtractionFailedError):
        return JSONResponse(
            status_code=502, content={"error": "Failed to extract article content"}
        )
    return JSONResponse(status_code=500, content={"error": "Internal server error"})
