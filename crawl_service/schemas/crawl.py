"""Pydantic v2 schemas for the crawl endpoint and its callback payload."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from crawl_service.exceptions import InvalidInputError

URL_ERROR = "url is required and must be a string"
CALLBACK_ERROR = "callback_url is required when test is false"


# -----------------------------------------------------------------------------
# Request Schemas
# -----------------------------------------------------------------------------


class CrawlRequest(BaseModel):
    """Request body for POST /crawl."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(..., min_length=1, description="Page to render and extract")
    callback_url: str | None = Field(
        default=None, description="Where the result is POSTed (required unless test)"
    )
    test: bool = Field(
        default=False, description="Log the result instead of calling back"
    )

    @classmethod
    def from_payload(cls, payload: Any) -> CrawlRequest:
        """Validate a decoded JSON body.

        ``url`` must be a non-empty string; ``callback_url`` must be a
        non-empty string unless ``test`` is truthy.

        Raises:
            InvalidInputError: With the message returned to the caller.
        """
        if not isinstance(payload, dict):
            raise InvalidInputError(URL_ERROR)

        url = payload.get("url")
        if not isinstance(url, str) or not url:
            raise InvalidInputError(URL_ERROR)

        test = bool(payload.get("test", False))
        callback_url = payload.get("callback_url")
        if not test and (not isinstance(callback_url, str) or not callback_url):
            raise InvalidInputError(CALLBACK_ERROR)

        return cls(
            url=url,
            callback_url=callback_url if isinstance(callback_url, str) else None,
            test=test,
        )


# -----------------------------------------------------------------------------
# Result / Response Schemas
# -----------------------------------------------------------------------------


class CrawlResult(BaseModel):
    """Extracted article as delivered to the callback URL."""

    model_config = ConfigDict(frozen=True)

    url: str
    title: str = ""
    byline: str = ""
    markdown: str
    extracted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CrawlAcceptedResponse(BaseModel):
    message: str


class CrawlTestResponse(BaseModel):
    message: str
    result: CrawlResult


class CrawlErrorResponse(BaseModel):
    error: str
