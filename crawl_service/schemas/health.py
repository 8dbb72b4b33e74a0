"""Pydantic v2 schemas for the health endpoint."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class BrowserHealth(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    initialized: bool
    request_count: int = Field(alias="requestCount")
    age_minutes: int = Field(alias="ageMinutes")
    max_requests: int = Field(alias="maxRequests")
    max_age_minutes: int = Field(alias="maxAgeMinutes")


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    browser: BrowserHealth
    config: dict[str, Any]
