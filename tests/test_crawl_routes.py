"""Tests for POST /crawl."""

from __future__ import annotations

import pytest

from crawl_service.core.config import settings
from crawl_service.exceptions import (
    ExtractionFailedError,
    NavigationFailedError,
    ResourceUnavailableError,
)
from crawl_service.schemas.crawl import CrawlRequest, CrawlResult
from crawl_service.services.pipeline import CrawlOutcome, CrawlStage


VALID_BODY = {"url": "https://example.com/story", "callback_url": "https://hooks.example.com"}


def _succeeded(request: CrawlRequest, delivered: bool = True) -> CrawlOutcome:
    return CrawlOutcome(
        request=request,
        stage=CrawlStage.DELIVERED,
        result=CrawlResult(url=request.url, title="Story", byline="", markdown="# Story"),
        delivered=delivered,
    )


def _failed(request: CrawlRequest, error: Exception) -> CrawlOutcome:
    outcome = CrawlOutcome(request=request, stage=CrawlStage.NAVIGATED)
    outcome.fail(error)
    return outcome


class TestCrawlValidation:
    """Test suite for request validation."""

    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"url": ""},
            {"url": 42, "callback_url": "https://hooks.example.com"},
            {"callback_url": "https://hooks.example.com"},
        ],
    )
    def test_missing_or_invalid_url(self, shared_client, fake_pipeline, body) -> None:
        resp = shared_client.post("/crawl", json=body)

        assert resp.status_code == 400
        assert resp.json() == {"error": "url is required and must be a string"}
        fake_pipeline.submit.assert_not_called()
        fake_pipeline.run.assert_not_awaited()

    def test_missing_callback(self, shared_client, fake_pipeline) -> None:
        resp = shared_client.post("/crawl", json={"url": "https://example.com"})

        assert resp.status_code == 400
        assert resp.json() == {"error": "callback_url is required when test is false"}
        fake_pipeline.submit.assert_not_called()

    def test_non_string_callback(self, shared_client) -> None:
        resp = shared_client.post(
            "/crawl", json={"url": "https://example.com", "callback_url": 7}
        )

        assert resp.status_code == 400
        assert resp.json()["error"] == "callback_url is required when test is false"

    def test_invalid_json(self, shared_client, fake_pipeline) -> None:
        resp = shared_client.post(
            "/crawl",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert resp.status_code == 400
        assert resp.json() == {"error": "url is required and must be a string"}

    def test_test_mode_needs_no_callback(self, shared_client, fake_pipeline) -> None:
        resp = shared_client.post("/crawl", json={"url": "https://example.com", "test": True})

        assert resp.status_code == 202
        submitted = fake_pipeline.submit.call_args[0][0]
        assert submitted.test is True
        assert submitted.callback_url is None


class TestCrawlBackgroundMode:
    """Test suite for the default background mode."""

    def test_accepted_immediately(self, shared_client, fake_pipeline) -> None:
        resp = shared_client.post("/crawl", json=VALID_BODY)

        assert resp.status_code == 202
        assert resp.json() == {"message": "Request accepted and processed"}
        fake_pipeline.submit.assert_called_once()
        fake_pipeline.run.assert_not_awaited()
        submitted = fake_pipeline.submit.call_args[0][0]
        assert submitted.url == "https://example.com/story"
        assert submitted.callback_url == "https://hooks.example.com"


class TestCrawlSyncMode:
    """Test suite for synchronous mode."""

    @pytest.fixture(autouse=True)
    def sync_mode(self, monkeypatch):
        monkeypatch.setattr(settings, "crawl_mode", "sync")

    def test_delivered(self, shared_client, fake_pipeline) -> None:
        fake_pipeline.run.side_effect = lambda request: _succeeded(request)

        resp = shared_client.post("/crawl", json=VALID_BODY)

        assert resp.status_code == 202
        assert resp.json() == {"message": "Request accepted and processed"}
        fake_pipeline.submit.assert_not_called()

    def test_callback_failed(self, shared_client, fake_pipeline) -> None:
        fake_pipeline.run.side_effect = lambda request: _succeeded(request, delivered=False)

        resp = shared_client.post("/crawl", json=VALID_BODY)

        assert resp.status_code == 202
        assert resp.json() == {"message": "Request accepted but callback failed"}

    def test_test_mode_returns_result(self, shared_client, fake_pipeline) -> None:
        fake_pipeline.run.side_effect = lambda request: _succeeded(request)

        resp = shared_client.post("/crawl", json={"url": "https://example.com/story", "test": True})

        assert resp.status_code == 200
        data = resp.json()
        assert data["message"] == "Article extracted successfully (test mode)"
        assert data["result"]["title"] == "Story"
        assert data["result"]["markdown"] == "# Story"

    def test_navigation_failed(self, shared_client, fake_pipeline) -> None:
        fake_pipeline.run.side_effect = lambda request: _failed(
            request, NavigationFailedError("timeout", request.url)
        )

        resp = shared_client.post("/crawl", json=VALID_BODY)

        assert resp.status_code == 502
        assert resp.json() == {"error": "Failed to navigate to URL"}

    def test_extraction_failed(self, shared_client, fake_pipeline) -> None:
        fake_pipeline.run.side_effect = lambda request: _failed(
            request, ExtractionFailedError("nothing")
        )

        resp = shared_client.post("/crawl", json=VALID_BODY)

        assert resp.status_code == 502
        assert resp.json() == {"error": "Failed to extract article content"}

    def test_browser_unavailable(self, shared_client, fake_pipeline) -> None:
        fake_pipeline.run.side_effect = lambda request: _failed(
            request, ResourceUnavailableError("no browser")
        )

        resp = shared_client.post("/crawl", json=VALID_BODY)

        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal server error"}


def test_openapi_documents_crawl_responses(shared_client) -> None:
    schema = shared_client.get("/openapi.json").json()

    responses = schema["paths"]["/crawl"]["post"]["responses"]
    assert {"200", "202", "400", "500", "502"} <= set(responses)
