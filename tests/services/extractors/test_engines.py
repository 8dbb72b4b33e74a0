"""Tests for the article extraction engines."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from crawl_service.services.extractors.base import ParsedDocument
from crawl_service.services.extractors.document import parse_document
from crawl_service.services.extractors.engines import (
    ENGINE_REGISTRY,
    NewspaperEngine,
    ReadabilityEngine,
    TrafilaturaEngine,
    build_engines,
    html_to_text,
)

from conftest import ARTICLE_HTML


class TestReadabilityEngine:
    """Test suite for the readability-lxml engine."""

    def test_extracts_article(self) -> None:
        document = parse_document(ARTICLE_HTML, "https://example.com/news/story")

        article = ReadabilityEngine().parse(document)

        assert article is not None
        assert article.title == "Test Article"
        assert article.byline == "Jane Writer"
        assert article.lang == "en"
        assert "substantial article" in article.text_content
        assert "Second paragraph" in article.content

    def test_links_are_absolute(self) -> None:
        """Test that links in the article content point at the source site."""
        document = parse_document(ARTICLE_HTML, "https://example.com/news/story")

        article = ReadabilityEngine().parse(document)

        assert "https://example.com/docs/guide" in article.content

    def test_excerpt_falls_back_to_text(self) -> None:
        document = parse_document(ARTICLE_HTML, "https://example.com/news/story")

        article = ReadabilityEngine().parse(document)

        assert article.excerpt
        assert article.text_content.startswith(article.excerpt[:20])


class TestTrafilaturaEngine:
    """Test suite for the trafilatura engine (trafilatura mocked)."""

    def test_maps_trafilatura_output(self) -> None:
        document = ParsedDocument(url="https://example.com/a", html=ARTICLE_HTML)
        metadata = MagicMock()
        metadata.title = "Trafilatura Title"
        metadata.author = "Someone Else"
        metadata.sitename = "Example"
        metadata.description = "Short description"

        with patch(
            "crawl_service.services.extractors.engines.trafilatura.extract",
            return_value="<main><p>Extracted body text.</p></main>",
        ) as mock_extract, patch(
            "crawl_service.services.extractors.engines.trafilatura.extract_metadata",
            return_value=metadata,
        ):
            article = TrafilaturaEngine().parse(document)

        assert article.title == "Trafilatura Title"
        assert article.byline == "Someone Else"
        assert article.site_name == "Example"
        assert article.excerpt == "Short description"
        assert article.text_content == "Extracted body text."
        _, kwargs = mock_extract.call_args
        assert kwargs["output_format"] == "html"

    def test_returns_none_without_content(self) -> None:
        document = ParsedDocument(url="https://example.com/a", html="<html></html>")

        with patch(
            "crawl_service.services.extractors.engines.trafilatura.extract",
            return_value=None,
        ):
            assert TrafilaturaEngine().parse(document) is None


class TestNewspaperEngine:
    """Test suite for the newspaper4k engine (newspaper mocked)."""

    def _mock_article(self, **attrs) -> MagicMock:
        article = MagicMock()
        article.title = "Paper Title"
        article.text = "First paragraph.\n\nSecond paragraph."
        article.article_html = ""
        article.authors = ["A. Author", "B. Author"]
        article.meta_description = ""
        article.meta_lang = "de"
        for key, value in attrs.items():
            setattr(article, key, value)
        return article

    def test_maps_article(self) -> None:
        """Test that paragraphs are wrapped when no article HTML is kept."""
        document = ParsedDocument(url="https://example.com/a", html=ARTICLE_HTML)
        mock_article = self._mock_article()

        with patch(
            "crawl_service.services.extractors.engines.Article",
            return_value=mock_article,
        ):
            article = NewspaperEngine().parse(document)

        mock_article.set_html.assert_called_once_with(ARTICLE_HTML)
        mock_article.parse.assert_called_once()
        assert article.title == "Paper Title"
        assert article.byline == "A. Author, B. Author"
        assert article.content == "<p>First paragraph.</p><p>Second paragraph.</p>"
        assert article.lang == "de"

    def test_returns_none_without_text(self) -> None:
        document = ParsedDocument(url="https://example.com/a", html=ARTICLE_HTML)

        with patch(
            "crawl_service.services.extractors.engines.Article",
            return_value=self._mock_article(text=""),
        ):
            assert NewspaperEngine().parse(document) is None


class TestBuildEngines:
    """Test suite for engine construction from configuration."""

    def test_order_preserved(self) -> None:
        engines = build_engines(["trafilatura", "Readability"])

        assert [engine.name for engine in engines] == ["trafilatura", "readability"]

    def test_unknown_engine(self) -> None:
        with pytest.raises(ValueError, match="Unknown extraction engine 'boilerpipe'"):
            build_engines(["readability", "boilerpipe"])

    def test_empty_list(self) -> None:
        with pytest.raises(ValueError):
            build_engines([])

    def test_registry_names(self) -> None:
        assert set(ENGINE_REGISTRY) == {"readability", "trafilatura", "newspaper"}


def test_html_to_text() -> None:
    assert html_to_text("<p>Hello <b>bold</b></p><p>world</p>") == "Hello bold world"
