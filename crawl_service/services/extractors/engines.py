"""Article extraction engines.

Each engine runs a different main-content heuristic over the same parsed
document and normalizes its output to :class:`ExtractedArticle`:

- ``readability``: readability-lxml, a port of Mozilla's Readability scoring
- ``trafilatura``: trafilatura's text-density extractor
- ``newspaper``: newspaper4k's article parser
"""

from __future__ import annotations

import html as html_lib
import logging

import trafilatura
from bs4 import BeautifulSoup
from newspaper import Article, Config
from readability import Document

from crawl_service.services.extractors.base import (
    ArticleEngine,
    ExtractedArticle,
    ParsedDocument,
)

logger = logging.getLogger(__name__)

EXCERPT_LENGTH = 200


def html_to_text(content: str) -> str:
    """Visible text of an HTML fragment, whitespace-collapsed."""
    return BeautifulSoup(content, "lxml").get_text(" ", strip=True)


def _meta_content(soup: BeautifulSoup, *keys: str) -> str:
    for key in keys:
        tag = soup.find("meta", attrs={"name": key}) or soup.find(
            "meta", attrs={"property": key}
        )
        if tag is not None and tag.get("content"):
            return tag["content"].strip()
    return ""


def _page_metadata(html: str) -> dict[str, str | None]:
    """Byline, site name, description, language and direction from the page head."""
    soup = BeautifulSoup(html, "lxml")
    root = soup.find("html")
    return {
        "byline": _meta_content(soup, "author", "article:author", "byl", "dc.creator"),
        "site_name": _meta_content(soup, "og:site_name", "application-name") or None,
        "excerpt": _meta_content(soup, "description", "og:description"),
        "lang": (root.get("lang") if root is not None else None) or None,
        "dir": (root.get("dir") if root is not None else None) or None,
    }


def _excerpt(excerpt: str, text: str) -> str:
    return excerpt or text[:EXCERPT_LENGTH]


class ReadabilityEngine:
    """Readability-style scoring via readability-lxml."""

    name = "readability"

    def parse(self, document: ParsedDocument) -> ExtractedArticle | None:
        doc = Document(document.html, url=document.url)
        content = doc.summary(html_partial=True)
        text = html_to_text(content)
        if not text:
            return None

        meta = _page_metadata(document.html)
        return ExtractedArticle(
            title=doc.short_title() or doc.title() or "",
            byline=meta["byline"] or "",
            content=content,
            text_content=text,
            excerpt=_excerpt(meta["excerpt"] or "", text),
            site_name=meta["site_name"],
            dir=meta["dir"],
            lang=meta["lang"],
        )


class TrafilaturaEngine:
    """Text-density extraction via trafilatura, emitted as HTML."""

    name = "trafilatura"

    def parse(self, document: ParsedDocument) -> ExtractedArticle | None:
        content = trafilatura.extract(
            document.html,
            url=document.url,
            output_format="html",
            include_links=True,
            include_images=False,
            include_tables=True,
            include_formatting=True,
            favor_precision=True,
        )
        if not content:
            return None
        text = html_to_text(content)
        if not text:
            return None

        meta = _page_metadata(document.html)
        metadata = trafilatura.extract_metadata(document.html, default_url=document.url)
        title = ""
        byline = meta["byline"] or ""
        site_name = meta["site_name"]
        excerpt = meta["excerpt"] or ""
        if metadata is not None:
            title = metadata.title or ""
            byline = metadata.author or byline
            site_name = metadata.sitename or site_name
            excerpt = metadata.description or excerpt

        return ExtractedArticle(
            title=title,
            byline=byline,
            content=content,
            text_content=text,
            excerpt=_excerpt(excerpt, text),
            site_name=site_name,
            dir=meta["dir"],
            lang=meta["lang"],
        )


class NewspaperEngine:
    """Article parsing via newspaper4k."""

    name = "newspaper"

    def parse(self, document: ParsedDocument) -> ExtractedArticle | None:
        config = Config()
        config.keep_article_html = True
        config.fetch_images = False
        article = Article(document.url, config=config)
        article.set_html(document.html)
        article.parse()

        text = (article.text or "").strip()
        if not text:
            return None

        content = article.article_html or "".join(
            f"<p>{html_lib.escape(paragraph)}</p>"
            for paragraph in text.split("\n\n")
            if paragraph.strip()
        )
        meta = _page_metadata(document.html)
        return ExtractedArticle(
            title=article.title or "",
            byline=", ".join(article.authors) or meta["byline"] or "",
            content=content,
            text_content=text,
            excerpt=_excerpt(article.meta_description or meta["excerpt"] or "", text),
            site_name=meta["site_name"],
            dir=meta["dir"],
            lang=article.meta_lang or meta["lang"],
        )


ENGINE_REGISTRY: dict[str, type] = {
    ReadabilityEngine.name: ReadabilityEngine,
    TrafilaturaEngine.name: TrafilaturaEngine,
    NewspaperEngine.name: NewspaperEngine,
}


def build_engines(names: list[str]) -> list[ArticleEngine]:
    """Instantiate engines in the given order.

    Raises:
        ValueError: If a name is not a registered engine or the list is empty.
    """
    if not names:
        raise ValueError("At least one extraction engine must be configured")
    engines: list[ArticleEngine] = []
    for name in names:
        engine_cls = ENGINE_REGISTRY.get(name.lower())
        if engine_cls is None:
            raise ValueError(
                f"Unknown extraction engine '{name}'. "
                f"Available: {', '.join(sorted(ENGINE_REGISTRY))}"
            )
        engines.append(engine_cls())
    return engines
