"""Parse rendered HTML into a document rooted at its source URL.

Also splices the page header into the main content region, since the
heuristic engines tend to drop masthead-only content such as a byline.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from crawl_service.services.extractors.base import HeaderSpliceResult, ParsedDocument

if TYPE_CHECKING:
    from bs4.element import Tag

logger = logging.getLogger(__name__)

# Ordered by priority; the first selector with a match wins.
HEADER_SELECTORS: tuple[str, ...] = (
    # Semantic elements
    "header",
    # Common utility classes
    ".site-header",
    ".page-header",
    ".page-hero",
    ".hero",
    ".hero-banner",
    ".hero-section",
    ".masthead",
    ".top-bar",
    ".navbar",
    ".nav-bar",
    ".app-header",
    ".layout-header",
    # ID variants
    "#header",
    "#site-header",
    "#page-header",
    "#masthead",
    "#hero",
)

MAIN_CONTENT_SELECTORS: tuple[str, ...] = (
    "main",
    "article",
    ".content",
    ".post-content",
    ".entry-content",
    "[role='main']",
)

# Attributes holding URLs that must resolve against the page URL
URL_ATTRIBUTES: dict[str, tuple[str, ...]] = {
    "a": ("href",),
    "link": ("href",),
    "img": ("src",),
    "source": ("src",),
    "video": ("src", "poster"),
    "audio": ("src",),
    "iframe": ("src",),
}


def resolve_urls(soup: BeautifulSoup, base_url: str) -> None:
    """Rewrite relative link and media URLs as absolute, in place."""
    base_tag = soup.find("base", href=True)
    if base_tag is not None:
        base_url = urljoin(base_url, base_tag["href"])

    for tag_name, attributes in URL_ATTRIBUTES.items():
        for element in soup.find_all(tag_name):
            for attribute in attributes:
                value = element.get(attribute)
                if isinstance(value, str) and value and not value.startswith(
                    ("#", "data:", "javascript:", "mailto:", "tel:")
                ):
                    element[attribute] = urljoin(base_url, value.strip())


def _select_first(soup: BeautifulSoup, selectors: tuple[str, ...]) -> Tag | None:
    for selector in selectors:
        element = soup.select_one(selector)
        if element is not None:
            return element
    return None


def splice_header(soup: BeautifulSoup) -> HeaderSpliceResult:
    """Copy the page header's content to the top of the main content region.

    The header's children are wrapped in a neutral ``<div>`` so engines
    treat them as ordinary content. No-op when no header-like element exists.
    """
    header = _select_first(soup, HEADER_SELECTORS)
    if header is None:
        return HeaderSpliceResult(header_found=False)

    main_content = _select_first(soup, MAIN_CONTENT_SELECTORS) or soup.body
    if main_content is None:
        return HeaderSpliceResult(header_found=False)

    wrapper = soup.new_tag("div")
    fragment = BeautifulSoup(header.decode_contents(), "lxml")
    source = fragment.body if fragment.body is not None else fragment
    for child in list(source.children):
        wrapper.append(child.extract())
    main_content.insert(0, wrapper)

    return HeaderSpliceResult(header_found=True, header_tag=header.name)


def parse_document(html: str, url: str, splice: bool = True) -> ParsedDocument:
    """Parse rendered HTML into a :class:`ParsedDocument` rooted at ``url``."""
    soup = BeautifulSoup(html, "lxml")
    resolve_urls(soup, url)

    header = HeaderSpliceResult(header_found=False)
    if splice:
        header = splice_header(soup)
        logger.debug(
            "Header injection completed - found: %s",
            f"yes ({header.header_tag})" if header.header_found else "no",
        )

    return ParsedDocument(url=url, html=str(soup), header=header)
