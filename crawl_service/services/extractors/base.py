"""Base classes for content extraction."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol


@dataclass(frozen=True)
class HeaderSpliceResult:
    """Outcome of splicing a page header into the main content region."""

    header_found: bool
    header_tag: str | None = None


@dataclass(frozen=True)
class ParsedDocument:
    """Rendered HTML prepared for the extraction engines.

    ``html`` has relative links resolved against ``url`` and, when a header
    was found, the header content spliced into the main content region.
    """

    url: str
    html: str
    header: HeaderSpliceResult = field(default_factory=lambda: HeaderSpliceResult(False))


@dataclass(frozen=True)
class ExtractedArticle:
    """Article produced by an engine, normalized regardless of the engine."""

    title: str
    byline: str
    content: str  # HTML of the main content
    text_content: str
    excerpt: str = ""
    site_name: str | None = None
    dir: str | None = None
    lang: str | None = None


@dataclass(frozen=True)
class ExtractedContent:
    """Final extractor output: metadata of the first article plus markdown."""

    title: str
    byline: str
    markdown: str
    engines: tuple[str, ...] = ()


class ArticleEngine(Protocol):
    """Protocol defining interface for article extraction engines."""

    name: str

    def parse(self, document: ParsedDocument) -> ExtractedArticle | None:
        """Isolate the main article of ``document``.

        Returns:
            The extracted article, or None if the engine found nothing usable.
        """
        ...
