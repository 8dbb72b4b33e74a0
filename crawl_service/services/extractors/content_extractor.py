"""Turn rendered HTML into title, byline and markdown."""

from __future__ import annotations

import asyncio
import logging
import time

from crawl_service.exceptions import ExtractionFailedError
from crawl_service.services.extractors.base import (
    ArticleEngine,
    ExtractedArticle,
    ExtractedContent,
    ParsedDocument,
)
from crawl_service.services.extractors.document import parse_document
from crawl_service.services.extractors.engines import ReadabilityEngine
from crawl_service.services.extractors.markdown import MarkdownConverter

logger = logging.getLogger(__name__)


class ContentExtractor:
    """Run the configured engines over a page and convert their output.

    Engines run in declaration order. Every non-null article is converted
    to markdown; the pieces are joined with a blank line. Title and byline
    come from the first engine that produced an article.
    """

    def __init__(
        self,
        engines: list[ArticleEngine] | None = None,
        converter: MarkdownConverter | None = None,
        splice_header: bool = True,
    ) -> None:
        self.engines = engines if engines else [ReadabilityEngine()]
        self.converter = converter or MarkdownConverter()
        self.splice_header = splice_header

    async def extract(self, html: str, url: str) -> ExtractedContent:
        """Extract the main article of a rendered page.

        Args:
            html: Fully rendered page HTML
            url: Source URL (relative links and images resolve against it)

        Returns:
            ExtractedContent with title, byline and combined markdown

        Raises:
            ExtractionFailedError: If no engine produced an article
        """
        start_time = time.perf_counter()
        document = parse_document(html, url, splice=self.splice_header)

        articles: list[tuple[str, ExtractedArticle]] = []
        for engine in self.engines:
            article = await self._run_engine(engine, document)
            if article is not None:
                articles.append((engine.name, article))

        if not articles:
            raise ExtractionFailedError(
                f"Failed to extract article content from {url} "
                f"(engines: {', '.join(engine.name for engine in self.engines)})"
            )

        pieces: list[str] = []
        for engine_name, article in articles:
            markdown = (await self.converter.convert(article.content)).strip()
            logger.debug("%s markdown: %d chars", engine_name, len(markdown))
            if markdown:
                pieces.append(markdown)

        first = articles[0][1]
        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            'Article extracted: "%s" via %s (%.1fms)',
            first.title,
            "+".join(name for name, _ in articles),
            elapsed_ms,
        )
        return ExtractedContent(
            title=first.title or "",
            byline=first.byline or "",
            markdown="\n\n".join(pieces),
            engines=tuple(name for name, _ in articles),
        )

    async def _run_engine(
        self, engine: ArticleEngine, document: ParsedDocument
    ) -> ExtractedArticle | None:
        """Run one engine; an engine that raises counts as having found nothing."""
        try:
            article = await asyncio.to_thread(engine.parse, document)
        except Exception as e:
            logger.warning("%s extraction failed: %s", engine.name, e)
            return None
        if article is None:
            logger.info("%s found no article in %s", engine.name, document.url)
        return article
