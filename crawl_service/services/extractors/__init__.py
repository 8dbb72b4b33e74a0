"""Content extraction from rendered pages.

Rendered HTML is parsed into a document rooted at its URL (with the page
header spliced into the main content), run through one or more article
engines, and converted to markdown:

1. readability (readability-lxml) - Mozilla Readability-style scoring
2. trafilatura - text-density extraction
3. newspaper (newspaper4k) - alternative article parser

Markdown conversion falls back html2text -> markdownify -> plain text.

Usage:
    from crawl_service.services.extractors import ContentExtractor

    extractor = ContentExtractor()
    content = await extractor.extract(html, "https://example.com/post")
    print(content.markdown)
"""

from crawl_service.services.extractors.base import (
    ArticleEngine,
    ExtractedArticle,
    ExtractedContent,
    HeaderSpliceResult,
    ParsedDocument,
)
from crawl_service.services.extractors.content_extractor import ContentExtractor
from crawl_service.services.extractors.document import parse_document, splice_header
from crawl_service.services.extractors.engines import (
    ENGINE_REGISTRY,
    NewspaperEngine,
    ReadabilityEngine,
    TrafilaturaEngine,
    build_engines,
)
from crawl_service.services.extractors.markdown import (
    ConversionTier,
    MarkdownConverter,
    run_tiers,
)

__all__ = [
    # Base classes
    "ArticleEngine",
    "ExtractedArticle",
    "ExtractedContent",
    "HeaderSpliceResult",
    "ParsedDocument",
    # Engines
    "ENGINE_REGISTRY",
    "NewspaperEngine",
    "ReadabilityEngine",
    "TrafilaturaEngine",
    "build_engines",
    # Pipeline pieces
    "ContentExtractor",
    "ConversionTier",
    "MarkdownConverter",
    "parse_document",
    "run_tiers",
    "splice_header",
]
