"""HTML to markdown conversion with timeouts and fallbacks.

Conversion runs through an ordered list of tiers. Each tier is attempted
with its own timeout; the first non-empty result wins. The last tier strips
markup with a regex and cannot fail, so ``convert()`` always returns a string.

Timeouts race the converter against a timer. A converter that overruns keeps
running in its worker thread, but its result is discarded.
"""

from __future__ import annotations

import asyncio
import html as html_lib
import logging
import re
from dataclasses import dataclass
from typing import Callable

import html2text
from markdownify import ATX, markdownify

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class ConversionTier:
    """One attempt in the conversion chain."""

    name: str
    attempt: Callable[[str], str]
    timeout_seconds: float


def html2text_convert(html: str) -> str:
    """Fast pure-Python conversion with html2text."""
    converter = html2text.HTML2Text()
    converter.body_width = 0  # no hard wrapping
    converter.ignore_images = False
    converter.mark_code = False
    return converter.handle(html)


def markdownify_convert(html: str) -> str:
    """More permissive conversion: ATX headings, fenced code blocks, '-' bullets."""
    # <pre> blocks are emitted as ``` fences
    return markdownify(html, heading_style=ATX, bullets="-")


def strip_tags(html: str) -> str:
    """Terminal fallback: drop all tags and collapse whitespace."""
    text = _TAG_RE.sub("", html)
    return _WHITESPACE_RE.sub(" ", html_lib.unescape(text)).strip()


def default_tiers(timeout_seconds: float) -> list[ConversionTier]:
    return [
        ConversionTier("html2text", html2text_convert, timeout_seconds),
        ConversionTier("markdownify", markdownify_convert, timeout_seconds),
    ]


async def run_tiers(
    html: str,
    tiers: list[ConversionTier],
    fallback: Callable[[str], str] = strip_tags,
) -> tuple[str, str]:
    """Return ``(text, tier_name)`` from the first tier with a non-empty result.

    Every tier failure (exception, timeout, empty output) is logged and the
    next tier is tried. ``fallback`` runs last and must not raise.
    """
    for tier in tiers:
        try:
            logger.debug("Trying %s...", tier.name)
            result = await asyncio.wait_for(
                asyncio.to_thread(tier.attempt, html),
                timeout=tier.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "%s failed: timeout after %.1fs", tier.name, tier.timeout_seconds
            )
            continue
        except Exception as e:
            logger.warning("%s failed: %s", tier.name, e)
            continue

        if result and result.strip():
            logger.debug("%s success (%d chars)", tier.name, len(result))
            return result, tier.name
        logger.warning("%s returned empty output", tier.name)

    text = fallback(html)
    logger.info("Using plain-text fallback (%d chars)", len(text))
    return text, "plain-text"


class MarkdownConverter:
    """Convert article HTML to markdown through the tier chain."""

    def __init__(
        self,
        timeout_seconds: float = 5.0,
        tiers: list[ConversionTier] | None = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.tiers = tiers if tiers is not None else default_tiers(timeout_seconds)

    async def convert(self, html: str) -> str:
        """Convert ``html`` to markdown. Never raises."""
        text, _ = await run_tiers(html or "", self.tiers)
        return text
