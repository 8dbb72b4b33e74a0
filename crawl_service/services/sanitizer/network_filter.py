"""Request-level ad and tracker blocking for a single page.

The filter is a set of blocked host names. A request is aborted when its
host, or any parent domain of it, is in the set. The built-in list covers
the common ad and analytics networks; more hosts can be merged from
EasyList-style (``||example.com^``) or hosts-file lists.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Iterable
from urllib.parse import urlsplit

import httpx

if TYPE_CHECKING:
    from playwright.async_api import Page, Route

logger = logging.getLogger(__name__)

BUILTIN_BLOCKED_HOSTS = frozenset(
    {
        "doubleclick.net",
        "googleadservices.com",
        "googlesyndication.com",
        "google-analytics.com",
        "googletagmanager.com",
        "googletagservices.com",
        "adservice.google.com",
        "amazon-adsystem.com",
        "adnxs.com",
        "adsrvr.org",
        "advertising.com",
        "criteo.com",
        "criteo.net",
        "taboola.com",
        "outbrain.com",
        "scorecardresearch.com",
        "quantserve.com",
        "chartbeat.com",
        "chartbeat.net",
        "hotjar.com",
        "moatads.com",
        "pubmatic.com",
        "rubiconproject.com",
        "openx.net",
        "casalemedia.com",
        "smartadserver.com",
        "teads.tv",
        "yieldmo.com",
        "connect.facebook.net",
        "bat.bing.com",
        "ads.linkedin.com",
        "analytics.tiktok.com",
        "static.ads-twitter.com",
        "mixpanel.com",
        "segment.io",
    }
)

# ||ads.example.com^ and ||ads.example.com^$third-party
_EASYLIST_HOST_RULE = re.compile(r"^\|\|([a-z0-9.-]+\.[a-z]{2,})\^(?:\$.*)?$")
_HOSTS_SINK_ADDRESSES = {"0.0.0.0", "127.0.0.1", "::", "::1"}


def parse_filter_list(text: str) -> set[str]:
    """Extract blocked host names from an EasyList or hosts-format list.

    Cosmetic rules, exceptions (``@@``), and path-based rules are ignored.
    """
    hosts: set[str] = set()
    for raw_line in text.splitlines():
        line = raw_line.strip().lower()
        if not line or line.startswith(("!", "#", "[", "@@")):
            continue

        match = _EASYLIST_HOST_RULE.match(line)
        if match:
            hosts.add(match.group(1))
            continue

        parts = line.split()
        if len(parts) >= 2 and parts[0] in _HOSTS_SINK_ADDRESSES:
            host = parts[1]
            if host not in ("localhost", "0.0.0.0") and "." in host:
                hosts.add(host)
    return hosts


class NetworkFilter:
    """Abort page requests to known ad and tracker hosts.

    One instance is shared by all tabs; ``install()`` scopes the routing to
    a single page.
    """

    def __init__(self, blocked_hosts: Iterable[str] = BUILTIN_BLOCKED_HOSTS) -> None:
        self._blocked_hosts = frozenset(host.lower() for host in blocked_hosts)

    @property
    def rule_count(self) -> int:
        return len(self._blocked_hosts)

    def merge(self, hosts: Iterable[str]) -> NetworkFilter:
        """Return a new filter that also blocks ``hosts``."""
        return NetworkFilter(self._blocked_hosts | {host.lower() for host in hosts})

    def is_blocked(self, url: str) -> bool:
        host = (urlsplit(url).hostname or "").lower()
        if not host:
            return False
        labels = host.split(".")
        # example: a.b.tracker.com checks a.b.tracker.com, b.tracker.com, tracker.com
        return any(
            ".".join(labels[i:]) in self._blocked_hosts for i in range(len(labels) - 1)
        )

    async def install(self, page: Page) -> None:
        """Route every request of ``page`` through the filter."""
        await page.route("**/*", self._handle_route)

    async def _handle_route(self, route: Route) -> None:
        url = route.request.url
        if self.is_blocked(url):
            logger.debug("Blocked request: %s", url)
            await route.abort("blockedbyclient")
        else:
            await route.continue_()


async def load_network_filter(
    list_urls: list[str], client: httpx.AsyncClient | None = None
) -> NetworkFilter:
    """Build a filter from the built-in hosts plus any remote lists.

    Lists that fail to download are logged and skipped.
    """
    network_filter = NetworkFilter()
    if not list_urls:
        return network_filter

    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(timeout=30.0, follow_redirects=True)

    try:
        for url in list_urls:
            try:
                response = await client.get(url)
                response.raise_for_status()
            except httpx.HTTPError as e:
                logger.warning("Failed to load filter list %s: %s", url, e)
                continue
            hosts = parse_filter_list(response.text)
            logger.info("Loaded %d blocked hosts from %s", len(hosts), url)
            network_filter = network_filter.merge(hosts)
    finally:
        if owns_client:
            await client.aclose()

    return network_filter
