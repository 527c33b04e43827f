"""Index pages of the configured text-only news sites."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Tuple
from urllib.parse import urldefrag, urljoin

import feedparser
import requests
from bs4 import BeautifulSoup

from .exceptions import IndexFetchError
from .models import ArticleRef

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Source:
    """A news site whose index page enumerates article links."""

    name: str
    index_url: str
    link_selector: str = "a[href]"
    body_selectors: Tuple[str, ...] = ("body",)
    kind: str = "html"
    url_prefixes: Tuple[str, ...] = ()

    def accepts(self, url: str) -> bool:
        if not self.url_prefixes:
            return True
        return url.startswith(self.url_prefixes)


DEFAULT_SOURCES: Tuple[Source, ...] = (
    Source(
        name="cnn",
        index_url="https://lite.cnn.com",
        link_selector=".card--lite a[href]",
        body_selectors=(".headline--lite", ".article--lite"),
    ),
    Source(
        name="npr",
        index_url="https://text.npr.org",
        link_selector=".topic-title",
        body_selectors=(".story-head", ".paragraphs-container"),
    ),
)


def parse_links(html: str, base_url: str, selector: str = "a[href]") -> List[str]:
    """Return the absolute article links matched by ``selector``, in page order."""

    soup = BeautifulSoup(html, "html.parser")
    links: List[str] = []
    for element in soup.select(selector):
        href = element.get("href")
        if not href:
            continue
        url, _fragment = urldefrag(urljoin(base_url, href.strip()))
        if url.startswith(("http://", "https://")):
            links.append(url)
    return links


def parse_feed_links(document: bytes | str) -> List[str]:
    """Return the entry links of an RSS/Atom index, in feed order."""

    feed = feedparser.parse(document)
    if getattr(feed, "bozo", 0) and not feed.entries:
        raise IndexFetchError(f"Invalid RSS/Atom feed ({getattr(feed, 'bozo_exception', 'unknown error')})")
    return [entry.get("link") for entry in feed.entries if entry.get("link")]


def index_source(source: Source, session: requests.Session, timeout: float = 20.0) -> List[ArticleRef]:
    """Fetch one index page and return the article links it lists."""

    try:
        response = session.get(source.index_url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise IndexFetchError(f"{source.name} index request failed: {exc}") from exc

    if source.kind == "rss":
        urls = parse_feed_links(response.content)
    elif source.kind == "html":
        urls = parse_links(response.text, source.index_url, source.link_selector)
    else:
        raise IndexFetchError(f"{source.name}: unknown index kind {source.kind!r}")

    refs = [ArticleRef(source_site=source.name, url=url) for url in urls if source.accepts(url)]
    LOGGER.debug("%s URLs: %s", source.name, [ref.url for ref in refs])
    return refs


def index_sources(
    sources: Iterable[Source],
    session: requests.Session,
    timeout: float = 20.0,
) -> List[ArticleRef]:
    """Collect article links from all sources, dropping duplicate URLs.

    Sources are indexed in the given order and each keeps its page order. A URL
    already listed (by an earlier source or earlier on the same page) is
    skipped. A source whose index page fails contributes nothing.
    """

    aggregated: List[ArticleRef] = []
    seen_urls = set()

    for source in sources:
        try:
            refs = index_source(source, session, timeout=timeout)
        except IndexFetchError as exc:
            LOGGER.warning("Skipping source %s: %s", source.name, exc)
            continue
        added = 0
        for ref in refs:
            if ref.url in seen_urls:
                LOGGER.debug("Skipping duplicate article: %s", ref.url)
                continue
            seen_urls.add(ref.url)
            aggregated.append(ref)
            added += 1
        LOGGER.info("Indexed %d article urls from %s (%d duplicates)", added, source.index_url, len(refs) - added)

    LOGGER.info("Collected %d unique article urls", len(aggregated))
    return aggregated
