"""Utilities for retrieving article bodies with a bounded pool of workers."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from typing import Callable, Iterable, Iterator, List, Optional, Sequence

import requests
from bs4 import BeautifulSoup

from .fetchers import Source
from .models import ArticleContent, ArticleRef

LOGGER = logging.getLogger(__name__)

FetchFunc = Callable[[ArticleRef, int], Optional[ArticleContent]]


def build_session(user_agent: str) -> requests.Session:
    session = requests.Session()
    session.headers.update(
        {
            "User-Agent": user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        }
    )
    return session


def extract_text(html: str, selectors: Sequence[str]) -> str:
    """Return the text of every element matching ``selectors``, in selector order."""

    soup = BeautifulSoup(html, "html.parser")
    lines: List[str] = []
    for selector in selectors:
        for element in soup.select(selector):
            text = " ".join(element.get_text(" ", strip=True).split())
            if text:
                lines.append(text)
    return "\n".join(lines)


def fetch_article(
    ref: ArticleRef,
    source: Source,
    session: requests.Session,
    index: int = 0,
    timeout: float = 20.0,
    max_chars: int = 60000,
) -> Optional[ArticleContent]:
    """Fetch and extract one article body.

    Returns ``None`` when the request fails or the page has no matching text.
    """

    try:
        response = session.get(ref.url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        LOGGER.warning("Unable to fetch article body for %s: %s", ref.url, exc)
        return None

    text = extract_text(response.text, source.body_selectors)
    if not text:
        LOGGER.warning("Fetch of %s produced no content", ref.url)
        return None
    if max_chars and len(text) > max_chars:
        text = text[:max_chars]

    LOGGER.debug("Parsed %d characters from %s", len(text), ref.url)
    return ArticleContent(
        source=ref.url,
        fetched_at=datetime.now(timezone.utc),
        raw_text=text,
        index=index,
    )


class FetchPool:
    """Run article fetches on a fixed number of worker threads."""

    def __init__(self, fetch: FetchFunc, max_workers: int) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.fetch = fetch
        self.max_workers = max_workers
        self.failed = 0

    def _run(self, ref: ArticleRef, index: int) -> Optional[ArticleContent]:
        try:
            return self.fetch(ref, index)
        except Exception:  # pragma: no cover - fetchers are expected to return None
            LOGGER.exception("Fetch of %s failed unexpectedly", ref.url)
            return None

    def iter_contents(self, refs: Iterable[ArticleRef], ordered: bool = True) -> Iterator[ArticleContent]:
        """Yield fetched articles as they become available.

        With ``ordered`` the results come back in index order even when later
        fetches finish first; otherwise in completion order.
        """

        executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="fetch")
        try:
            futures: List[Future] = [
                executor.submit(self._run, ref, index) for index, ref in enumerate(refs)
            ]
            for future in futures if ordered else as_completed(futures):
                content = future.result()
                if content is None:
                    self.failed += 1
                    continue
                yield content
        finally:
            # Abandoned iteration must not leave queued fetches running.
            executor.shutdown(wait=True, cancel_futures=True)
