"""High-level orchestration for building an edition."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

import requests

from .config import Config, load_config
from .content import FetchPool, build_session, fetch_article
from .documents import merge_edition
from .fetchers import index_sources
from .models import ArticleContent, ArticleRef, ArticleSummary, Edition
from .state import EditionStore
from .summarizer import ChatBackend, SummarizationQueue, Summarizer, load_template

LOGGER = logging.getLogger(__name__)


@dataclass
class EditionResult:
    edition: Edition
    feed_path: Path
    indexed: int
    fetched: int
    summarized: int
    dropped: int
    document_path: Optional[Path] = None


def build_edition(
    config: Config,
    summarize: Callable[[ArticleContent], ArticleSummary],
    session: requests.Session,
    now: Optional[datetime] = None,
) -> EditionResult:
    """Index, fetch and summarize one edition, keeping the JSON feed current.

    Fetches run on the pool while the summarization worker drains articles one
    at a time; every summary is appended to the feed before the next starts.
    """

    edition = Edition.started_at(now or datetime.now())
    store = EditionStore(edition, config.json_output_dir)
    store.flush()
    LOGGER.info("Starting %s edition for %s", edition.time_of_day, edition.local_date)

    refs = index_sources(config.sources, session, timeout=config.request_timeout)

    def fetch(ref: ArticleRef, index: int) -> Optional[ArticleContent]:
        return fetch_article(
            ref,
            config.source_named(ref.source_site),
            session,
            index=index,
            timeout=config.request_timeout,
            max_chars=config.max_article_chars,
        )

    pool = FetchPool(fetch, config.fetch_workers)
    summaries = SummarizationQueue(summarize, store.append)
    fetched = 0
    for content in pool.iter_contents(refs, ordered=config.preserve_order):
        fetched += 1
        summaries.submit(content)
        if summaries.failed_fatally:
            break
    summaries.join()

    LOGGER.info(
        "Edition built with %d articles (%d indexed, %d fetched, %d dropped)",
        len(edition.articles),
        len(refs),
        fetched,
        summaries.failed,
    )
    return EditionResult(
        edition=edition,
        feed_path=store.path,
        indexed=len(refs),
        fetched=fetched,
        summarized=summaries.completed,
        dropped=pool.failed + summaries.failed,
    )


def run(config: Config | None = None) -> EditionResult:
    config = config or load_config()
    started = time.monotonic()

    template = load_template(config.template_path)
    summarizer = Summarizer(ChatBackend(config, template), attempts=config.summary_attempts)
    with build_session(config.user_agent) as session:
        result = build_edition(config, summarizer.summarize, session)

    if not result.edition.articles:
        LOGGER.warning("No articles summarized for %s %s", result.edition.local_date, result.edition.time_of_day)
    result.document_path = merge_edition(
        result.edition,
        config.markdown_output_dir,
        title=config.edition_title,
        digest_editions=config.digest_editions,
    )
    LOGGER.info("Wrote edition to %s in %.2f seconds", result.document_path, time.monotonic() - started)
    return result


__all__ = ["EditionResult", "build_edition", "run"]
