"""
news_edition

Build periodic news editions from text-only news sites.

Pipeline: index -> fetch (bounded pool) -> summarize (one request at a time)
-> JSON feed rewritten after every article -> Markdown edition merged into an
mdBook document tree.
"""
from .edition import EditionResult, build_edition, run
from .models import ArticleSummary, Edition

__all__ = [
    "ArticleSummary",
    "Edition",
    "EditionResult",
    "build_edition",
    "run",
]
