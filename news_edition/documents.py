"""Markdown rendering of an edition and its place in the documentation tree.

Every index document is handled as a :class:`TreeDocument`: free-form header
lines, a mapping from chronological key to entry block, and trailing lines.
Merging an edition inserts a block only when its key is absent, so repeating a
merge leaves the files byte-identical.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from itertools import groupby
from pathlib import Path
from typing import Any, Callable, Dict, Hashable, List, Optional

from .exceptions import DocumentMergeError
from .models import ArticleSummary, Edition, time_of_day_rank
from .state import write_atomic

LOGGER = logging.getLogger(__name__)

EDITION_LINK = re.compile(r"\]\(\./(?P<date>\d{4}-\d{2}-\d{2})_(?P<tod>[A-Za-z]+)\.md\)")
DAY_LINK = re.compile(r"\]\(\./(?P<date>\d{4}-\d{2}-\d{2})\.md\)")

INDEX_FILE = "SUMMARY.md"
DIGEST_FILE = "daily_news.md"
INDEX_ANCHOR = f"- [Daily News](./{DIGEST_FILE})"
DEFAULT_INDEX_HEADER = ["# Summary", "", INDEX_ANCHOR]
DIGEST_HEADER = ["# Daily News"]

KeyFunc = Callable[[str], Optional[Hashable]]


def slugify(title: str) -> str:
    """Heading anchor for ``title`` as mdBook generates it."""

    kept = "".join(char for char in title.lower() if char.isalnum() or char in " -")
    return kept.replace(" ", "-")


def upcase(text: str) -> str:
    return text[:1].upper() + text[1:]


def edition_filename(edition: Edition) -> str:
    return f"{edition.local_date}_{edition.time_of_day}.md"


def _by_category(articles: List[ArticleSummary]):
    """Group articles by case-insensitive category, headed by the first spelling seen."""

    def folded(article: ArticleSummary) -> str:
        return article.category.casefold()

    for _key, group in groupby(sorted(articles, key=folded), key=folded):
        members = list(group)
        yield members[0].category, members


def render_edition(edition: Edition, title: str = "Text News") -> str:
    lines = [
        f"# {title}",
        "",
        f"#### {upcase(edition.time_of_day)} edition of {edition.local_date}, published at {edition.local_time}",
        "",
    ]
    if not edition.articles:
        lines += ["_No articles were summarized for this edition._", ""]

    for category, articles in _by_category(edition.articles):
        lines += [f"# {category}", ""]
        for article in articles:
            lines += [f"## {article.title}", ""]
            if article.source:
                tag = f" <small>`{article.source_tag}`</small>" if article.source_tag else ""
                lines.append(f"- [source]({article.source}){tag}")
            lines.append(f"- _Published: {article.date_of_publication} {article.time_of_publication}_")
            lines.append(f"- **{article.category}**")
            if article.tags:
                lines.append(f"- <small>tags: `{', '.join(article.tags)}`</small>")
            lines += ["", "### Summary", "", article.summary_text.strip(), ""]

            if article.key_takeaways:
                lines.append("### Key Takeaways")
                lines += [f"  - {takeaway}" for takeaway in article.key_takeaways]
                lines.append("")
            if article.named_entities:
                lines.append("### Named Entities")
                for entity in article.named_entities:
                    lines.append(f"- **{entity.name}**")
                    lines += [f"    - {text}" for text in (entity.what, entity.why) if text]
                lines.append("")
            if article.important_dates:
                lines.append("### Important Dates")
                for item in article.important_dates:
                    lines.append(f"  - **{item.date}**")
                    if item.description:
                        lines.append(f"    - {item.description}")
                lines.append("")
            if article.important_timeframes:
                lines.append("### Important Timeframes")
                for item in article.important_timeframes:
                    lines.append(f"  - **From _{item.start}_ to _{item.end}_**")
                    if item.description:
                        lines.append(f"    - {item.description}")
                lines.append("")
            lines += ["---", ""]

    LOGGER.debug("Rendered %d articles for %s", len(edition.articles), edition_filename(edition))
    return "\n".join(lines).rstrip("\n") + "\n"


@dataclass
class TreeDocument:
    """A Markdown list document viewed as ``key -> entry block``."""

    header: List[str]
    entries: Dict[Any, List[str]] = field(default_factory=dict)
    trailer: List[str] = field(default_factory=list)
    spaced: bool = True

    def render(self) -> str:
        lines = _strip_blank_tail(self.header)
        if self.entries:
            if lines and self.spaced:
                lines.append("")
            for block in self.entries.values():
                lines.extend(block)
        if self.trailer:
            if lines and self.spaced:
                lines.append("")
            lines.extend(self.trailer)
        return "\n".join(lines) + "\n" if lines else ""


def _strip_blank_tail(lines: List[str]) -> List[str]:
    lines = list(lines)
    while lines and not lines[-1].strip():
        lines.pop()
    return lines


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip(" \t"))


def parse_document(
    text: str,
    prefix: str,
    key_for: KeyFunc,
    anchor: Optional[str] = None,
    spaced: bool = True,
) -> TreeDocument:
    """Split ``text`` into header, keyed entry blocks and trailer.

    An entry starts at a line beginning with ``prefix`` for which ``key_for``
    returns a key; more deeply indented lines that follow belong to it. With
    ``anchor``, entries are only looked for after that line, which is appended
    to the header when missing. A repeated key keeps its first block.
    """

    lines = text.splitlines()
    depth = _indent(prefix)

    def entry_key(line: str) -> Optional[Hashable]:
        if not line.startswith(prefix) or _indent(line) != depth:
            return None
        return key_for(line)

    if anchor is not None:
        position = next((n for n, line in enumerate(lines) if line.strip() == anchor.strip()), None)
        if position is None:
            return TreeDocument(header=_strip_blank_tail(lines) + [anchor], spaced=spaced)
        header, rest = lines[: position + 1], lines[position + 1 :]
    else:
        position = next((n for n, line in enumerate(lines) if entry_key(line) is not None), len(lines))
        header, rest = lines[:position], lines[position:]

    entries: Dict[Any, List[str]] = {}
    trailer: List[str] = []
    block: Optional[List[str]] = None
    for n, line in enumerate(rest):
        key = entry_key(line)
        if key is not None:
            if key in entries:
                LOGGER.warning("Dropping repeated entry %r", line.strip())
                block = []
            else:
                block = entries[key] = [line]
        elif not line.strip():
            continue
        elif block is not None and _indent(line) > depth:
            block.append(line)
        else:
            trailer = _strip_blank_tail(rest[n:])
            break

    return TreeDocument(header=header, entries=entries, trailer=trailer, spaced=spaced)


def merge_entry(
    document: TreeDocument,
    key: Hashable,
    block: List[str],
    newest_first: bool = False,
    limit: Optional[int] = None,
) -> TreeDocument:
    """Return ``document`` with ``block`` inserted under ``key`` if absent."""

    if key in document.entries:
        return document
    entries = dict(document.entries)
    entries[key] = list(block)
    ordered = sorted(entries.items(), key=lambda item: item[0], reverse=newest_first)
    if limit:
        ordered = ordered[:limit]
    return replace(document, entries=dict(ordered))


def _edition_key(line: str):
    match = EDITION_LINK.search(line)
    if not match:
        return None
    return match.group("date"), time_of_day_rank(match.group("tod"))


def _time_key(line: str):
    key = _edition_key(line)
    return key[1] if key else None


def _day_key(line: str):
    match = DAY_LINK.search(line)
    return match.group("date") if match else None


def _article_links(edition: Edition, indent: str) -> List[str]:
    filename = edition_filename(edition)
    lines = []
    for category, articles in _by_category(edition.articles):
        lines.append(f"{indent}- [**{category}**](./{filename}#{slugify(category)})")
        for article in articles:
            tag = f"<small>`{article.source_tag}`</small> " if article.source_tag else ""
            lines.append(f"{indent}    - {tag}[{article.title}](./{filename}#{slugify(article.title)})")
    return lines


def merge_day_toc(existing: Optional[str], edition: Edition) -> str:
    """Per-day table of contents: one entry per time of day, in order."""

    if existing is None:
        existing = f"# Editions published on {edition.local_date}\n"
    document = parse_document(existing, "- ", _time_key)
    block = [f"- [{upcase(edition.time_of_day)}](./{edition_filename(edition)})"]
    block += _article_links(edition, "    ")
    return merge_entry(document, time_of_day_rank(edition.time_of_day), block).render()


def merge_master_index(existing: Optional[str], edition: Edition) -> str:
    """mdBook ``SUMMARY.md``: days newest first, editions in order within a day."""

    if existing is None:
        existing = "\n".join(DEFAULT_INDEX_HEADER) + "\n"
    document = parse_document(existing, "    - ", _day_key, anchor=INDEX_ANCHOR, spaced=False)

    day_line = f"    - [{edition.local_date}](./{edition.local_date}.md)"
    edition_line = f"        - [{upcase(edition.time_of_day)}](./{edition_filename(edition)})"
    edition_key = time_of_day_rank(edition.time_of_day)

    day_block = document.entries.get(edition.local_date)
    if day_block is None:
        return merge_entry(document, edition.local_date, [day_line, edition_line], newest_first=True).render()

    nested = parse_document("\n".join(day_block[1:]), "        - ", _time_key, spaced=False)
    merged = merge_entry(nested, edition_key, [edition_line])
    if merged is nested:
        return document.render()
    entries = dict(document.entries)
    entries[edition.local_date] = [day_block[0]] + merged.render().splitlines()
    return replace(document, entries=entries).render()


def merge_digest(existing: Optional[str], edition: Edition, limit: Optional[int] = 14) -> str:
    """Rolling digest of the most recent editions, newest first."""

    if existing is None:
        existing = "\n".join(DIGEST_HEADER) + "\n"
    document = parse_document(existing, "- ", _edition_key)
    block = [
        f"- [{edition.local_date} {upcase(edition.time_of_day)}](./{edition_filename(edition)})"
        f" ({len(edition.articles)} articles)"
    ]
    block += _article_links(edition, "    ")
    key = (edition.local_date, time_of_day_rank(edition.time_of_day))
    return merge_entry(document, key, block, newest_first=True, limit=limit).render()


def update_document(path: Path, merge: Callable[[Optional[str]], str]) -> bool:
    """Apply ``merge`` to the file at ``path``; write only when the text changes."""

    existing = path.read_text(encoding="utf-8") if path.exists() else None
    updated = merge(existing)
    if updated == existing:
        LOGGER.info("%s already up to date", path)
        return False
    write_atomic(path, updated)
    LOGGER.info("Updated %s", path)
    return True


def merge_edition(
    edition: Edition,
    markdown_output_dir: Path,
    title: str = "Text News",
    digest_editions: Optional[int] = 14,
) -> Path:
    """Write the edition document and fold it into the index documents.

    Each document is updated independently; failures are collected and raised
    together as :class:`DocumentMergeError` once every document was attempted.
    """

    markdown_output_dir = Path(markdown_output_dir)
    edition_path = markdown_output_dir / edition_filename(edition)
    steps = [
        (edition_path, lambda _existing: render_edition(edition, title)),
        (markdown_output_dir / f"{edition.local_date}.md", lambda existing: merge_day_toc(existing, edition)),
        (markdown_output_dir / INDEX_FILE, lambda existing: merge_master_index(existing, edition)),
        (
            markdown_output_dir / DIGEST_FILE,
            lambda existing: merge_digest(existing, edition, limit=digest_editions),
        ),
    ]

    failed: List[Path] = []
    for path, merge in steps:
        try:
            update_document(path, merge)
        except (OSError, UnicodeError) as exc:
            LOGGER.error("Could not update %s: %s", path, exc)
            failed.append(path)

    if failed:
        raise DocumentMergeError(failed)
    return edition_path
