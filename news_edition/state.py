"""Persisted edition state: the JSON feed rewritten after every article."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from .exceptions import PersistenceError
from .models import ArticleSummary, Edition

LOGGER = logging.getLogger(__name__)


def write_atomic(path: Path, text: str) -> None:
    """Replace ``path`` with ``text`` so readers see either the old or the new file."""

    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def feed_path(json_output_dir: Path, edition: Edition) -> Path:
    return Path(json_output_dir) / edition.local_date / f"{edition.time_of_day}.json"


def load_edition(path: Path) -> Edition:
    """Read a feed file back into an :class:`Edition`."""

    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return Edition.from_dict(data)


class EditionStore:
    """JSON-backed store holding the edition under construction.

    Every :meth:`append` rewrites the whole feed, so the file on disk always
    lists exactly the articles appended so far.
    """

    def __init__(self, edition: Edition, json_output_dir: Path) -> None:
        self.edition = edition
        self.path = feed_path(json_output_dir, edition)

    def __len__(self) -> int:
        return len(self.edition.articles)

    def flush(self) -> None:
        payload = json.dumps(self.edition.to_dict(), ensure_ascii=False, indent=2)
        try:
            write_atomic(self.path, payload + "\n")
        except OSError as exc:
            raise PersistenceError(f"Could not write feed {self.path}: {exc}") from exc
        LOGGER.debug("Wrote %d articles to %s", len(self), self.path)

    def append(self, summary: ArticleSummary) -> None:
        self.edition.articles.append(summary)
        try:
            self.flush()
        except PersistenceError:
            self.edition.articles.pop()
            raise
        if len(self) == 1:
            LOGGER.info("Wrote JSON feed to %s", self.path)


__all__ = ["EditionStore", "feed_path", "load_edition", "write_atomic"]
