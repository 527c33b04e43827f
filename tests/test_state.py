"""Tests for news_edition.state."""

import json
from unittest.mock import patch

import pytest

from fakes import make_summary
from news_edition.exceptions import PersistenceError
from news_edition.models import Edition
from news_edition.state import EditionStore, feed_path, load_edition, write_atomic


def _edition() -> Edition:
    return Edition(local_date="2025-05-06", time_of_day="afternoon", local_time="13:00:00")


class TestWriteAtomic:
    def test_creates_parents_and_replaces(self, tmp_path) -> None:
        path = tmp_path / "nested" / "file.json"
        write_atomic(path, "first")
        write_atomic(path, "second")

        assert path.read_text(encoding="utf-8") == "second"
        assert [p.name for p in path.parent.iterdir()] == ["file.json"]

    def test_failed_replace_leaves_old_file(self, tmp_path) -> None:
        path = tmp_path / "file.json"
        write_atomic(path, "old")

        with patch("news_edition.state.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                write_atomic(path, "new")

        assert path.read_text(encoding="utf-8") == "old"
        assert [p.name for p in tmp_path.iterdir()] == ["file.json"]


class TestEditionStore:
    def test_feed_path_layout(self, tmp_path) -> None:
        assert feed_path(tmp_path, _edition()) == tmp_path / "2025-05-06" / "afternoon.json"

    def test_empty_edition_is_written(self, tmp_path) -> None:
        store = EditionStore(_edition(), tmp_path)
        store.flush()

        data = json.loads(store.path.read_text(encoding="utf-8"))
        assert data == {
            "local_date": "2025-05-06",
            "time_of_day": "afternoon",
            "local_time": "13:00:00",
            "articles": [],
        }

    def test_file_tracks_every_append(self, tmp_path) -> None:
        store = EditionStore(_edition(), tmp_path)
        store.flush()

        for count, title in enumerate(["One", "Two", "Three"], start=1):
            store.append(make_summary(title))
            on_disk = load_edition(store.path)
            assert [a.title for a in on_disk.articles] == ["One", "Two", "Three"][:count]

        assert len(store) == 3

    def test_rerun_replaces_previous_feed(self, tmp_path) -> None:
        first = EditionStore(_edition(), tmp_path)
        first.append(make_summary("Old"))

        second = EditionStore(_edition(), tmp_path)
        second.flush()

        assert load_edition(second.path).articles == []

    def test_write_failure_keeps_disk_and_memory_in_step(self, tmp_path) -> None:
        store = EditionStore(_edition(), tmp_path)
        store.append(make_summary("One"))
        store.append(make_summary("Two"))

        with patch("news_edition.state.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(PersistenceError, match="afternoon.json"):
                store.append(make_summary("Three"))

        assert len(store) == 2
        assert [a.title for a in load_edition(store.path).articles] == ["One", "Two"]
        assert [p.name for p in store.path.parent.iterdir()] == ["afternoon.json"]

    def test_non_ascii_text_is_kept_readable(self, tmp_path) -> None:
        store = EditionStore(_edition(), tmp_path)
        store.append(make_summary("Zürich vote passes"))

        assert "Zürich" in store.path.read_text(encoding="utf-8")
