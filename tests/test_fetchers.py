"""Tests for news_edition.fetchers."""

import pytest

from fakes import FakeSession
from news_edition.exceptions import IndexFetchError
from news_edition.fetchers import Source, index_source, index_sources, parse_feed_links, parse_links

CNN_INDEX = """
<html><body>
  <ul>
    <li class="card--lite"><a href="/2025/05/06/politics/budget">Budget</a></li>
    <li class="card--lite"><a href="/2025/05/06/world/storm#comments">Storm</a></li>
    <li class="card--lite"><a href="https://lite.cnn.com/2025/05/06/shared">Shared</a></li>
    <li class="other"><a href="/about">About</a></li>
  </ul>
</body></html>
"""

NPR_INDEX = """
<html><body>
  <a class="topic-title" href="https://lite.cnn.com/2025/05/06/shared">Shared</a>
  <a class="topic-title" href="/nx-s1-1">Rover</a>
  <a class="topic-title" href="/nx-s1-2">Highway</a>
</body></html>
"""

RSS_INDEX = """<?xml version="1.0"?>
<rss version="2.0"><channel><title>Wire</title>
  <item><title>One</title><link>https://wire.example/one</link></item>
  <item><title>Two</title><link>https://wire.example/two</link></item>
</channel></rss>
"""

CNN = Source(name="cnn", index_url="https://lite.cnn.com", link_selector=".card--lite a[href]")
NPR = Source(name="npr", index_url="https://text.npr.org", link_selector=".topic-title")


class TestParseLinks:
    def test_resolves_relative_links_in_page_order(self) -> None:
        links = parse_links(CNN_INDEX, "https://lite.cnn.com", ".card--lite a[href]")

        assert links == [
            "https://lite.cnn.com/2025/05/06/politics/budget",
            "https://lite.cnn.com/2025/05/06/world/storm",
            "https://lite.cnn.com/2025/05/06/shared",
        ]

    def test_skips_non_http_links(self) -> None:
        html = '<a href="mailto:desk@example.com">Mail</a><a href="javascript:void(0)">x</a>'
        assert parse_links(html, "https://example.com") == []

    def test_feed_links(self) -> None:
        assert parse_feed_links(RSS_INDEX) == ["https://wire.example/one", "https://wire.example/two"]


class TestIndexSource:
    def test_html_source(self) -> None:
        session = FakeSession({"https://lite.cnn.com": CNN_INDEX})

        refs = index_source(CNN, session)

        assert [ref.source_site for ref in refs] == ["cnn"] * 3
        assert session.requested == ["https://lite.cnn.com"]

    def test_rss_source_with_prefix_filter(self) -> None:
        source = Source(
            name="wire",
            index_url="https://wire.example/rss",
            kind="rss",
            url_prefixes=("https://wire.example/two",),
        )
        session = FakeSession({"https://wire.example/rss": RSS_INDEX})

        refs = index_source(source, session)

        assert [ref.url for ref in refs] == ["https://wire.example/two"]

    def test_http_error_raises_index_error(self) -> None:
        session = FakeSession({"https://lite.cnn.com": 503})
        with pytest.raises(IndexFetchError):
            index_source(CNN, session)


class TestIndexSources:
    def test_cross_source_duplicates_collapse_to_first(self) -> None:
        session = FakeSession({"https://lite.cnn.com": CNN_INDEX, "https://text.npr.org": NPR_INDEX})

        refs = index_sources([CNN, NPR], session)

        urls = [ref.url for ref in refs]
        assert urls.count("https://lite.cnn.com/2025/05/06/shared") == 1
        assert refs[2].source_site == "cnn"
        assert urls[3:] == ["https://text.npr.org/nx-s1-1", "https://text.npr.org/nx-s1-2"]

    def test_failed_source_contributes_nothing(self) -> None:
        session = FakeSession({"https://text.npr.org": NPR_INDEX})

        refs = index_sources([CNN, NPR], session)

        assert [ref.source_site for ref in refs] == ["npr"] * 3

    def test_all_sources_failing_yields_empty_index(self) -> None:
        assert index_sources([CNN, NPR], FakeSession()) == []
