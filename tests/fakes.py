"""Fake HTTP session and summary payload builders used across the tests."""

from __future__ import annotations

import threading
from typing import Dict, List, Optional, Union

import requests

from news_edition.models import ArticleSummary


class FakeResponse:
    def __init__(self, url: str, body: Union[str, bytes] = "", status_code: int = 200) -> None:
        self.url = url
        self.status_code = status_code
        self.content = body.encode("utf-8") if isinstance(body, str) else body
        self.text = body if isinstance(body, str) else body.decode("utf-8")

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} for {self.url}")


class FakeSession:
    """Serves canned pages; unknown URLs raise a connection error."""

    def __init__(self, pages: Optional[Dict[str, Union[str, bytes, int]]] = None) -> None:
        self.pages = dict(pages or {})
        self.requested: List[str] = []
        self._lock = threading.Lock()

    def __enter__(self) -> "FakeSession":
        return self

    def __exit__(self, *exc_info) -> None:
        return None

    def get(self, url: str, timeout: float = None) -> FakeResponse:
        with self._lock:
            self.requested.append(url)
        page = self.pages.get(url)
        if page is None:
            raise requests.ConnectionError(f"connection refused: {url}")
        if isinstance(page, int):
            return FakeResponse(url, "", status_code=page)
        return FakeResponse(url, page)


def summary_payload(title: str = "Council approves budget", **overrides) -> dict:
    payload = {
        "title": title,
        "dateOfPublication": "2025-05-06",
        "timeOfPublication": "14:30",
        "category": "Politics & Governance",
        "summaryOfNewsArticle": "The council approved the budget after a long debate.",
        "keyTakeAways": ["The budget passed", "Taxes stay flat"],
        "namedEntities": [
            {
                "name": "City Council",
                "whatIsThisEntity": "Local legislature",
                "whyIsThisEntityRelevantToTheArticle": "It passed the budget",
            }
        ],
        "importantDates": [
            {"dateMentionedInArticle": "July 1, 2025", "descriptionOfWhyDateIsRelevant": "Budget takes effect"}
        ],
        "importantTimeframes": [
            {
                "approximateTimeFrameStart": "2025-07-01",
                "approximateTimeFrameEnd": "2026-06-30",
                "descriptionOfWhyTimeFrameIsRelevant": "Fiscal year",
            }
        ],
        "tags": ["budget", "city"],
    }
    payload.update(overrides)
    return payload


def make_summary(title: str = "Council approves budget", source: str = "https://lite.cnn.com/2025/05/06/a", **overrides) -> ArticleSummary:
    return ArticleSummary.from_dict(summary_payload(title, **overrides), source=source)
