"""Shared dataclasses and type definitions for an edition."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import urlparse

from dateutil import parser as date_parser

TIMES_OF_DAY = ("morning", "afternoon", "evening")
MORNING_STARTS = time(4, 0)
AFTERNOON_STARTS = time(12, 0)
EVENING_STARTS = time(20, 0)
DEFAULT_CATEGORY = "Uncategorized"

# Two defaults that disagree in every date field and in the hour; a value that
# parses identically under both carries that component itself.
_PARSE_DEFAULTS = (datetime(2000, 1, 1, 0, 0, 0), datetime(2001, 2, 2, 1, 0, 0))


def time_of_day(moment: time) -> str:
    """Classify a local clock time into an edition label."""

    if MORNING_STARTS <= moment < AFTERNOON_STARTS:
        return "morning"
    if AFTERNOON_STARTS <= moment < EVENING_STARTS:
        return "afternoon"
    return "evening"


def time_of_day_rank(label: str) -> Tuple[int, str]:
    """Sort key placing known labels in chronological order, unknown ones after."""

    if label in TIMES_OF_DAY:
        return TIMES_OF_DAY.index(label), label
    return len(TIMES_OF_DAY), label


def normalize_date(value: str) -> str:
    """Return ``value`` as an ISO date when it names a full calendar date."""

    try:
        first, second = (date_parser.parse(value, default=default) for default in _PARSE_DEFAULTS)
    except (ValueError, TypeError, OverflowError):
        return value
    if first.date() != second.date():
        return value
    return first.date().isoformat()


def normalize_time(value: str) -> str:
    """Return ``value`` as ``HH:MM:SS`` when it names a clock time."""

    try:
        first, second = (date_parser.parse(value, default=default) for default in _PARSE_DEFAULTS)
    except (ValueError, TypeError, OverflowError):
        return value
    if first.hour != second.hour:
        return value
    return first.strftime("%H:%M:%S")


@dataclass(frozen=True)
class ArticleRef:
    """A link to an article discovered on a source's index page."""

    source_site: str
    url: str


@dataclass(frozen=True)
class ArticleContent:
    """Raw article text as fetched, tagged with its position in the index."""

    source: str
    fetched_at: datetime
    raw_text: str
    index: int = 0


@dataclass(frozen=True)
class NamedEntity:
    name: str
    what: str = ""
    why: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {
            "name": self.name,
            "whatIsThisEntity": self.what,
            "whyIsThisEntityRelevantToTheArticle": self.why,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "NamedEntity":
        return cls(
            name=_require_str(data, "name"),
            what=_optional_str(data, "whatIsThisEntity"),
            why=_optional_str(data, "whyIsThisEntityRelevantToTheArticle"),
        )


@dataclass(frozen=True)
class ImportantDate:
    date: str
    description: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {
            "dateMentionedInArticle": self.date,
            "descriptionOfWhyDateIsRelevant": self.description,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ImportantDate":
        return cls(
            date=normalize_date(_require_str(data, "dateMentionedInArticle")),
            description=_optional_str(data, "descriptionOfWhyDateIsRelevant"),
        )


@dataclass(frozen=True)
class ImportantTimeframe:
    start: str
    end: str
    description: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {
            "approximateTimeFrameStart": self.start,
            "approximateTimeFrameEnd": self.end,
            "descriptionOfWhyTimeFrameIsRelevant": self.description,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ImportantTimeframe":
        return cls(
            start=_require_str(data, "approximateTimeFrameStart"),
            end=_require_str(data, "approximateTimeFrameEnd"),
            description=_optional_str(data, "descriptionOfWhyTimeFrameIsRelevant"),
        )


@dataclass(frozen=True)
class ArticleSummary:
    """Structured summary of one article as produced by the backend."""

    source: Optional[str]
    date_of_publication: str
    time_of_publication: str
    title: str
    summary_text: str
    named_entities: Tuple[NamedEntity, ...] = ()
    key_takeaways: Tuple[str, ...] = ()
    important_dates: Tuple[ImportantDate, ...] = ()
    important_timeframes: Tuple[ImportantTimeframe, ...] = ()
    category: str = DEFAULT_CATEGORY
    tags: Tuple[str, ...] = ()

    @property
    def source_tag(self) -> Optional[str]:
        """Return the site label of the source URL, e.g. ``cnn`` for lite.cnn.com."""

        if not self.source:
            return None
        host = urlparse(self.source).hostname
        if not host:
            return None
        parts = host.split(".")
        if len(parts) < 2:
            return None
        return parts[-2]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "dateOfPublication": self.date_of_publication,
            "timeOfPublication": self.time_of_publication,
            "title": self.title,
            "category": self.category,
            "summaryOfNewsArticle": self.summary_text,
            "keyTakeAways": list(self.key_takeaways),
            "namedEntities": [entity.to_dict() for entity in self.named_entities],
            "importantDates": [item.to_dict() for item in self.important_dates],
            "importantTimeframes": [item.to_dict() for item in self.important_timeframes],
            "tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], source: Optional[str] = None) -> "ArticleSummary":
        """Validate a decoded summary object.

        Raises ``ValueError`` when a required field is missing or has the wrong
        type. ``source`` overrides whatever the payload carries.
        """

        if not isinstance(data, Mapping):
            raise ValueError(f"expected an object, got {type(data).__name__}")
        title = _single_line(_require_str(data, "title"))
        summary_text = _require_str(data, "summaryOfNewsArticle").strip()
        if not title:
            raise ValueError("'title' is empty")
        if not summary_text:
            raise ValueError("'summaryOfNewsArticle' is empty")

        entities: List[NamedEntity] = []
        seen = set()
        for entity in map(NamedEntity.from_dict, _require_objects(data, "namedEntities")):
            key = entity.name.strip().casefold()
            if key in seen:
                continue
            seen.add(key)
            entities.append(entity)

        category = data.get("category")
        category = _single_line(category) if isinstance(category, str) else ""
        if not category:
            category = DEFAULT_CATEGORY
        tags = data.get("tags") or []
        if not isinstance(tags, list):
            tags = []

        return cls(
            source=source if source is not None else data.get("source"),
            date_of_publication=normalize_date(_require_str(data, "dateOfPublication")),
            time_of_publication=normalize_time(_require_str(data, "timeOfPublication")),
            title=title,
            summary_text=summary_text,
            named_entities=tuple(entities),
            key_takeaways=tuple(_require_strings(data, "keyTakeAways")),
            important_dates=tuple(map(ImportantDate.from_dict, _require_objects(data, "importantDates"))),
            important_timeframes=tuple(
                map(ImportantTimeframe.from_dict, _require_objects(data, "importantTimeframes"))
            ),
            category=category,
            tags=tuple(str(tag) for tag in tags if str(tag).strip()),
        )


@dataclass
class Edition:
    """One pipeline run's worth of summarized articles."""

    local_date: str
    time_of_day: str
    local_time: str
    articles: List[ArticleSummary] = field(default_factory=list)

    @classmethod
    def started_at(cls, moment: datetime) -> "Edition":
        """Edition for a run starting at ``moment``.

        The evening edition runs past midnight; a run before the morning
        starts belongs to the previous day.
        """

        day = moment.date()
        if moment.time() < MORNING_STARTS:
            day -= timedelta(days=1)
        return cls(
            local_date=day.isoformat(),
            time_of_day=time_of_day(moment.time()),
            local_time=moment.strftime("%H:%M:%S"),
        )

    @property
    def key(self) -> Tuple[str, str]:
        return self.local_date, self.time_of_day

    def to_dict(self) -> Dict[str, Any]:
        return {
            "local_date": self.local_date,
            "time_of_day": self.time_of_day,
            "local_time": self.local_time,
            "articles": [article.to_dict() for article in self.articles],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Edition":
        return cls(
            local_date=_require_str(data, "local_date"),
            time_of_day=_require_str(data, "time_of_day"),
            local_time=_require_str(data, "local_time"),
            articles=[ArticleSummary.from_dict(item) for item in _require_objects(data, "articles")],
        )


def _single_line(value: str) -> str:
    # Titles and categories become Markdown list items; a line break would split the entry.
    return " ".join(value.split())


def _require_str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise ValueError(f"{key!r} must be a string")
    return value


def _optional_str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    return value if isinstance(value, str) else ""


def _require_strings(data: Mapping[str, Any], key: str) -> List[str]:
    value = data.get(key)
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"{key!r} must be a list of strings")
    return value


def _require_objects(data: Mapping[str, Any], key: str) -> List[Mapping[str, Any]]:
    value = data.get(key)
    if not isinstance(value, list) or not all(isinstance(item, Mapping) for item in value):
        raise ValueError(f"{key!r} must be a list of objects")
    return value
