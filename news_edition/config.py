"""Configuration utilities for the edition builder."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from .exceptions import ConfigError
from .fetchers import DEFAULT_SOURCES, Source

DEFAULT_CONFIG_FILE = Path(os.getenv("NEWS_EDITION_CONFIG", "config.yaml"))
DEFAULT_TEMPLATE_FILE = Path(os.getenv("NEWS_EDITION_TEMPLATE", "templates/news_parser.yaml"))
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/127.0.0.0 Safari/537.36"
)


@dataclass(frozen=True)
class Config:
    """Runtime configuration values for an edition run."""

    model: str
    api_base: str = "http://localhost:5001/v1"
    api_key: Optional[str] = None
    temperature: float = 0.2
    max_tokens: Optional[int] = None
    backend_timeout: float = 300.0
    summary_attempts: int = 1
    request_timeout: float = 20.0
    fetch_workers: int = 8
    preserve_order: bool = True
    max_input_chars: int = 24000
    max_article_chars: int = 60000
    digest_editions: int = 14
    edition_title: str = "Text News"
    user_agent: str = DEFAULT_USER_AGENT
    sources: Tuple[Source, ...] = DEFAULT_SOURCES
    json_output_dir: Path = Path("json")
    markdown_output_dir: Path = Path("markdown")
    template_path: Path = DEFAULT_TEMPLATE_FILE

    def source_named(self, name: str) -> Source:
        for source in self.sources:
            if source.name == name:
                return source
        raise KeyError(name)


def _parse_source(data: Any) -> Source:
    if not isinstance(data, dict) or not data.get("name") or not data.get("index_url"):
        raise ConfigError(f"Each source needs at least 'name' and 'index_url': {data!r}")
    kind = data.get("kind", "html")
    if kind not in ("html", "rss"):
        raise ConfigError(f"Source {data['name']}: kind must be 'html' or 'rss', got {kind!r}")
    return Source(
        name=str(data["name"]),
        index_url=str(data["index_url"]),
        link_selector=str(data.get("link_selector", "a[href]")),
        body_selectors=tuple(data.get("body_selectors") or ("body",)),
        kind=kind,
        url_prefixes=tuple(data.get("url_prefixes") or ()),
    )


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Could not parse config file {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def load_config(path: Optional[Path] = None, **overrides: Any) -> Config:
    """Load configuration from a YAML file, environment variables and overrides.

    Environment variables win over the file; keyword overrides (typically the
    command-line output directories) win over both.
    """

    if path is None and not DEFAULT_CONFIG_FILE.exists():
        data: Dict[str, Any] = {}
    else:
        data = _read_yaml(path or DEFAULT_CONFIG_FILE)

    known = {f.name for f in fields(Config)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")

    for key, env_var in (
        ("api_base", "NEWS_EDITION_API_BASE"),
        ("api_key", "NEWS_EDITION_API_KEY"),
        ("model", "NEWS_EDITION_MODEL"),
    ):
        value = os.getenv(env_var)
        if value:
            data[key] = value

    if "sources" in data:
        data["sources"] = tuple(_parse_source(item) for item in data["sources"] or ())
    for key in ("json_output_dir", "markdown_output_dir", "template_path"):
        if key in data:
            data[key] = Path(data[key])

    if not data.get("model"):
        raise ConfigError("No model configured; set 'model' in the config file or NEWS_EDITION_MODEL")

    try:
        config = Config(**data)
    except TypeError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc

    overrides = {key: value for key, value in overrides.items() if value is not None}
    if overrides:
        config = replace(config, **overrides)

    for key, minimum in (
        ("fetch_workers", 1),
        ("summary_attempts", 1),
        ("max_input_chars", 0),
        ("max_article_chars", 0),
    ):
        value = getattr(config, key)
        if not isinstance(value, int) or isinstance(value, bool):
            raise ConfigError(f"{key} must be an integer, got {value!r}")
        if value < minimum:
            raise ConfigError(f"{key} must be at least {minimum}")
    for key in ("temperature", "backend_timeout", "request_timeout"):
        value = getattr(config, key)
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            raise ConfigError(f"{key} must be a number, got {value!r}")
    return config
