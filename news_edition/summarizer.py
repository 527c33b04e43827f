"""Summarization of article bodies through a single chat-completion backend.

The backend cannot serve two requests at once, so every call goes through a
:class:`SummarizationQueue`: one worker thread taking articles off a FIFO queue
and handing each to the backend only after the previous call has returned.
"""

from __future__ import annotations

import json
import logging
import queue
import re
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import openai
import yaml

from .config import Config
from .exceptions import BackendUnavailableError, ConfigError, SummaryParseError
from .models import ArticleContent, ArticleSummary

LOGGER = logging.getLogger(__name__)

_FENCE = re.compile(r"^\s*```(?:json)?\s*\n(?P<body>.*?)\n?\s*```\s*$", re.DOTALL)
_STOP = object()


@dataclass(frozen=True)
class Template:
    """Fixed instructions sent with every article."""

    system_prompt: str
    messages: List[Dict[str, str]] = field(default_factory=list)
    response_format: Optional[Dict[str, Any]] = None


def load_template(path: Path) -> Template:
    """Load a chat template from YAML."""

    try:
        with open(path, encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except FileNotFoundError as exc:
        raise ConfigError(f"Template file not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Could not parse template {path}: {exc}") from exc

    if not isinstance(data, dict) or not isinstance(data.get("system_prompt"), str):
        raise ConfigError(f"Template {path} needs a 'system_prompt' string")
    messages = data.get("messages") or []
    for message in messages:
        if not isinstance(message, dict) or {"role", "content"} - set(message):
            raise ConfigError(f"Template {path}: every message needs 'role' and 'content'")
    return Template(
        system_prompt=data["system_prompt"],
        messages=[{"role": m["role"], "content": m["content"]} for m in messages],
        response_format=data.get("response_format"),
    )


class ChatBackend:
    """OpenAI-compatible chat completions endpoint."""

    def __init__(self, config: Config, template: Template, client: Optional[openai.OpenAI] = None) -> None:
        self._config = config
        self._template = template
        self._client = client or openai.OpenAI(
            base_url=config.api_base,
            api_key=config.api_key or "not-needed",
            timeout=config.backend_timeout,
            max_retries=0,
        )

    def ask(self, text: str) -> str:
        limit = self._config.max_input_chars
        if limit and len(text) > limit:
            text = text[:limit]

        messages = [{"role": "system", "content": self._template.system_prompt}]
        messages.extend(self._template.messages)
        messages.append({"role": "user", "content": text})

        kwargs: Dict[str, Any] = {
            "model": self._config.model,
            "messages": messages,
            "temperature": self._config.temperature,
        }
        if self._config.max_tokens:
            kwargs["max_tokens"] = self._config.max_tokens
        if self._template.response_format:
            kwargs["response_format"] = self._template.response_format

        try:
            response = self._client.chat.completions.create(**kwargs)
        except openai.OpenAIError as exc:
            raise BackendUnavailableError(f"Backend request failed: {exc}") from exc

        content = response.choices[0].message.content if response and response.choices else None
        if not content:
            raise BackendUnavailableError("Backend returned an empty completion")
        return content


def parse_summary(payload: str, source: Optional[str]) -> ArticleSummary:
    """Decode and validate a backend response."""

    match = _FENCE.match(payload)
    if match:
        payload = match.group("body")
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        truncated = exc.pos >= len(payload.rstrip()) or exc.msg.startswith("Unterminated string")
        reason = "truncated JSON" if truncated else "invalid JSON"
        raise SummaryParseError(f"{reason}: {exc.msg} at position {exc.pos}") from exc
    try:
        return ArticleSummary.from_dict(data, source=source)
    except ValueError as exc:
        raise SummaryParseError(str(exc)) from exc


def truncate_for_log(text: str, limit: int = 200) -> str:
    if len(text) <= limit:
        return text
    return f"{text[:limit]}…(+{len(text) - limit} chars)"


class Summarizer:
    """Turn raw article text into an :class:`ArticleSummary`."""

    def __init__(self, backend: ChatBackend, attempts: int = 1) -> None:
        self.backend = backend
        self.attempts = max(1, attempts)

    def summarize(self, content: ArticleContent) -> ArticleSummary:
        attempt = 1
        while True:
            try:
                response = self.backend.ask(content.raw_text)
                return parse_summary(response, content.source)
            except (BackendUnavailableError, SummaryParseError) as exc:
                if attempt >= self.attempts:
                    raise
                LOGGER.info("Attempt %d/%d for %s failed (%s); asking again", attempt, self.attempts, content.source, exc)
                attempt += 1


class SummarizationQueue:
    """Serialize summarization calls on a single worker thread.

    ``on_summary`` runs on the worker thread right after each successful call,
    so callers that only mutate state from it need no locking.
    """

    def __init__(
        self,
        summarize: Callable[[ArticleContent], ArticleSummary],
        on_summary: Callable[[ArticleSummary], None],
    ) -> None:
        self._summarize = summarize
        self._on_summary = on_summary
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._error: Optional[Exception] = None
        self._closed = False
        self.submitted = 0
        self.completed = 0
        self.failed = 0
        self._worker = threading.Thread(target=self._run, name="summarizer", daemon=True)
        self._worker.start()

    def submit(self, content: ArticleContent) -> None:
        if self._closed:
            raise RuntimeError("queue is closed")
        if self._error is not None:
            # The worker has stopped; nothing more will be processed.
            return
        self.submitted += 1
        self._queue.put(content)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put(_STOP)

    def join(self) -> None:
        """Wait for queued items to drain and re-raise a fatal worker error."""

        self.close()
        self._worker.join()
        if self._error is not None:
            raise self._error

    @property
    def failed_fatally(self) -> bool:
        return self._error is not None

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            if self._error is not None:
                continue
            try:
                self._process(item)
            except Exception as exc:  # surfaced to the driver by join()
                LOGGER.error("Summarization worker stopped: %s", exc)
                self._error = exc

    def _process(self, content: ArticleContent) -> None:
        try:
            summary = self._summarize(content)
        except SummaryParseError as exc:
            self.failed += 1
            LOGGER.warning("Dropping %s: malformed summary (%s)", content.source, truncate_for_log(str(exc)))
        except BackendUnavailableError as exc:
            self.failed += 1
            LOGGER.warning("Dropping %s: backend unavailable (%s)", content.source, exc)
        else:
            self._on_summary(summary)
            self.completed += 1
        LOGGER.info(
            "Processed %d/%d articles (%d dropped)",
            self.completed + self.failed,
            self.submitted,
            self.failed,
        )
