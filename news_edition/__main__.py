"""Command-line entry point for building a news edition."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config import DEFAULT_CONFIG_FILE, DEFAULT_TEMPLATE_FILE, load_config
from .edition import run
from .exceptions import NewsEditionError

LOGGER = logging.getLogger("news_edition")


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    # Keep per-request chatter from the HTTP stack out of INFO output.
    for name in ("urllib3", "httpx", "openai"):
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="news-edition",
        description="Summarize the front pages of text-only news sites into an edition",
    )
    parser.add_argument("-j", "--json-output-dir", type=Path, required=True, help="Output directory for the JSON feed")
    parser.add_argument(
        "-m", "--markdown-output-dir", type=Path, required=True, help="Output directory for the Markdown documents"
    )
    parser.add_argument(
        "-c", "--config", type=Path, default=None, help=f"Path to the YAML config file (default: {DEFAULT_CONFIG_FILE})"
    )
    parser.add_argument(
        "-t", "--template", type=Path, default=DEFAULT_TEMPLATE_FILE, help="Path to the YAML prompt template"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(verbose=args.verbose)

    try:
        config = load_config(
            args.config,
            json_output_dir=args.json_output_dir,
            markdown_output_dir=args.markdown_output_dir,
            template_path=args.template,
        )
        result = run(config)
    except NewsEditionError as exc:
        LOGGER.error("%s", exc)
        return 1

    LOGGER.info(
        "Published %d articles (%d dropped); feed at %s",
        len(result.edition.articles),
        result.dropped,
        result.feed_path,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
