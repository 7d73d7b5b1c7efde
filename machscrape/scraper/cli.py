"""Command-line interface for the listing scraper.

Usage:
    machscrape "https://www.machines4u.com.au/search/..."
    machscrape "https://www.machines4u.com.au/search/..." --stream
    machscrape "https://www.machines4u.com.au/search/..." --sse
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

from tqdm import tqdm

from machscrape.utils import get_config, get_logger, set_log_level
from machscrape.utils.exceptions import ConfigError

from .events import EventType
from .pipeline import ScrapePipeline
from .service import scrape_buffered, scrape_progressive

logger = get_logger(__name__)

LOGGER_NAMES = (
    "machscrape.scraper.collector",
    "machscrape.scraper.fetcher",
    "machscrape.scraper.parsers",
    "machscrape.scraper.pipeline",
    "machscrape.scraper.rate_limiter",
    "machscrape.scraper.service",
    __name__,
)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        prog="machscrape",
        description="Extract product records from a marketplace search results page",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # One JSON response once every detail page has been scraped
  machscrape "https://www.machines4u.com.au/brand/caterpillar/excavators/"

  # One JSON line per event as results arrive
  machscrape "https://www.machines4u.com.au/brand/caterpillar/excavators/" --stream

  # The same events as Server-Sent Events frames
  machscrape "https://www.machines4u.com.au/brand/caterpillar/excavators/" --sse
        """
    )

    parser.add_argument('url', type=str, help='Search results page URL')

    parser.add_argument(
        '--stream',
        action='store_true',
        help='Emit progress and product events as they happen'
    )

    parser.add_argument(
        '--sse',
        action='store_true',
        help='Stream events as Server-Sent Events frames instead of JSON lines'
    )

    parser.add_argument(
        '--config',
        type=Path,
        default=None,
        help='Path to configuration file (default: auto-detect)'
    )

    parser.add_argument(
        '--log-level',
        type=str,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default=None,
        help='Override log level'
    )

    return parser.parse_args(argv)


async def _run_buffered(url: str, pipeline: ScrapePipeline) -> int:
    response = await scrape_buffered(url, pipeline)
    print(json.dumps(response.to_dict(), indent=2, ensure_ascii=False))
    return 0 if response.success else 1


async def _run_stream(url: str, pipeline: ScrapePipeline, sse: bool = False) -> int:
    exit_code = 1

    with tqdm(desc="Scraping products", unit="item", file=sys.stderr) as progress:
        async for event in scrape_progressive(url, pipeline):
            if sse:
                print(event.to_sse(), end="", flush=True)
            else:
                print(json.dumps({"event": event.type.value, **event.data}, ensure_ascii=False), flush=True)

            if event.type is EventType.STATUS and "current" in event.data:
                if progress.total is None:
                    progress.total = event.data["total"]
                progress.update(1)
            elif event.type is EventType.DONE:
                exit_code = 0

    return exit_code


async def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    args = parse_args(argv)

    try:
        config = get_config(args.config)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    level = args.log_level or config.log_level
    if level != "INFO":
        for name in LOGGER_NAMES:
            set_log_level(get_logger(name), level)

    pipeline = ScrapePipeline(config=config)

    try:
        if args.stream or args.sse:
            return await _run_stream(args.url, pipeline, sse=args.sse)
        return await _run_buffered(args.url, pipeline)
    except KeyboardInterrupt:
        logger.warning("Scraping interrupted by user")
        return 1


def run() -> None:
    """Console script entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == '__main__':
    run()
