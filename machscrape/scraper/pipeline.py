"""
Batch orchestration of listing discovery and detail extraction.

Run lifecycle:
    IDLE -> FETCHING_MAIN -> EXTRACTING_REFERENCES -> ITERATING_DETAILS -> DONE
    (any fatal error on the main page -> FAILED)

Detail pages are processed strictly one at a time in collection order,
with a fixed pause between fetches. A failing detail page becomes a
failed ItemResult and never aborts the batch.

Example:
    >>> pipeline = ScrapePipeline()
    >>> outcome = await pipeline.run("https://www.machines4u.com.au/search/...")
    >>> print(f"{outcome.count} records, {outcome.failure_count} failed")

    >>> async for event in pipeline.stream(url):
    ...     print(event.to_sse(), end="")
"""

from __future__ import annotations

from contextlib import aclosing, nullcontext
from enum import Enum
from typing import AsyncContextManager, AsyncIterator, Optional

from machscrape.utils import AppConfig, get_config, get_logger, log_execution_time, require_listing_url
from machscrape.utils.exceptions import AppException, NetworkError, PerItemError

from .collector import ReferenceCollector
from .events import ScrapeEvent
from .fetcher import DocumentFetcher, DocumentSource
from .models import ItemFailure, ItemResult, ListingReference, ScrapeOutcome
from .parsers import DetailParser
from .rate_limiter import RateLimiter

logger = get_logger(__name__)


class RunState(str, Enum):
    IDLE = "idle"
    FETCHING_MAIN = "fetching_main"
    EXTRACTING_REFERENCES = "extracting_references"
    ITERATING_DETAILS = "iterating_details"
    DONE = "done"
    FAILED = "failed"


class ScrapeRun:
    """
    State owned by a single pipeline run.

    Nothing here is shared between runs, so concurrent runs on one
    pipeline need no locking.

    Attributes:
        url: Listing page URL.
        state: Current RunState.
        references: References collected from the listing page.
        outcome: Records and failures accumulated so far.
    """

    def __init__(self, pipeline: "ScrapePipeline", url: str):
        self.pipeline = pipeline
        self.url = url
        self.state = RunState.IDLE
        self.references: list[ListingReference] = []
        self.outcome = ScrapeOutcome(source_url=url)
        self.limiter = RateLimiter(pipeline.config.scraper.request_delay)

    async def _process(self, source: DocumentSource, reference: ListingReference) -> ItemResult:
        """Fetch and extract one detail page, isolating any failure."""
        try:
            html = await source.fetch(reference.url)
            record = self.pipeline.parser.parse(html, reference.url)
            if not record.has_content:
                raise PerItemError("No recoverable fields on detail page", url=reference.url)
        except (PerItemError, NetworkError) as e:
            return self._failed(reference, e)
        except Exception as e:
            logger.debug(f"Unexpected error on {reference.url}", exc_info=True)
            wrapped = PerItemError(f"{type(e).__name__}: {e}", url=reference.url, cause=e)
            return self._failed(reference, wrapped)

        return ItemResult(reference=reference, record=record)

    def _failed(self, reference: ListingReference, error: AppException) -> ItemResult:
        logger.warning(f"Failed to scrape {reference.url}: {error.message}")
        logger.debug(f"Item failure detail: {error.to_dict()}")
        return ItemResult(reference=reference, error=ItemFailure(url=reference.url, reason=error.message))

    async def events(self) -> AsyncIterator[ScrapeEvent]:
        """
        Drive the run, yielding status and product events as they occur.

        No terminal event is produced here. Fatal errors (NetworkError on
        the main page, EmptyResultError) propagate to the caller after the
        state moves to FAILED. Closing the generator stops further fetches.
        """
        pipeline = self.pipeline
        yield ScrapeEvent.status(f"Starting scrape for: {self.url}")

        try:
            async with pipeline.source_factory() as source:
                self.state = RunState.FETCHING_MAIN
                html = await source.fetch(self.url)

                self.state = RunState.EXTRACTING_REFERENCES
                self.references = pipeline.collector.collect(html)
                total = len(self.references)
                yield ScrapeEvent.status(
                    f"Found {total} unique products to scrape. Starting detail scraping..."
                )

                self.state = RunState.ITERATING_DETAILS
                for index, reference in enumerate(self.references, start=1):
                    await self.limiter.wait()
                    yield ScrapeEvent.status(f"Scraping product {index}/{total}...", current=index, total=total)

                    result = await self._process(source, reference)
                    self.outcome.add(result)

                    if result.ok:
                        yield ScrapeEvent.product(result.record)
                    else:
                        yield ScrapeEvent.status(
                            f"Skipped product {index}/{total}: {result.error.reason}"
                        )
        except Exception:
            self.state = RunState.FAILED
            raise

        self.state = RunState.DONE
        logger.info(
            f"Run complete for {self.url}: {self.outcome.count} succeeded, "
            f"{self.outcome.failure_count} failed"
        )

    @property
    def summary(self) -> str:
        total = len(self.references)
        return f"Scraping complete! Successfully scraped {self.outcome.count} of {total} products."


class ScrapePipeline:
    """
    Listing page -> references -> detail records.

    Attributes:
        config: Application configuration.
        collector: Section-scoped reference collector.
        parser: Detail page field extractor.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        source: Optional[DocumentSource] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            config: Configuration. If None, uses get_config().
            source: Document source shared by runs. If None, each run opens
                its own DocumentFetcher.
        """
        self.config = config or get_config()
        self._source = source

        scraper_config = self.config.scraper
        self.collector = ReferenceCollector(
            base_url=scraper_config.base_url,
            selectors=self.config.selectors,
        )
        self.parser = DetailParser(
            selectors=self.config.selectors,
            price_rule=scraper_config.price_rule,
        )

    def source_factory(self) -> AsyncContextManager[DocumentSource]:
        """Per-run source; an injected source is used as is and left open."""
        if self._source is not None:
            return nullcontext(self._source)
        return DocumentFetcher(self.config.scraper)

    def start(self, url: Optional[str]) -> ScrapeRun:
        """
        Validate the listing URL and create a run for it.

        Raises:
            InvalidURLError: Before any network activity.
        """
        url = require_listing_url(url, self.config.scraper.allowed_domain)
        return ScrapeRun(self, url)

    async def run(self, url: Optional[str]) -> ScrapeOutcome:
        """
        Run to completion and return the aggregate outcome.

        Raises:
            InvalidURLError, NetworkError, EmptyResultError
        """
        scrape_run = self.start(url)

        with log_execution_time(logger, f"scrape of {scrape_run.url}"):
            async with aclosing(scrape_run.events()) as events:
                async for _ in events:
                    pass

        return scrape_run.outcome

    async def stream(self, url: Optional[str]) -> AsyncIterator[ScrapeEvent]:
        """
        Yield events as the run progresses, ending with exactly one
        ``done`` or ``error`` event. Errors never escape as exceptions.
        """
        try:
            scrape_run = self.start(url)
        except AppException as e:
            logger.warning(f"Rejected listing URL: {e}")
            yield ScrapeEvent.error(e.message)
            return

        terminal: ScrapeEvent
        try:
            async with aclosing(scrape_run.events()) as events:
                async for event in events:
                    yield event
        except AppException as e:
            logger.error(f"Scrape failed for {scrape_run.url}: {e}")
            terminal = ScrapeEvent.error(e.message)
        except Exception as e:
            logger.error(f"Scrape failed for {scrape_run.url}", exc_info=True)
            terminal = ScrapeEvent.error(str(e) or "A fatal error occurred.")
        else:
            terminal = ScrapeEvent.done(
                scrape_run.summary,
                count=scrape_run.outcome.count,
                failed=scrape_run.outcome.failure_count,
            )

        yield terminal
