"""Listing discovery and detail extraction.

This package provides:
- DocumentFetcher: aiohttp document source with a browser identity
- DetailParser: locator-chain field extraction and price normalization
- ReferenceCollector: section-scoped detail link collection
- ScrapePipeline: sequential, paced orchestration with per-item isolation
- scrape_buffered / scrape_progressive: the two delivery modes

Usage:
    from machscrape.scraper import scrape_buffered

    response = await scrape_buffered("https://www.machines4u.com.au/search/...")
    print(response.count)
"""

from .collector import ReferenceCollector, SectionScanner, is_target_header
from .events import EventType, ScrapeEvent
from .fetcher import DocumentFetcher, DocumentSource
from .models import ItemFailure, ItemResult, ListingReference, ProductRecord, ScrapeOutcome, SectionBoundary
from .parsers import DetailParser, normalize_price
from .pipeline import RunState, ScrapePipeline, ScrapeRun
from .service import BufferedResponse, scrape_buffered, scrape_progressive

__all__ = [
    "ReferenceCollector",
    "SectionScanner",
    "is_target_header",
    "EventType",
    "ScrapeEvent",
    "DocumentFetcher",
    "DocumentSource",
    "ItemFailure",
    "ItemResult",
    "ListingReference",
    "ProductRecord",
    "ScrapeOutcome",
    "SectionBoundary",
    "DetailParser",
    "normalize_price",
    "RunState",
    "ScrapePipeline",
    "ScrapeRun",
    "BufferedResponse",
    "scrape_buffered",
    "scrape_progressive",
]
