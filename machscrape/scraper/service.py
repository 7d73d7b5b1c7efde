"""Delivery modes over the scrape pipeline.

- Buffered: one aggregate response once the run completes.
- Progressive: a stream of typed events ending in one terminal event.

Both take only the listing URL; everything else comes from configuration.
"""

from typing import Any, AsyncIterator, Optional

from pydantic import BaseModel, Field

from machscrape.utils import get_logger, log_exception
from machscrape.utils.exceptions import AppException

from .events import ScrapeEvent
from .models import ProductRecord
from .pipeline import ScrapePipeline

logger = get_logger(__name__)


class BufferedResponse(BaseModel):
    """Aggregate result of a buffered run."""

    success: bool
    count: int = Field(default=0, ge=0)
    products: list[ProductRecord] = Field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def failure(cls, message: str) -> "BufferedResponse":
        return cls(success=False, error=message)

    def to_dict(self) -> dict[str, Any]:
        """Response body with export-keyed products; ``error`` only when set."""
        body: dict[str, Any] = {
            "success": self.success,
            "count": self.count,
            "products": [product.to_export_dict() for product in self.products],
        }
        if self.error is not None:
            body["error"] = self.error
        return body


async def scrape_buffered(url: Optional[str], pipeline: Optional[ScrapePipeline] = None) -> BufferedResponse:
    """Run the pipeline to completion and package the outcome.

    Missing or invalid input, fatal main-page errors and unexpected errors
    all produce ``success=False`` with an empty product list.
    """
    pipeline = pipeline or ScrapePipeline()

    try:
        outcome = await pipeline.run(url)
    except AppException as e:
        logger.error(f"Buffered scrape failed: {e}")
        return BufferedResponse.failure(e.message)
    except Exception as e:
        log_exception(logger, "buffered scrape", e)
        return BufferedResponse.failure(str(e) or "Failed to scrape the website")

    return BufferedResponse(success=True, count=outcome.count, products=outcome.records)


def scrape_progressive(url: Optional[str], pipeline: Optional[ScrapePipeline] = None) -> AsyncIterator[ScrapeEvent]:
    """Return the event stream for one run.

    The stream always ends with exactly one ``done`` or ``error`` event;
    closing it early abandons the run without a terminal event.
    """
    pipeline = pipeline or ScrapePipeline()
    return pipeline.stream(url)
