"""
Section-scoped collection of detail page references.

A search results page holds several header-delimited sections
("Spotlight Ads", "Listings", "Other Ads", ...). Only links between the
first header naming the primary results and the next header of any kind
are collected.

Example:
    >>> collector = ReferenceCollector()
    >>> references = collector.collect(html)
    >>> [ref.url for ref in references]
    ['https://www.machines4u.com.au/view/advert/...', ...]
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Optional

from bs4 import BeautifulSoup, Tag

from machscrape.utils import SelectorConfig, get_logger
from machscrape.utils.exceptions import EmptyReason, EmptyResultError

from .models import ListingReference, SectionBoundary
from .utils import clean_text, resolve_url

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://www.machines4u.com.au"


def is_target_header(text: str) -> bool:
    """True for the header that opens the primary results section."""
    text = text.strip()
    return text == "Listings" or "Search Results" in text


class ScanState(str, Enum):
    """Position of the scan relative to the target section."""

    OUTSIDE = "outside"
    INSIDE = "inside"
    CLOSED = "closed"


class SectionScanner:
    """
    Two-state boundary tracker driven by header text.

    OUTSIDE -> INSIDE on the first header accepted by the start predicate;
    INSIDE -> CLOSED on the next header, whatever its label. CLOSED is final.
    """

    def __init__(self, is_start: Callable[[str], bool] = is_target_header):
        self.is_start = is_start
        self.state = ScanState.OUTSIDE
        self._start: Optional[tuple[str, int]] = None
        self._end: Optional[tuple[str, int]] = None

    @property
    def inside(self) -> bool:
        return self.state is ScanState.INSIDE

    def on_header(self, label: str, index: int) -> ScanState:
        """Advance the state machine with the next header in document order."""
        if self.state is ScanState.OUTSIDE and self.is_start(label):
            self.state = ScanState.INSIDE
            self._start = (label, index)
        elif self.state is ScanState.INSIDE:
            self.state = ScanState.CLOSED
            self._end = (label, index)
        return self.state

    @property
    def boundary(self) -> Optional[SectionBoundary]:
        """Boundary of the target section, or None if it never opened."""
        if self._start is None:
            return None
        end_label, end_index = self._end or (None, None)
        return SectionBoundary(
            start_label=self._start[0],
            start_index=self._start[1],
            end_label=end_label,
            end_index=end_index,
        )


class ReferenceCollector:
    """Collects unique detail page URLs from the target section of a results page."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        selectors: Optional[SelectorConfig] = None,
        is_start: Callable[[str], bool] = is_target_header,
    ):
        self.base_url = base_url
        self.selectors = selectors or SelectorConfig()
        self.is_start = is_start

    def _container(self, soup: BeautifulSoup) -> Tag:
        """Results column when present, otherwise the whole document."""
        container = soup.select_one(self.selectors.results_container)
        if container is None:
            logger.debug("Results container not found, scanning whole document")
            return soup
        return container

    def scan(self, html: str) -> tuple[Optional[SectionBoundary], list[ListingReference]]:
        """
        Walk the document once and collect links inside the target section.

        Returns:
            (boundary, references); boundary is None when no header matched.
            References may be empty; no error is raised here.
        """
        soup = BeautifulSoup(html or "", 'lxml')
        scanner = SectionScanner(self.is_start)
        seen: dict[str, None] = {}
        header_index = 0

        for element in self._container(soup).find_all(True):
            if element.css.match(self.selectors.section_header):
                label = clean_text(element.get_text())
                state = scanner.on_header(label, header_index)
                header_index += 1
                logger.debug(f"Section header '{label}' -> {state.value}")
                if state is ScanState.CLOSED:
                    break
                continue

            if scanner.inside and element.css.match(self.selectors.listing_link):
                href = element.get('href')
                if href and href.strip():
                    seen.setdefault(resolve_url(href, self.base_url), None)

        references = [
            ListingReference(url=url, position=position)
            for position, url in enumerate(seen)
        ]
        return scanner.boundary, references

    def collect(self, html: str) -> list[ListingReference]:
        """
        Collect references, failing loudly when the section is missing or empty.

        Raises:
            EmptyResultError: SECTION_NOT_FOUND or NO_LINKS
        """
        boundary, references = self.scan(html)

        if boundary is None:
            logger.warning("No 'Listings' or 'Search Results' header found")
            raise EmptyResultError(EmptyReason.SECTION_NOT_FOUND)

        end = boundary.end_label if not boundary.is_open_ended else "end of page"
        logger.info(
            f"Target section '{boundary.start_label}' closed by '{end}': "
            f"{len(references)} unique links"
        )

        if not references:
            raise EmptyResultError(EmptyReason.NO_LINKS)

        return references
