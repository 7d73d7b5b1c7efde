"""HTML parsing for marketplace detail pages.

Each output field is resolved through an ordered chain of CSS locators;
the first locator yielding non-empty text wins. Extraction never raises:
a locator that fails degrades its field to the sentinel value.

Detail rows (Condition, Make, Model, Year) are read from a repeated
label/value element pattern in one linear pass that produces an
immutable label -> value mapping.
"""

import re
from types import MappingProxyType
from typing import Callable, Mapping, Optional

from bs4 import BeautifulSoup, Tag

from machscrape.utils import PriceRule, SelectorConfig, get_logger

from .models import NOT_AVAILABLE, ProductRecord
from .utils import clean_text, strip_label

logger = get_logger(__name__)

# Labels read from the label/value rows
DETAIL_LABELS = ("Condition", "Make", "Model", "Year")

_ASK_TOKEN = "ask"
_LEADING_DOLLAR = re.compile(r'\$\s*([\d,]+(?:\.\d+)?)')


def normalize_price(raw: str, rule: PriceRule = PriceRule.HYPHEN_STRIP) -> str:
    """Normalize raw price text to a digit string.

    Canonical rule (HYPHEN_STRIP):
    - no digit, or an "ask" token in any casing -> "" (price on application)
    - a hyphen marks a range; only the text after the first hyphen is kept
    - every non-digit character is stripped

    Examples:
    - "$12,000 - $14,500" -> "14500"
    - "Ask for Price" -> ""
    - "$8,990 + GST" -> "8990"

    RAW and LEADING_DOLLAR reproduce earlier pipeline output and are kept
    only for compatibility with data produced by those revisions.

    Args:
        raw: Price text as read from the page
        rule: Normalization rule

    Returns:
        Normalized price
    """
    if rule is PriceRule.RAW:
        return raw
    if rule is PriceRule.LEADING_DOLLAR:
        match = _LEADING_DOLLAR.search(raw or "")
        return match.group(1) if match else ""

    if not raw or not re.search(r'\d', raw) or _ASK_TOKEN in raw.lower():
        return ""
    if '-' in raw:
        raw = raw.split('-', 1)[1]
    return re.sub(r'\D', '', raw)


def region_from_location(text: str) -> str:
    """Return the last comma-separated segment of a location string.

    "Somewhere, Dubbo, NSW" -> "NSW"; text without commas is returned as is.
    """
    parts = text.split(',')
    if len(parts) > 1:
        return parts[-1].strip()
    return text.strip()


class DetailParser:
    """Extracts a ProductRecord from one detail page."""

    def __init__(
        self,
        selectors: Optional[SelectorConfig] = None,
        price_rule: PriceRule = PriceRule.HYPHEN_STRIP,
    ):
        self.selectors = selectors or SelectorConfig()
        self.price_rule = price_rule

    def parse(self, html: str, url: str) -> ProductRecord:
        """Extract all fields from a detail page.

        Args:
            html: Detail page document text
            url: URL the document was fetched from

        Returns:
            ProductRecord with sentinel values for unresolved fields
        """
        soup = BeautifulSoup(html or "", 'lxml')

        details = self._field("details", lambda: self.extract_details(soup), MappingProxyType({}))
        raw_price = self._field("price", lambda: self.extract_raw_price(soup), NOT_AVAILABLE)

        return ProductRecord(
            brand=details.get("Make", NOT_AVAILABLE),
            model=details.get("Model", NOT_AVAILABLE),
            condition=details.get("Condition", NOT_AVAILABLE),
            location=self._field("location", lambda: self.extract_location(soup), NOT_AVAILABLE),
            seller=self._field("seller", lambda: self.extract_seller(soup), NOT_AVAILABLE),
            year=details.get("Year", NOT_AVAILABLE),
            price=normalize_price(raw_price, self.price_rule),
            url=url,
            title=self._field("title", lambda: self.extract_title(soup), NOT_AVAILABLE),
        )

    def _field(self, name: str, extract: Callable, default):
        try:
            return extract()
        except Exception as e:
            logger.warning(f"Extraction of '{name}' failed, using default: {e}")
            return default

    def _first_text(self, soup: BeautifulSoup, selectors: list[str]) -> Optional[str]:
        """Try locators in order and return the first non-empty text."""
        for selector in selectors:
            found = soup.select_one(selector)
            if found is None:
                continue
            text = clean_text(found.get_text())
            if text:
                return text
        return None

    def extract_title(self, soup: BeautifulSoup) -> str:
        return self._first_text(soup, [self.selectors.title]) or NOT_AVAILABLE

    def extract_raw_price(self, soup: BeautifulSoup) -> str:
        """Normal price, then tax-exclusive price, then the generic container."""
        return self._first_text(soup, self.selectors.price_chain) or NOT_AVAILABLE

    def extract_seller(self, soup: BeautifulSoup) -> str:
        return self._first_text(soup, [self.selectors.seller]) or NOT_AVAILABLE

    def extract_location(self, soup: BeautifulSoup) -> str:
        text = self._first_text(soup, [self.selectors.location])
        if not text:
            return NOT_AVAILABLE
        return region_from_location(text) or NOT_AVAILABLE

    def label_value_pairs(self, soup: BeautifulSoup) -> list[tuple[str, Optional[str]]]:
        """Scan label/value elements in document order.

        Every element matching the label selector is a candidate label;
        its value is the immediately following sibling element, provided
        that sibling matches the same selector.
        """
        selector = self.selectors.detail_label
        pairs = []

        for element in soup.select(selector):
            label = strip_label(element.get_text())
            sibling = element.find_next_sibling(True)
            value = None
            if isinstance(sibling, Tag) and sibling.css.match(selector):
                value = clean_text(sibling.get_text())
            pairs.append((label, value))

        return pairs

    def extract_details(self, soup: BeautifulSoup) -> Mapping[str, str]:
        """Resolve the known labels into a read-only mapping.

        Unknown labels and labels without a value are ignored; a label
        that repeats takes its last value.
        """
        resolved = {
            label: value
            for label, value in self.label_value_pairs(soup)
            if label in DETAIL_LABELS and value
        }
        return MappingProxyType(resolved)
