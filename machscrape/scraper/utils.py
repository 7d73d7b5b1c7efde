"""Helper utilities for scraping operations."""

import re
from urllib.parse import urljoin


def clean_text(text: str | None) -> str:
    """Collapse runs of whitespace and trim.

    Args:
        text: Raw element text (may be None)

    Returns:
        Single-spaced, stripped text
    """
    if not text:
        return ""
    return re.sub(r'\s+', ' ', text).strip()


def resolve_url(href: str, base_url: str) -> str:
    """Make a link absolute against the site origin.

    Handles:
    - https://www.machines4u.com.au/view/advert/x/123/ (kept as is)
    - //www.machines4u.com.au/view/... (scheme-relative)
    - /view/advert/x/123/ (joined to the origin)

    Args:
        href: Link target as found in the document
        base_url: Site origin, e.g. https://www.machines4u.com.au

    Returns:
        Absolute URL
    """
    href = href.strip()
    if href.startswith(('http://', 'https://')):
        return href
    return urljoin(base_url.rstrip('/') + '/', href)


def strip_label(text: str) -> str:
    """Normalize a label cell: trim and drop a trailing colon.

    Args:
        text: Raw label text, e.g. "Make:"

    Returns:
        Label without trailing colon, e.g. "Make"
    """
    return clean_text(text).rstrip(':').strip()
