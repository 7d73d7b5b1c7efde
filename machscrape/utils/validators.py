"""
Input validation utilities.
"""

from typing import Optional
from urllib.parse import urlparse

from .exceptions import InvalidURLError


def validate_url(url: str) -> bool:
    """
    Validate that a string is a well-formed absolute http(s) URL.

    Args:
        url: URL string to validate.

    Returns:
        True if valid URL, False otherwise.
    """
    try:
        result = urlparse(url)
    except (TypeError, ValueError):
        return False
    return result.scheme in ("http", "https") and bool(result.netloc)


def is_marketplace_url(url: str, domain: str) -> bool:
    """
    Check that URL belongs to the marketplace domain (or a subdomain of it).

    Args:
        url: URL string to validate.
        domain: Domain pattern, e.g. "machines4u.com.au".

    Returns:
        True if the host matches the domain.
    """
    if not validate_url(url):
        return False

    host = (urlparse(url).hostname or "").lower()
    domain = domain.lower()
    return host == domain or host.endswith("." + domain)


def require_listing_url(url: Optional[str], domain: str) -> str:
    """
    Validate the listing-page URL supplied to a run.

    Args:
        url: Candidate URL (may be None or empty).
        domain: Domain pattern the URL must belong to.

    Returns:
        The stripped URL.

    Raises:
        InvalidURLError: If the URL is missing, malformed, or off-domain.
    """
    if url is None or not url.strip():
        raise InvalidURLError("URL is required", url=url)

    url = url.strip()
    if not validate_url(url):
        raise InvalidURLError(f"Malformed URL: {url}", url=url)
    if not is_marketplace_url(url, domain):
        raise InvalidURLError(f"URL must belong to {domain}: {url}", url=url)

    return url
