"""
Exception hierarchy for machscrape.

    AppException
    ├── ConfigError
    │   ├── ConfigFileNotFoundError
    │   └── ConfigValidationError
    ├── ValidationError
    │   └── InvalidURLError
    └── ScraperError
        ├── NetworkError
        ├── EmptyResultError
        └── PerItemError

``message`` is the text shown to consumers of a run; ``code`` and
``context`` are for logs and programmatic handling.

Example:
    >>> from machscrape.utils.exceptions import NetworkError
    >>> raise NetworkError("HTTP error! status: 503", url=url, status_code=503)
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


def _with_fields(context: Optional[Dict[str, Any]], **fields: Any) -> Dict[str, Any]:
    """Copy context and add every field that is not None."""
    merged = dict(context or {})
    merged.update({key: value for key, value in fields.items() if value is not None})
    return merged


# ============================================
# Base
# ============================================


class AppException(Exception):
    """
    Root of every error raised by machscrape.

    Attributes:
        message: Human-readable reason, without the code prefix.
        code: Stable identifier; defaults to the class's ``default_code``.
        context: Extra debugging data (URL, status, ...).
    """

    default_code = "APP_EXCEPTION"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.context = dict(context or {})

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, code={self.code!r}, context={self.context!r})"

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form for structured logs."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "code": self.code,
            "context": self.context,
        }


# ============================================
# Configuration
# ============================================


class ConfigError(AppException):
    """Configuration could not be loaded."""

    default_code = "CONFIG_ERROR"


class ConfigFileNotFoundError(ConfigError):
    """An explicitly requested configuration file does not exist."""

    default_code = "CONFIG_FILE_NOT_FOUND"

    def __init__(
        self,
        message: str = "Configuration file not found",
        path: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, context=_with_fields(context, path=path))


class ConfigValidationError(ConfigError):
    """Configuration is malformed or has invalid values."""

    default_code = "CONFIG_VALIDATION"


# ============================================
# Input validation
# ============================================


class ValidationError(AppException):
    """Run input was rejected. Always raised before any request is made."""

    default_code = "VALIDATION_ERROR"


class InvalidURLError(ValidationError):
    """The listing URL is missing, malformed or outside the marketplace domain."""

    default_code = "INVALID_URL"

    def __init__(
        self,
        message: str = "Invalid URL",
        url: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, context=_with_fields(context, url=url))


# ============================================
# Scraping
# ============================================


class ScraperError(AppException):
    """Fetching or collection failed."""

    default_code = "SCRAPER_ERROR"


class NetworkError(ScraperError):
    """
    A request failed, timed out, or returned a non-success status.

    Example:
        >>> raise NetworkError(
        ...     "HTTP error! status: 404",
        ...     url="https://www.machines4u.com.au/view/advert/1/",
        ...     status_code=404,
        ... )
    """

    default_code = "NETWORK_ERROR"

    def __init__(
        self,
        message: str = "Network request failed",
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        reason: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.url = url
        self.status_code = status_code
        self.reason = reason
        super().__init__(
            message,
            context=_with_fields(context, url=url, status_code=status_code, reason=reason),
        )


class EmptyReason(str, Enum):
    """Why the listing page produced no references."""

    SECTION_NOT_FOUND = "section_not_found"
    NO_LINKS = "no_links"


class EmptyResultError(ScraperError):
    """The listing page has no target section, or the section has no links."""

    default_code = "EMPTY_RESULT"

    MESSAGES = {
        EmptyReason.SECTION_NOT_FOUND: "Could not find a 'Listings' or 'Search Results' section.",
        EmptyReason.NO_LINKS: "No products found in the Listings section",
    }

    def __init__(
        self,
        reason: EmptyReason,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.reason = reason
        super().__init__(
            message or self.MESSAGES[reason],
            context=_with_fields(context, reason=reason.value),
        )


class PerItemError(ScraperError):
    """One detail page produced no record. Recorded by the run, never fatal."""

    default_code = "PER_ITEM"

    def __init__(
        self,
        message: str = "Failed to scrape detail page",
        url: Optional[str] = None,
        cause: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.url = url
        self.cause = cause
        super().__init__(
            message,
            context=_with_fields(context, url=url, cause=type(cause).__name__ if cause else None),
        )
