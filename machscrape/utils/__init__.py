"""Utility modules for configuration, logging, errors and validation."""

from .config import AppConfig, PriceRule, ScraperConfig, SelectorConfig, get_config, load_config, reset_config
from .logger import (
    get_logger,
    log_execution_time,
    set_log_level,
    log_exception,
)
from .validators import is_marketplace_url, require_listing_url, validate_url

__all__ = [
    # Configuration
    "AppConfig",
    "PriceRule",
    "ScraperConfig",
    "SelectorConfig",
    "get_config",
    "load_config",
    "reset_config",
    # Logging
    "get_logger",
    "log_execution_time",
    "set_log_level",
    "log_exception",
    # Validation
    "is_marketplace_url",
    "require_listing_url",
    "validate_url",
]
