"""Configuration management system using Pydantic v2 and YAML.

This module provides type-safe configuration loading with validation
for the machscrape pipeline. Every setting has a working default, so a
run needs nothing beyond the listing URL.
"""

import os
from enum import Enum
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from .exceptions import ConfigFileNotFoundError, ConfigValidationError


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)

DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
}


class PriceRule(str, Enum):
    """Price normalization rules.

    HYPHEN_STRIP is the canonical rule. RAW and LEADING_DOLLAR reproduce
    output of earlier pipeline revisions and exist only for compatibility
    with datasets produced by them.
    """

    HYPHEN_STRIP = "hyphen_strip"
    RAW = "raw"
    LEADING_DOLLAR = "leading_dollar"


class ScraperConfig(BaseModel):
    """Configuration for document fetching and request pacing."""

    base_url: str = Field(default="https://www.machines4u.com.au", description="Site origin for relative links")
    allowed_domain: str = Field(default="machines4u.com.au", description="Domain accepted for listing URLs")
    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="Browser user agent sent with every request")
    extra_headers: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_HEADERS))
    timeout: float = Field(default=30, gt=0, description="Request timeout in seconds")
    request_delay: float = Field(default=0.2, ge=0.0, description="Pause between detail fetches in seconds")
    price_rule: PriceRule = Field(default=PriceRule.HYPHEN_STRIP)

    @field_validator('base_url')
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require an absolute http(s) origin without trailing slash."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError("base_url must start with http:// or https://")
        return v.rstrip('/')

    @field_validator('allowed_domain')
    @classmethod
    def validate_allowed_domain(cls, v: str) -> str:
        """Normalize the domain pattern."""
        v = v.strip().lower()
        if not v:
            raise ValueError("allowed_domain cannot be empty")
        return v

    @field_validator('user_agent')
    @classmethod
    def validate_user_agent(cls, v: str) -> str:
        """Ensure a user agent is always sent."""
        if not v.strip():
            raise ValueError("user_agent cannot be empty")
        return v


class SelectorConfig(BaseModel):
    """CSS selectors for listing and detail pages."""

    results_container: str = ".search-right-column"
    section_header: str = ".search-right-head-panel"
    listing_link: str = "a.equip_link"
    title: str = "h1.list-title"
    price_chain: list[str] = Field(
        default_factory=lambda: ["span.price_normal b", "span.price_gstex b", ".price_container"]
    )
    seller: str = ".business-name"
    location: str = 'a[onclick="showAdvertMap()"]'
    detail_label: str = ".ad_det_children"

    @field_validator('price_chain')
    @classmethod
    def validate_price_chain(cls, v: list[str]) -> list[str]:
        """Ensure at least one price locator exists."""
        if not v:
            raise ValueError("price_chain needs at least one selector")
        return v


class AppConfig(BaseModel):
    """Root configuration model containing all sub-configurations."""

    scraper: ScraperConfig = Field(default_factory=ScraperConfig)
    selectors: SelectorConfig = Field(default_factory=SelectorConfig)
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Choose from: {valid_levels}")
        return v_upper


# Singleton pattern for configuration
_config: Optional[AppConfig] = None


def _default_config_path() -> Path:
    env_config_path = os.environ.get('MACHSCRAPE_CONFIG')
    if env_config_path:
        return Path(env_config_path)
    return Path.cwd() / "config" / "config.yaml"


def load_config(config_path: Optional[Path | str] = None) -> AppConfig:
    """Load and validate configuration from YAML file.

    Args:
        config_path: Path to configuration file. When omitted, the
                    MACHSCRAPE_CONFIG env var or config/config.yaml is read
                    if it exists; otherwise built-in defaults are returned.

    Returns:
        Validated AppConfig instance

    Raises:
        ConfigFileNotFoundError: If an explicitly requested file doesn't exist
        ConfigValidationError: If configuration is invalid
    """
    if config_path is None:
        config_path = _default_config_path()
        if not config_path.exists():
            return AppConfig()
    else:
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigFileNotFoundError(
                f"Configuration file not found: {config_path}",
                path=str(config_path),
            )

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config_dict = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigValidationError(f"Malformed YAML in {config_path}: {e}") from e

    try:
        return AppConfig.model_validate(config_dict)
    except PydanticValidationError as e:
        raise ConfigValidationError(
            f"Invalid configuration in {config_path}: {e.error_count()} error(s)",
            context={"errors": e.errors(include_url=False)},
        ) from e


def get_config(config_path: Optional[Path | str] = None, reload: bool = False) -> AppConfig:
    """Get configuration instance (singleton pattern).

    Args:
        config_path: Path to configuration file (only used on first call or if reload=True)
        reload: Force reload of configuration

    Returns:
        Cached or newly loaded AppConfig instance
    """
    global _config

    if _config is None or reload:
        _config = load_config(config_path)

    return _config


def reset_config() -> None:
    """Reset cached configuration (useful for testing)."""
    global _config
    _config = None
