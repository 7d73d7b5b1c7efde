"""Pydantic data models for listing references and extracted records.

References and records are frozen once created; the outcome model
aggregates one run's successes and per-item failures.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Value used for any field the extractor could not resolve
NOT_AVAILABLE = "N/A"


class ListingReference(BaseModel):
    """A unique detail-page URL found in the target section."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(..., description="Absolute detail page URL")
    position: int = Field(..., ge=0, description="Discovery order within the section")

    @field_validator('url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate URL format."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError("URL must start with http:// or https://")
        return v


class SectionBoundary(BaseModel):
    """Start and end headers delimiting the target listings section."""

    model_config = ConfigDict(frozen=True)

    start_label: str
    start_index: int = Field(..., ge=0)
    end_label: Optional[str] = None
    end_index: Optional[int] = None

    @property
    def is_open_ended(self) -> bool:
        """True when no header follows the target section."""
        return self.end_index is None


class ProductRecord(BaseModel):
    """Normalized fields extracted from one detail page."""

    model_config = ConfigDict(frozen=True)

    brand: str = NOT_AVAILABLE
    model: str = NOT_AVAILABLE
    condition: str = NOT_AVAILABLE
    location: str = NOT_AVAILABLE
    seller: str = NOT_AVAILABLE
    year: str = NOT_AVAILABLE
    # Empty string means price on application
    price: str = ""
    url: str = ""
    title: str = NOT_AVAILABLE

    @property
    def has_content(self) -> bool:
        """True when at least one field was resolved from the page."""
        resolved = (self.brand, self.model, self.condition, self.location, self.seller, self.year, self.title)
        return bool(self.price) or any(value != NOT_AVAILABLE for value in resolved)

    def to_export_dict(self) -> dict[str, str]:
        """Return the record keyed by its export column names."""
        return {
            "Brand": self.brand,
            "Model": self.model,
            "Condition": self.condition,
            "Location": self.location,
            "Seller": self.seller,
            "Year": self.year,
            "Price": self.price,
            "URL": self.url,
            "AD Title": self.title,
        }


class ItemFailure(BaseModel):
    """Summary of a detail page that produced no record."""

    model_config = ConfigDict(frozen=True)

    url: str
    reason: str


class ItemResult(BaseModel):
    """Outcome of processing one reference: a record or a failure, never both."""

    model_config = ConfigDict(frozen=True)

    reference: ListingReference
    record: Optional[ProductRecord] = None
    error: Optional[ItemFailure] = None

    @model_validator(mode='after')
    def validate_exclusive(self) -> 'ItemResult':
        """Exactly one of record and error must be present."""
        if (self.record is None) == (self.error is None):
            raise ValueError("ItemResult needs exactly one of record or error")
        return self

    @property
    def ok(self) -> bool:
        return self.record is not None


class ScrapeOutcome(BaseModel):
    """Terminal value of one pipeline run."""

    source_url: str
    records: list[ProductRecord] = Field(default_factory=list)
    failures: list[ItemFailure] = Field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.records)

    @property
    def failure_count(self) -> int:
        return len(self.failures)

    def add(self, result: ItemResult) -> None:
        """Fold one item result into the aggregate."""
        if result.ok:
            self.records.append(result.record)
        else:
            self.failures.append(result.error)
