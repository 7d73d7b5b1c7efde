"""Typed events for progressive result delivery.

A run emits zero or more ``status`` events, one ``product`` event per
extracted record, and exactly one terminal ``done`` or ``error`` event.
Events serialize to the Server-Sent Events wire format.
"""

import json
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from .models import ProductRecord


class EventType(str, Enum):
    STATUS = "status"
    PRODUCT = "product"
    DONE = "done"
    ERROR = "error"


TERMINAL_EVENTS = frozenset({EventType.DONE, EventType.ERROR})


class ScrapeEvent(BaseModel):
    """One message on the progressive result channel."""

    model_config = ConfigDict(frozen=True)

    type: EventType
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.type in TERMINAL_EVENTS

    @classmethod
    def status(cls, message: str, current: Optional[int] = None, total: Optional[int] = None) -> "ScrapeEvent":
        data: dict[str, Any] = {"message": message}
        if current is not None:
            data["current"] = current
            data["total"] = total
        return cls(type=EventType.STATUS, data=data)

    @classmethod
    def product(cls, record: ProductRecord) -> "ScrapeEvent":
        return cls(type=EventType.PRODUCT, data=record.to_export_dict())

    @classmethod
    def done(cls, message: str, count: int, failed: int) -> "ScrapeEvent":
        return cls(type=EventType.DONE, data={"message": message, "count": count, "failed": failed})

    @classmethod
    def error(cls, message: str) -> "ScrapeEvent":
        return cls(type=EventType.ERROR, data={"message": message})

    def to_sse(self) -> str:
        """Encode as an SSE frame: ``event: <type>`` and a JSON ``data`` line."""
        return f"event: {self.type.value}\ndata: {json.dumps(self.data, ensure_ascii=False)}\n\n"
