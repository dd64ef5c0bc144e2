"""Template-ready notification payloads.

One explicit, immutable model per piece of data an email shows.  They
are built at the call site from rows already loaded in the transaction
and handed to the dispatcher after commit, so no payload ever touches
the database.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID
from zoneinfo import ZoneInfo

from django.conf import settings
from django.utils import dateformat, timezone
from pydantic import BaseModel, ConfigDict

DISPLAY_FORMAT = "F j, g:i A"


def format_display_time(value: datetime) -> str:
    """``"October 21, 3:30 PM"`` in the store's display timezone."""
    tz = ZoneInfo(settings.MERCH_DISPLAY_TIMEZONE)
    return dateformat.format(timezone.localtime(value, tz), DISPLAY_FORMAT)


class OrderLineItemInfo(BaseModel):
    """One option of an order: every unit of it collapsed into a line."""

    model_config = ConfigDict(frozen=True)

    item_name: str
    variant: Optional[str] = None
    picture_url: str = ""
    quantity_requested: int
    sale_price: int
    total: int


class PickupEventInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    description: str = ""
    location: str = ""
    start: str
    end: str

    @classmethod
    def build(
        cls,
        title: str,
        start: datetime,
        end: datetime,
        description: str = "",
        location: str = "",
    ) -> PickupEventInfo:
        return cls(
            title=title,
            description=description,
            location=location,
            start=format_display_time(start),
            end=format_display_time(end),
        )


class OrderInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_id: UUID
    items: List[OrderLineItemInfo]
    total_cost: int
    pickup_event: Optional[PickupEventInfo] = None


class PartialFulfillmentInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_id: UUID
    fulfilled_items: List[OrderLineItemInfo]
    unfulfilled_items: List[OrderLineItemInfo]
    pickup_event: Optional[PickupEventInfo] = None
