"""Merch DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.  DTOs are
immutable (``frozen=True``).

Input DTOs are the contracts between the API layer (DRF serializers)
and the services.  Output DTOs are the only projections of merch
entities: each ``from_entity`` takes the related rows it needs as
explicit arguments instead of walking model relations.  They are keyed
by audience:

- ``OrderOutputDTO``: full order for its owner or merch staff.
- ``OrderSummaryDTO``: list rows.
- ``PickupEventPublicDTO`` / ``PickupEventAdminDTO``: members vs. staff.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from modules.merch.constants import OrderStatus

if TYPE_CHECKING:
    from modules.merch.models import (
        MerchItem,
        MerchItemOption,
        Order,
        OrderItem,
        OrderPickupEvent,
    )


def _reject_duplicates(values: Iterable[Any], message: str) -> None:
    values = list(values)
    if len(values) != len(set(values)):
        raise ValueError(message)


# ---------------------------------------------------------------------------
# Order input DTOs
# ---------------------------------------------------------------------------


class OrderLineDTO(BaseModel):
    """A single ``{option, quantity}`` line of an order request."""

    model_config = ConfigDict(frozen=True)

    option_id: UUID
    quantity: int

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class VerifyOrderDTO(BaseModel):
    """Pre-checkout validation request; the pickup event is optional."""

    model_config = ConfigDict(frozen=True)

    lines: List[OrderLineDTO]
    pickup_event_id: Optional[UUID] = None

    @field_validator("lines")
    @classmethod
    def lines_must_not_be_empty(cls, v: List[OrderLineDTO]) -> List[OrderLineDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v

    @model_validator(mode="after")
    def no_duplicate_options(self):
        """Prevent the same option appearing on two lines."""
        _reject_duplicates(
            (line.option_id for line in self.lines),
            "There are duplicate items in this order.",
        )
        return self


class PlaceOrderDTO(VerifyOrderDTO):
    """Order placement request: a pickup event is mandatory."""

    pickup_event_id: UUID


class FulfillmentUpdateDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    item_id: UUID
    notes: Optional[str] = None


class FulfillOrderDTO(BaseModel):
    """Fulfill some or all of an order's pending items.

    ``items`` may be any subset of the order's unfulfilled items.
    """

    model_config = ConfigDict(frozen=True)

    order_id: UUID
    items: List[FulfillmentUpdateDTO]

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: List[FulfillmentUpdateDTO]
    ) -> List[FulfillmentUpdateDTO]:
        if not v:
            raise ValueError("At least one item must be fulfilled.")
        return v

    @model_validator(mode="after")
    def no_duplicate_items(self):
        _reject_duplicates(
            (update.item_id for update in self.items),
            "Duplicate order items are not allowed in the same fulfillment.",
        )
        return self


# ---------------------------------------------------------------------------
# Pickup event input DTOs
# ---------------------------------------------------------------------------


class PickupEventDTO(BaseModel):
    """Pickup event creation request.

    ``start < end`` is checked by the service so the rejection carries a
    domain error like every other pickup-event rule.
    """

    model_config = ConfigDict(frozen=True)

    title: str = Field(min_length=1, max_length=255)
    description: str = ""
    location: str = ""
    start: datetime
    end: datetime
    order_limit: int = Field(ge=1)
    linked_event_id: Optional[UUID] = None


class PickupEventEditDTO(BaseModel):
    """Partial pickup event edit; only fields that were set are applied."""

    model_config = ConfigDict(frozen=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    location: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    order_limit: Optional[int] = Field(default=None, ge=1)
    linked_event_id: Optional[UUID] = None


# ---------------------------------------------------------------------------
# Catalog input DTOs
# ---------------------------------------------------------------------------


class MerchCollectionDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = Field(min_length=1, max_length=255)
    description: str = ""


class OptionMetadataDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str = Field(min_length=1)
    value: str = Field(min_length=1)
    position: int = 0


class MerchItemOptionDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    quantity: int = Field(default=0, ge=0)
    price: int = Field(ge=1)
    discount_percentage: int = Field(default=0, ge=0, le=100)
    metadata: Optional[OptionMetadataDTO] = None


class MerchItemOptionEditDTO(BaseModel):
    """Edit of an existing option.

    Stock is never overwritten: ``quantity_to_add`` (possibly negative)
    is applied to the current quantity.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID
    quantity_to_add: Optional[int] = None
    price: Optional[int] = Field(default=None, ge=1)
    discount_percentage: Optional[int] = Field(default=None, ge=0, le=100)
    metadata: Optional[OptionMetadataDTO] = None


class MerchItemDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    collection_id: UUID
    name: str = Field(min_length=1, max_length=255)
    description: str = ""
    picture_url: str = ""
    hidden: bool = False
    has_variants_enabled: bool = False
    monthly_limit: Optional[int] = Field(default=None, ge=1)
    lifetime_limit: Optional[int] = Field(default=None, ge=1)
    options: List[MerchItemOptionDTO] = Field(default_factory=list)


class MerchItemEditDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    picture_url: Optional[str] = None
    hidden: Optional[bool] = None
    has_variants_enabled: Optional[bool] = None
    monthly_limit: Optional[int] = Field(default=None, ge=1)
    lifetime_limit: Optional[int] = Field(default=None, ge=1)
    options: List[MerchItemOptionEditDTO] = Field(default_factory=list)

    @model_validator(mode="after")
    def no_duplicate_options(self):
        _reject_duplicates(
            (option.id for option in self.options),
            "Duplicate option IDs are not allowed in the same edit.",
        )
        return self


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class OrderItemOutputDTO(BaseModel):
    """Immutable DTO for a single purchased unit."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    option_id: UUID
    item_id: UUID
    item_name: str
    variant: Optional[str]
    sale_price_at_purchase: int
    discount_percentage_at_purchase: int
    fulfilled: bool
    fulfilled_at: Optional[datetime]
    notes: str

    @classmethod
    def from_entity(cls, item: OrderItem, option: MerchItemOption) -> OrderItemOutputDTO:
        return cls(
            id=item.id,
            option_id=option.id,
            item_id=option.item_id,
            item_name=option.item.name,  # type: ignore[attr-defined]
            variant=(option.metadata or {}).get("value"),
            sale_price_at_purchase=item.sale_price_at_purchase,
            discount_percentage_at_purchase=item.discount_percentage_at_purchase,
            fulfilled=item.fulfilled,
            fulfilled_at=item.fulfilled_at,
            notes=item.notes,
        )


class PickupEventPublicDTO(BaseModel):
    """Pickup event as shown to members choosing where to collect."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    title: str
    description: str
    location: str
    start: datetime
    end: datetime
    status: str
    order_limit: int
    linked_event_id: Optional[UUID]

    @classmethod
    def from_entity(cls, event: OrderPickupEvent) -> PickupEventPublicDTO:
        return cls(
            id=event.id,
            title=event.title,
            description=event.description,
            location=event.location,
            start=event.start,
            end=event.end,
            status=event.status,
            order_limit=event.order_limit,
            linked_event_id=event.linked_event_id,
        )


class OrderSummaryDTO(BaseModel):
    """Immutable DTO for order list rows (no items)."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    user_id: UUID
    status: str
    total_cost: int
    ordered_at: datetime
    pickup_event_id: Optional[UUID]

    @classmethod
    def from_entity(cls, order: Order) -> OrderSummaryDTO:
        return cls(
            id=order.id,
            user_id=order.user_id,
            status=order.status,
            total_cost=order.total_cost,
            ordered_at=order.ordered_at,
            pickup_event_id=order.pickup_event_id,
        )


class OrderOutputDTO(BaseModel):
    """Full order snapshot: items, status, pickup event and total cost."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    user_id: UUID
    status: str
    total_cost: int
    ordered_at: datetime
    pickup_event: Optional[PickupEventPublicDTO]
    items: List[OrderItemOutputDTO]

    @classmethod
    def from_entity(
        cls,
        order: Order,
        items: Iterable[OrderItem],
        pickup_event: Optional[OrderPickupEvent] = None,
    ) -> OrderOutputDTO:
        """Build the projection from rows the caller already loaded.

        ``items`` must carry their option (and the option's item) joined in.
        """
        return cls(
            id=order.id,
            user_id=order.user_id,
            status=order.status,
            total_cost=order.total_cost,
            ordered_at=order.ordered_at,
            pickup_event=(
                PickupEventPublicDTO.from_entity(pickup_event) if pickup_event else None
            ),
            items=[OrderItemOutputDTO.from_entity(i, i.option) for i in items],
        )


class PickupEventAdminDTO(PickupEventPublicDTO):
    """Pickup event for merch staff, with the orders booked against it."""

    active_order_count: int
    orders: List[OrderSummaryDTO]

    @classmethod
    def from_entity(  # type: ignore[override]
        cls, event: OrderPickupEvent, orders: Iterable[Order] = ()
    ) -> PickupEventAdminDTO:
        orders = list(orders)
        public = PickupEventPublicDTO.from_entity(event).model_dump()
        return cls(
            **public,
            active_order_count=sum(
                1 for o in orders if o.status != OrderStatus.CANCELLED
            ),
            orders=[OrderSummaryDTO.from_entity(o) for o in orders],
        )


class MerchItemOptionOutputDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    quantity: int
    price: int
    discount_percentage: int
    effective_price: int
    metadata: Optional[Dict[str, Any]]

    @classmethod
    def from_entity(cls, option: MerchItemOption) -> MerchItemOptionOutputDTO:
        return cls(
            id=option.id,
            quantity=option.quantity,
            price=option.price,
            discount_percentage=option.discount_percentage,
            effective_price=option.effective_price,
            metadata=option.metadata,
        )


class MerchItemOutputDTO(BaseModel):
    """Item detail; the ``*_remaining`` fields are for the viewing member."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    collection_id: UUID
    name: str
    description: str
    picture_url: str
    hidden: bool
    has_variants_enabled: bool
    monthly_limit: Optional[int]
    lifetime_limit: Optional[int]
    monthly_remaining: Optional[int] = None
    lifetime_remaining: Optional[int] = None
    options: List[MerchItemOptionOutputDTO]

    @classmethod
    def from_entity(
        cls,
        item: MerchItem,
        options: Iterable[MerchItemOption],
        monthly_remaining: Optional[int] = None,
        lifetime_remaining: Optional[int] = None,
    ) -> MerchItemOutputDTO:
        return cls(
            id=item.id,
            collection_id=item.collection_id,
            name=item.name,
            description=item.description,
            picture_url=item.picture_url,
            hidden=item.hidden,
            has_variants_enabled=item.has_variants_enabled,
            monthly_limit=item.monthly_limit,
            lifetime_limit=item.lifetime_limit,
            monthly_remaining=monthly_remaining,
            lifetime_remaining=lifetime_remaining,
            options=[MerchItemOptionOutputDTO.from_entity(o) for o in options],
        )


class MerchCollectionOutputDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    title: str
    description: str
    archived: bool
