"""Merch store models.

Business rules implemented here (the rest live in the service layer):
- ``MerchItemOption.effective_price`` applies the option discount with
  half-up rounding.
- ``OrderItem`` snapshots price and discount at purchase time: later
  option edits never affect past orders.
- One ``OrderItem`` row per physical unit ordered.
- ``Order.user`` and ``OrderItem.option`` use PROTECT to preserve purchase
  history; orders are never deleted, only status-transitioned.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.merch.constants import (
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    OrderPickupEventStatus,
    OrderStatus,
)


def compute_effective_price(price: int, discount_percentage: int) -> int:
    """``round(price * (1 - discount / 100))``, halves rounded up."""
    discounted = Decimal(price) * (100 - discount_percentage) / 100
    return int(discounted.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class MerchCollection(BaseModel):
    title: models.CharField = models.CharField(max_length=255)
    description: models.TextField = models.TextField(blank=True, default="")
    archived: models.BooleanField = models.BooleanField(default=False)

    class Meta:
        db_table = "merch_collections"
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return self.title


class MerchItem(BaseModel):
    """A sellable product.

    Variant invariant: with ``has_variants_enabled`` off an item has at
    most one option; with it on, every option carries metadata and all
    options share one metadata ``type`` (all sizes, never sizes mixed
    with colors).
    """

    collection: models.ForeignKey = models.ForeignKey(
        "merch.MerchCollection",
        on_delete=models.CASCADE,
        related_name="items",
    )
    name: models.CharField = models.CharField(max_length=255)
    description: models.TextField = models.TextField(blank=True, default="")
    picture_url: models.URLField = models.URLField(blank=True, default="")
    hidden: models.BooleanField = models.BooleanField(default=False)
    has_variants_enabled: models.BooleanField = models.BooleanField(default=False)
    monthly_limit: models.PositiveIntegerField = models.PositiveIntegerField(
        null=True, blank=True
    )
    lifetime_limit: models.PositiveIntegerField = models.PositiveIntegerField(
        null=True, blank=True
    )

    class Meta:
        db_table = "merch_items"
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class MerchItemOption(BaseModel):
    """One purchasable SKU of an item.

    ``metadata`` is ``{"type": ..., "value": ..., "position": ...}`` for
    items with variants, ``None`` otherwise.
    """

    item: models.ForeignKey = models.ForeignKey(
        "merch.MerchItem",
        on_delete=models.CASCADE,
        related_name="options",
    )
    quantity: models.PositiveIntegerField = models.PositiveIntegerField(default=0)
    price: models.PositiveIntegerField = models.PositiveIntegerField()
    discount_percentage: models.PositiveSmallIntegerField = (
        models.PositiveSmallIntegerField(
            default=0, validators=[MaxValueValidator(100)]
        )
    )
    metadata: models.JSONField = models.JSONField(null=True, blank=True, default=None)

    class Meta:
        db_table = "merch_item_options"
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(discount_percentage__lte=100),
                name="merch_option_discount_max_100",
            ),
        ]

    @property
    def effective_price(self) -> int:
        return compute_effective_price(self.price, self.discount_percentage)

    def __str__(self) -> str:
        variant = (self.metadata or {}).get("value")
        return f"{self.item} ({variant})" if variant else str(self.item)


# ---------------------------------------------------------------------------
# Pickup events
# ---------------------------------------------------------------------------


class OrderPickupEvent(BaseModel):
    """A scheduled time and place where orders are collected."""

    title: models.CharField = models.CharField(max_length=255)
    description: models.TextField = models.TextField(blank=True, default="")
    location: models.CharField = models.CharField(max_length=255, blank=True, default="")
    start: models.DateTimeField = models.DateTimeField()
    end: models.DateTimeField = models.DateTimeField()
    order_limit: models.PositiveIntegerField = models.PositiveIntegerField()
    status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderPickupEventStatus.choices,
        default=OrderPickupEventStatus.ACTIVE,
    )
    linked_event: models.ForeignKey = models.ForeignKey(
        "events.Event",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="pickup_events",
    )

    class Meta:
        db_table = "merch_order_pickup_events"
        ordering = ["start"]

    @property
    def is_active(self) -> bool:
        return self.status == OrderPickupEventStatus.ACTIVE

    def has_started(self, now=None) -> bool:
        return self.start <= (now or timezone.now())

    def __str__(self) -> str:
        return f"{self.title} ({self.start:%Y-%m-%d %H:%M})"


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


class Order(BaseModel):
    """A placed purchase.

    ``total_cost`` is frozen at placement and always equals the sum of
    its items' ``sale_price_at_purchase``.  ``pickup_event`` becomes
    ``None`` when its pickup event is cancelled.
    """

    user: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="merch_orders",
    )
    total_cost: models.PositiveIntegerField = models.PositiveIntegerField()
    status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PLACED,
    )
    pickup_event: models.ForeignKey = models.ForeignKey(
        "merch.OrderPickupEvent",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="orders",
    )
    ordered_at: models.DateTimeField = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "merch_orders"
        ordering = ["-ordered_at"]
        indexes = [
            models.Index(fields=["status"], name="merch_orders_status_idx"),
            models.Index(fields=["user", "-ordered_at"], name="merch_orders_user_idx"),
        ]

    # ------------------------------------------------------------------
    # State Machine helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        """Return ``True`` if the order is fulfilled or cancelled."""
        return self.status in TERMINAL_STATES

    def can_transition_to(self, new_status: str) -> bool:
        """Check whether transitioning to *new_status* is valid."""
        allowed = VALID_TRANSITIONS.get(self.status, set())
        return new_status in allowed

    def __str__(self) -> str:
        return f"Order {self.id} ({self.status})"


class OrderItem(BaseModel):
    """One unit of a purchased option."""

    order: models.ForeignKey = models.ForeignKey(
        "merch.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    option: models.ForeignKey = models.ForeignKey(
        "merch.MerchItemOption",
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    sale_price_at_purchase: models.PositiveIntegerField = models.PositiveIntegerField()
    discount_percentage_at_purchase: models.PositiveSmallIntegerField = (
        models.PositiveSmallIntegerField(default=0)
    )
    fulfilled: models.BooleanField = models.BooleanField(default=False)
    fulfilled_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    notes: models.TextField = models.TextField(blank=True, default="")

    class Meta:
        db_table = "merch_order_items"
        ordering = ["created_at", "id"]

    def __str__(self) -> str:
        state = "fulfilled" if self.fulfilled else "pending"
        return f"{self.option} [{state}]"
