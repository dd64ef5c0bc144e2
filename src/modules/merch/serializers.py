"""Merch DRF serializers for API input/output.

Input serializers validate the HTTP payload shape; views turn the
validated data into the Pydantic DTOs the services accept.  Service
results are already DTOs, so only the filtered order listing uses a
model serializer for output.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.merch.models import Order

# ---------------------------------------------------------------------------
# Order Input Serializers
# ---------------------------------------------------------------------------


class OrderLineSerializer(serializers.Serializer):
    option_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class VerifyOrderSerializer(serializers.Serializer):
    """Validates an order verification request payload."""

    lines = OrderLineSerializer(many=True, allow_empty=False)
    pickup_event_id = serializers.UUIDField(required=False, allow_null=True)


class PlaceOrderSerializer(serializers.Serializer):
    """Validates the order placement request payload."""

    lines = OrderLineSerializer(many=True, allow_empty=False)
    pickup_event_id = serializers.UUIDField()


class FulfillmentUpdateSerializer(serializers.Serializer):
    item_id = serializers.UUIDField()
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class FulfillOrderSerializer(serializers.Serializer):
    items = FulfillmentUpdateSerializer(many=True, allow_empty=False)


class RescheduleOrderSerializer(serializers.Serializer):
    pickup_event_id = serializers.UUIDField()


# ---------------------------------------------------------------------------
# Pickup Event Input Serializers
# ---------------------------------------------------------------------------


class PickupEventSerializer(serializers.Serializer):
    """Validates pickup event creation (and, with ``partial=True``, edits)."""

    title = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    location = serializers.CharField(required=False, allow_blank=True, default="")
    start = serializers.DateTimeField()
    end = serializers.DateTimeField()
    order_limit = serializers.IntegerField(min_value=1)
    linked_event_id = serializers.UUIDField(required=False, allow_null=True)


# ---------------------------------------------------------------------------
# Catalog Input Serializers
# ---------------------------------------------------------------------------


class MerchCollectionSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, default="")


class OptionMetadataSerializer(serializers.Serializer):
    type = serializers.CharField()
    value = serializers.CharField()
    position = serializers.IntegerField(required=False, default=0)


class MerchItemOptionSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=0, required=False, default=0)
    price = serializers.IntegerField(min_value=1)
    discount_percentage = serializers.IntegerField(
        min_value=0, max_value=100, required=False, default=0
    )
    metadata = OptionMetadataSerializer(required=False, allow_null=True)


class MerchItemOptionEditSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    quantity_to_add = serializers.IntegerField(required=False)
    price = serializers.IntegerField(min_value=1, required=False)
    discount_percentage = serializers.IntegerField(
        min_value=0, max_value=100, required=False
    )
    metadata = OptionMetadataSerializer(required=False)


class MerchItemSerializer(serializers.Serializer):
    """Validates merch item creation, options included."""

    collection_id = serializers.UUIDField()
    name = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    picture_url = serializers.CharField(required=False, allow_blank=True, default="")
    hidden = serializers.BooleanField(required=False, default=False)
    has_variants_enabled = serializers.BooleanField(required=False, default=False)
    monthly_limit = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    lifetime_limit = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    options = MerchItemOptionSerializer(many=True, required=False, default=list)


class MerchItemEditSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    picture_url = serializers.CharField(required=False, allow_blank=True)
    hidden = serializers.BooleanField(required=False)
    has_variants_enabled = serializers.BooleanField(required=False)
    monthly_limit = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    lifetime_limit = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    options = MerchItemOptionEditSerializer(many=True, required=False)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for the filtered staff order list."""

    class Meta:
        model = Order
        fields = [
            "id",
            "user_id",
            "status",
            "total_cost",
            "ordered_at",
            "pickup_event_id",
        ]
        read_only_fields = fields
