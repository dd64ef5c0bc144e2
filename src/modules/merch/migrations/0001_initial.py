import django.core.validators
import django.db.models.deletion
import django.utils.timezone
import uuid6
from django.conf import settings
from django.db import migrations, models


def _base_fields():
    return [
        ("id", models.UUIDField(default=uuid6.uuid7, editable=False, primary_key=True, serialize=False)),
        ("created_at", models.DateTimeField(auto_now_add=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
    ]


ORDER_STATUS_CHOICES = [
    ("PLACED", "Placed"),
    ("FULFILLED", "Fulfilled"),
    ("PARTIALLY_FULFILLED", "Partially fulfilled"),
    ("PICKUP_MISSED", "Pickup missed"),
    ("PICKUP_CANCELLED", "Pickup cancelled"),
    ("CANCELLED", "Cancelled"),
]

PICKUP_EVENT_STATUS_CHOICES = [
    ("ACTIVE", "Active"),
    ("COMPLETED", "Completed"),
    ("CANCELLED", "Cancelled"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("events", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="MerchCollection",
            fields=[
                *_base_fields(),
                ("title", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                ("archived", models.BooleanField(default=False)),
            ],
            options={
                "db_table": "merch_collections",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="MerchItem",
            fields=[
                *_base_fields(),
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                ("picture_url", models.URLField(blank=True, default="")),
                ("hidden", models.BooleanField(default=False)),
                ("has_variants_enabled", models.BooleanField(default=False)),
                ("monthly_limit", models.PositiveIntegerField(blank=True, null=True)),
                ("lifetime_limit", models.PositiveIntegerField(blank=True, null=True)),
                (
                    "collection",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="merch.merchcollection",
                    ),
                ),
            ],
            options={
                "db_table": "merch_items",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="MerchItemOption",
            fields=[
                *_base_fields(),
                ("quantity", models.PositiveIntegerField(default=0)),
                ("price", models.PositiveIntegerField()),
                (
                    "discount_percentage",
                    models.PositiveSmallIntegerField(
                        default=0,
                        validators=[django.core.validators.MaxValueValidator(100)],
                    ),
                ),
                ("metadata", models.JSONField(blank=True, default=None, null=True)),
                (
                    "item",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="options",
                        to="merch.merchitem",
                    ),
                ),
            ],
            options={
                "db_table": "merch_item_options",
                "ordering": ["created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(discount_percentage__lte=100),
                        name="merch_option_discount_max_100",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderPickupEvent",
            fields=[
                *_base_fields(),
                ("title", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                ("location", models.CharField(blank=True, default="", max_length=255)),
                ("start", models.DateTimeField()),
                ("end", models.DateTimeField()),
                ("order_limit", models.PositiveIntegerField()),
                (
                    "status",
                    models.CharField(
                        choices=PICKUP_EVENT_STATUS_CHOICES, default="ACTIVE", max_length=20
                    ),
                ),
                (
                    "linked_event",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="pickup_events",
                        to="events.event",
                    ),
                ),
            ],
            options={
                "db_table": "merch_order_pickup_events",
                "ordering": ["start"],
            },
        ),
        migrations.CreateModel(
            name="Order",
            fields=[
                *_base_fields(),
                ("total_cost", models.PositiveIntegerField()),
                (
                    "status",
                    models.CharField(choices=ORDER_STATUS_CHOICES, default="PLACED", max_length=20),
                ),
                ("ordered_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="merch_orders",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "pickup_event",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to="merch.orderpickupevent",
                    ),
                ),
            ],
            options={
                "db_table": "merch_orders",
                "ordering": ["-ordered_at"],
                "indexes": [
                    models.Index(fields=["status"], name="merch_orders_status_idx"),
                    models.Index(fields=["user", "-ordered_at"], name="merch_orders_user_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderItem",
            fields=[
                *_base_fields(),
                ("sale_price_at_purchase", models.PositiveIntegerField()),
                ("discount_percentage_at_purchase", models.PositiveSmallIntegerField(default=0)),
                ("fulfilled", models.BooleanField(default=False)),
                ("fulfilled_at", models.DateTimeField(blank=True, null=True)),
                ("notes", models.TextField(blank=True, default="")),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="merch.order",
                    ),
                ),
                (
                    "option",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="order_items",
                        to="merch.merchitemoption",
                    ),
                ),
            ],
            options={
                "db_table": "merch_order_items",
                "ordering": ["created_at", "id"],
            },
        ),
    ]
