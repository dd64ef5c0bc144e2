import django.db.models.deletion
import django.utils.timezone
import uuid6
from django.conf import settings
from django.db import migrations, models

import modules.users.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("auth", "0012_alter_user_first_name_max_length"),
    ]

    operations = [
        migrations.CreateModel(
            name="User",
            fields=[
                ("password", models.CharField(max_length=128, verbose_name="password")),
                ("last_login", models.DateTimeField(blank=True, null=True, verbose_name="last login")),
                (
                    "is_superuser",
                    models.BooleanField(
                        default=False,
                        help_text="Designates that this user has all permissions without explicitly assigning them.",
                        verbose_name="superuser status",
                    ),
                ),
                ("first_name", models.CharField(blank=True, max_length=150, verbose_name="first name")),
                ("last_name", models.CharField(blank=True, max_length=150, verbose_name="last name")),
                (
                    "is_staff",
                    models.BooleanField(
                        default=False,
                        help_text="Designates whether the user can log into this admin site.",
                        verbose_name="staff status",
                    ),
                ),
                (
                    "is_active",
                    models.BooleanField(
                        default=True,
                        help_text=(
                            "Designates whether this user should be treated as active. "
                            "Unselect this instead of deleting accounts."
                        ),
                        verbose_name="active",
                    ),
                ),
                ("date_joined", models.DateTimeField(default=django.utils.timezone.now, verbose_name="date joined")),
                ("id", models.UUIDField(default=uuid6.uuid7, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("email", models.EmailField(max_length=254, unique=True)),
                (
                    "access_type",
                    models.CharField(
                        choices=[
                            ("RESTRICTED", "Restricted"),
                            ("STANDARD", "Standard"),
                            ("STAFF", "Staff"),
                            ("ADMIN", "Admin"),
                            ("MARKETING", "Marketing"),
                            ("MERCH_STORE_MANAGER", "Merch store manager"),
                            ("MERCH_STORE_DISTRIBUTOR", "Merch store distributor"),
                            ("SPONSORSHIP_MANAGER", "Sponsorship manager"),
                        ],
                        default="STANDARD",
                        max_length=32,
                    ),
                ),
                (
                    "state",
                    models.CharField(
                        choices=[
                            ("PENDING", "Pending"),
                            ("ACTIVE", "Active"),
                            ("BLOCKED", "Blocked"),
                            ("PASSWORD_RESET", "Password reset"),
                        ],
                        default="PENDING",
                        max_length=20,
                    ),
                ),
                ("credits", models.PositiveIntegerField(default=0)),
                ("points", models.PositiveIntegerField(default=0)),
                (
                    "groups",
                    models.ManyToManyField(
                        blank=True,
                        help_text=(
                            "The groups this user belongs to. A user will get all "
                            "permissions granted to each of their groups."
                        ),
                        related_name="user_set",
                        related_query_name="user",
                        to="auth.group",
                        verbose_name="groups",
                    ),
                ),
                (
                    "user_permissions",
                    models.ManyToManyField(
                        blank=True,
                        help_text="Specific permissions for this user.",
                        related_name="user_set",
                        related_query_name="user",
                        to="auth.permission",
                        verbose_name="user permissions",
                    ),
                ),
            ],
            options={
                "db_table": "users",
                "ordering": ["email"],
            },
            managers=[
                ("objects", modules.users.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name="Activity",
            fields=[
                ("id", models.UUIDField(default=uuid6.uuid7, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("ACCOUNT_CREATE", "Account created"),
                            ("ACCOUNT_ACTIVATE", "Account activated"),
                            ("ACCOUNT_UPDATE_INFO", "Account info updated"),
                            ("ACCOUNT_LOGIN", "Logged in"),
                            ("ATTEND_EVENT", "Attended event"),
                            ("BONUS_POINTS", "Bonus points"),
                            ("ORDER_PLACED", "Order placed"),
                            ("ORDER_CANCELLED", "Order cancelled"),
                            ("ORDER_FULFILLED", "Order fulfilled"),
                            ("ORDER_PARTIALLY_FULFILLED", "Order partially fulfilled"),
                            ("ORDER_MISSED", "Order pickup missed"),
                            ("PENDING_ORDERS_CANCELLED", "Pending orders cancelled"),
                        ],
                        max_length=40,
                    ),
                ),
                (
                    "scope",
                    models.CharField(
                        choices=[("PUBLIC", "Public"), ("PRIVATE", "Private"), ("HIDDEN", "Hidden")],
                        default="PRIVATE",
                        max_length=10,
                    ),
                ),
                ("description", models.TextField(blank=True, default=None, null=True)),
                ("points_earned", models.IntegerField(default=0)),
                ("timestamp", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="activities",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "activities",
                "ordering": ["-timestamp"],
                "indexes": [
                    models.Index(fields=["user", "-timestamp"], name="activities_user_ts_idx"),
                ],
            },
        ),
    ]
