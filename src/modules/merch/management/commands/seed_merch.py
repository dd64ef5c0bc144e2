from __future__ import annotations

import random
from datetime import timedelta
from typing import List

from django.core.management.base import BaseCommand
from django.utils import timezone

from modules.merch.constants import OrderPickupEventStatus
from modules.merch.models import (
    MerchCollection,
    MerchItem,
    MerchItemOption,
    OrderPickupEvent,
)
from modules.users.constants import UserAccessType, UserState
from modules.users.models import User


class Command(BaseCommand):
    help = "Seed database with a small merch store for development."

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding merch store...")

        users_created = self._seed_users()
        options_created = self._seed_catalog()
        events = self._seed_pickup_events()

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={users_created}, "
                f"options={options_created}, "
                f"pickup_events={len(events)}"
            )
        )

    def _seed_users(self) -> int:
        created = 0
        if not User.objects.filter(email="admin@acmucsd.org").exists():
            User.objects.create_superuser(
                "admin@acmucsd.org", password="admin123", first_name="Store", last_name="Admin"
            )
            created += 1
        if not User.objects.filter(email="distributor@ucsd.edu").exists():
            User.objects.create_user(
                "distributor@ucsd.edu",
                password="distributor123",
                first_name="Merch",
                last_name="Distributor",
                access_type=UserAccessType.MERCH_STORE_DISTRIBUTOR,
                state=UserState.ACTIVE,
            )
            created += 1
        for index in range(1, 6):
            email = f"member{index}@ucsd.edu"
            if User.objects.filter(email=email).exists():
                continue
            User.objects.create_user(
                email,
                password="member123",
                first_name="Member",
                last_name=str(index),
                state=UserState.ACTIVE,
                credits=random.randint(500, 5000),
            )
            created += 1
        return created

    def _seed_catalog(self) -> int:
        if MerchCollection.objects.exists():
            return 0
        collection = MerchCollection.objects.create(
            title="Fall Collection", description="Seasonal merch"
        )
        sticker = MerchItem.objects.create(
            collection=collection, name="Sticker", monthly_limit=5, lifetime_limit=20
        )
        MerchItemOption.objects.create(item=sticker, quantity=200, price=50)

        shirt = MerchItem.objects.create(
            collection=collection, name="T-Shirt", has_variants_enabled=True, lifetime_limit=3
        )
        created = 1
        for position, size in enumerate(["S", "M", "L", "XL"]):
            MerchItemOption.objects.create(
                item=shirt,
                quantity=random.randint(10, 40),
                price=1200,
                discount_percentage=random.choice([0, 0, 10, 25]),
                metadata={"type": "SIZE", "value": size, "position": position},
            )
            created += 1
        return created

    def _seed_pickup_events(self) -> List[OrderPickupEvent]:
        now = timezone.now()
        events = []
        for weeks in (1, 2, 3):
            start = now + timedelta(weeks=weeks)
            event, _ = OrderPickupEvent.objects.get_or_create(
                title=f"Merch Pickup Week {weeks}",
                defaults={
                    "location": "CSE Building Basement",
                    "start": start,
                    "end": start + timedelta(hours=2),
                    "order_limit": 25,
                    "status": OrderPickupEventStatus.ACTIVE,
                },
            )
            events.append(event)
        return events
