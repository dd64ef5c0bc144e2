"""Unit tests for ``BaseModel`` through a concrete merch model."""

from __future__ import annotations

import uuid
from datetime import timedelta

import pytest
from django.utils import timezone
from freezegun import freeze_time

from modules.merch.models import MerchCollection

pytestmark = pytest.mark.unit


class TestBaseModel:
    """Tests for UUIDv7 PK and timestamp behaviour."""

    def test_id_is_uuid_version_7(self):
        obj = MerchCollection.objects.create(title="test")
        assert isinstance(obj.id, uuid.UUID)
        assert obj.id.version == 7

    def test_ids_are_time_ordered(self):
        """UUIDv7 encodes timestamp, so sequential creates yield ordered IDs."""
        a = MerchCollection.objects.create(title="first")
        b = MerchCollection.objects.create(title="second")
        assert str(a.id) < str(b.id)

    def test_timestamps_set_on_create(self):
        obj = MerchCollection.objects.create(title="test")
        assert obj.created_at is not None
        assert obj.updated_at is not None

    def test_updated_at_changes_on_save(self):
        with freeze_time(timezone.now()) as frozen:
            obj = MerchCollection.objects.create(title="original")
            created = obj.created_at
            frozen.tick(timedelta(seconds=5))
            obj.title = "modified"
            obj.save()

        obj.refresh_from_db()
        assert obj.updated_at == created + timedelta(seconds=5)
        assert obj.created_at == created

    def test_save_with_update_fields_includes_updated_at(self):
        """The save() guard must inject updated_at into update_fields."""
        with freeze_time(timezone.now()) as frozen:
            obj = MerchCollection.objects.create(title="original")
            original_updated = obj.updated_at
            frozen.tick(timedelta(seconds=5))
            obj.title = "modified"
            obj.save(update_fields=["title"])

        obj.refresh_from_db()
        assert obj.updated_at > original_updated

    def test_id_is_not_editable(self):
        assert MerchCollection._meta.get_field("id").editable is False
