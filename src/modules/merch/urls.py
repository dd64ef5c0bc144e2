"""Merch URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.merch.views import MerchCatalogViewSet, MerchOrderViewSet, PickupEventViewSet

router = DefaultRouter(trailing_slash=True)
router.register("orders", MerchOrderViewSet, basename="merch-order")
router.register("pickup-events", PickupEventViewSet, basename="merch-pickup-event")
router.register("items", MerchCatalogViewSet, basename="merch-item")

urlpatterns = router.urls
