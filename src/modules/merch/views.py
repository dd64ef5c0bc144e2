"""Merch API views.

Exposes the merch services via HTTP using DRF ViewSets.  Service
errors are translated by ``domain_error_response``:
``NotFound`` -> 404, ``Forbidden`` -> 403, ``UserError`` -> 400 and
``TransactionConflict`` -> 409.  Nothing else is caught here.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.core.exceptions import DomainError, TransactionConflict
from modules.core.pagination import StandardResultsSetPagination
from modules.core.views import build_dto, domain_error_response
from modules.merch.catalog import MerchCatalogService
from modules.merch.dtos import (
    FulfillOrderDTO,
    MerchCollectionDTO,
    MerchItemDTO,
    MerchItemEditDTO,
    MerchItemOptionDTO,
    PickupEventDTO,
    PickupEventEditDTO,
    PlaceOrderDTO,
    VerifyOrderDTO,
)
from modules.merch.filters import OrderFilter
from modules.merch.models import Order
from modules.merch.pickup_events import PickupEventService
from modules.merch.repositories.django_repository import OrderDjangoRepository
from modules.merch.serializers import (
    FulfillOrderSerializer,
    MerchCollectionSerializer,
    MerchItemEditSerializer,
    MerchItemOptionSerializer,
    MerchItemSerializer,
    OrderListSerializer,
    PickupEventSerializer,
    PlaceOrderSerializer,
    RescheduleOrderSerializer,
    VerifyOrderSerializer,
)
from modules.merch.services import MerchOrderService
from modules.merch.unit_of_work import merch_transactions
from modules.notifications.emails import EmailNotificationDispatcher
from modules.users.permissions import (
    CanAccessMerchStore,
    CanEditMerchStore,
    CanManagePickupEvents,
    can_see_all_merch_orders,
)

ServiceError = (DomainError, TransactionConflict)


class MerchOrderViewSet(GenericViewSet):
    """ViewSet for merch order operations.

    Does **not** extend ``ModelViewSet``; writes go through
    ``MerchOrderService``.  The order list is the one read served from a
    repository queryset so staff can filter it with ``OrderFilter``.
    """

    queryset = Order.objects.none()
    permission_classes = [IsAuthenticated, CanAccessMerchStore]
    filterset_class = OrderFilter
    ordering_fields = ["ordered_at", "total_cost", "status"]
    ordering = ["-ordered_at"]
    filter_backends = [DjangoFilterBackend, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = MerchOrderService(
            transactions=merch_transactions(),
            notifier=EmailNotificationDispatcher(),
        )

    def get_queryset(self):
        queryset = OrderDjangoRepository().get_queryset()
        if can_see_all_merch_orders(self.request.user):
            return queryset
        return queryset.filter(user_id=self.request.user.pk)

    def get_throttles(self) -> list[BaseThrottle]:
        # Only placement is rate limited beyond the global user rate.
        self.throttle_scope = "merch_orders" if self.action == "create" else None
        return super().get_throttles()

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/merch/orders/

        Staff see every order, members only their own.  Filtering
        (status, user, pickup event, date range) is handled by
        ``OrderFilter``.
        """
        queryset = self.filter_queryset(self.get_queryset())

        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request)
        serializer = OrderListSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/merch/orders/{pk}/"""
        try:
            order = self._service.get_order(pk, request.user)
        except ServiceError as exc:
            return domain_error_response(exc)
        return Response(order.model_dump(mode="json"))

    @action(detail=False, methods=["get"])
    def mine(self, request: Request) -> Response:
        """GET /api/v1/merch/orders/mine/"""
        orders = self._service.get_orders_for_user(request.user)
        return Response([order.model_dump(mode="json") for order in orders])

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/merch/orders/"""
        serializer = PlaceOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = build_dto(PlaceOrderDTO, serializer.validated_data)

        try:
            order = self._service.place_order(dto, request.user)
        except ServiceError as exc:
            return domain_error_response(exc)
        return Response(order.model_dump(mode="json"), status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["post"])
    def verify(self, request: Request) -> Response:
        """POST /api/v1/merch/orders/verify/

        Runs every placement check without placing the order.
        """
        serializer = VerifyOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = build_dto(VerifyOrderDTO, serializer.validated_data)

        try:
            self._service.verify_order(dto, request.user)
        except ServiceError as exc:
            return domain_error_response(exc)
        return Response(status=status.HTTP_204_NO_CONTENT)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def fulfill(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/merch/orders/{pk}/fulfill/"""
        serializer = FulfillOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = build_dto(FulfillOrderDTO, {"order_id": pk, **serializer.validated_data})

        try:
            order = self._service.fulfill_order_items(dto, request.user)
        except ServiceError as exc:
            return domain_error_response(exc)
        return Response(order.model_dump(mode="json"))

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/merch/orders/{pk}/cancel/

        Refunds and restocks every unfulfilled item.
        """
        try:
            order = self._service.cancel_merch_order(pk, request.user)
        except ServiceError as exc:
            return domain_error_response(exc)
        return Response(order.model_dump(mode="json"))

    @action(detail=True, methods=["post"])
    def reschedule(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/merch/orders/{pk}/reschedule/"""
        serializer = RescheduleOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            order = self._service.reschedule_order_pickup(
                pk, serializer.validated_data["pickup_event_id"], request.user
            )
        except ServiceError as exc:
            return domain_error_response(exc)
        return Response(order.model_dump(mode="json"))

    @action(detail=True, methods=["post"])
    def missed(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/merch/orders/{pk}/missed/"""
        try:
            order = self._service.mark_order_as_missed(pk, request.user)
        except ServiceError as exc:
            return domain_error_response(exc)
        return Response(order.model_dump(mode="json"))

    @action(detail=False, methods=["post"])
    def cleanup(self, request: Request) -> Response:
        """POST /api/v1/merch/orders/cleanup/

        Cancels and refunds every pending order.
        """
        try:
            orders = self._service.cancel_all_pending_orders(request.user)
        except ServiceError as exc:
            return domain_error_response(exc)
        return Response([order.model_dump(mode="json") for order in orders])


class PickupEventViewSet(GenericViewSet):
    """ViewSet for order pickup events.

    Members may browse future and past events; every other action
    requires pickup-event management rights.
    """

    member_actions = {"future", "past"}

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = PickupEventService(
            transactions=merch_transactions(),
            notifier=EmailNotificationDispatcher(),
        )

    def get_permissions(self):
        if self.action in self.member_actions:
            return [IsAuthenticated(), CanAccessMerchStore()]
        return [IsAuthenticated(), CanManagePickupEvents()]

    @action(detail=False, methods=["get"])
    def future(self, request: Request) -> Response:
        """GET /api/v1/merch/pickup-events/future/"""
        events = self._service.get_future_pickup_events()
        return Response([event.model_dump(mode="json") for event in events])

    @action(detail=False, methods=["get"])
    def past(self, request: Request) -> Response:
        """GET /api/v1/merch/pickup-events/past/"""
        events = self._service.get_past_pickup_events()
        return Response([event.model_dump(mode="json") for event in events])

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        try:
            event = self._service.get_pickup_event(pk)
        except ServiceError as exc:
            return domain_error_response(exc)
        return Response(event.model_dump(mode="json"))

    def create(self, request: Request) -> Response:
        serializer = PickupEventSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = build_dto(PickupEventDTO, serializer.validated_data)

        try:
            event = self._service.create_pickup_event(dto)
        except ServiceError as exc:
            return domain_error_response(exc)
        return Response(event.model_dump(mode="json"), status=status.HTTP_201_CREATED)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        serializer = PickupEventSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        dto = build_dto(PickupEventEditDTO, serializer.validated_data)

        try:
            event = self._service.edit_pickup_event(pk, dto)
        except ServiceError as exc:
            return domain_error_response(exc)
        return Response(event.model_dump(mode="json"))

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        try:
            self._service.delete_pickup_event(pk)
        except ServiceError as exc:
            return domain_error_response(exc)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/merch/pickup-events/{pk}/cancel/

        Cancels the event and every order waiting on it.
        """
        try:
            event = self._service.cancel_pickup_event(pk)
        except ServiceError as exc:
            return domain_error_response(exc)
        return Response(event.model_dump(mode="json"))

    @action(detail=True, methods=["post"])
    def complete(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/merch/pickup-events/{pk}/complete/

        Returns the orders that were marked as missed.
        """
        try:
            missed = self._service.complete_pickup_event(pk)
        except ServiceError as exc:
            return domain_error_response(exc)
        return Response([order.model_dump(mode="json") for order in missed])


class MerchCatalogViewSet(GenericViewSet):
    """ViewSet for merch items, their options and collections.

    Item detail is open to store members; edits require store editors.
    """

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = MerchCatalogService(transactions=merch_transactions())

    def get_permissions(self):
        if self.action == "retrieve":
            return [IsAuthenticated(), CanAccessMerchStore()]
        return [IsAuthenticated(), CanEditMerchStore()]

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/merch/items/{pk}/"""
        try:
            item = self._service.get_item(pk, request.user)
        except ServiceError as exc:
            return domain_error_response(exc)
        return Response(item.model_dump(mode="json"))

    def create(self, request: Request) -> Response:
        serializer = MerchItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = build_dto(MerchItemDTO, serializer.validated_data)

        try:
            item = self._service.create_item(dto)
        except ServiceError as exc:
            return domain_error_response(exc)
        return Response(item.model_dump(mode="json"), status=status.HTTP_201_CREATED)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        serializer = MerchItemEditSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        dto = build_dto(MerchItemEditDTO, serializer.validated_data)

        try:
            item = self._service.edit_item(pk, dto)
        except ServiceError as exc:
            return domain_error_response(exc)
        return Response(item.model_dump(mode="json"))

    @action(detail=True, methods=["post"], url_path="options")
    def add_option(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/merch/items/{pk}/options/"""
        serializer = MerchItemOptionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = build_dto(MerchItemOptionDTO, serializer.validated_data)

        try:
            item = self._service.create_item_option(pk, dto)
        except ServiceError as exc:
            return domain_error_response(exc)
        return Response(item.model_dump(mode="json"), status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["delete"], url_path=r"options/(?P<option_id>[^/.]+)")
    def delete_option(self, request: Request, option_id: str | None = None) -> Response:
        """DELETE /api/v1/merch/items/options/{option_id}/"""
        try:
            self._service.delete_item_option(option_id)
        except ServiceError as exc:
            return domain_error_response(exc)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=["post"])
    def collections(self, request: Request) -> Response:
        """POST /api/v1/merch/items/collections/"""
        serializer = MerchCollectionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = build_dto(MerchCollectionDTO, serializer.validated_data)

        collection = self._service.create_collection(dto)
        return Response(collection.model_dump(mode="json"), status=status.HTTP_201_CREATED)
