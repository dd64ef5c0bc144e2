"""Notification dispatcher port.

One method per notification kind.  Implementations may raise on
delivery failure; callers go through ``modules.notifications.dispatch``
which logs the failure and carries on.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from modules.notifications.payloads import OrderInfo, PartialFulfillmentInfo


class INotificationDispatcher(ABC):
    @abstractmethod
    def send_order_confirmation(self, email: str, first_name: str, order: OrderInfo) -> None:
        ...

    @abstractmethod
    def send_order_cancellation(self, email: str, first_name: str, order: OrderInfo) -> None:
        """Member- or admin-initiated cancellation, with the refund breakdown."""

    @abstractmethod
    def send_automated_order_cancellation(
        self, email: str, first_name: str, order: OrderInfo
    ) -> None:
        """Cancellation by the pending-orders sweep."""

    @abstractmethod
    def send_order_fulfillment(self, email: str, first_name: str, order: OrderInfo) -> None:
        ...

    @abstractmethod
    def send_partial_order_fulfillment(
        self, email: str, first_name: str, fulfillment: PartialFulfillmentInfo
    ) -> None:
        ...

    @abstractmethod
    def send_order_pickup_missed(self, email: str, first_name: str, order: OrderInfo) -> None:
        ...

    @abstractmethod
    def send_order_pickup_cancelled(
        self, email: str, first_name: str, order: OrderInfo
    ) -> None:
        ...

    @abstractmethod
    def send_order_pickup_updated(self, email: str, first_name: str, order: OrderInfo) -> None:
        ...
