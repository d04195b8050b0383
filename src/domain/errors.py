"""
Dashboard Exceptions

Typed failures surfaced by the store adapters, the subscription manager and
the order endpoints.
"""

from typing import Optional


class DashboardError(Exception):
    """Base exception for dashboard failures"""


class Unauthenticated(DashboardError):
    """No signed-in principal when a subscription was requested"""

    def __init__(self, message: str = "No authenticated principal"):
        super().__init__(message)


class TransportError(DashboardError, ConnectionError):
    """
    Store or network failure.

    During a live subscription this is delivered through the snapshot channel
    rather than raised.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class InvalidFilter(DashboardError, ValueError):
    """Subscription filter does not name a known order status"""

    def __init__(self, value: object):
        super().__init__(f"Unknown order status filter: {value!r}")
        self.value = value


class MalformedRecord(DashboardError, ValueError):
    """A store document could not be decoded into an Order"""

    def __init__(self, doc_id: str, reason: str):
        super().__init__(f"Malformed order document {doc_id}: {reason}")
        self.doc_id = doc_id
        self.reason = reason


class OrderNotFound(DashboardError, LookupError):
    """No order document with the requested id"""

    def __init__(self, order_id: str):
        super().__init__(f"Order not found: {order_id}")
        self.order_id = order_id


class InvalidStatusTransition(DashboardError):
    """Requested status change is not allowed from the order's current status"""

    def __init__(self, order_id: str, current: str, requested: str):
        super().__init__(f"Order {order_id} cannot move from {current!r} to {requested!r}")
        self.order_id = order_id
        self.current = current
        self.requested = requested
