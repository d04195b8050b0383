"""
Domain Module
"""
from .errors import (
    DashboardError,
    InvalidFilter,
    InvalidStatusTransition,
    MalformedRecord,
    OrderNotFound,
    TransportError,
    Unauthenticated,
)
from .models import BasketItem, Order, OrderStatus, ShippingAddress, TimeFrame

__all__ = [
    "BasketItem",
    "DashboardError",
    "InvalidFilter",
    "InvalidStatusTransition",
    "MalformedRecord",
    "Order",
    "OrderNotFound",
    "OrderStatus",
    "ShippingAddress",
    "TimeFrame",
    "TransportError",
    "Unauthenticated",
]
