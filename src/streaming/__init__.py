"""
Live Order Streaming Module
"""
from .subscriptions import OrderSubscriptionManager, SnapshotEvent, SnapshotStream, Subscription

__all__ = [
    "OrderSubscriptionManager",
    "SnapshotEvent",
    "SnapshotStream",
    "Subscription",
]
