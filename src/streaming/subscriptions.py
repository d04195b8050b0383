"""
Order Subscription Manager

Owns the single live order query behind a dashboard view:
- Status-filtered live query against the order store
- Full snapshot delivery on every change
- Generation tagging so snapshots from superseded queries are dropped
- Transport failures delivered as events, never raised from the watch thread
- Latest-only async stream adapter for asyncio consumers
"""

import asyncio
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

import structlog
from prometheus_client import Counter, Gauge

from src.auth.principal import PrincipalProvider
from src.domain.errors import TransportError, Unauthenticated
from src.domain.models import Order, OrderStatus
from src.store.interfaces import CancelListener, OrderStore, StatusFilter, normalize_status

logger = structlog.get_logger(__name__)


# =============================================================================
# METRICS
# =============================================================================

SNAPSHOTS_DELIVERED = Counter(
    "dashboard_snapshots_delivered_total",
    "Order snapshots delivered to subscribers",
    ["status_filter"],
)

STALE_SNAPSHOTS_DROPPED = Counter(
    "dashboard_stale_snapshots_dropped_total",
    "Snapshots dropped because their subscription was superseded or cancelled",
)

SNAPSHOTS_COALESCED = Counter(
    "dashboard_stream_snapshots_coalesced_total",
    "Unread stream snapshots replaced by a newer delivery",
)

TRANSPORT_ERRORS = Counter(
    "dashboard_transport_errors_total",
    "Store failures reported by live subscriptions",
)

ACTIVE_SUBSCRIPTIONS = Gauge(
    "dashboard_active_subscriptions",
    "Live order subscriptions currently held",
)


# =============================================================================
# EVENTS
# =============================================================================

@dataclass(frozen=True)
class SnapshotEvent:
    """One delivery from a live subscription: a full snapshot or a failure"""
    generation: int
    status_filter: Optional[OrderStatus]
    orders: Tuple[Order, ...] = ()
    error: Optional[TransportError] = None

    @property
    def is_error(self) -> bool:
        return self.error is not None


EventCallback = Callable[[SnapshotEvent], None]


def _filter_label(status: Optional[OrderStatus]) -> str:
    return status.value if status else "all"


class Subscription:
    """Handle on one live query issued by an OrderSubscriptionManager"""

    def __init__(self, manager: "OrderSubscriptionManager", generation: int, status_filter: Optional[OrderStatus]):
        self._manager = manager
        self.generation = generation
        self.status_filter = status_filter

    @property
    def active(self) -> bool:
        return self._manager.active is self

    def cancel(self) -> None:
        """Release this subscription if it is still the active one"""
        self._manager._cancel(self)

    def __repr__(self) -> str:
        return f"Subscription(generation={self.generation}, status_filter={_filter_label(self.status_filter)!r})"


# =============================================================================
# MANAGER
# =============================================================================

class OrderSubscriptionManager:
    """
    Maintain exactly one live order subscription.

    Store deliveries may arrive on a store-owned thread. Deliveries and
    cancellation are serialized by a re-entrant lock, and the callback runs
    while the lock is held, so once ``cancel()`` or a new ``subscribe()``
    returns, the superseded subscription can no longer reach its callback.

    Example:
        manager = OrderSubscriptionManager(store, principals)
        manager.subscribe("processing", on_event)
        manager.subscribe("completed", on_event)  # cancels the first one
    """

    def __init__(self, store: OrderStore, principals: PrincipalProvider):
        self._store = store
        self._principals = principals
        self._lock = threading.RLock()
        self._generation = 0
        self._active: Optional[Subscription] = None
        self._release: Optional[CancelListener] = None

    @property
    def active(self) -> Optional[Subscription]:
        with self._lock:
            return self._active

    def subscribe(self, status_filter: StatusFilter, callback: EventCallback) -> Subscription:
        """
        Start a live query, replacing any active one.

        Args:
            status_filter: Order status to filter on, or empty for all orders
            callback: Receives a SnapshotEvent per delivery

        Returns:
            Handle on the new subscription

        Raises:
            InvalidFilter: If the filter is not a known order status
            Unauthenticated: If no operator is signed in
        """
        status = normalize_status(status_filter)

        principal = self._principals.current_principal()
        if principal is None:
            logger.warning("Subscription refused without principal", status_filter=_filter_label(status))
            raise Unauthenticated()

        with self._lock:
            previous = self._detach()
            self._generation += 1
            subscription = Subscription(self, self._generation, status)
            self._active = subscription
        if previous is not None:
            previous()

        def on_snapshot(orders) -> None:
            self._deliver(
                subscription,
                callback,
                SnapshotEvent(generation=subscription.generation, status_filter=status, orders=tuple(orders)),
            )

        def on_error(error: TransportError) -> None:
            TRANSPORT_ERRORS.inc()
            self._deliver(
                subscription,
                callback,
                SnapshotEvent(generation=subscription.generation, status_filter=status, error=error),
            )

        release = self._store.listen(status, on_snapshot, on_error)

        with self._lock:
            current = self._active is subscription
            if current:
                self._release = release
                ACTIVE_SUBSCRIPTIONS.inc()
        if not current:
            # Superseded while the listener was being established
            release()

        logger.info(
            "Order subscription started",
            generation=subscription.generation,
            status_filter=_filter_label(status),
            principal=principal.uid,
        )
        return subscription

    def cancel(self) -> None:
        """Cancel the active subscription, if any"""
        with self._lock:
            release = self._detach()
        if release is not None:
            release()

    def _cancel(self, subscription: Subscription) -> None:
        with self._lock:
            if self._active is not subscription:
                return
            release = self._detach()
        if release is not None:
            release()

    def _detach(self) -> Optional[CancelListener]:
        # Caller holds the lock; the returned release runs outside it because
        # stopping a store listener may wait on the thread delivering to us.
        if self._active is None:
            return None

        logger.info("Order subscription cancelled", generation=self._active.generation)
        release = self._release
        if release is not None:
            ACTIVE_SUBSCRIPTIONS.dec()
        self._active = None
        self._release = None
        return release

    def _deliver(self, subscription: Subscription, callback: EventCallback, event: SnapshotEvent) -> None:
        with self._lock:
            if self._active is not subscription:
                STALE_SNAPSHOTS_DROPPED.inc()
                logger.debug(
                    "Dropped stale snapshot",
                    generation=event.generation,
                    current=self._active.generation if self._active else None,
                )
                return

            if event.is_error:
                logger.warning(
                    "Order subscription transport error",
                    generation=event.generation,
                    error=str(event.error),
                )
            else:
                SNAPSHOTS_DELIVERED.labels(status_filter=_filter_label(event.status_filter)).inc()

            callback(event)

    def stream(self, status_filter: StatusFilter) -> "SnapshotStream":
        """
        Start a live query consumed as an async iterator.

        Must be called from within a running event loop.

        Raises:
            InvalidFilter: If the filter is not a known order status
            Unauthenticated: If no operator is signed in
        """
        stream = SnapshotStream(self, asyncio.get_running_loop())
        stream.change_filter(status_filter)
        return stream


# =============================================================================
# ASYNC STREAM
# =============================================================================

class SnapshotStream:
    """
    Async iterator over the events of a manager's live subscription.

    The stream holds a single pending event. A delivery arriving before the
    previous one was read replaces it, so a slow consumer always reads the
    latest snapshot. A pending event from before a filter change or
    cancellation is discarded when read.

    Example:
        async with manager.stream("processing") as events:
            async for event in events:
                render(event)
    """

    def __init__(self, manager: OrderSubscriptionManager, loop: asyncio.AbstractEventLoop):
        self._manager = manager
        self._loop = loop
        self._pending: Optional[SnapshotEvent] = None
        self._ready = asyncio.Event()
        self._subscription: Optional[Subscription] = None
        self._closed = False

    @property
    def subscription(self) -> Optional[Subscription]:
        return self._subscription

    def change_filter(self, status_filter: StatusFilter) -> Subscription:
        """Replace the underlying subscription with one using a new filter"""
        if self._closed:
            raise RuntimeError("Snapshot stream is closed")
        self._subscription = self._manager.subscribe(status_filter, self._push)
        return self._subscription

    def _call_in_loop(self, func: Callable, *args) -> None:
        if self._loop.is_closed():
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is self._loop:
            func(*args)
        else:
            self._loop.call_soon_threadsafe(func, *args)

    def _push(self, event: SnapshotEvent) -> None:
        self._call_in_loop(self._offer, event)

    def _offer(self, event: SnapshotEvent) -> None:
        # Runs on the loop; an unread event is superseded
        if self._pending is not None:
            SNAPSHOTS_COALESCED.inc()
        self._pending = event
        self._ready.set()

    def cancel(self) -> None:
        """Release the subscription and end iteration"""
        if self._closed:
            return
        self._closed = True
        if self._subscription is not None:
            self._subscription.cancel()
        self._call_in_loop(self._ready.set)

    def __aiter__(self) -> "SnapshotStream":
        return self

    async def __anext__(self) -> SnapshotEvent:
        while True:
            if self._closed:
                raise StopAsyncIteration

            await self._ready.wait()
            if self._closed:
                raise StopAsyncIteration

            event, self._pending = self._pending, None
            self._ready.clear()
            if event is None:
                continue

            current = self._subscription
            if current is None or event.generation != current.generation:
                STALE_SNAPSHOTS_DROPPED.inc()
                continue
            return event

    async def __aenter__(self) -> "SnapshotStream":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.cancel()
