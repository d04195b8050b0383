"""
Unit Tests - Order Subscriptions
"""
import asyncio
import threading
from datetime import datetime

import pytest

from src.auth.principal import StaticPrincipalProvider
from src.domain.errors import InvalidFilter, TransportError, Unauthenticated
from src.domain.models import Order, OrderStatus
from src.store.memory import InMemoryOrderStore
from src.streaming.subscriptions import OrderSubscriptionManager


def _order(order_id, status, amount=1000):
    return Order(id=order_id, total_amount=amount, created_at=datetime(2024, 1, 5), status=status)


class TestSubscribe:
    """Tests for OrderSubscriptionManager.subscribe"""

    def test_requires_principal(self, manual_store):
        """Without a signed-in operator nothing is subscribed"""
        manager = OrderSubscriptionManager(manual_store, StaticPrincipalProvider(None))
        received = []

        with pytest.raises(Unauthenticated):
            manager.subscribe("processing", received.append)

        assert manual_store.listeners == []
        assert manager.active is None
        assert received == []

    def test_invalid_filter(self, manager, manual_store):
        """Unknown statuses are rejected before listening"""
        with pytest.raises(InvalidFilter) as exc_info:
            manager.subscribe("archived", lambda event: None)

        assert exc_info.value.value == "archived"
        assert isinstance(exc_info.value, ValueError)
        assert manual_store.listeners == []

    def test_empty_filter_means_all_orders(self, manager, manual_store):
        """An empty filter starts an unfiltered query"""
        subscription = manager.subscribe("", lambda event: None)

        assert subscription.status_filter is None
        assert manual_store.listeners[0].status is None

    def test_delivers_full_snapshots(self, manager, manual_store):
        """Each store delivery becomes one snapshot event"""
        received = []
        manager.subscribe(OrderStatus.PROCESSING, received.append)
        handle = manual_store.listeners[0]

        handle.emit([_order("a", "processing")])
        handle.emit([_order("a", "processing"), _order("b", "processing")])

        assert len(received) == 2
        assert [o.id for o in received[1].orders] == ["a", "b"]
        assert received[1].status_filter == OrderStatus.PROCESSING
        assert not received[1].is_error

    def test_filter_change_drops_stale_snapshots(self, manager, manual_store):
        """A snapshot from the superseded query never reaches the callback"""
        received = []
        manager.subscribe("processing", received.append)
        manager.subscribe("completed", received.append)
        old, new = manual_store.listeners

        assert old.cancelled
        assert not new.cancelled

        old.emit([_order("stale", "processing")])
        new.emit([_order("fresh", "completed")])

        assert len(received) == 1
        assert received[0].status_filter == OrderStatus.COMPLETED
        assert [o.id for o in received[0].orders] == ["fresh"]

    def test_generations_increase(self, manager):
        """Every subscribe issues a new generation"""
        first = manager.subscribe("processing", lambda event: None)
        second = manager.subscribe("completed", lambda event: None)

        assert second.generation > first.generation
        assert not first.active
        assert second.active

    def test_transport_error_delivered_as_event(self, manager, manual_store):
        """Failures arrive on the snapshot channel and the subscription stays active"""
        received = []
        subscription = manager.subscribe("processing", received.append)
        handle = manual_store.listeners[0]

        handle.fail("deadline exceeded")
        handle.emit([_order("a", "processing")])

        assert received[0].is_error
        assert isinstance(received[0].error, TransportError)
        assert str(received[0].error) == "deadline exceeded"
        assert received[1].orders[0].id == "a"
        assert subscription.active


class TestCancel:
    """Tests for subscription cancellation"""

    def test_cancel_releases_listener(self, manager, manual_store):
        """Cancelling stops deliveries, even those already in flight"""
        received = []
        manager.subscribe("processing", received.append)

        manager.cancel()
        manual_store.listeners[0].emit([_order("late", "processing")])

        assert manual_store.listeners[0].cancelled
        assert manager.active is None
        assert received == []

    def test_cancel_without_subscription(self, manager):
        """Cancelling with nothing active is a no-op"""
        manager.cancel()
        assert manager.active is None

    def test_superseded_handle_cancel_is_noop(self, manager, manual_store):
        """Cancelling an old handle leaves the current subscription alone"""
        first = manager.subscribe("processing", lambda event: None)
        second = manager.subscribe("completed", lambda event: None)

        first.cancel()

        assert second.active
        assert not manual_store.listeners[1].cancelled

    def test_cancel_from_callback(self, manager, manual_store):
        """A callback may cancel its own subscription"""
        received = []

        def on_event(event):
            received.append(event)
            manager.cancel()

        manager.subscribe("processing", on_event)
        handle = manual_store.listeners[0]
        handle.emit([_order("a", "processing")])
        handle.emit([_order("b", "processing")])

        assert len(received) == 1
        assert manager.active is None


class TestInMemoryStoreSubscription:
    """Tests for subscriptions against the in-memory store"""

    def test_initial_snapshot_and_updates(self, memory_store, principals):
        """The current snapshot arrives on subscribe, then after every write"""
        manager = OrderSubscriptionManager(memory_store, principals)
        received = []

        manager.subscribe("completed", received.append)
        memory_store.put(_order("c-3", "completed", amount=4000))

        assert [o.id for o in received[0].orders] == ["c-1", "c-2"]
        assert sorted(o.id for o in received[1].orders) == ["c-1", "c-2", "c-3"]

    def test_filter_change_releases_store_listener(self, memory_store, principals):
        """Only one store listener is held at a time"""
        manager = OrderSubscriptionManager(memory_store, principals)

        manager.subscribe("completed", lambda event: None)
        manager.subscribe("processing", lambda event: None)
        assert memory_store.listener_count == 1

        manager.cancel()
        assert memory_store.listener_count == 0

    def test_status_change_moves_order_between_filters(self, memory_store, principals):
        """Completing an order removes it from the processing snapshot"""
        manager = OrderSubscriptionManager(memory_store, principals)
        received = []
        manager.subscribe("processing", received.append)

        memory_store.mark_completed("p-1")

        assert sorted(o.id for o in received[0].orders) == ["p-1", "p-2"]
        assert [o.id for o in received[-1].orders] == ["p-2"]


class TestSnapshotStream:
    """Tests for the async stream adapter"""

    async def test_stream_yields_snapshots(self, memory_store, principals):
        """Initial snapshot first, then one event per write"""
        manager = OrderSubscriptionManager(memory_store, principals)

        async with manager.stream("completed") as events:
            first = await asyncio.wait_for(events.__anext__(), timeout=1)
            memory_store.delete("c-1")
            second = await asyncio.wait_for(events.__anext__(), timeout=1)

        assert len(first.orders) == 2
        assert [o.id for o in second.orders] == ["c-2"]
        assert manager.active is None
        assert memory_store.listener_count == 0

    async def test_pending_stale_event_dropped(self, manager, manual_store):
        """An unread event from before a filter change is discarded on read"""
        events = manager.stream("processing")
        manual_store.listeners[0].emit([_order("stale", "processing")])

        events.change_filter("completed")
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(events.__anext__(), timeout=0.05)

        manual_store.listeners[1].emit([_order("fresh", "completed")])

        event = await asyncio.wait_for(events.__anext__(), timeout=1)

        assert event.status_filter == OrderStatus.COMPLETED
        assert [o.id for o in event.orders] == ["fresh"]
        events.cancel()

    async def test_burst_yields_latest_snapshot(self, principals):
        """Writes made between reads collapse into the newest snapshot"""
        store = InMemoryOrderStore()
        manager = OrderSubscriptionManager(store, principals)
        events = manager.stream(None)

        for i in range(500):
            store.put(_order(f"o-{i}", "completed"))

        event = await asyncio.wait_for(events.__anext__(), timeout=1)
        assert len(event.orders) == 500

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(events.__anext__(), timeout=0.05)
        events.cancel()

    async def test_latest_wins_across_threads(self, manager, manual_store):
        """Deliveries from the store thread also replace an unread event"""
        events = manager.stream("completed")
        handle = manual_store.listeners[0]

        def burst():
            for i in range(1, 21):
                handle.emit([_order(f"o-{n}", "completed") for n in range(i)])

        thread = threading.Thread(target=burst)
        thread.start()
        thread.join()
        await asyncio.sleep(0)

        event = await asyncio.wait_for(events.__anext__(), timeout=1)
        assert len(event.orders) == 20
        events.cancel()

    async def test_delivery_from_store_thread(self, manager, manual_store):
        """Snapshots delivered on another thread reach the event loop"""
        events = manager.stream(None)
        handle = manual_store.listeners[0]

        thread = threading.Thread(target=handle.emit, args=([_order("a", "completed")],))
        thread.start()
        thread.join()

        event = await asyncio.wait_for(events.__anext__(), timeout=1)

        assert event.orders[0].id == "a"
        events.cancel()

    async def test_cancel_ends_iteration(self, manager, manual_store):
        """After cancel the stream is exhausted"""
        events = manager.stream("processing")
        manual_store.listeners[0].emit([_order("a", "processing")])

        events.cancel()

        with pytest.raises(StopAsyncIteration):
            await events.__anext__()
        assert manual_store.listeners[0].cancelled

    async def test_closed_stream_rejects_filter_change(self, manager):
        """A cancelled stream cannot be resubscribed"""
        events = manager.stream("processing")
        events.cancel()

        with pytest.raises(RuntimeError):
            events.change_filter("completed")

    async def test_stream_requires_principal(self, manual_store):
        """Opening a stream without an operator fails immediately"""
        manager = OrderSubscriptionManager(manual_store, StaticPrincipalProvider(None))

        with pytest.raises(Unauthenticated):
            manager.stream("processing")
        assert manual_store.listeners == []
