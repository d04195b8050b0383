"""
In-Memory Order Store

Development backend with the same live-query semantics as Firestore: every
listener receives the full matching snapshot when it starts and after every
write.
"""

import itertools
import threading
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

import structlog

from src.domain.errors import OrderNotFound, TransportError
from src.domain.models import Order, OrderStatus
from src.store.interfaces import CancelListener, ErrorCallback, OrderStore, SnapshotCallback

logger = structlog.get_logger(__name__)


@dataclass
class _Listener:
    status: Optional[OrderStatus]
    on_snapshot: SnapshotCallback
    on_error: ErrorCallback


class InMemoryOrderStore(OrderStore):
    """
    Thread-safe order store held in process memory.

    Listener callbacks run while the store lock is held, so every listener
    sees snapshots in write order. Callbacks must not wait on another thread
    that writes to the store.

    Example:
        store = InMemoryOrderStore(generate_orders(50))
        store.put(order)  # every live listener gets a fresh snapshot
    """

    def __init__(self, orders: Optional[Iterable[Order]] = None):
        self._lock = threading.RLock()
        self._orders: Dict[str, Order] = {}
        self._listeners: Dict[int, _Listener] = {}
        self._ids = itertools.count(1)
        for order in orders or ():
            self._orders[order.id] = order

    def _matching(self, status: Optional[OrderStatus]) -> List[Order]:
        return [
            order for order in self._orders.values()
            if status is None or order.status == status.value
        ]

    def _notify(self) -> None:
        # Delivering under the write lock keeps snapshots in write order
        with self._lock:
            for listener in list(self._listeners.values()):
                listener.on_snapshot(self._matching(listener.status))

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def listen(
        self,
        status: Optional[OrderStatus],
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> CancelListener:
        with self._lock:
            listener_id = next(self._ids)
            self._listeners[listener_id] = _Listener(status, on_snapshot, on_error)
            on_snapshot(self._matching(status))

        def cancel() -> None:
            with self._lock:
                self._listeners.pop(listener_id, None)

        return cancel

    def fetch(self, status: Optional[OrderStatus] = None) -> List[Order]:
        with self._lock:
            return self._matching(status)

    def get(self, order_id: str) -> Order:
        with self._lock:
            try:
                return self._orders[order_id]
            except KeyError:
                raise OrderNotFound(order_id) from None

    def update_status(self, order_id: str, status: OrderStatus) -> None:
        with self._lock:
            order = self.get(order_id)
            self._orders[order_id] = order.model_copy(update={"status": OrderStatus(status).value})
            self._notify()

    def put(self, order: Order) -> None:
        """Insert or replace an order"""
        with self._lock:
            self._orders[order.id] = order
            self._notify()

    def delete(self, order_id: str) -> None:
        """Remove an order if present"""
        with self._lock:
            self._orders.pop(order_id, None)
            self._notify()

    def fail(self, message: str = "Store unavailable") -> None:
        """Deliver a transport failure to every live listener"""
        with self._lock:
            listeners = list(self._listeners.values())
            logger.warning("Simulated store failure", listeners=len(listeners), message=message)
            for listener in listeners:
                listener.on_error(TransportError(message))

    def ping(self) -> bool:
        return True
