"""
Firestore Order Store

Live order queries backed by Google Cloud Firestore. Firestore invokes
snapshot listeners on its own watch thread; callers must be thread-safe.
"""

import threading
from typing import List, Optional

import structlog
from google.api_core.exceptions import GoogleAPICallError, NotFound
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from src.config import Settings, get_settings
from src.domain.errors import OrderNotFound, TransportError
from src.domain.models import Order, OrderStatus
from src.store.interfaces import (
    CancelListener,
    ErrorCallback,
    OrderStore,
    SnapshotCallback,
    orders_from_documents,
)

logger = structlog.get_logger(__name__)


class FirestoreOrderStore(OrderStore):
    """
    Order store reading the Firestore order collection.

    Example:
        store = FirestoreOrderStore(firestore.Client(project="laundry"))
        cancel = store.listen(OrderStatus.PROCESSING, on_snapshot, on_error)
    """

    def __init__(self, client: firestore.Client, collection: str = "orders"):
        self._client = client
        self._collection = collection

    def _query(self, status: Optional[OrderStatus]):
        query = self._client.collection(self._collection)
        if status is not None:
            query = query.where(filter=FieldFilter("status", "==", OrderStatus(status).value))
        return query

    def listen(
        self,
        status: Optional[OrderStatus],
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> CancelListener:
        released = threading.Event()

        def on_change(docs, changes, read_time) -> None:
            if released.is_set():
                return
            try:
                on_snapshot(orders_from_documents((doc.id, doc.to_dict()) for doc in docs))
            except Exception as e:
                # Raising here would only kill the watch thread
                logger.error("Snapshot listener failed", error=str(e), error_type=type(e).__name__)

        def on_stream_done(future) -> None:
            if released.is_set():
                return
            logger.error("Firestore listen stream terminated", collection=self._collection)
            on_error(TransportError("Firestore listen stream terminated"))

        try:
            watch = self._query(status).on_snapshot(on_change)
        except GoogleAPICallError as e:
            logger.error("Failed to start Firestore listener", error=str(e))
            on_error(TransportError("Failed to start Firestore listener", cause=e))
            return released.set

        # The watch exposes no error callback; its bidi RPC finishing is the only signal
        rpc = getattr(watch, "_rpc", None)
        if rpc is not None:
            rpc.add_done_callback(on_stream_done)
        else:
            logger.warning(
                "Firestore watch has no RPC handle; stream failures will not be reported",
                collection=self._collection,
            )

        logger.info(
            "Firestore listener started",
            collection=self._collection,
            status=status.value if status else None,
        )

        def cancel() -> None:
            if released.is_set():
                return
            released.set()
            watch.unsubscribe()
            logger.info("Firestore listener released", collection=self._collection)

        return cancel

    def fetch(self, status: Optional[OrderStatus] = None) -> List[Order]:
        try:
            docs = list(self._query(status).stream())
        except GoogleAPICallError as e:
            raise TransportError("Failed to query orders", cause=e) from e
        return orders_from_documents((doc.id, doc.to_dict()) for doc in docs)

    def get(self, order_id: str) -> Order:
        try:
            snapshot = self._client.collection(self._collection).document(order_id).get()
        except GoogleAPICallError as e:
            raise TransportError("Failed to read order", cause=e) from e

        if not snapshot.exists:
            raise OrderNotFound(order_id)
        return Order.from_document(snapshot.id, snapshot.to_dict())

    def update_status(self, order_id: str, status: OrderStatus) -> None:
        try:
            self._client.collection(self._collection).document(order_id).update(
                {"status": OrderStatus(status).value}
            )
        except NotFound as e:
            raise OrderNotFound(order_id) from e
        except GoogleAPICallError as e:
            raise TransportError("Failed to update order", cause=e) from e

    def ping(self) -> bool:
        try:
            list(self._client.collection(self._collection).limit(1).stream())
        except GoogleAPICallError as e:
            raise TransportError("Firestore unreachable", cause=e) from e
        return True

    def close(self) -> None:
        self._client.close()
        logger.info("Firestore client closed")


def create_firestore_store(settings: Optional[Settings] = None) -> FirestoreOrderStore:
    """Create a Firestore-backed store from settings"""
    settings = settings or get_settings()
    client = firestore.Client(
        project=settings.firestore.project_id,
        database=settings.firestore.database,
    )
    return FirestoreOrderStore(client, collection=settings.firestore.orders_collection)
