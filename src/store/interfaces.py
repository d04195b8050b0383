"""
Order Store Interface

Abstract access to the remote order collection. The dashboard only relies on
equality filtering by status and on full-snapshot delivery for live queries.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

import structlog

from src.domain.errors import InvalidFilter, InvalidStatusTransition, MalformedRecord, TransportError
from src.domain.models import Order, OrderStatus

logger = structlog.get_logger(__name__)

SnapshotCallback = Callable[[List[Order]], None]
ErrorCallback = Callable[[TransportError], None]
CancelListener = Callable[[], None]
StatusFilter = Optional[Union[OrderStatus, str]]


def normalize_status(status: StatusFilter) -> Optional[OrderStatus]:
    """
    Validate a status filter.

    Empty values mean "no filter".

    Raises:
        InvalidFilter: If ``status`` is not a known order status
    """
    if status is None or status == "":
        return None
    try:
        return OrderStatus(status)
    except ValueError as e:
        raise InvalidFilter(status) from e


def orders_from_documents(documents: Iterable[Tuple[str, Optional[Dict[str, Any]]]]) -> List[Order]:
    """Decode (id, field map) pairs, skipping documents that cannot be decoded"""
    orders: List[Order] = []
    for doc_id, data in documents:
        try:
            orders.append(Order.from_document(doc_id, data))
        except MalformedRecord as e:
            logger.warning("Skipping malformed order document", doc_id=e.doc_id, reason=e.reason)
    return orders


class OrderStore(ABC):
    """Abstract base class for order collection backends"""

    @abstractmethod
    def listen(
        self,
        status: Optional[OrderStatus],
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> CancelListener:
        """
        Start a live query.

        Args:
            status: Status to filter on, or None for every order
            on_snapshot: Called with the full matching snapshot on every change
            on_error: Called with a TransportError when the live query fails

        Returns:
            Callable releasing the live query
        """
        pass

    @abstractmethod
    def fetch(self, status: Optional[OrderStatus] = None) -> List[Order]:
        """Return the current matching snapshot once"""
        pass

    @abstractmethod
    def get(self, order_id: str) -> Order:
        """
        Return a single order.

        Raises:
            OrderNotFound: If no order has this id
        """
        pass

    @abstractmethod
    def update_status(self, order_id: str, status: OrderStatus) -> None:
        """Overwrite the status field of an order"""
        pass

    @abstractmethod
    def ping(self) -> bool:
        """Check the backend is reachable"""
        pass

    def close(self) -> None:
        """Release backend resources"""

    def mark_completed(self, order_id: str) -> Order:
        """
        Move a processing order to completed.

        Raises:
            OrderNotFound: If no order has this id
            InvalidStatusTransition: If the order is not processing
        """
        order = self.get(order_id)
        if order.status != OrderStatus.PROCESSING.value:
            raise InvalidStatusTransition(order_id, order.status, OrderStatus.COMPLETED.value)

        self.update_status(order_id, OrderStatus.COMPLETED)
        logger.info("Order marked completed", order_id=order_id)
        return order.model_copy(update={"status": OrderStatus.COMPLETED.value})
