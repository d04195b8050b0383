"""
Sales Overview

State behind the sales overview panel: the last delivered order snapshot,
the selected timeframe and status filter, and the chart payload derived
from them.
"""

import threading
from datetime import tzinfo
from enum import Enum
from typing import Callable, Iterable, List, Optional, Tuple, Union

import structlog
from pydantic import BaseModel, Field

from src.analytics.aggregator import SalesSeries, aggregate_sales
from src.domain.models import Order, OrderStatus, TimeFrame
from src.store.interfaces import StatusFilter, normalize_status
from src.streaming.subscriptions import OrderSubscriptionManager, SnapshotEvent

logger = structlog.get_logger(__name__)


class ChartState(str, Enum):
    """Render state of the sales chart"""
    LOADING = "loading"
    READY = "ready"
    EMPTY = "empty"
    ERROR = "error"


class ChartPayload(BaseModel):
    """Sales chart data as consumed by the presentation layer"""
    timeframe: TimeFrame
    status_filter: Optional[OrderStatus] = None
    state: ChartState
    labels: List[str] = Field(default_factory=list)
    values: List[float] = Field(default_factory=list)
    total: float = 0.0
    currency: str = "RWF"
    error: Optional[str] = None

    @classmethod
    def from_series(
        cls,
        series: Optional[SalesSeries],
        timeframe: TimeFrame,
        status_filter: Optional[OrderStatus] = None,
        currency: str = "RWF",
        error: Optional[str] = None,
    ) -> "ChartPayload":
        if error is not None:
            state = ChartState.ERROR
        elif series is None:
            state = ChartState.LOADING
        elif series.is_empty:
            state = ChartState.EMPTY
        else:
            state = ChartState.READY

        return cls(
            timeframe=timeframe,
            status_filter=status_filter,
            state=state,
            labels=series.labels if series else [],
            values=series.values if series else [],
            total=series.total if series else 0.0,
            currency=currency,
            error=error,
        )


def build_chart(
    orders: Iterable[Order],
    timeframe: Union[TimeFrame, str],
    status_filter: Optional[OrderStatus] = None,
    tz: Optional[tzinfo] = None,
    currency: str = "RWF",
) -> ChartPayload:
    """Aggregate a one-off snapshot into a chart payload"""
    timeframe = TimeFrame(timeframe)
    series = aggregate_sales(orders, timeframe, tz)
    return ChartPayload.from_series(series, timeframe, status_filter, currency)


PayloadListener = Callable[[ChartPayload], None]


class SalesOverview:
    """
    Live sales chart for one operator view.

    Changing the timeframe re-aggregates the last snapshot without touching
    the subscription. Changing the status filter drops the last snapshot and
    resubscribes; events still carrying the old filter are ignored.

    Example:
        overview = SalesOverview(manager, listener=push_to_client)
        overview.start()
        overview.set_timeframe(TimeFrame.MONTHLY)
    """

    def __init__(
        self,
        manager: OrderSubscriptionManager,
        timeframe: Union[TimeFrame, str] = TimeFrame.DAILY,
        status_filter: StatusFilter = None,
        tz: Optional[tzinfo] = None,
        currency: str = "RWF",
        listener: Optional[PayloadListener] = None,
    ):
        self._manager = manager
        self._timeframe = TimeFrame(timeframe)
        self._status_filter = normalize_status(status_filter)
        self._tz = tz
        self._currency = currency
        self._listener = listener

        self._lock = threading.RLock()
        self._orders: Optional[Tuple[Order, ...]] = None
        self._series: Optional[SalesSeries] = None
        self._error: Optional[str] = None

    @property
    def timeframe(self) -> TimeFrame:
        return self._timeframe

    @property
    def status_filter(self) -> Optional[OrderStatus]:
        return self._status_filter

    @property
    def payload(self) -> ChartPayload:
        with self._lock:
            return ChartPayload.from_series(
                self._current_series(),
                self._timeframe,
                self._status_filter,
                self._currency,
                self._error,
            )

    def start(self) -> ChartPayload:
        """
        Subscribe to the order store with the current filter.

        Raises:
            Unauthenticated: If no operator is signed in
        """
        self._manager.subscribe(self._status_filter, self.handle)
        return self.payload

    def stop(self) -> None:
        self._manager.cancel()

    def handle(self, event: SnapshotEvent) -> ChartPayload:
        """Apply a subscription event and publish the resulting payload"""
        with self._lock:
            if event.status_filter != self._status_filter:
                logger.debug(
                    "Ignoring event for previous status filter",
                    generation=event.generation,
                )
                return self.payload

            if event.is_error:
                # Keep the last good series; the payload is flagged as errored
                self._error = str(event.error)
            else:
                self._orders = event.orders
                self._series = None
                self._error = None

        return self._publish()

    def set_timeframe(self, timeframe: Union[TimeFrame, str]) -> ChartPayload:
        """Re-bucket the last snapshot under a new timeframe"""
        timeframe = TimeFrame(timeframe)
        with self._lock:
            if timeframe == self._timeframe:
                return self.payload
            self._timeframe = timeframe
            self._series = None

        logger.info("Sales overview timeframe changed", timeframe=timeframe.value)
        return self._publish()

    def set_status_filter(self, status_filter: StatusFilter) -> ChartPayload:
        """
        Resubscribe with a new status filter.

        Raises:
            InvalidFilter: If the filter is not a known order status
            Unauthenticated: If no operator is signed in
        """
        status = normalize_status(status_filter)
        with self._lock:
            if status == self._status_filter and self._orders is not None:
                return self.payload
            self._status_filter = status
            self._orders = None
            self._series = None
            self._error = None

        logger.info("Sales overview status filter changed", status_filter=status.value if status else None)
        # Outside our lock: delivery takes the manager lock first, then ours
        self._manager.subscribe(status, self.handle)
        return self._publish()

    def _current_series(self) -> Optional[SalesSeries]:
        if self._orders is None:
            return self._series
        if self._series is None or self._series.timeframe != self._timeframe:
            self._series = aggregate_sales(self._orders, self._timeframe, self._tz)
        return self._series

    def _publish(self) -> ChartPayload:
        payload = self.payload
        if self._listener is not None:
            self._listener(payload)
        return payload
