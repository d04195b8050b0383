"""
Sales Aggregation

Turns a snapshot of orders into the ordered period buckets
rendered by the sales overview chart.

Period labels use fixed English month names regardless of the process
locale. Daily and weekly labels carry no year, and monthly labels collapse
the same month of different years into one bucket.

Daily and monthly buckets follow the calendar within a year. Weekly and
yearly buckets are ordered by comparing labels as strings, so "Week 10"
precedes "Week 9".
"""

import math
import time
from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import Dict, Iterable, List, Optional, Tuple, Union

import polars as pl
import structlog
from prometheus_client import Histogram

from src.domain.models import Order, TimeFrame

logger = structlog.get_logger(__name__)


AGGREGATION_TIME = Histogram(
    "dashboard_sales_aggregation_seconds",
    "Time spent aggregating an order snapshot",
    ["timeframe"],
)

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
MONTH_ABBREVIATIONS = tuple(name[:3] for name in MONTH_NAMES)


@dataclass(frozen=True)
class PeriodKey:
    """Bucket label plus the position used to order it; ties fall back to the label"""
    label: str
    position: Tuple[int, ...]


@dataclass(frozen=True)
class PeriodBucket:
    """Summed sales for one period"""
    label: str
    amount: float


@dataclass(frozen=True)
class SalesSeries:
    """Ordered period buckets for one timeframe"""
    timeframe: TimeFrame
    buckets: Tuple[PeriodBucket, ...] = ()

    @property
    def labels(self) -> List[str]:
        return [bucket.label for bucket in self.buckets]

    @property
    def values(self) -> List[float]:
        return [bucket.amount for bucket in self.buckets]

    @property
    def total(self) -> float:
        return sum(self.values)

    @property
    def is_empty(self) -> bool:
        return not self.buckets


def week_number(day: date) -> int:
    """
    Week of the year, with weeks starting on Sunday.

    Week 1 runs from January 1st to the first Saturday; numbering restarts
    every year, so weeks never span a year boundary.
    """
    start_of_year = date(day.year, 1, 1)
    days = (day - start_of_year).days
    # Sunday = 0 .. Saturday = 6
    first_weekday = (start_of_year.weekday() + 1) % 7
    return math.ceil((days + first_weekday + 1) / 7)


def _localize(timestamp: datetime, tz: Optional[tzinfo]) -> datetime:
    # Naive timestamps are already in display time
    if tz is not None and timestamp.tzinfo is not None:
        return timestamp.astimezone(tz)
    return timestamp


def period_key(
    timestamp: datetime,
    timeframe: Union[TimeFrame, str],
    tz: Optional[tzinfo] = None,
) -> PeriodKey:
    """
    Derive the bucket a timestamp falls into.

    Args:
        timestamp: Order creation time
        timeframe: Bucketing granularity
        tz: Display timezone applied to timezone-aware timestamps

    Returns:
        PeriodKey with the chart label and its sort position
    """
    timeframe = TimeFrame(timeframe)
    moment = _localize(timestamp, tz)

    if timeframe == TimeFrame.DAILY:
        return PeriodKey(
            label=f"{MONTH_ABBREVIATIONS[moment.month - 1]} {moment.day}",
            position=(moment.month, moment.day),
        )
    if timeframe == TimeFrame.WEEKLY:
        # No position: weekly and yearly buckets sort by label text
        return PeriodKey(label=f"Week {week_number(moment.date())}", position=())
    if timeframe == TimeFrame.MONTHLY:
        return PeriodKey(label=MONTH_NAMES[moment.month - 1], position=(moment.month,))
    return PeriodKey(label=f"{moment.year:04d}", position=())


def aggregate_sales(
    orders: Iterable[Order],
    timeframe: Union[TimeFrame, str],
    tz: Optional[tzinfo] = None,
) -> SalesSeries:
    """
    Group order totals into period buckets.

    Orders without a creation timestamp are excluded. Orders sharing a period
    key are summed. The function keeps no state between calls.

    Args:
        orders: Snapshot of orders
        timeframe: Bucketing granularity
        tz: Display timezone applied to timezone-aware timestamps

    Returns:
        SalesSeries ordered by position, then label
    """
    timeframe = TimeFrame(timeframe)
    start_time = time.perf_counter()

    labels: List[str] = []
    amounts: List[float] = []
    positions: Dict[str, Tuple[int, ...]] = {}
    excluded: List[str] = []

    for order in orders:
        if order.created_at is None:
            excluded.append(order.id)
            continue
        key = period_key(order.created_at, timeframe, tz)
        positions[key.label] = key.position
        labels.append(key.label)
        amounts.append(float(order.total_amount))

    if excluded:
        logger.warning(
            "Orders without creation timestamp excluded",
            excluded=len(excluded),
            order_ids=excluded[:10],
            timeframe=timeframe.value,
        )

    if not labels:
        return SalesSeries(timeframe=timeframe)

    totals = (
        pl.DataFrame(
            {"period": labels, "amount": amounts},
            schema={"period": pl.Utf8, "amount": pl.Float64},
        )
        .group_by("period")
        .agg(pl.col("amount").sum())
    )

    rows = sorted(totals.iter_rows(), key=lambda row: (positions[row[0]], row[0]))
    series = SalesSeries(
        timeframe=timeframe,
        buckets=tuple(PeriodBucket(label=label, amount=amount) for label, amount in rows),
    )

    AGGREGATION_TIME.labels(timeframe=timeframe.value).observe(time.perf_counter() - start_time)
    logger.debug(
        "Sales aggregated",
        timeframe=timeframe.value,
        orders=len(labels),
        buckets=len(series.buckets),
    )
    return series
