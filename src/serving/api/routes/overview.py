"""
Sales Overview Endpoints

Chart data for the sales overview panel, as a one-off payload or as a
Server-Sent Events stream that follows the live order collection.
"""

import asyncio
from typing import AsyncIterator, Optional
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from starlette.concurrency import run_in_threadpool
import structlog

from src.analytics.overview import ChartPayload, SalesOverview, build_chart
from src.auth.principal import Principal, StaticPrincipalProvider
from src.config import Settings
from src.domain.models import TimeFrame
from src.serving.api.dependencies import (
    get_app_settings,
    get_display_timezone,
    get_principal,
    get_store,
    require_principal,
)
from src.store.interfaces import OrderStore, normalize_status
from src.streaming.subscriptions import OrderSubscriptionManager, SnapshotStream

router = APIRouter()
logger = structlog.get_logger(__name__)


def _sse_message(payload: ChartPayload) -> str:
    return f"event: {payload.state.value}\ndata: {payload.model_dump_json()}\n\n"


@router.get("/sales", response_model=ChartPayload)
async def get_sales_chart(
    timeframe: Optional[TimeFrame] = None,
    status: Optional[str] = None,
    principal: Principal = Depends(require_principal),
    store: OrderStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
    tz: ZoneInfo = Depends(get_display_timezone),
) -> ChartPayload:
    """
    Aggregate the current order snapshot into chart buckets.
    """
    status_filter = normalize_status(status)
    timeframe = timeframe or settings.dashboard.default_timeframe

    logger.info(
        "get_sales_chart called",
        timeframe=timeframe.value,
        status_filter=status_filter.value if status_filter else None,
        principal=principal.uid,
    )

    orders = await run_in_threadpool(store.fetch, status_filter)
    return build_chart(orders, timeframe, status_filter, tz, settings.dashboard.currency)


async def _stream_payloads(
    request: Request,
    events: SnapshotStream,
    overview: SalesOverview,
    keepalive_seconds: float,
) -> AsyncIterator[str]:
    try:
        iterator = events.__aiter__()
        while True:
            if await request.is_disconnected():
                logger.info("Sales stream client disconnected")
                break
            try:
                event = await asyncio.wait_for(iterator.__anext__(), timeout=keepalive_seconds)
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
                continue
            except StopAsyncIteration:
                break

            yield _sse_message(overview.handle(event))
    finally:
        events.cancel()


@router.get("/sales/stream")
async def stream_sales_chart(
    request: Request,
    timeframe: Optional[TimeFrame] = None,
    status: Optional[str] = None,
    principal: Optional[Principal] = Depends(get_principal),
    store: OrderStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
    tz: ZoneInfo = Depends(get_display_timezone),
) -> StreamingResponse:
    """
    Stream chart payloads, one per order snapshot.

    Each message is an SSE event named after the chart state
    (``ready``, ``empty`` or ``error``).
    """
    manager = OrderSubscriptionManager(store, StaticPrincipalProvider(principal))
    overview = SalesOverview(
        manager,
        timeframe=timeframe or settings.dashboard.default_timeframe,
        status_filter=status,
        tz=tz,
        currency=settings.dashboard.currency,
    )

    # Raises Unauthenticated before any byte is streamed
    events = manager.stream(overview.status_filter)

    return StreamingResponse(
        _stream_payloads(request, events, overview, settings.dashboard.stream_keepalive_seconds),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
