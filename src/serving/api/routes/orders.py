"""
Orders API Endpoints

Current orders by status, order details with a price breakdown, and the
processing -> completed transition.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool
import structlog

from src.auth.principal import Principal
from src.domain.models import BasketItem, Order, OrderStatus
from src.serving.api.dependencies import get_store, require_principal
from src.store.interfaces import OrderStore

router = APIRouter()
logger = structlog.get_logger(__name__)


# =============================================================================
# REQUEST/RESPONSE MODELS
# =============================================================================

class OrderSummary(BaseModel):
    """Order card in the current orders list"""
    id: str
    order_id: Optional[str]
    status: str
    total_amount: float
    created_at: Optional[datetime]
    pickup_date: Optional[datetime]
    delivery_date: Optional[datetime]
    address: Optional[str]

    @classmethod
    def from_order(cls, order: Order) -> "OrderSummary":
        return cls(
            id=order.id,
            order_id=order.order_id,
            status=order.status,
            total_amount=order.total_amount,
            created_at=order.created_at,
            pickup_date=order.pickup_date,
            delivery_date=order.delivery_date,
            address=order.shipping_address.address_string if order.shipping_address else None,
        )


class PriceBreakdown(BaseModel):
    """Order total split into basket subtotal and fees"""
    subtotal: float
    fold_fees: float
    ironing_fees: float
    transportation_fees: float
    total_amount: float


class OrderDetail(OrderSummary):
    """Full order details"""
    user_email: Optional[str]
    user_id: Optional[str]
    latitude: Optional[float]
    longitude: Optional[float]
    items: List[BasketItem]
    breakdown: PriceBreakdown

    @classmethod
    def from_order(cls, order: Order) -> "OrderDetail":
        summary = OrderSummary.from_order(order)
        return cls(
            **summary.model_dump(),
            user_email=order.user_email,
            user_id=order.user_id,
            latitude=order.shipping_address.latitude if order.shipping_address else None,
            longitude=order.shipping_address.longitude if order.shipping_address else None,
            items=list(order.baskets),
            breakdown=PriceBreakdown(
                subtotal=order.subtotal,
                fold_fees=order.fold_fees,
                ironing_fees=order.ironing_fees,
                transportation_fees=order.transportation_fees,
                total_amount=order.total_amount,
            ),
        )


class OrderListResponse(BaseModel):
    """Orders with one status"""
    status: OrderStatus
    items: List[OrderSummary]
    total: int


def _newest_first(order: Order) -> float:
    return order.created_at.timestamp() if order.created_at else float("-inf")


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("", response_model=OrderListResponse)
async def list_orders(
    status: OrderStatus = Query(OrderStatus.PROCESSING),
    principal: Principal = Depends(require_principal),
    store: OrderStore = Depends(get_store),
) -> OrderListResponse:
    """
    List orders with the given status, newest first.
    """
    orders = await run_in_threadpool(store.fetch, status)
    orders = sorted(orders, key=_newest_first, reverse=True)

    logger.debug("Orders listed", status=status.value, count=len(orders), principal=principal.uid)
    return OrderListResponse(
        status=status,
        items=[OrderSummary.from_order(o) for o in orders],
        total=len(orders),
    )


@router.get("/{order_id}", response_model=OrderDetail)
async def get_order(
    order_id: str,
    principal: Principal = Depends(require_principal),
    store: OrderStore = Depends(get_store),
) -> OrderDetail:
    """Get a single order with its items and price breakdown."""
    order = await run_in_threadpool(store.get, order_id)
    return OrderDetail.from_order(order)


@router.post("/{order_id}/complete", response_model=OrderSummary)
async def complete_order(
    order_id: str,
    principal: Principal = Depends(require_principal),
    store: OrderStore = Depends(get_store),
) -> OrderSummary:
    """Mark a processing order as completed."""
    order = await run_in_threadpool(store.mark_completed, order_id)
    logger.info("Order completed by operator", order_id=order_id, principal=principal.uid)
    return OrderSummary.from_order(order)
