"""
Order Store Module
"""
from typing import Optional

import structlog

from src.config import Settings, get_settings

from .interfaces import OrderStore, normalize_status, orders_from_documents
from .memory import InMemoryOrderStore

logger = structlog.get_logger(__name__)


def create_order_store(settings: Optional[Settings] = None) -> OrderStore:
    """Create the order store selected by ``STORE_BACKEND``"""
    settings = settings or get_settings()

    if settings.store.backend == "memory":
        from src.data.generators import generate_orders

        orders = generate_orders(settings.store.demo_orders, seed=settings.store.demo_seed)
        logger.info("Using in-memory order store", demo_orders=len(orders))
        return InMemoryOrderStore(orders)

    from .firestore import create_firestore_store

    logger.info("Using Firestore order store", project=settings.firestore.project_id)
    return create_firestore_store(settings)


__all__ = [
    "InMemoryOrderStore",
    "OrderStore",
    "create_order_store",
    "normalize_status",
    "orders_from_documents",
]
