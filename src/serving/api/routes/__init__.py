"""
API Routes Module
"""
from .health import router as health_router
from .orders import router as orders_router
from .overview import router as overview_router

__all__ = [
    "health_router",
    "orders_router",
    "overview_router",
]
