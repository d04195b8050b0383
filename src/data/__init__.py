"""
Data Generation Module
"""
from .generators import OrderGenerator, generate_orders

__all__ = [
    "OrderGenerator",
    "generate_orders",
]
