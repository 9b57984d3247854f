"""
Database table models
"""
from .order import Order, OrderItem
from .customer import Customer, Worker
from .product import Product

__all__ = [
    "Order",
    "OrderItem",
    "Customer",
    "Worker",
    "Product",
]
