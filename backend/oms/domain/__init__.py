"""
Domain Layer - Business Entities

This layer contains Pydantic models representing business entities.
These models enforce type safety and validation across the application.
"""
from oms.domain.product import Product, StockReservation
from oms.domain.order import (
    Order,
    OrderItem,
    OrderStatus,
    Customer,
    Worker,
    OrderCreate,
    OrderLineCreate,
    OrderItemQuantityUpdate,
    OrderPatch,
)

__all__ = [
    'Product',
    'StockReservation',
    'Order',
    'OrderItem',
    'OrderStatus',
    'Customer',
    'Worker',
    'OrderCreate',
    'OrderLineCreate',
    'OrderItemQuantityUpdate',
    'OrderPatch',
]
