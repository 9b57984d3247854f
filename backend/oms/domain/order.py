"""
Order Domain Models

Represents order-related entities of the warehouse: orders, their line
items, the customers who place them and the workers who pick and pack
them. Also holds the request/patch schemas for order mutations.
"""
from enum import Enum
from pydantic import BaseModel, Field, ConfigDict, StrictInt
from typing import Optional, List
from datetime import datetime
from decimal import Decimal


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


class OrderStatus(str, Enum):
    """
    Order fulfilment progression

    pending -> picked -> packed -> shipped, forward only.
    """
    PENDING = "pending"
    PICKED = "picked"
    PACKED = "packed"
    SHIPPED = "shipped"

    @property
    def rank(self) -> int:
        return _STATUS_ORDER.index(self)

    def can_advance_to(self, target: "OrderStatus") -> bool:
        """True if target lies strictly after this status"""
        return target.rank > self.rank


_STATUS_ORDER = [OrderStatus.PENDING, OrderStatus.PICKED, OrderStatus.PACKED, OrderStatus.SHIPPED]


class OrderItem(BaseModel):
    """
    Order Item domain model - represents a line item in an order

    Fields:
        id: Internal order item ID
        order_id: Parent order ID
        product_id: Reference to product
        product_name: Product name (from JOIN)
        quantity: Number of units reserved for this line
        price_at_order: Unit price captured when the stock was reserved
    """

    id: int = Field(..., description="Order item ID")
    order_id: int = Field(..., description="Parent order ID")
    product_id: int = Field(..., description="Product ID")
    product_name: Optional[str] = Field(None, description="Product name")
    quantity: int = Field(..., description="Quantity ordered", ge=1)
    price_at_order: Decimal = Field(..., description="Unit price at order time", ge=0)

    model_config = ConfigDict(from_attributes=True)

    @property
    def line_total(self) -> Decimal:
        return self.price_at_order * self.quantity

    def to_dict(self) -> dict:
        """Convert to the read-model shape with Decimal as float"""
        return {
            "id": self.id,
            "productId": self.product_id,
            "productName": self.product_name,
            "quantity": self.quantity,
            "priceAtOrder": float(self.price_at_order),
        }


class Customer(BaseModel):
    """
    Customer domain model (lightweight for order context)
    """

    id: int = Field(..., description="Customer ID")
    name: str = Field(..., description="Customer name")
    email: Optional[str] = Field(None, description="Customer email")
    phone: Optional[str] = Field(None, description="Customer phone")
    address: Optional[str] = Field(None, description="Customer address")

    model_config = ConfigDict(from_attributes=True)


class Worker(BaseModel):
    """Warehouse worker who can be assigned to pick or pack an order"""

    id: int = Field(..., description="Worker ID")
    name: str = Field(..., description="Worker name")
    role: Optional[str] = Field(None, description="picker, packer, ...")

    model_config = ConfigDict(from_attributes=True)


class Order(BaseModel):
    """
    Order domain model - represents one customer order and its items

    Item add/change/remove is only legal while the order is pending;
    the workflow service checks is_editable() before touching items.

    Fields:
        id: Internal order ID (primary key)
        customer_id: Reference to customer
        status: pending, picked, packed or shipped
        created_at: When order was created
        picker_id / packer_id: Assigned workers (optional)
        picked_at / packed_at / shipped_at: Stage timestamps (optional)
        items: Order line items
    """

    id: int = Field(..., description="Internal order ID")
    customer_id: int = Field(..., description="Customer ID")
    status: OrderStatus = Field(OrderStatus.PENDING, description="Order status")
    created_at: datetime = Field(..., description="Creation timestamp")

    # Assignments and stage timestamps
    picker_id: Optional[int] = Field(None, description="Assigned picker")
    packer_id: Optional[int] = Field(None, description="Assigned packer")
    picked_at: Optional[datetime] = Field(None, description="Picked timestamp")
    packed_at: Optional[datetime] = Field(None, description="Packed timestamp")
    shipped_at: Optional[datetime] = Field(None, description="Shipped timestamp")

    items: List[OrderItem] = Field(default_factory=list, description="Order items")

    model_config = ConfigDict(from_attributes=True)

    def is_editable(self) -> bool:
        """Items may only change while the order is pending"""
        return self.status == OrderStatus.PENDING

    @property
    def item_count(self) -> int:
        """Number of line items in order"""
        return len(self.items)

    @property
    def total_quantity(self) -> int:
        """Total quantity of all items"""
        return sum(item.quantity for item in self.items)

    @property
    def total(self) -> Decimal:
        return sum((item.line_total for item in self.items), Decimal('0'))

    def find_item(self, item_id: int) -> Optional[OrderItem]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def to_dict(self) -> dict:
        """
        Convert to the order read model

        {id, customerId, status, createdAt, items: [...]} plus the
        assignment fields used by the picking screens.
        """
        return {
            "id": self.id,
            "customerId": self.customer_id,
            "status": self.status.value,
            "createdAt": _iso(self.created_at),
            "pickerId": self.picker_id,
            "packerId": self.packer_id,
            "pickedAt": _iso(self.picked_at),
            "packedAt": _iso(self.packed_at),
            "shippedAt": _iso(self.shipped_at),
            "items": [item.to_dict() for item in self.items],
        }


# ============================================================================
# Request / patch schemas
# ============================================================================

class OrderLineCreate(BaseModel):
    """One requested line: product and quantity"""
    product_id: StrictInt = Field(..., alias="productId")
    quantity: StrictInt

    model_config = ConfigDict(populate_by_name=True)


class OrderCreate(BaseModel):
    """Schema for creating a new order"""
    customer_id: StrictInt = Field(..., alias="customerId")
    items: List[OrderLineCreate]

    model_config = ConfigDict(populate_by_name=True)


class OrderItemQuantityUpdate(BaseModel):
    """Schema for changing the quantity of an existing line"""
    quantity: StrictInt


class OrderPatch(BaseModel):
    """
    Explicit patch for the mutable order fields

    Each field is optional; only fields that are set get applied.
    """
    status: Optional[OrderStatus] = None
    picker_id: Optional[StrictInt] = Field(None, alias="pickerId")
    packer_id: Optional[StrictInt] = Field(None, alias="packerId")

    model_config = ConfigDict(populate_by_name=True)

    def is_empty(self) -> bool:
        return self.status is None and self.picker_id is None and self.packer_id is None
