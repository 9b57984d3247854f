"""
Order tables
"""
from sqlalchemy import Column, Integer, String, DateTime, DECIMAL, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from oms.core.database import Base


class Order(Base):
    """
    Customer orders and their fulfilment progress
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)

    # pending -> picked -> packed -> shipped
    status = Column(String(20), nullable=False, default="pending", server_default="pending", index=True)

    # Assignments
    picker_id = Column(Integer, ForeignKey("workers.id"))
    packer_id = Column(Integer, ForeignKey("workers.id"))

    # Stage timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)
    picked_at = Column(DateTime(timezone=True))
    packed_at = Column(DateTime(timezone=True))
    shipped_at = Column(DateTime(timezone=True))

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'picked', 'packed', 'shipped')",
            name="orders_status_check",
        ),
    )

    # Relationships
    customer = relationship("Customer", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")


class OrderItem(Base):
    """
    Order lines; price_at_order is frozen when stock is reserved
    """
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), index=True, nullable=False)

    quantity = Column(Integer, nullable=False)
    price_at_order = Column(DECIMAL(12, 2), nullable=False)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="order_items_quantity_check"),
        CheckConstraint("price_at_order >= 0", name="order_items_price_check"),
    )

    # Relationships
    order = relationship("Order", back_populates="items")
    product = relationship("Product", back_populates="order_items")
