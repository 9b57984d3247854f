"""
Product table
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, DECIMAL, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from oms.core.database import Base


class Product(Base):
    """
    Warehouse products; stock is only changed through the stock ledger
    """
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    code = Column(String(100), unique=True)
    description = Column(Text)
    category = Column(String(100), index=True)
    supplier = Column(String(255))

    price = Column(DECIMAL(12, 2), nullable=False, default=0, server_default="0")
    stock = Column(Integer, nullable=False, default=0, server_default="0")
    min_stock = Column(Integer, nullable=False, default=0, server_default="0")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("stock >= 0", name="products_stock_check"),
        CheckConstraint("price >= 0", name="products_price_check"),
        CheckConstraint("min_stock >= 0", name="products_min_stock_check"),
    )

    order_items = relationship("OrderItem", back_populates="product")
