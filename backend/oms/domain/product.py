"""
Product Domain Model

Represents a warehouse product and its stock level.
This is the single source of truth for product data structure.
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime
from decimal import Decimal


class Product(BaseModel):
    """
    Product domain model - represents a product kept in the warehouse

    Fields:
        id: Internal product ID (primary key)
        name: Product name
        code: Internal product code / SKU (optional)
        description: Product description (optional)
        category: Product category (optional)
        supplier: Supplier name (optional)
        price: Current selling price
        stock: Units currently on hand, never negative
        min_stock: Minimum stock alert threshold
        created_at: When product was created
        updated_at: When product was last updated
    """

    # Primary identification
    id: int = Field(..., description="Internal product ID")
    name: str = Field(..., description="Product name")

    # Details
    code: Optional[str] = Field(None, description="Product code / SKU")
    description: Optional[str] = Field(None, description="Product description")
    category: Optional[str] = Field(None, description="Product category")
    supplier: Optional[str] = Field(None, description="Supplier name")

    # Pricing and inventory
    price: Decimal = Field(Decimal('0'), description="Current price", ge=0)
    stock: int = Field(0, description="Units on hand", ge=0)
    min_stock: int = Field(0, description="Minimum stock threshold", ge=0)

    # Metadata
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    model_config = ConfigDict(from_attributes=True)

    # Computed properties
    @property
    def is_low_stock(self) -> bool:
        """Check if product stock is at or below minimum threshold"""
        return self.stock <= self.min_stock

    @property
    def is_out_of_stock(self) -> bool:
        """Check if product is out of stock"""
        return self.stock <= 0

    def to_dict(self) -> dict:
        """
        Convert to dictionary with computed fields

        Returns camelCase keys, Decimal as float and ISO timestamps
        """
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "description": self.description,
            "category": self.category,
            "supplier": self.supplier,
            "price": float(self.price),
            "stock": self.stock,
            "minStock": self.min_stock,
            "isLowStock": self.is_low_stock,
            "isOutOfStock": self.is_out_of_stock,
        }


class StockReservation(BaseModel):
    """
    Result of a successful stock reservation

    Carries the product's name and price read under the same row lock as
    the decrement, so the order line captures the price-at-order.
    """
    product_id: int
    product_name: str
    price: Decimal
    quantity: int
    remaining_stock: int = Field(..., ge=0)
