"""
Product Repository - read access to products

Stock changes never go through here; see StockLedger.
"""
from typing import List, Optional

from oms.domain.product import Product

PRODUCT_COLUMNS = """
    id, name, code, description, category, supplier,
    price, stock, min_stock, created_at, updated_at
"""


class ProductRepository:
    """Repository for Product data access"""

    def find_by_id(self, cursor, product_id: int) -> Optional[Product]:
        cursor.execute(f"""
            SELECT {PRODUCT_COLUMNS}
            FROM products
            WHERE id = %s
        """, (product_id,))

        row = cursor.fetchone()
        if not row:
            return None
        return Product(**row)

    def find_all(self, cursor, low_stock_only: bool = False) -> List[Product]:
        """
        Get products with their current stock

        Args:
            low_stock_only: Only products at or below their minimum threshold
        """
        where_clause = "stock <= min_stock" if low_stock_only else "1=1"
        cursor.execute(f"""
            SELECT {PRODUCT_COLUMNS}
            FROM products
            WHERE {where_clause}
            ORDER BY name, id
        """)

        return [Product(**row) for row in cursor.fetchall()]
