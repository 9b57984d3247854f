"""
Order Repository - Data Access Layer for Orders

Handles all database queries for orders and order items and returns Order
domain models. Methods take the transaction cursor so a workflow can
combine them with stock ledger calls in one transaction.
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple

from oms.domain.order import Order, OrderItem, OrderStatus

ORDER_COLUMNS = """
    o.id, o.customer_id, o.status, o.created_at,
    o.picker_id, o.packer_id,
    o.picked_at, o.packed_at, o.shipped_at
"""

ITEM_COLUMNS = """
    oi.id, oi.order_id, oi.product_id,
    p.name AS product_name,
    oi.quantity, oi.price_at_order
"""


class OrderRepository:
    """
    Repository for Order data access

    All SQL queries for orders are centralized here.
    Returns Order domain models with their items.
    """

    def find_by_id(self, cursor, order_id: int, for_update: bool = False) -> Optional[Order]:
        """
        Find order by ID with items

        Args:
            cursor: Transaction cursor
            order_id: Internal order ID
            for_update: Lock the order row until the transaction ends

        Returns:
            Order with items or None if not found
        """
        lock_clause = "FOR UPDATE OF o" if for_update else ""
        cursor.execute(f"""
            SELECT {ORDER_COLUMNS}
            FROM orders o
            WHERE o.id = %s
            {lock_clause}
        """, (order_id,))

        row = cursor.fetchone()
        if not row:
            return None

        cursor.execute(f"""
            SELECT {ITEM_COLUMNS}
            FROM order_items oi
            LEFT JOIN products p ON oi.product_id = p.id
            WHERE oi.order_id = %s
            ORDER BY oi.id
        """, (order_id,))
        items = cursor.fetchall()

        order_dict = dict(row)
        order_dict['items'] = [OrderItem(**item) for item in items]
        return Order(**order_dict)

    def find_all(
        self,
        cursor,
        status: Optional[OrderStatus] = None,
        customer_id: Optional[int] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[Order], int]:
        """
        Find orders with filters, newest first

        Returns:
            Tuple of (list of orders, total count)
        """
        conditions = []
        params = []

        if status is not None:
            conditions.append("o.status = %s")
            params.append(status.value)

        if customer_id is not None:
            conditions.append("o.customer_id = %s")
            params.append(customer_id)

        where_clause = " AND ".join(conditions) if conditions else "1=1"

        cursor.execute(f"""
            SELECT COUNT(*) AS total
            FROM orders o
            WHERE {where_clause}
        """, params)
        total = cursor.fetchone()['total']

        cursor.execute(f"""
            SELECT {ORDER_COLUMNS}
            FROM orders o
            WHERE {where_clause}
            ORDER BY o.created_at DESC, o.id DESC
            LIMIT %s OFFSET %s
        """, params + [limit, offset])
        order_rows = cursor.fetchall()

        if not order_rows:
            return [], total

        # All items for this page in one query
        order_ids = [row['id'] for row in order_rows]
        cursor.execute(f"""
            SELECT {ITEM_COLUMNS}
            FROM order_items oi
            LEFT JOIN products p ON oi.product_id = p.id
            WHERE oi.order_id = ANY(%s)
            ORDER BY oi.order_id, oi.id
        """, (order_ids,))

        items_by_order = {}
        for item in cursor.fetchall():
            items_by_order.setdefault(item['order_id'], []).append(OrderItem(**item))

        orders = []
        for row in order_rows:
            order_dict = dict(row)
            order_dict['items'] = items_by_order.get(row['id'], [])
            orders.append(Order(**order_dict))

        return orders, total

    def insert_order(self, cursor, customer_id: int, status: OrderStatus, created_at: datetime) -> Order:
        """Insert an order row and return it without items"""
        cursor.execute("""
            INSERT INTO orders (customer_id, status, created_at)
            VALUES (%s, %s, %s)
            RETURNING id, customer_id, status, created_at,
                      picker_id, packer_id, picked_at, packed_at, shipped_at
        """, (customer_id, status.value, created_at))

        return Order(**cursor.fetchone())

    def insert_item(
        self,
        cursor,
        order_id: int,
        product_id: int,
        quantity: int,
        price_at_order: Decimal,
        product_name: Optional[str] = None
    ) -> OrderItem:
        """Insert an order line with its frozen unit price"""
        cursor.execute("""
            INSERT INTO order_items (order_id, product_id, quantity, price_at_order)
            VALUES (%s, %s, %s, %s)
            RETURNING id, order_id, product_id, quantity, price_at_order
        """, (order_id, product_id, quantity, price_at_order))

        row = dict(cursor.fetchone())
        row['product_name'] = product_name
        return OrderItem(**row)

    def update_item_quantity(self, cursor, item_id: int, quantity: int) -> None:
        cursor.execute("""
            UPDATE order_items
            SET quantity = %s
            WHERE id = %s
        """, (quantity, item_id))

    def delete_item(self, cursor, item_id: int) -> None:
        cursor.execute("DELETE FROM order_items WHERE id = %s", (item_id,))

    def update_order(
        self,
        cursor,
        order_id: int,
        status: Optional[OrderStatus] = None,
        picker_id: Optional[int] = None,
        packer_id: Optional[int] = None,
        picked_at: Optional[datetime] = None,
        packed_at: Optional[datetime] = None,
        shipped_at: Optional[datetime] = None
    ) -> None:
        """
        Apply an order patch

        Fixed column list; a None argument keeps the stored value.
        """
        cursor.execute("""
            UPDATE orders
            SET status = COALESCE(%s, status),
                picker_id = COALESCE(%s, picker_id),
                packer_id = COALESCE(%s, packer_id),
                picked_at = COALESCE(%s, picked_at),
                packed_at = COALESCE(%s, packed_at),
                shipped_at = COALESCE(%s, shipped_at)
            WHERE id = %s
        """, (
            status.value if status is not None else None,
            picker_id,
            packer_id,
            picked_at,
            packed_at,
            shipped_at,
            order_id
        ))
