"""
Stock Ledger - authoritative product stock counts (PostgreSQL)

Every stock change goes through here. Each call locks the product row with
SELECT ... FOR UPDATE inside the caller's transaction, so concurrent
reservations against the same product serialize on the row lock and the
availability check is never made against a stale count. The lock is held
until the surrounding transaction commits or rolls back.
"""
import logging
from typing import Iterable

from oms.core.exceptions import ProductNotFound, InsufficientStock
from oms.domain.product import StockReservation

logger = logging.getLogger(__name__)


class StockLedger:
    """
    Row-locking stock ledger

    All methods take the transaction cursor yielded by
    oms.core.database.pg_transaction().
    """

    @staticmethod
    def _lock_product_row(cursor, product_id: int) -> dict:
        cursor.execute("""
            SELECT id, name, stock, price
            FROM products
            WHERE id = %s
            FOR UPDATE
        """, (product_id,))

        row = cursor.fetchone()
        if not row:
            raise ProductNotFound(product_id)
        return row

    def lock_products(self, cursor, product_ids: Iterable[int]) -> None:
        """
        Lock several product rows in ascending id order

        Multi-item orders call this before reserving so two orders touching
        the same products always queue in the same order instead of
        deadlocking. Unknown ids are ignored here; reserve() reports them.
        """
        ids = sorted(set(product_ids))
        if not ids:
            return

        cursor.execute("""
            SELECT id
            FROM products
            WHERE id = ANY(%s)
            ORDER BY id
            FOR UPDATE
        """, (ids,))
        cursor.fetchall()

    def reserve(self, cursor, product_id: int, quantity: int) -> StockReservation:
        """
        Decrement stock by quantity if enough is available

        Raises:
            ProductNotFound: product does not exist
            InsufficientStock: stock < quantity (nothing is decremented)
        """
        row = self._lock_product_row(cursor, product_id)

        if row['stock'] < quantity:
            raise InsufficientStock(product_id, row['stock'], quantity, row['name'])

        cursor.execute("""
            UPDATE products
            SET stock = stock - %s, updated_at = NOW()
            WHERE id = %s
            RETURNING stock
        """, (quantity, product_id))
        remaining = cursor.fetchone()['stock']

        logger.debug(f"Reserved {quantity} of product {product_id}, {remaining} left")

        return StockReservation(
            product_id=product_id,
            product_name=row['name'],
            price=row['price'],
            quantity=quantity,
            remaining_stock=remaining,
        )

    def release(self, cursor, product_id: int, quantity: int) -> int:
        """
        Return quantity units to stock

        Returns:
            Updated stock

        Raises:
            ProductNotFound: product does not exist
        """
        self._lock_product_row(cursor, product_id)

        cursor.execute("""
            UPDATE products
            SET stock = stock + %s, updated_at = NOW()
            WHERE id = %s
            RETURNING stock
        """, (quantity, product_id))
        stock = cursor.fetchone()['stock']

        logger.debug(f"Released {quantity} of product {product_id}, {stock} on hand")
        return stock

    def adjust(self, cursor, product_id: int, delta: int) -> int:
        """
        Apply a signed stock change

        delta > 0 reserves (checks availability), delta < 0 releases,
        delta == 0 only verifies the product exists.

        Returns:
            Updated stock
        """
        if delta > 0:
            return self.reserve(cursor, product_id, delta).remaining_stock
        if delta < 0:
            return self.release(cursor, product_id, -delta)
        return self._lock_product_row(cursor, product_id)['stock']
