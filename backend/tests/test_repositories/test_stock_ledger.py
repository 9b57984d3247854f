"""
Unit tests for the PostgreSQL StockLedger

These tests validate the SQL issued by the ledger without requiring a
database connection.
"""
import pytest
from decimal import Decimal

from oms.core.exceptions import ProductNotFound, InsufficientStock
from oms.repositories.stock_ledger import StockLedger


def _locked_row(stock=10, price=Decimal("5.00")):
    return {'id': 1, 'name': 'Widget A', 'stock': stock, 'price': price}


class TestStockLedger:
    """Test StockLedger methods"""

    def test_reserve_locks_row_and_decrements(self, mock_cursor):
        """Test reserve takes FOR UPDATE lock then decrements stock"""
        # Arrange
        mock_cursor.fetchone.side_effect = [_locked_row(stock=10), {'stock': 7}]

        # Act
        reservation = StockLedger().reserve(mock_cursor, 1, 3)

        # Assert
        assert reservation.remaining_stock == 7
        assert reservation.price == Decimal("5.00")
        assert reservation.product_name == 'Widget A'

        lock_sql, lock_params = mock_cursor.execute.call_args_list[0].args
        assert "FOR UPDATE" in lock_sql
        assert lock_params == (1,)

        update_sql, update_params = mock_cursor.execute.call_args_list[1].args
        assert "stock = stock - %s" in update_sql
        assert update_params == (3, 1)

    def test_reserve_insufficient_stock_does_not_update(self, mock_cursor):
        """Test reserve raises InsufficientStock and issues no UPDATE"""
        mock_cursor.fetchone.return_value = _locked_row(stock=2)

        with pytest.raises(InsufficientStock) as exc_info:
            StockLedger().reserve(mock_cursor, 1, 3)

        assert exc_info.value.available == 2
        assert exc_info.value.requested == 3
        assert "Widget A" in exc_info.value.message
        assert mock_cursor.execute.call_count == 1

    def test_reserve_exact_stock_allowed(self, mock_cursor):
        mock_cursor.fetchone.side_effect = [_locked_row(stock=3), {'stock': 0}]

        reservation = StockLedger().reserve(mock_cursor, 1, 3)

        assert reservation.remaining_stock == 0

    def test_reserve_unknown_product(self, mock_cursor):
        mock_cursor.fetchone.return_value = None

        with pytest.raises(ProductNotFound):
            StockLedger().reserve(mock_cursor, 99, 1)

    def test_release_increments(self, mock_cursor):
        mock_cursor.fetchone.side_effect = [_locked_row(stock=7), {'stock': 10}]

        stock = StockLedger().release(mock_cursor, 1, 3)

        assert stock == 10
        update_sql, update_params = mock_cursor.execute.call_args_list[1].args
        assert "stock = stock + %s" in update_sql
        assert update_params == (3, 1)

    def test_release_unknown_product(self, mock_cursor):
        mock_cursor.fetchone.return_value = None

        with pytest.raises(ProductNotFound):
            StockLedger().release(mock_cursor, 99, 1)

    def test_adjust_zero_only_reads(self, mock_cursor):
        mock_cursor.fetchone.return_value = _locked_row(stock=7)

        assert StockLedger().adjust(mock_cursor, 1, 0) == 7
        assert mock_cursor.execute.call_count == 1

    def test_adjust_positive_reserves(self, mock_cursor):
        mock_cursor.fetchone.side_effect = [_locked_row(stock=7), {'stock': 5}]

        assert StockLedger().adjust(mock_cursor, 1, 2) == 5

    def test_adjust_negative_releases(self, mock_cursor):
        mock_cursor.fetchone.side_effect = [_locked_row(stock=5), {'stock': 9}]

        assert StockLedger().adjust(mock_cursor, 1, -4) == 9
        _, update_params = mock_cursor.execute.call_args_list[1].args
        assert update_params == (4, 1)

    def test_lock_products_sorted_and_deduplicated(self, mock_cursor):
        StockLedger().lock_products(mock_cursor, [3, 1, 3, 2])

        sql, params = mock_cursor.execute.call_args.args
        assert "ORDER BY id" in sql
        assert "FOR UPDATE" in sql
        assert params == ([1, 2, 3],)

    def test_lock_products_empty_is_noop(self, mock_cursor):
        StockLedger().lock_products(mock_cursor, [])
        mock_cursor.execute.assert_not_called()
