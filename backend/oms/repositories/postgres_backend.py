"""
PostgreSQL storage backend

Bundles the SQL repositories with the transaction scope they share.
"""
from contextlib import contextmanager
from typing import Iterator, Optional

from oms.core.database import pg_transaction, check_connection
from oms.repositories.stock_ledger import StockLedger
from oms.repositories.order_repository import OrderRepository
from oms.repositories.product_repository import ProductRepository
from oms.repositories.customer_repository import CustomerRepository, WorkerRepository


class PostgresBackend:
    """Relational store; row locks come from SELECT ... FOR UPDATE"""

    name = "postgres"

    def __init__(self, lock_timeout_ms: Optional[int] = None):
        self.lock_timeout_ms = lock_timeout_ms
        self.ledger = StockLedger()
        self.orders = OrderRepository()
        self.products = ProductRepository()
        self.customers = CustomerRepository()
        self.workers = WorkerRepository()

    @contextmanager
    def transaction(self) -> Iterator:
        with pg_transaction(self.lock_timeout_ms) as cursor:
            yield cursor

    def check(self) -> float:
        """Storage health check, returns latency in milliseconds"""
        return check_connection()
