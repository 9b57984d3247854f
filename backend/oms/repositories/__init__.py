"""
Repository Layer - Data Access

This layer handles all storage access and returns domain models.
Two interchangeable backends expose the same interface:

    backend.transaction()  -> transaction handle (context manager)
    backend.ledger         -> stock reserve / release / adjust
    backend.orders         -> orders and order items
    backend.products       -> product reads
    backend.customers      -> customer lookup
    backend.workers        -> worker lookup
"""
from oms.core.config import settings
from oms.repositories.stock_ledger import StockLedger
from oms.repositories.order_repository import OrderRepository
from oms.repositories.product_repository import ProductRepository
from oms.repositories.customer_repository import CustomerRepository, WorkerRepository
from oms.repositories.postgres_backend import PostgresBackend
from oms.repositories.memory_backend import InMemoryBackend


def get_backend(backend_name=None):
    """
    Build the storage backend selected by STORAGE_BACKEND

    Raises:
        ValueError: unknown backend name
    """
    backend_name = (backend_name or settings.STORAGE_BACKEND).lower()

    if backend_name == "postgres":
        return PostgresBackend(lock_timeout_ms=settings.LOCK_TIMEOUT_MS)

    if backend_name == "memory":
        backend = InMemoryBackend(lock_timeout=settings.lock_timeout_seconds)
        backend.seed_demo_data()
        return backend

    raise ValueError(f"Unknown STORAGE_BACKEND: {backend_name!r}")


__all__ = [
    'StockLedger',
    'OrderRepository',
    'ProductRepository',
    'CustomerRepository',
    'WorkerRepository',
    'PostgresBackend',
    'InMemoryBackend',
    'get_backend',
]
