"""
Pytest fixtures and configuration for the Warehouse OMS backend tests

This file provides shared fixtures that can be used across all test modules.
Workflow tests run against the in-memory backend; tests marked with the
database_url fixture are skipped unless DATABASE_URL is configured.
"""
import pytest
import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock

from dotenv import load_dotenv

from oms.repositories.memory_backend import InMemoryBackend
from oms.services.order_workflow_service import OrderWorkflowService

# Load environment variables for tests
load_dotenv()


class FakeClock:
    """Deterministic clock that advances one second per call"""

    def __init__(self, start=None):
        self.current = start or datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        value = self.current
        self.current = self.current + timedelta(seconds=1)
        return value


@pytest.fixture(scope="session")
def database_url():
    """
    Provides the database URL for integration tests

    Scope: session (created once per test session)
    """
    url = os.getenv("DATABASE_URL")
    if not url:
        pytest.skip("DATABASE_URL not configured")
    return url


@pytest.fixture
def mock_cursor():
    """
    Provides a MagicMock standing in for a psycopg2 RealDictCursor
    """
    return MagicMock()


@pytest.fixture
def backend():
    """
    Provides an empty in-memory backend with a short lock timeout
    """
    return InMemoryBackend(lock_timeout=2.0)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def service(backend, clock):
    return OrderWorkflowService(backend, clock=clock)


@pytest.fixture
def customer(backend):
    return backend.add_customer("Acme Retail", email="orders@acme.test")


@pytest.fixture
def product(backend):
    """Product P from the reference scenarios: stock 10, price 5.00"""
    return backend.add_product("Widget A", stock=10, price=Decimal("5.00"), min_stock=2)


@pytest.fixture
def other_product(backend):
    return backend.add_product("Widget B", stock=4, price=Decimal("7.50"))


@pytest.fixture
def stock_of(backend):
    """Returns a function reading the committed stock of a product"""
    def read(product_id):
        with backend.transaction() as tx:
            return backend.products.find_by_id(tx, product_id).stock
    return read
