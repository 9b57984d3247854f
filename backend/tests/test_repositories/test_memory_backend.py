"""
Tests for the in-memory backend: row locks, staged commits and rollback
"""
import threading
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from oms.core.exceptions import InsufficientStock, LockTimeout, ProductNotFound
from oms.domain.order import OrderStatus
from oms.repositories.memory_backend import InMemoryBackend


class TestMemoryLedger:

    def test_rollback_discards_reservation(self, backend, stock_of):
        product = backend.add_product("Widget", stock=5)

        with pytest.raises(RuntimeError):
            with backend.transaction() as tx:
                backend.ledger.reserve(tx, product.id, 3)
                raise RuntimeError("abort")

        assert stock_of(product.id) == 5

    def test_uncommitted_changes_are_invisible_to_readers(self, backend, stock_of):
        product = backend.add_product("Widget", stock=5)
        customer = backend.add_customer("Acme")

        with backend.transaction() as tx:
            backend.ledger.reserve(tx, product.id, 2)
            order = backend.orders.insert_order(tx, customer.id, OrderStatus.PENDING, datetime.now(timezone.utc))
            backend.orders.insert_item(tx, order.id, product.id, 2, Decimal("1.00"))

            # The transaction sees its own writes
            assert backend.products.find_by_id(tx, product.id).stock == 3
            assert backend.orders.find_by_id(tx, order.id).item_count == 1

            # Another reader does not
            assert stock_of(product.id) == 5
            with backend.transaction() as reader:
                assert backend.orders.find_by_id(reader, order.id) is None

        assert stock_of(product.id) == 3

    def test_reserve_unknown_product(self, backend):
        with backend.transaction() as tx:
            with pytest.raises(ProductNotFound):
                backend.ledger.reserve(tx, 42, 1)

    def test_concurrent_single_unit_reservations(self, backend, stock_of):
        """N concurrent reserve(1) calls on stock S succeed exactly min(N, S) times"""
        product = backend.add_product("Widget", stock=7)
        attempts = 20
        outcomes = []
        outcomes_lock = threading.Lock()
        barrier = threading.Barrier(attempts)

        def reserve_one():
            barrier.wait()
            try:
                with backend.transaction() as tx:
                    backend.ledger.reserve(tx, product.id, 1)
                result = True
            except InsufficientStock:
                result = False
            with outcomes_lock:
                outcomes.append(result)

        threads = [threading.Thread(target=reserve_one) for _ in range(attempts)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count(True) == 7
        assert outcomes.count(False) == 13
        assert stock_of(product.id) == 0

    def test_distinct_products_do_not_block(self, backend):
        first = backend.add_product("Bolt", stock=5)
        second = backend.add_product("Nut", stock=5)
        locked = threading.Event()
        release = threading.Event()

        def hold_first():
            with backend.transaction() as tx:
                backend.ledger.reserve(tx, first.id, 1)
                locked.set()
                release.wait(timeout=5)

        holder = threading.Thread(target=hold_first)
        holder.start()
        locked.wait(timeout=5)
        try:
            with backend.transaction() as tx:
                reservation = backend.ledger.reserve(tx, second.id, 1)
            assert reservation.remaining_stock == 4
        finally:
            release.set()
            holder.join()

    def test_lock_wait_times_out(self):
        backend = InMemoryBackend(lock_timeout=0.05)
        product = backend.add_product("Widget", stock=5)
        locked = threading.Event()
        release = threading.Event()

        def hold():
            with backend.transaction() as tx:
                backend.ledger.reserve(tx, product.id, 1)
                locked.set()
                release.wait(timeout=5)

        holder = threading.Thread(target=hold)
        holder.start()
        locked.wait(timeout=5)
        try:
            with pytest.raises(LockTimeout):
                with backend.transaction() as tx:
                    backend.ledger.reserve(tx, product.id, 1)
        finally:
            release.set()
            holder.join()

    def test_seed_demo_data(self):
        backend = InMemoryBackend()
        backend.seed_demo_data()

        with backend.transaction() as tx:
            names = [p.name for p in backend.products.find_all(tx)]
            assert backend.customers.exists(tx, 1)
            assert backend.workers.exists(tx, 2)

        assert names == ["Widget A", "Widget B"]
