"""
In-memory storage backend

A lock-protected arena of product, customer, worker, order and order item
records addressed by id. It offers the same repository interface as the
PostgreSQL backend and the same guarantees:

- one lock per product row and per order row, held by a transaction from
  first use until it ends (distinct products never block each other)
- writes are staged inside the transaction and published at commit under
  a single commit lock, so readers never see half a workflow
- a transaction that exits with an exception publishes nothing

Used for local runs (STORAGE_BACKEND=memory) and for the workflow tests.
"""
import itertools
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from oms.core.exceptions import ProductNotFound, InsufficientStock, LockTimeout
from oms.domain.order import Customer, Order, OrderItem, OrderStatus, Worker
from oms.domain.product import Product, StockReservation

logger = logging.getLogger(__name__)


@dataclass
class _OrderRow:
    id: int
    customer_id: int
    status: OrderStatus
    created_at: datetime
    picker_id: Optional[int] = None
    packer_id: Optional[int] = None
    picked_at: Optional[datetime] = None
    packed_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None


@dataclass
class _ItemRow:
    id: int
    order_id: int
    product_id: int
    quantity: int
    price_at_order: Decimal


class MemoryTransaction:
    """
    Staged writes and held row locks of one unit of work

    Reads go through the transaction so it sees its own writes on top of
    the last committed state.
    """

    def __init__(self, store: "InMemoryBackend"):
        self.store = store
        self.stock: Dict[int, int] = {}
        self.orders: Dict[int, _OrderRow] = {}
        # None marks a deleted item
        self.items: Dict[int, Optional[_ItemRow]] = {}
        self._held: Dict[Tuple[str, int], threading.Lock] = {}

    # ------------------------------------------------------------------
    # Row locks
    # ------------------------------------------------------------------

    def lock(self, kind: str, row_id: int) -> None:
        key = (kind, row_id)
        if key in self._held:
            return

        row_lock = self.store._row_lock(kind, row_id)
        if not row_lock.acquire(timeout=self.store.lock_timeout):
            raise LockTimeout(f"Timed out waiting for {kind} {row_id} lock")
        self._held[key] = row_lock

    def release_locks(self) -> None:
        for row_lock in reversed(list(self._held.values())):
            row_lock.release()
        self._held.clear()

    # ------------------------------------------------------------------
    # Merged reads
    # ------------------------------------------------------------------

    def product(self, product_id: int) -> Optional[Product]:
        with self.store._commit_lock:
            product = self.store._products.get(product_id)
        if product is None:
            return None
        if product_id in self.stock:
            product = product.model_copy(update={"stock": self.stock[product_id]})
        return product

    def order_row(self, order_id: int) -> Optional[_OrderRow]:
        if order_id in self.orders:
            return self.orders[order_id]
        with self.store._commit_lock:
            return self.store._orders.get(order_id)

    def item_row(self, item_id: int) -> Optional[_ItemRow]:
        if item_id in self.items:
            return self.items[item_id]
        with self.store._commit_lock:
            return self.store._items.get(item_id)

    def item_rows_of(self, order_id: int) -> List[_ItemRow]:
        with self.store._commit_lock:
            rows = {row.id: row for row in self.store._items.values() if row.order_id == order_id}
        for item_id, row in self.items.items():
            if row is None:
                rows.pop(item_id, None)
            elif row.order_id == order_id:
                rows[item_id] = row
        return [rows[item_id] for item_id in sorted(rows)]


class MemoryStockLedger:
    """Stock ledger over the in-memory arena, same contract as StockLedger"""

    def _locked_product(self, tx: MemoryTransaction, product_id: int) -> Product:
        if tx.product(product_id) is None:
            raise ProductNotFound(product_id)
        tx.lock("product", product_id)
        return tx.product(product_id)

    def lock_products(self, tx: MemoryTransaction, product_ids: Iterable[int]) -> None:
        for product_id in sorted(set(product_ids)):
            if tx.product(product_id) is not None:
                tx.lock("product", product_id)

    def reserve(self, tx: MemoryTransaction, product_id: int, quantity: int) -> StockReservation:
        product = self._locked_product(tx, product_id)

        if product.stock < quantity:
            raise InsufficientStock(product_id, product.stock, quantity, product.name)

        tx.stock[product_id] = product.stock - quantity
        return StockReservation(
            product_id=product_id,
            product_name=product.name,
            price=product.price,
            quantity=quantity,
            remaining_stock=tx.stock[product_id],
        )

    def release(self, tx: MemoryTransaction, product_id: int, quantity: int) -> int:
        product = self._locked_product(tx, product_id)
        tx.stock[product_id] = product.stock + quantity
        return tx.stock[product_id]

    def adjust(self, tx: MemoryTransaction, product_id: int, delta: int) -> int:
        if delta > 0:
            return self.reserve(tx, product_id, delta).remaining_stock
        if delta < 0:
            return self.release(tx, product_id, -delta)
        return self._locked_product(tx, product_id).stock


class MemoryOrderRepository:

    def __init__(self, store: "InMemoryBackend"):
        self.store = store

    def _build(self, tx: MemoryTransaction, row: _OrderRow) -> Order:
        items = []
        for item in tx.item_rows_of(row.id):
            product = tx.product(item.product_id)
            items.append(OrderItem(
                id=item.id,
                order_id=item.order_id,
                product_id=item.product_id,
                product_name=product.name if product else None,
                quantity=item.quantity,
                price_at_order=item.price_at_order,
            ))
        return Order(
            id=row.id,
            customer_id=row.customer_id,
            status=row.status,
            created_at=row.created_at,
            picker_id=row.picker_id,
            packer_id=row.packer_id,
            picked_at=row.picked_at,
            packed_at=row.packed_at,
            shipped_at=row.shipped_at,
            items=items,
        )

    def find_by_id(self, tx: MemoryTransaction, order_id: int, for_update: bool = False) -> Optional[Order]:
        if for_update and tx.order_row(order_id) is not None:
            tx.lock("order", order_id)

        # Hold the commit lock so the row and its items come from one state
        with self.store._commit_lock:
            row = tx.order_row(order_id)
            if row is None:
                return None
            return self._build(tx, row)

    def find_all(
        self,
        tx: MemoryTransaction,
        status: Optional[OrderStatus] = None,
        customer_id: Optional[int] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[Order], int]:
        with self.store._commit_lock:
            rows = [tx.order_row(order_id) for order_id in set(self.store._orders) | set(tx.orders)]
            rows = [
                row for row in rows
                if (status is None or row.status == status)
                and (customer_id is None or row.customer_id == customer_id)
            ]
            rows.sort(key=lambda row: (row.created_at, row.id), reverse=True)
            page = rows[offset:offset + limit]
            return [self._build(tx, row) for row in page], len(rows)

    def insert_order(self, tx: MemoryTransaction, customer_id: int, status: OrderStatus, created_at: datetime) -> Order:
        row = _OrderRow(
            id=self.store._next_id("order"),
            customer_id=customer_id,
            status=status,
            created_at=created_at,
        )
        tx.orders[row.id] = row
        tx.lock("order", row.id)
        return self._build(tx, row)

    def insert_item(
        self,
        tx: MemoryTransaction,
        order_id: int,
        product_id: int,
        quantity: int,
        price_at_order: Decimal,
        product_name: Optional[str] = None
    ) -> OrderItem:
        row = _ItemRow(
            id=self.store._next_id("item"),
            order_id=order_id,
            product_id=product_id,
            quantity=quantity,
            price_at_order=price_at_order,
        )
        tx.items[row.id] = row
        return OrderItem(
            id=row.id,
            order_id=order_id,
            product_id=product_id,
            product_name=product_name,
            quantity=quantity,
            price_at_order=price_at_order,
        )

    def update_item_quantity(self, tx: MemoryTransaction, item_id: int, quantity: int) -> None:
        row = tx.item_row(item_id)
        if row is not None:
            tx.items[item_id] = replace(row, quantity=quantity)

    def delete_item(self, tx: MemoryTransaction, item_id: int) -> None:
        tx.items[item_id] = None

    def update_order(
        self,
        tx: MemoryTransaction,
        order_id: int,
        status: Optional[OrderStatus] = None,
        picker_id: Optional[int] = None,
        packer_id: Optional[int] = None,
        picked_at: Optional[datetime] = None,
        packed_at: Optional[datetime] = None,
        shipped_at: Optional[datetime] = None
    ) -> None:
        row = tx.order_row(order_id)
        if row is None:
            return

        changes = {
            "status": status,
            "picker_id": picker_id,
            "packer_id": packer_id,
            "picked_at": picked_at,
            "packed_at": packed_at,
            "shipped_at": shipped_at,
        }
        tx.orders[order_id] = replace(row, **{k: v for k, v in changes.items() if v is not None})


class MemoryProductRepository:

    def find_by_id(self, tx: MemoryTransaction, product_id: int) -> Optional[Product]:
        return tx.product(product_id)

    def find_all(self, tx: MemoryTransaction, low_stock_only: bool = False) -> List[Product]:
        with tx.store._commit_lock:
            product_ids = list(tx.store._products)
        products = [tx.product(product_id) for product_id in product_ids]
        if low_stock_only:
            products = [p for p in products if p.is_low_stock]
        return sorted(products, key=lambda p: (p.name, p.id))


class MemoryCustomerRepository:

    def get(self, tx: MemoryTransaction, customer_id: int) -> Optional[Customer]:
        with tx.store._commit_lock:
            return tx.store._customers.get(customer_id)

    def exists(self, tx: MemoryTransaction, customer_id: int) -> bool:
        return self.get(tx, customer_id) is not None


class MemoryWorkerRepository:

    def get(self, tx: MemoryTransaction, worker_id: int) -> Optional[Worker]:
        with tx.store._commit_lock:
            return tx.store._workers.get(worker_id)

    def exists(self, tx: MemoryTransaction, worker_id: int) -> bool:
        return self.get(tx, worker_id) is not None


class InMemoryBackend:
    """Process-local store with row locks and staged commits"""

    name = "memory"

    def __init__(self, lock_timeout: float = 5.0):
        self.lock_timeout = lock_timeout

        self._products: Dict[int, Product] = {}
        self._customers: Dict[int, Customer] = {}
        self._workers: Dict[int, Worker] = {}
        self._orders: Dict[int, _OrderRow] = {}
        self._items: Dict[int, _ItemRow] = {}

        self._commit_lock = threading.RLock()
        self._registry_lock = threading.Lock()
        self._row_locks: Dict[Tuple[str, int], threading.Lock] = {}
        self._counters = {
            kind: itertools.count(1)
            for kind in ("product", "customer", "worker", "order", "item")
        }

        self.ledger = MemoryStockLedger()
        self.orders = MemoryOrderRepository(self)
        self.products = MemoryProductRepository()
        self.customers = MemoryCustomerRepository()
        self.workers = MemoryWorkerRepository()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _next_id(self, kind: str) -> int:
        with self._registry_lock:
            return next(self._counters[kind])

    def _row_lock(self, kind: str, row_id: int) -> threading.Lock:
        with self._registry_lock:
            key = (kind, row_id)
            if key not in self._row_locks:
                self._row_locks[key] = threading.Lock()
            return self._row_locks[key]

    def _commit(self, tx: MemoryTransaction) -> None:
        with self._commit_lock:
            for product_id, stock in tx.stock.items():
                self._products[product_id] = self._products[product_id].model_copy(
                    update={"stock": stock}
                )
            self._orders.update(tx.orders)
            for item_id, row in tx.items.items():
                if row is None:
                    self._items.pop(item_id, None)
                else:
                    self._items[item_id] = row

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[MemoryTransaction]:
        tx = MemoryTransaction(self)
        try:
            yield tx
            self._commit(tx)
        finally:
            tx.release_locks()

    def check(self) -> float:
        return 0.0

    def add_product(
        self,
        name: str,
        stock: int = 0,
        price: Decimal = Decimal('0'),
        min_stock: int = 0,
        **details
    ) -> Product:
        """Register a product directly (administrative edit, not a workflow)"""
        product = Product(
            id=self._next_id("product"),
            name=name,
            stock=stock,
            price=Decimal(str(price)),
            min_stock=min_stock,
            **details
        )
        with self._commit_lock:
            self._products[product.id] = product
        return product

    def add_customer(self, name: str, **details) -> Customer:
        customer = Customer(id=self._next_id("customer"), name=name, **details)
        with self._commit_lock:
            self._customers[customer.id] = customer
        return customer

    def add_worker(self, name: str, role: Optional[str] = None) -> Worker:
        worker = Worker(id=self._next_id("worker"), name=name, role=role)
        with self._commit_lock:
            self._workers[worker.id] = worker
        return worker

    def seed_demo_data(self) -> None:
        """Starter catalog for local runs"""
        self.add_product("Widget A", stock=100, price=Decimal('5.00'), min_stock=10)
        self.add_product("Widget B", stock=50, price=Decimal('7.50'), min_stock=5)
        self.add_customer("Walk-in Customer")
        self.add_worker("Default Picker", role="picker")
        self.add_worker("Default Packer", role="packer")
        logger.info("In-memory store seeded with demo data")
