"""
Order Workflow Service

Composes stock ledger and order repository calls into all-or-nothing
workflows:

- create an order with N items
- add an item to a pending order
- change the quantity of an item
- remove an item

Each workflow runs inside one storage transaction. If any step fails the
transaction rolls back, so no reservation, order or item from that call
is left behind, and the caller gets exactly one OrderError. Unexpected
failures are logged with their traceback and surface as InternalError
without the storage error text. Nothing is retried here.
"""
import logging
from collections.abc import Mapping
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple

from oms.core.exceptions import (
    OrderError,
    CustomerNotFound,
    OrderNotFound,
    ItemNotFound,
    WorkerNotFound,
    InvalidInput,
    InvalidState,
    LastItem,
    InternalError,
)
from oms.domain.order import Order, OrderItem, OrderLineCreate, OrderPatch, OrderStatus
from oms.domain.product import Product

logger = logging.getLogger(__name__)

# Timestamp column stamped when an order enters each stage
STAGE_TIMESTAMPS = {
    OrderStatus.PICKED: "picked_at",
    OrderStatus.PACKED: "packed_at",
    OrderStatus.SHIPPED: "shipped_at",
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _require_positive_quantity(quantity: Any, label: str) -> None:
    if not _is_int(quantity) or quantity <= 0:
        raise InvalidInput(f"{label}: quantity must be a positive integer, got {quantity!r}")


def _require_id(value: Any, label: str) -> None:
    if not _is_int(value):
        raise InvalidInput(f"{label} must be an integer, got {value!r}")


def _parse_line(index: int, entry: Any) -> OrderLineCreate:
    """Accept OrderLineCreate or a mapping with productId/product_id and quantity"""
    if isinstance(entry, OrderLineCreate):
        return entry

    if not isinstance(entry, Mapping):
        raise InvalidInput(f"Item {index} is malformed: expected an object with productId and quantity")

    product_id = entry.get("productId", entry.get("product_id"))
    if product_id is None or "quantity" not in entry:
        raise InvalidInput(f"Item {index} is malformed: productId and quantity are required")
    if not _is_int(product_id):
        raise InvalidInput(f"Item {index}: productId must be an integer, got {product_id!r}")

    # quantity is validated per item, in order, while reserving
    return OrderLineCreate.model_construct(product_id=product_id, quantity=entry["quantity"])


class OrderWorkflowService:
    """
    Order/stock consistency workflows

    Args:
        backend: Storage backend (PostgresBackend or InMemoryBackend)
        clock: Callable returning the current aware datetime
    """

    def __init__(self, backend, clock: Callable[[], datetime] = utc_now):
        self.backend = backend
        self.clock = clock

    @contextmanager
    def _unit_of_work(self, operation: str) -> Iterator[Any]:
        """
        One transaction per workflow and the error boundary around it

        OrderError passes through after rollback; anything else becomes
        InternalError.
        """
        try:
            with self.backend.transaction() as tx:
                yield tx
        except OrderError as e:
            logger.warning(f"{operation} rejected ({e.kind}): {e.message}")
            raise
        except Exception:
            logger.exception(f"{operation} failed unexpectedly, transaction rolled back")
            raise InternalError() from None

    def _editable_order(self, tx, order_id: Any) -> Order:
        _require_id(order_id, "orderId")
        order = self.backend.orders.find_by_id(tx, order_id, for_update=True)
        if order is None:
            raise OrderNotFound(order_id)
        if not order.is_editable():
            raise InvalidState(
                f"Order {order_id} is {order.status.value}; items can only change while it is pending"
            )
        return order

    # ========================================================================
    # Write workflows
    # ========================================================================

    def create_order(self, customer_id: Any, items: Sequence[Any]) -> Order:
        """
        Create a pending order and reserve stock for every line

        Args:
            customer_id: Existing customer ID
            items: Sequence of OrderLineCreate or {productId, quantity} mappings

        Returns:
            Created Order with its items

        Raises:
            CustomerNotFound, InvalidInput, ProductNotFound, InsufficientStock
        """
        with self._unit_of_work("create_order") as tx:
            if not _is_int(customer_id):
                raise CustomerNotFound(customer_id)
            customer = self.backend.customers.get(tx, customer_id)
            if customer is None:
                raise CustomerNotFound(customer_id)

            if not items:
                raise InvalidInput("Order must contain at least one item")
            if isinstance(items, (str, bytes, Mapping)):
                raise InvalidInput("items must be a list of {productId, quantity}")

            lines = [_parse_line(index, entry) for index, entry in enumerate(items, start=1)]

            # Fixed lock order across concurrent multi-item orders
            self.backend.ledger.lock_products(tx, [line.product_id for line in lines])

            reservations = []
            for index, line in enumerate(lines, start=1):
                _require_positive_quantity(line.quantity, f"Item {index} (product {line.product_id})")
                reservations.append(self.backend.ledger.reserve(tx, line.product_id, line.quantity))

            order = self.backend.orders.insert_order(tx, customer.id, OrderStatus.PENDING, self.clock())
            for reservation in reservations:
                order.items.append(self.backend.orders.insert_item(
                    tx,
                    order.id,
                    reservation.product_id,
                    reservation.quantity,
                    reservation.price,
                    reservation.product_name,
                ))

        logger.info(
            f"Order {order.id} created for customer {customer.id}: "
            f"{order.item_count} items, {order.total_quantity} units"
        )
        return order

    def add_item(self, order_id: Any, product_id: Any, quantity: Any) -> OrderItem:
        """
        Reserve stock and append a line to a pending order

        Raises:
            OrderNotFound, InvalidState, InvalidInput, ProductNotFound, InsufficientStock
        """
        with self._unit_of_work("add_item") as tx:
            order = self._editable_order(tx, order_id)
            _require_positive_quantity(quantity, "New item")
            _require_id(product_id, "productId")

            reservation = self.backend.ledger.reserve(tx, product_id, quantity)
            item = self.backend.orders.insert_item(
                tx,
                order.id,
                reservation.product_id,
                reservation.quantity,
                reservation.price,
                reservation.product_name,
            )

        logger.info(f"Order {item.order_id}: added item {item.id} ({quantity} x product {product_id})")
        return item

    def update_item_quantity(self, order_id: Any, item_id: Any, new_quantity: Any) -> OrderItem:
        """
        Change a line's quantity, reserving or releasing the difference

        Setting the current quantity again is a successful no-op.

        Raises:
            OrderNotFound, InvalidState, ItemNotFound, InvalidInput, InsufficientStock
        """
        with self._unit_of_work("update_item_quantity") as tx:
            order = self._editable_order(tx, order_id)
            item = order.find_item(item_id)
            if item is None:
                raise ItemNotFound(item_id, order_id)
            _require_positive_quantity(new_quantity, f"Item {item_id}")

            delta = new_quantity - item.quantity
            if delta == 0:
                return item

            self.backend.ledger.adjust(tx, item.product_id, delta)
            self.backend.orders.update_item_quantity(tx, item.id, new_quantity)
            updated = item.model_copy(update={"quantity": new_quantity})

        logger.info(
            f"Order {order.id}: item {item.id} quantity {item.quantity} -> {new_quantity}"
        )
        return updated

    def remove_item(self, order_id: Any, item_id: Any) -> OrderItem:
        """
        Delete a line and return its quantity to stock

        Returns:
            The removed OrderItem

        Raises:
            OrderNotFound, InvalidState, LastItem, ItemNotFound
        """
        with self._unit_of_work("remove_item") as tx:
            order = self._editable_order(tx, order_id)
            if order.item_count <= 1:
                raise LastItem(order_id)

            item = order.find_item(item_id)
            if item is None:
                raise ItemNotFound(item_id, order_id)

            self.backend.ledger.release(tx, item.product_id, item.quantity)
            self.backend.orders.delete_item(tx, item.id)

        logger.info(
            f"Order {order.id}: removed item {item.id}, "
            f"{item.quantity} units returned to product {item.product_id}"
        )
        return item

    def update_order(self, order_id: Any, patch: OrderPatch) -> Order:
        """
        Apply a status/assignment patch

        Status only moves forward along pending -> picked -> packed -> shipped
        (skipping stages is allowed). Entering a stage stamps its timestamp.

        Raises:
            OrderNotFound, InvalidInput, InvalidState, WorkerNotFound
        """
        with self._unit_of_work("update_order") as tx:
            _require_id(order_id, "orderId")
            order = self.backend.orders.find_by_id(tx, order_id, for_update=True)
            if order is None:
                raise OrderNotFound(order_id)
            if patch.is_empty():
                raise InvalidInput("Nothing to update: provide status, pickerId or packerId")

            changes = {}
            if patch.status is not None:
                if not order.status.can_advance_to(patch.status):
                    raise InvalidState(
                        f"Order {order_id} cannot move from {order.status.value} to {patch.status.value}"
                    )
                changes["status"] = patch.status
                changes[STAGE_TIMESTAMPS[patch.status]] = self.clock()

            if patch.picker_id is not None:
                if not self.backend.workers.exists(tx, patch.picker_id):
                    raise WorkerNotFound(patch.picker_id)
                changes["picker_id"] = patch.picker_id

            if patch.packer_id is not None:
                if not self.backend.workers.exists(tx, patch.packer_id):
                    raise WorkerNotFound(patch.packer_id)
                changes["packer_id"] = patch.packer_id

            self.backend.orders.update_order(tx, order.id, **changes)
            updated = self.backend.orders.find_by_id(tx, order.id)

        logger.info(f"Order {updated.id} updated: {', '.join(sorted(changes))}")
        return updated

    # ========================================================================
    # Reads
    # ========================================================================

    def get_order(self, order_id: Any) -> Order:
        with self._unit_of_work("get_order") as tx:
            _require_id(order_id, "orderId")
            order = self.backend.orders.find_by_id(tx, order_id)
            if order is None:
                raise OrderNotFound(order_id)
            return order

    def list_orders(
        self,
        status: Optional[str] = None,
        customer_id: Optional[int] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[Order], int]:
        with self._unit_of_work("list_orders") as tx:
            status_filter = None
            if status is not None:
                try:
                    status_filter = OrderStatus(status)
                except ValueError:
                    raise InvalidInput(
                        f"Unknown status {status!r}; expected one of "
                        f"{', '.join(s.value for s in OrderStatus)}"
                    ) from None
            return self.backend.orders.find_all(
                tx,
                status=status_filter,
                customer_id=customer_id,
                limit=limit,
                offset=offset,
            )

    def list_products(self, low_stock_only: bool = False) -> List[Product]:
        with self._unit_of_work("list_products") as tx:
            return self.backend.products.find_all(tx, low_stock_only=low_stock_only)
