"""
Order workflow error taxonomy

Every failure of an order/stock workflow surfaces as exactly one of these
exceptions. Each carries a machine-readable ``kind``, a human-readable
message and the HTTP status the API layer answers with.
"""
from typing import Any, Dict, Optional


class OrderError(Exception):
    """Base class for all workflow errors"""

    kind: str = "Internal"
    http_status: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message}


# ============================================================================
# 404 - referenced entity does not exist
# ============================================================================

class NotFoundError(OrderError):
    kind = "NotFound"
    http_status = 404


class CustomerNotFound(NotFoundError):
    kind = "CustomerNotFound"

    def __init__(self, customer_id: Any):
        super().__init__(f"Customer {customer_id} not found")
        self.customer_id = customer_id


class OrderNotFound(NotFoundError):
    kind = "OrderNotFound"

    def __init__(self, order_id: Any):
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class ItemNotFound(NotFoundError):
    kind = "ItemNotFound"

    def __init__(self, item_id: Any, order_id: Optional[Any] = None):
        if order_id is None:
            message = f"Order item {item_id} not found"
        else:
            message = f"Order item {item_id} not found in order {order_id}"
        super().__init__(message)
        self.item_id = item_id
        self.order_id = order_id


class ProductNotFound(NotFoundError):
    kind = "ProductNotFound"

    def __init__(self, product_id: Any):
        super().__init__(f"Product {product_id} not found")
        self.product_id = product_id


class WorkerNotFound(NotFoundError):
    kind = "WorkerNotFound"

    def __init__(self, worker_id: Any):
        super().__init__(f"Worker {worker_id} not found")
        self.worker_id = worker_id


# ============================================================================
# 400 - request rejected by business rules
# ============================================================================

class InvalidInput(OrderError):
    kind = "InvalidInput"
    http_status = 400


class InvalidState(OrderError):
    kind = "InvalidState"
    http_status = 400


class InsufficientStock(OrderError):
    kind = "InsufficientStock"
    http_status = 400

    def __init__(self, product_id: Any, available: int, requested: int, product_name: Optional[str] = None):
        label = f"{product_name} (id {product_id})" if product_name else f"product {product_id}"
        super().__init__(
            f"Insufficient stock for {label}: available {available}, requested {requested}"
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "productId": self.product_id,
            "available": self.available,
            "requested": self.requested,
        })
        return data


class LastItem(OrderError):
    kind = "LastItem"
    http_status = 400

    def __init__(self, order_id: Any):
        super().__init__(
            f"Cannot remove the only item of order {order_id}; delete the order instead"
        )
        self.order_id = order_id


# ============================================================================
# 500 - storage or unexpected failure
# ============================================================================

class InternalError(OrderError):
    kind = "Internal"
    http_status = 500

    def __init__(self, message: str = "Internal error while processing the order"):
        super().__init__(message)


class LockTimeout(Exception):
    """Raised by a storage backend when a row lock cannot be acquired in time"""
