"""
Custom Application Exceptions
"""
from typing import Optional


class StockLedgerError(Exception):
    """Base exception for the stock ledger"""

    status_code = 400
    error_type = "stockledger_error"

    def __init__(self, message: str, detail: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail or {}


class ValidationError(StockLedgerError):
    """Raised when request data violates a precondition"""
    error_type = "validation_error"


class NotFoundError(StockLedgerError):
    """Raised when a referenced entity does not exist"""
    status_code = 404
    error_type = "not_found"


class ProductNotFound(NotFoundError):
    """Raised when a product id or SKU does not resolve in the caller's catalog"""

    def __init__(self, reference, field: str = "id"):
        super().__init__(
            f"Product with {field} {reference} not found",
            {field: str(reference)},
        )
        self.reference = reference


class WarehouseNotFound(NotFoundError):
    def __init__(self, warehouse_id: int):
        super().__init__(f"Warehouse {warehouse_id} not found", {"warehouse_id": str(warehouse_id)})
        self.warehouse_id = warehouse_id


class UnknownStockRecord(NotFoundError):
    """Raised when a decrement targets a (product, warehouse) pair with no stock row"""

    def __init__(self, product_id: int, warehouse_id: int):
        super().__init__(
            f"No stock record for product {product_id} in warehouse {warehouse_id}",
            {"product_id": str(product_id), "warehouse_id": str(warehouse_id)},
        )
        self.product_id = product_id
        self.warehouse_id = warehouse_id


class OrderNotFound(NotFoundError):
    def __init__(self, order_id: int):
        super().__init__(f"Purchase order {order_id} not found", {"order_id": str(order_id)})
        self.order_id = order_id


class InsufficientStock(StockLedgerError):
    """Raised when a decrement would take a stock record below zero"""

    status_code = 409
    error_type = "insufficient_stock"

    def __init__(self, product_id: int, warehouse_id: int, requested: int, available: int):
        self.product_id = product_id
        self.warehouse_id = warehouse_id
        self.requested = requested
        self.available = available
        self.shortfall = requested - available
        super().__init__(
            f"Insufficient stock for product {product_id} in warehouse {warehouse_id}: "
            f"requested {requested}, available {available}",
            {
                "product_id": str(product_id),
                "warehouse_id": str(warehouse_id),
                "requested": requested,
                "available": available,
                "shortfall": self.shortfall,
            },
        )


class OverReceipt(StockLedgerError):
    """Raised when more units are received than were ordered on a line"""

    status_code = 422
    error_type = "over_receipt"

    def __init__(self, order_id: int, product_id: int, ordered: int, received: int):
        self.order_id = order_id
        self.product_id = product_id
        self.ordered = ordered
        self.received = received
        super().__init__(
            f"Cannot receive {received} units of product {product_id} on order {order_id}: "
            f"only {ordered} ordered",
            {
                "order_id": str(order_id),
                "product_id": str(product_id),
                "ordered": ordered,
                "received": received,
            },
        )


class OrderAlreadyConfirmed(StockLedgerError):
    """Raised when a confirmed (immutable) purchase order is modified"""

    status_code = 409
    error_type = "order_confirmed"

    def __init__(self, order_id: int):
        super().__init__(f"Purchase order {order_id} is already confirmed", {"order_id": str(order_id)})
        self.order_id = order_id


class StockRecordInUse(StockLedgerError):
    """Raised when deleting a stock record that has outbound history"""

    status_code = 409
    error_type = "stock_record_in_use"


class KitTooDeep(StockLedgerError):
    """Raised when kit expansion exceeds the nesting guard, usually a cycle"""

    status_code = 422
    error_type = "kit_too_deep"

    def __init__(self, kit_id: int, max_depth: int):
        super().__init__(
            f"Kit {kit_id} nests deeper than {max_depth} levels; check for a cyclic kit definition",
            {"kit_id": str(kit_id), "max_depth": max_depth},
        )
        self.kit_id = kit_id
        self.max_depth = max_depth


class KitCycleError(StockLedgerError):
    """Raised when a kit definition would contain itself"""

    status_code = 422
    error_type = "kit_cycle"


class PriceInconsistency(StockLedgerError):
    """
    Stored discount differs from the recomputed one.

    Non-fatal: the reconciler attaches it to its result and logs it, it is
    never raised out of a reconciliation.
    """

    error_type = "price_inconsistency"

    def __init__(self, stored_discount_pct: int, computed_discount_pct: int, reference: Optional[str] = None):
        self.stored_discount_pct = stored_discount_pct
        self.computed_discount_pct = computed_discount_pct
        self.reference = reference
        super().__init__(
            f"Stored discount {stored_discount_pct}% differs from computed {computed_discount_pct}%",
            {
                "reference": reference,
                "stored_discount_pct": stored_discount_pct,
                "computed_discount_pct": computed_discount_pct,
            },
        )


class StorageContention(StockLedgerError):
    """Raised for transient storage failures (lock contention, timeouts); retryable"""

    status_code = 503
    error_type = "storage_contention"
