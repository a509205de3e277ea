"""
Typed Exception Hierarchy for the Stock Ledger.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Request handlers in front of the ledger need to tell a user *which* rule
a movement broke (not enough stock, missing signature, unknown product)
without parsing message strings. Every error therefore:

  1. Has its own exception class (catch by type, not message)
  2. Carries a class-level CODE attribute (machine-readable, API-safe)
  3. Stores its context as attributes (product_id, requested, available...)

Example - WRONG way to handle errors:
    try:
        ledger.record_exit(...)
    except Exception as e:
        if "stock" in str(e):  # FRAGILE
            ...

Example - RIGHT way:
    try:
        ledger.record_exit(...)
    except InsufficientStockError as e:
        return {"error": e.code, "available": e.available, "requested": e.requested}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    StockLedgerError (base)
    |
    +-- ValidationError
    |   +-- InvalidQuantityError
    |   +-- MissingSignatureError
    |   +-- InvalidMovementKindError
    |   +-- InvalidMinimumStockError
    |
    +-- ProductError
    |   +-- UnknownProductError
    |   +-- DuplicateProductCodeError
    |
    +-- EmployeeError
    |   +-- UnknownEmployeeError
    |   +-- DuplicateEmployeeCodeError
    |
    +-- StockError
    |   +-- InsufficientStockError
    |
    +-- ConcurrencyError
    |   +-- ConcurrentUpdateConflictError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                        | When Raised
-------------|-----------------------------|------------------------------------
Validation   | INVALID_QUANTITY            | Quantity is not a positive integer
             | MISSING_SIGNATURE           | Delivery without receiver signature
             | INVALID_MOVEMENT_KIND       | Exit kind is not delivered/returned
             | INVALID_MINIMUM_STOCK       | Negative minimum stock threshold
-------------|-----------------------------|------------------------------------
Product      | UNKNOWN_PRODUCT             | Product missing or inactive
             | DUPLICATE_PRODUCT_CODE      | SKU already assigned
-------------|-----------------------------|------------------------------------
Employee     | UNKNOWN_EMPLOYEE            | Employee missing or inactive
             | DUPLICATE_EMPLOYEE_CODE     | Employee code already assigned
-------------|-----------------------------|------------------------------------
Stock        | INSUFFICIENT_STOCK          | Delivery exceeds current stock
-------------|-----------------------------|------------------------------------
Concurrency  | CONCURRENT_UPDATE_CONFLICT  | Lost race at the database, retry
-------------|-----------------------------|------------------------------------
Immutability | IMMUTABILITY_VIOLATION      | Update/delete of a ledger record

===============================================================================
HANDLING PATTERNS
===============================================================================

- ValidationError / ProductError / EmployeeError / StockError are
  user-facing: show the message, nothing was written.
- ConcurrentUpdateConflictError is retried by StockLedger; it only
  reaches the caller once the retry budget is exhausted.
- ImmutabilityViolationError means application code tried to rewrite
  history. Log it loudly.
"""


class StockLedgerError(Exception):
    """
    Base exception for all stock ledger errors.

    All subclasses must have a `code` class attribute for
    machine-readable error identification.
    """

    code: str = "STOCK_LEDGER_ERROR"


# Validation exceptions


class ValidationError(StockLedgerError):
    """Base exception for rejected movement or catalog input."""

    code: str = "VALIDATION_ERROR"


class InvalidQuantityError(ValidationError):
    """Movement quantity must be a strictly positive integer."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity: object):
        self.quantity = quantity
        super().__init__(
            f"Invalid quantity {quantity!r}: must be a positive integer"
        )


class MissingSignatureError(ValidationError):
    """A delivered exit requires the receiving employee's signature."""

    code: str = "MISSING_SIGNATURE"

    def __init__(self, product_id: str, employee_id: str):
        self.product_id = product_id
        self.employee_id = employee_id
        super().__init__(
            f"Delivery of product {product_id} to employee {employee_id} "
            f"requires a signature"
        )


class InvalidMovementKindError(ValidationError):
    """Movement kind is not valid for the requested operation."""

    code: str = "INVALID_MOVEMENT_KIND"

    def __init__(self, kind: object, allowed: tuple[str, ...]):
        self.kind = kind
        self.allowed = list(allowed)
        super().__init__(
            f"Invalid movement kind {kind!r}: expected one of {', '.join(allowed)}"
        )


class InvalidMinimumStockError(ValidationError):
    """Minimum stock threshold must be a non-negative integer."""

    code: str = "INVALID_MINIMUM_STOCK"

    def __init__(self, minimum_stock: object):
        self.minimum_stock = minimum_stock
        super().__init__(
            f"Invalid minimum stock {minimum_stock!r}: must be a non-negative integer"
        )


# Product exceptions


class ProductError(StockLedgerError):
    """Base exception for product catalog errors."""

    code: str = "PRODUCT_ERROR"


class UnknownProductError(ProductError):
    """Product does not exist or is not active."""

    code: str = "UNKNOWN_PRODUCT"

    def __init__(self, product_id: str, reason: str = "not found"):
        self.product_id = product_id
        self.reason = reason
        super().__init__(f"Unknown product {product_id}: {reason}")


class DuplicateProductCodeError(ProductError):
    """Product code (SKU) is already assigned to another product."""

    code: str = "DUPLICATE_PRODUCT_CODE"

    def __init__(self, product_code: str):
        self.product_code = product_code
        super().__init__(f"Product code already exists: {product_code}")


# Employee exceptions


class EmployeeError(StockLedgerError):
    """Base exception for employee registry errors."""

    code: str = "EMPLOYEE_ERROR"


class UnknownEmployeeError(EmployeeError):
    """Employee does not exist or is not active."""

    code: str = "UNKNOWN_EMPLOYEE"

    def __init__(self, employee_id: str, reason: str = "not found"):
        self.employee_id = employee_id
        self.reason = reason
        super().__init__(f"Unknown employee {employee_id}: {reason}")


class DuplicateEmployeeCodeError(EmployeeError):
    """Employee code is already assigned."""

    code: str = "DUPLICATE_EMPLOYEE_CODE"

    def __init__(self, employee_code: str):
        self.employee_code = employee_code
        super().__init__(f"Employee code already exists: {employee_code}")


# Stock exceptions


class StockError(StockLedgerError):
    """Base exception for stock level violations."""

    code: str = "STOCK_ERROR"


class InsufficientStockError(StockError):
    """Requested quantity exceeds the product's current stock."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: str, requested: int, available: int):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for product {product_id}: "
            f"requested {requested}, available {available}"
        )


# Concurrency exceptions


class ConcurrencyError(StockLedgerError):
    """Base exception for concurrency errors."""

    code: str = "CONCURRENCY_ERROR"


class ConcurrentUpdateConflictError(ConcurrencyError):
    """The database reported a lost race; the operation may be retried."""

    code: str = "CONCURRENT_UPDATE_CONFLICT"

    def __init__(self, operation: str, detail: str, attempts: int = 1):
        self.operation = operation
        self.detail = detail
        self.attempts = attempts
        super().__init__(
            f"Concurrent update conflict during {operation} "
            f"after {attempts} attempt(s): {detail}"
        )


# Immutability exceptions


class ImmutabilityError(StockLedgerError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempt to modify or delete a record the ledger never rewrites."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )
