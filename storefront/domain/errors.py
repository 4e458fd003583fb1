# storefront/domain/errors.py
"""
Domain errors.

They extend the builtin exceptions the routers already translate
(ValueError -> 400, LookupError -> 404, RuntimeError -> 409), so a caller that
only knows the builtins still gets the right status code.
"""


class NotFoundError(LookupError):
    pass


class OrderValidationError(ValueError):
    """Rejected before anything was written."""


class VoucherRejected(OrderValidationError):
    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class InvalidTransitionError(ValueError):
    pass


class ReferentialIntegrityError(ValueError):
    pass


class ConsistencyError(RuntimeError):
    """Lost a race against another transaction. Safe to retry."""


class InsufficientStockError(ConsistencyError):
    def __init__(self, product_id: int, requested: int):
        super().__init__(
            f"Insufficient stock for product {product_id} (requested {requested}), please try again"
        )
        self.product_id = product_id
        self.requested = requested


class VoucherExhaustedError(ConsistencyError):
    pass


class ConcurrentModificationError(ConsistencyError):
    pass
