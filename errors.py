"""
Error types raised by the shop services.

Store failures are never wrapped: anything pymongo raises reaches the caller
as-is. These cover the outcomes the services decide themselves.
"""


class DatabaseUnavailable(RuntimeError):
    """No database is configured (DATABASE_URL / DATABASE_NAME missing)."""


class InvalidIdError(ValueError):
    """A document id could not be parsed as an ObjectId."""


class NotFoundError(LookupError):
    """A referenced record does not exist for the tenant."""


class InsufficientStockError(ValueError):
    def __init__(self, product_name: str, available: int, requested: int):
        self.product_name = product_name
        self.available = available
        self.requested = requested
        super().__init__(f"Insufficient stock for {product_name}")
