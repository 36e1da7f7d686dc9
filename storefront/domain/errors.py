"""Domain errors raised by the core components

Use cases translate these into Result errors via their ``code``.
"""

from decimal import Decimal
from typing import Optional


class StorefrontError(Exception):
    code = "STOREFRONT_ERROR"

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.reason = reason


class ValidationError(StorefrontError):
    """Bad caller input; nothing is persisted"""

    code = "VALIDATION_ERROR"


class InvalidStateTransitionError(ValidationError):
    """Operation not allowed in the entity's current state"""

    code = "INVALID_STATE"


class InsufficientFundsError(StorefrontError):
    code = "INSUFFICIENT_FUNDS"

    def __init__(self, required: Decimal, available: Decimal):
        super().__init__(
            f"Insufficient balance. Required: {required}, Available: {available}",
            reason=f"required={required}, available={available}",
        )
        self.required = required
        self.available = available


class InventoryExhaustedError(StorefrontError):
    code = "INVENTORY_EXHAUSTED"

    def __init__(self, product_id: int, requested: int, available: int):
        super().__init__(
            f"Not enough access codes in stock. Requested: {requested}, Available: {available}",
            reason=f"product_id={product_id}, requested={requested}, available={available}",
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available

    @property
    def shortfall(self) -> int:
        return self.requested - self.available


class SignatureVerificationError(StorefrontError):
    code = "SIGNATURE_INVALID"


class NotFoundError(StorefrontError):
    code = "NOT_FOUND"


class UnknownOrderError(NotFoundError):
    code = "UNKNOWN_ORDER"


class AlreadyTerminalError(StorefrontError):
    """Transaction already left ``pending``; replays treat this as a no-op"""

    code = "ALREADY_TERMINAL"

    def __init__(self, transaction_id: int, status: str):
        super().__init__(
            f"Transaction {transaction_id} is already {status}",
            reason=f"transaction_id={transaction_id}, status={status}",
        )
        self.transaction_id = transaction_id
        self.status = status


class GatewayError(StorefrontError):
    """Payment gateway call failed or timed out; the outcome is unknown"""

    code = "GATEWAY_ERROR"


class ConcurrencyConflictError(StorefrontError):
    """Lost an optimistic race; the whole operation is safe to retry"""

    code = "CONCURRENCY_CONFLICT"
