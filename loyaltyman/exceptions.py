"""Loyaltyman exceptions."""


class LoyaltyError(Exception):
    """
    Structured exception for loyalty operations.

    Every error carries a stable ``code``, a human message and free-form
    ``data``. Subclasses group codes by how the caller should react.

    Usage:
        try:
            customer = LedgerService.grant(customer_id, 100, "Pedido #123")
        except NotFound as e:
            if e.code == "CUSTOMER_NOT_FOUND":
                handle_not_found()
    """

    _default_messages = {
        "CUSTOMER_NOT_FOUND": "Customer not found",
        "EVENT_NOT_FOUND": "Special event not found",
        "BENEFIT_NOT_FOUND": "Tier benefit not found",
        "OFFER_NOT_FOUND": "Special offer not found",
        "DUPLICATE_MOBILE": "A customer with this mobile already exists",
        "GRANT_KEY_CONFLICT": "Idempotency key already used for another customer",
        "INVALID_POINTS": "Points must be a non-zero integer",
        "INVALID_DESCRIPTION": "Description is required",
        "INVALID_LIMIT": "Limit must be a non-negative integer",
        "INVALID_MOBILE": "Invalid mobile number format",
        "INVALID_NAME": "Name must be at least 2 characters",
        "INVALID_MULTIPLIER": "Multiplier must be at least 1",
        "INVALID_EVENT_WINDOW": "Event end must not be before its start",
        "INVALID_TIER": "Unknown tier",
        "INSUFFICIENT_POINTS": "Insufficient points",
        "INVALID_CREDENTIALS": "Invalid credentials",
        "INVALID_VERIFICATION_CODE": "Invalid verification code",
        "PERSISTENCE_FAILED": "Could not persist the operation, try again",
        "SNAPSHOT_INVALID": "Backup snapshot is malformed",
        "RESTORE_FAILED": "Backup restore failed, previous data kept",
    }

    def __init__(self, code: str, message: str | None = None, **data):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(f"[{code}] {self.message}")

    def as_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "data": self.data}


class NotFound(LoyaltyError):
    """Referenced customer, event, benefit or offer does not exist."""


class Conflict(LoyaltyError):
    """Write collides with an existing record (duplicate mobile, reused grant key)."""


class ValidationFailure(LoyaltyError):
    """Malformed input or a rule the ledger enforces itself."""


class PersistenceFailure(LoyaltyError):
    """The unit of work could not commit. Nothing was written; safe to retry."""


class BulkRestoreFailure(LoyaltyError):
    """A backup restore could not complete. Prior data is untouched."""
