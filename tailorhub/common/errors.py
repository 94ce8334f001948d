"""Error taxonomy shared by the services and the HTTP layer.

Business-rule failures map to 400 and never mutate state. Transient failures map
to 500 with `retryable` set; callers may repeat them safely because every
mutating operation is idempotent for the same payment id or target status.
"""


class TailorHubError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500
    code: str = "InternalError"
    retryable: bool = False

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.code)
        self.message = message or self.code

    def to_dict(self) -> dict:
        body = {"success": False, "error": self.code, "message": self.message}
        if self.retryable:
            body["retryable"] = True
        return body


class ValidationError(TailorHubError):
    status_code = 400
    code = "ValidationError"


class InvalidAmount(ValidationError):
    code = "InvalidAmount"


class NotFound(TailorHubError):
    status_code = 404
    code = "NotFound"


class BusinessRuleError(TailorHubError):
    """Rejected by a business rule; retrying the same request cannot succeed."""

    status_code = 400
    code = "BusinessRuleError"


class InsufficientBalance(BusinessRuleError):
    code = "InsufficientBalance"

    def __init__(self, user_id: str, required: int) -> None:
        super().__init__(f"Insufficient balance for {user_id}: required {required}")
        self.user_id = user_id
        self.required = required


class InvalidTransition(BusinessRuleError):
    code = "InvalidTransition"

    def __init__(self, current: str, new: str, detail: str | None = None) -> None:
        message = f"Invalid transition: {current} -> {new}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.current = current
        self.new = new


class VerificationFailed(BusinessRuleError):
    code = "VerificationFailed"


class TransientError(TailorHubError):
    """Failure that did not complete; safe to retry."""

    status_code = 500
    code = "TransientError"
    retryable = True


class StorageError(TransientError):
    code = "StorageError"


class ConcurrencyConflict(TransientError):
    code = "ConcurrencyConflict"


class DeliveryFailed(TailorHubError):
    status_code = 502
    code = "DeliveryFailed"
