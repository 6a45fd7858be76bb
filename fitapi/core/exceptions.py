from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class BaseAPIException(HTTPException):
    """Base class for errors surfaced to API clients.

    Subclasses set ``http_status``, ``code`` and ``default_message``; the
    response body is ``{"success": false, "error": {code, message, details}}``.
    """

    http_status: int = status.HTTP_400_BAD_REQUEST
    code: str = "ERROR"
    default_message: str = "Request failed"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        self.error_code = error_code or self.code
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(
            status_code=self.http_status,
            detail={
                "success": False,
                "error": {
                    "code": self.error_code,
                    "message": self.message,
                    "details": self.details,
                },
            },
        )

    def __str__(self) -> str:
        return self.message


class AuthenticationError(BaseAPIException):
    http_status = status.HTTP_401_UNAUTHORIZED
    code = "AUTH_001"
    default_message = "Authentication failed"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.headers = {"WWW-Authenticate": "Bearer"}


class AuthorizationError(BaseAPIException):
    http_status = status.HTTP_403_FORBIDDEN
    code = "AUTH_002"
    default_message = "Access forbidden"


class ValidationError(BaseAPIException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "VALIDATION_001"
    default_message = "Validation failed"


class InvalidAmountError(ValidationError):
    """Non-positive or non-integer coin amount"""

    code = "COIN_INVALID_AMOUNT"

    def __init__(self, amount: Any):
        super().__init__(
            f"Amount must be a positive integer, got {amount!r}",
            details={"field": "amount", "value": amount},
        )


class SuspiciousActivityError(BaseAPIException):
    """Well-formed step submission held back by the anomaly check"""

    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "SUSPICIOUS_ACTIVITY"
    default_message = "Suspicious activity detected"


class NotFoundError(BaseAPIException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND_001"
    default_message = "Resource not found"


class WalletNotFoundError(NotFoundError):
    """No wallet row for the user, as opposed to a zero balance"""

    code = "WALLET_NOT_FOUND"

    def __init__(self, user_id: str):
        super().__init__(
            f"Wallet not found for user {user_id}", details={"user_id": user_id}
        )


class ConflictError(BaseAPIException):
    http_status = status.HTTP_409_CONFLICT
    code = "CONFLICT_001"
    default_message = "Resource conflict"


class InvalidStateError(ConflictError):
    """Balances do not allow the operation, e.g. unfreezing more than is frozen"""

    code = "COIN_INVALID_STATE"


class InsufficientBalanceError(BaseAPIException):
    code = "BALANCE_001"

    def __init__(self, required: int, available: int, message: Optional[str] = None):
        self.required = required
        self.available = available
        super().__init__(
            message
            or f"Insufficient balance. Required: {required}, Available: {available}",
            details={
                "required": required,
                "available": available,
                "shortfall": max(required - available, 0),
            },
        )


class InternalServerError(BaseAPIException):
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "INTERNAL_001"
    default_message = "Internal server error"
