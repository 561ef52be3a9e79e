"""
Custom exception hierarchy for structured error handling.

WHY: Custom exceptions provide:
1. Consistent error handling across the API and the invoice ledger
2. HTTP status code mapping for FastAPI
3. Structured error responses with contextual data
4. No sensitive data leaks in error messages

The ledger raises only two kinds of errors: ValidationError (the caller can
fix the input) and InvalidStateError (the invoice or payment is in a state
that forbids the operation). Everything else belongs to the CRUD layer.
"""

from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Base exception class for all application exceptions.

    WHY: Centralizing exception handling in a base class ensures consistent
    error responses, HTTP status code mapping, and prevents sensitive data
    leaks in error messages.

    All custom exceptions should inherit from this class.
    """

    status_code: int = 500
    default_message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        **context: Any,
    ):
        """
        Initialize exception with message and context.

        Args:
            message: Human-readable error message
            status_code: HTTP status code (overrides class default)
            **context: Additional context for debugging (filtered in to_dict)
        """
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize exception to dictionary for JSON response.

        Returns:
            Dictionary with error details (sensitive fields filtered out)
        """
        # Banking details must never be echoed back in error payloads
        sensitive_fields = {"password", "token", "secret", "key", "api_key", "bank_account_number"}
        filtered_context = {
            k: v for k, v in self.context.items() if k.lower() not in sensitive_fields
        }

        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "status_code": self.status_code,
            "details": filtered_context if filtered_context else None,
        }


# ============================================================================
# Validation & Input Exceptions
# ============================================================================


class ValidationError(AppException):
    """
    Raised when input validation fails.

    WHY: Validation errors are caller-correctable (payment exceeds balance,
    quantity below one, malformed percentage). They are never retried.

    HTTP Status: 400 Bad Request
    """

    status_code = 400
    default_message = "Validation failed"


# ============================================================================
# Resource Exceptions
# ============================================================================


class ResourceNotFoundError(AppException):
    """
    Raised when a requested resource doesn't exist.

    HTTP Status: 404 Not Found
    """

    status_code = 404
    default_message = "Resource not found"


class ResourceAlreadyExistsError(AppException):
    """
    Raised when attempting to create a resource that already exists.

    WHY: 409 Conflict indicates the request can't be completed due to
    conflicting state (e.g., company email already registered).

    HTTP Status: 409 Conflict
    """

    status_code = 409
    default_message = "Resource already exists"


# ============================================================================
# Business Logic Exceptions
# ============================================================================


class InvalidStateError(AppException):
    """
    Raised when an operation is not permitted in the current state.

    WHY: Recording a payment on a cancelled invoice or editing a reconciled
    payment is not an input problem; the same request would succeed against
    an aggregate in a different state. 409 Conflict tells the client to
    re-read the resource rather than fix the payload.

    HTTP Status: 409 Conflict
    """

    status_code = 409
    default_message = "Operation not permitted in the current state"


class InvalidStateTransitionError(InvalidStateError):
    """
    Raised when an invoice status transition is not allowed.

    WHY: The invoice state machine has one choke point. Attempting an
    illegal transition (e.g., changing a paid invoice) fails with a clear
    error naming both states.

    HTTP Status: 409 Conflict
    """

    default_message = "Invalid state transition"


# ============================================================================
# Database Exceptions
# ============================================================================


class DatabaseError(AppException):
    """
    Raised when database operations fail.

    WHY: Database errors are caught at the DAO layer and converted to
    application exceptions with safe error messages (no SQL exposed).

    HTTP Status: 500 Internal Server Error
    """

    status_code = 500
    default_message = "Database error"
