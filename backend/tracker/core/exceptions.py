"""
Custom exception hierarchy for structured error handling.

WHY: Custom exceptions provide:
1. One error taxonomy for every ticket and review operation
2. HTTP status code mapping for FastAPI
3. Structured error responses with contextual data
4. No leaks of out-of-organization identifiers in error messages

IMPORTANT: Services raise these; route handlers never build error
responses by hand. The handlers in exception_handlers.py do the translation.
"""

from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Base exception class for all application exceptions.

    WHY: Centralizing exception handling in a base class ensures consistent
    error responses and HTTP status code mapping.

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
        sensitive_fields = {"password", "token", "secret", "key", "api_key", "org_id"}
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
# Authentication & Authorization Exceptions
# ============================================================================


class AuthenticationError(AppException):
    """
    Raised when the bearer token cannot be turned into a principal.

    HTTP Status: 401 Unauthorized
    """

    status_code = 401
    default_message = "Authentication failed"


class TokenExpiredError(AuthenticationError):
    """Raised when JWT token has expired."""

    default_message = "Token has expired"


class TokenInvalidError(AuthenticationError):
    """Raised when JWT token is malformed or has invalid signature."""

    default_message = "Token is invalid"


class AuthorizationError(AppException):
    """
    Raised when a principal lacks the role or assignment for an action.

    WHY: Only raised after the scope check passed, i.e. when the caller
    already knows the resource exists. Out-of-scope access is a 404.

    HTTP Status: 403 Forbidden
    """

    status_code = 403
    default_message = "You do not have permission to perform this action"


class OrganizationRequiredError(AuthorizationError):
    """
    Raised when a principal without an organization tries to create data.

    HTTP Status: 403 Forbidden
    """

    default_message = "You must belong to an organization to perform this action"


# ============================================================================
# Validation & Input Exceptions
# ============================================================================


class ValidationError(AppException):
    """
    Raised when input validation fails.

    WHY: Validation errors return 400 Bad Request with details
    about which field failed, so the UI can show a specific message.

    HTTP Status: 400 Bad Request
    """

    status_code = 400
    default_message = "Validation failed"


class ChecklistIndexError(ValidationError):
    """Raised when a todo index does not address an existing item."""

    default_message = "Checklist item index out of range"


class AttachmentTooLargeError(ValidationError):
    """Raised when an uploaded file exceeds the ceiling for its call site."""

    default_message = "File is too large"


class InvalidStateTransitionError(ValidationError):
    """
    Raised when the configured transition matrix forbids a status change.

    HTTP Status: 400 Bad Request
    """

    default_message = "Invalid status transition"


# ============================================================================
# Resource Exceptions
# ============================================================================


class ResourceNotFoundError(AppException):
    """
    Raised when a requested resource doesn't exist or is out of scope.

    WHY: A missing resource and a resource owned by another organization
    must look identical to the caller.

    HTTP Status: 404 Not Found
    """

    status_code = 404
    default_message = "Resource not found"


class ProjectNotFoundError(ResourceNotFoundError):
    """Raised when a project doesn't exist."""

    default_message = "Project not found"


class TicketNotFoundError(ResourceNotFoundError):
    """Raised when a ticket doesn't exist."""

    default_message = "Ticket not found"


class CommentNotFoundError(ResourceNotFoundError):
    """Raised when a review comment doesn't exist on the ticket."""

    default_message = "Comment not found"


class AttachmentNotFoundError(ResourceNotFoundError):
    """Raised when an attachment doesn't exist on its owner."""

    default_message = "Attachment not found"


# ============================================================================
# Business Logic Exceptions
# ============================================================================


class ConflictInvariantError(AppException):
    """
    Raised when an operation would break a domain invariant.

    WHY: Distinct from a bad request: the input is well-formed but the
    current state of the aggregate forbids the change.

    HTTP Status: 409 Conflict
    """

    status_code = 409
    default_message = "Operation conflicts with the current state"


class CompletedChecklistItemError(ConflictInvariantError):
    """Raised when deleting a checklist item that is already completed."""

    default_message = "Cannot delete completed checklist items"


# ============================================================================
# External Service Exceptions
# ============================================================================


class ExternalServiceError(AppException):
    """
    Raised when an external collaborator fails or is unreachable.

    WHY: Upstream failures are surfaced immediately with the upstream's
    message. Nothing in this service retries.

    HTTP Status: 502 Bad Gateway
    """

    status_code = 502
    default_message = "External service error"


class ChecklistSuggestionError(ExternalServiceError):
    """Raised when the checklist suggestion service fails."""

    default_message = "Checklist suggestion service error"
