"""
Custom Exception Hierarchy - Domain-specific error types

Provides clear, typed exceptions for the failure modes of the voting core.
All custom exceptions inherit from EvoteError for easy catching.

Each class carries the HTTP status it is surfaced with, so the API layer
can translate any EvoteError into a response without a lookup table.

Design Philosophy:
- Exceptions are data: Include context for debugging
- Fail explicitly: Better to raise specific exception than generic
- Never swallow an invariant violation: every failure reaches the caller
"""

from typing import Optional, Dict, Any


class EvoteError(Exception):
    """Base exception for all evote errors

    All custom exceptions inherit from this, enabling:
    - Catch all evote errors with single except clause
    - Distinguish our errors from library errors
    - Add common attributes (context, status_code)
    - Check if error is retryable via is_retryable property
    """

    status_code: int = 500

    # Default: errors are not retryable (permanent failure)
    _retryable: bool = False

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        """True for transient failures (connection loss), False otherwise"""
        return self._retryable

    @property
    def kind(self) -> str:
        return type(self).__name__

    def __str__(self):
        base_msg = super().__str__()
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{base_msg} (context: {context_str})"
        return base_msg


# ========== Caller Errors ==========


class ValidationError(EvoteError):
    """Caller-supplied data violates an entity invariant

    Examples:
    - Missing election title
    - End date not after start date
    - Non-draft election without description, dates or two candidates
    - Illegal status transition
    """

    status_code = 422

    def __init__(self, message: str, field: Optional[str] = None, value: Optional[Any] = None):
        self.field = field
        self.value = value

        context = {}
        if field:
            context['field'] = field
        if value is not None:
            context['value'] = str(value)

        super().__init__(message, context)


class NotFoundError(EvoteError):
    """Referenced election, candidate or voter does not exist"""

    status_code = 404

    def __init__(self, message: str, entity: Optional[str] = None, entity_id: Optional[str] = None):
        self.entity = entity
        self.entity_id = entity_id

        context = {}
        if entity:
            context['entity'] = entity
        if entity_id:
            context['id'] = entity_id

        super().__init__(message, context)


class BadRequestError(EvoteError):
    """Structurally valid request that breaks a business rule tied to current state

    Examples:
    - Election not inside its voting window
    - Voter already voted
    - Candidate registration disabled
    """

    status_code = 400


class UnauthenticatedError(EvoteError):
    """No principal could be established for the request"""

    status_code = 401


class ForbiddenError(EvoteError):
    """Caller lacks the role, or the election's status hides the resource"""

    status_code = 403


class ConflictError(EvoteError):
    """Uniqueness violation"""

    status_code = 409


class ServiceUnavailableError(EvoteError):
    """Service deliberately refusing writes (maintenance mode)"""

    status_code = 503


# ========== Database Errors ==========


class DatabaseError(EvoteError):
    """Database operation failures

    Examples:
    - Query errors
    - Transaction rollbacks
    """
    pass


class DatabaseConnectionError(DatabaseError):
    """Failed to establish or maintain database connection"""

    status_code = 503
    _retryable = True  # Connection issues are often transient


# ========== Configuration Errors ==========


class ConfigurationError(EvoteError):
    """Configuration or environment errors

    Examples:
    - JWT secret missing when a token must be verified
    - Unknown candidate removal policy
    """

    def __init__(self, message: str, config_key: Optional[str] = None):
        self.config_key = config_key
        context = {}
        if config_key:
            context['config_key'] = config_key
        super().__init__(message, context)
