class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a record is missing or belongs to another tenant."""


class ConflictError(DomainError):
    """Raised when the current state of a record blocks the requested change."""


class AuthorizationError(DomainError):
    """Raised when the request carries no usable identity."""
