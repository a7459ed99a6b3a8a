"""Domain-specific exceptions."""


class DomainError(Exception):
    """Base exception for domain errors."""

    pass


class ValidationError(DomainError):
    """Raised when a submitted field value fails validation."""

    pass


class RecordNotFoundError(DomainError):
    """Raised when a resource or record cannot be found."""

    pass


class RelationNotFoundError(DomainError):
    """Raised when a resource has no relation field with the requested name."""

    pass


class PermissionDeniedError(DomainError):
    """Raised when the current user may not perform an action on a resource."""

    pass
