class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthenticationError(DomainError):
    """Raised when credentials or tokens are invalid."""


class AuthorizationError(DomainError):
    """Raised when a principal lacks permission for an action."""


class NotFoundError(DomainError):
    """Raised when a looked-up student or class does not exist."""


class ClassNotFoundError(NotFoundError):
    """Raised when a class-key has no students on the roster."""


class AlreadyFullyRecordedError(DomainError):
    """Raised when every roster member already has a record for the date."""

    def __init__(self, message: str, *, total_students: int):
        super().__init__(message)
        self.total_students = total_students


class ConflictError(DomainError):
    """Raised when a write collides with an existing natural key."""


class StoreError(DomainError):
    """Raised when the backing store fails."""
