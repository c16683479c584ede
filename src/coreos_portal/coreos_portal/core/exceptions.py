class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class NotFoundError(DomainError):
    """Raised when a referenced record or upload does not exist."""


class InsufficientBalanceError(ValidationError):
    """Raised when a PTO request exceeds the available balance."""

    def __init__(self, message: str, *, available: float, requested: float):
        super().__init__(message)
        self.available = available
        self.requested = requested


class BlackoutConflictError(ValidationError):
    """Raised when a PTO request hits a blocking blackout period."""

    def __init__(self, message: str, *, conflicts: list):
        super().__init__(message)
        self.conflicts = conflicts
