class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class NotFoundError(DomainError):
    """Raised when a referenced request or attendance record does not exist."""


class StateConflictError(DomainError):
    """Raised when the current state of a record does not allow the action."""


class AlreadyProcessedError(StateConflictError):
    """Raised when a workflow level (or the whole request) has already been decided."""


class ConcurrencyError(StateConflictError):
    """Raised when a compare-and-swap write keeps losing to concurrent writers."""


class PersistenceError(DomainError):
    """Raised when the storage layer fails to persist a change."""


class DuplicateRecordError(PersistenceError):
    """Raised by repositories when a unique key is already taken."""
