from __future__ import annotations


class RepositoryError(RuntimeError):
    """Base class for failures raised by the repository layer itself.

    Store failures (IntegrityError, StaleDataError, ...) are not wrapped and
    reach the caller unchanged.
    """


class EntityStateError(RepositoryError):
    """Raised when an entity cannot be attached for update or delete."""


class QueryCompositionError(RepositoryError):
    """Raised when query stages are combined in an unsupported order."""
