"""
Repository layer for data access.

GenericRepository gives any mapped class CRUD plus projected, filtered,
paginated and searched reads, each executed as a single query against the
AsyncSession it is constructed with.
"""
from .base import BaseRepository
from .errors import EntityStateError, QueryCompositionError, RepositoryError
from .generic import GenericRepository
from .interfaces import IRepository
from .query import EntityQuery

__all__ = [
    "BaseRepository",
    "EntityQuery",
    "EntityStateError",
    "GenericRepository",
    "IRepository",
    "QueryCompositionError",
    "RepositoryError",
]
