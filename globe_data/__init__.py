"""
globe_data: generic async data access over SQLAlchemy.
"""
from globe_data.repositories import GenericRepository, IRepository
from globe_data.schemas import PageRequest

__version__ = "0.1.0"

__all__ = ["GenericRepository", "IRepository", "PageRequest", "__version__"]
