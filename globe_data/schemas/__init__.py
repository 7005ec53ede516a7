from .paging import PageRequest

__all__ = ["PageRequest"]
