from __future__ import annotations

from typing import Any, List, Optional, Protocol, TypeVar, runtime_checkable

from globe_data.repositories.query import EntityQuery, Predicate, Selector

T = TypeVar("T")


@runtime_checkable
class IRepository(Protocol[T]):
    """
    Data-access contract for one entity type.

    Lookups return None when nothing matches; every other failure is raised.
    """

    async def get_by_id(self, entity_id: int) -> Optional[T]:
        """Fetch a tracked entity by its integer key."""
        ...

    async def get_by_small_id(self, entity_id: int) -> Optional[T]:
        """Fetch a detached snapshot by its small-integer key."""
        ...

    async def get_all(self, track_changes: bool) -> EntityQuery[T]: ...

    async def add(self, entity: T) -> None: ...

    async def update(self, entity: T) -> None: ...

    async def delete(self, entity: T) -> None: ...

    async def count(self) -> int:
        """Rows in the whole collection."""
        ...

    async def get_selected_columns(
        self, selector: Selector, track_changes: bool, *, where: Optional[Predicate] = None
    ) -> Optional[List[Any]]: ...

    async def get_selected_columns_with_pagination(
        self,
        selector: Selector,
        track_changes: bool,
        page_number: int,
        page_size: int,
        *,
        where: Optional[Predicate] = None,
        order_by: Optional[Predicate] = None,
    ) -> List[Any]: ...

    async def get_selected_columns_with_pagination_and_search(
        self,
        selector: Selector,
        search_filter: Optional[Predicate],
        page_number: int,
        page_size: int,
        track_changes: bool,
        *,
        order_by: Optional[Predicate] = None,
    ) -> List[Any]: ...
