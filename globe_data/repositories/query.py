"""
Composable, lazily executed queries over one mapped entity.

An EntityQuery is the Python counterpart of a queryable collection handle:
stages are recorded on an immutable builder and only turned into SQL when a
terminal method (all/first/count/async iteration) runs, so the whole chain
costs a single round trip.

Stage order is fixed: tracking mode, filters, ordering, projection, page.
"""
from __future__ import annotations

from typing import (
    Any,
    AsyncIterator,
    Callable,
    Generic,
    List,
    Optional,
    Sequence,
    Tuple,
    Type,
    TypeVar,
    Union,
)

from sqlalchemy import Row, Select, func, inspect, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstanceState
from sqlalchemy.sql import ClauseElement

from globe_data.repositories.errors import QueryCompositionError
from globe_data.schemas.paging import PageRequest

T = TypeVar("T")

# A selector maps the entity class to what should be loaded: a column
# expression, several of them, or the class itself.
Selector = Union[Callable[[Type[Any]], Any], ClauseElement, Type[Any]]
# A predicate maps the entity class to a boolean SQL clause.
Predicate = Union[Callable[[Type[Any]], Any], ClauseElement]


def _is_expression(value: Any) -> bool:
    return isinstance(value, ClauseElement) or hasattr(value, "__clause_element__")


def resolve(model: Type[Any], value: Any) -> Any:
    """Evaluate a selector/predicate against the model class.

    Mapped classes and SQL expressions are taken as-is; any other callable is
    invoked with the model class.
    """
    if isinstance(value, type) or _is_expression(value):
        return value
    if callable(value):
        return value(model)
    raise QueryCompositionError(
        f"Expected a SQL expression or a callable taking {model.__name__}, got {value!r}"
    )


class EntityQuery(Generic[T]):
    """Immutable query builder bound to a session and a mapped class."""

    def __init__(
        self,
        session: AsyncSession,
        model: Type[T],
        *,
        track_changes: bool = True,
        criteria: Tuple[Any, ...] = (),
        ordering: Tuple[Any, ...] = (),
        columns: Optional[Tuple[Any, ...]] = None,
        page: Optional[PageRequest] = None,
    ) -> None:
        self.session = session
        self.model = model
        self.track_changes = track_changes
        self._criteria = criteria
        self._ordering = ordering
        self._columns = columns
        self._page = page

    def _clone(self, **changes: Any) -> "EntityQuery[T]":
        state = dict(
            track_changes=self.track_changes,
            criteria=self._criteria,
            ordering=self._ordering,
            columns=self._columns,
            page=self._page,
        )
        state.update(changes)
        return EntityQuery(self.session, self.model, **state)

    # Stages

    def where(self, predicate: Optional[Predicate]) -> "EntityQuery[T]":
        """Restrict rows. ``None`` means no restriction."""
        if predicate is None:
            return self
        if self._columns is not None or self._page is not None:
            raise QueryCompositionError("Filters must be applied before projection and paging")
        clause = resolve(self.model, predicate)
        return self._clone(criteria=self._criteria + (clause,))

    def order_by(self, *keys: Predicate) -> "EntityQuery[T]":
        if self._page is not None:
            raise QueryCompositionError("Ordering must be applied before paging")
        resolved: List[Any] = []
        for key in keys:
            value = resolve(self.model, key)
            if isinstance(value, (list, tuple)):
                resolved.extend(value)
            else:
                resolved.append(value)
        return self._clone(ordering=self._ordering + tuple(resolved))

    def select(self, selector: Selector) -> "EntityQuery[Any]":
        """Project each row through ``selector``."""
        if selector is None:
            raise QueryCompositionError("A selector is required for projection")
        if self._columns is not None:
            raise QueryCompositionError("Query is already projected")
        if self._page is not None:
            raise QueryCompositionError("Projection must be applied before paging")
        value = resolve(self.model, selector)
        columns = tuple(value) if isinstance(value, (list, tuple)) else (value,)
        if not columns:
            raise QueryCompositionError("Selector returned no columns")
        return self._clone(columns=columns)

    def paginate(
        self, page: Union[PageRequest, int], page_size: Optional[int] = None
    ) -> "EntityQuery[T]":
        """Keep one 1-indexed window of the (filtered, projected) result."""
        if self._page is not None:
            raise QueryCompositionError("Query is already paginated")
        if not isinstance(page, PageRequest):
            page = PageRequest(page_number=page, page_size=page_size)
        return self._clone(page=page)

    # Compilation

    def _primary_key(self) -> Sequence[Any]:
        return list(inspect(self.model).primary_key)

    def _build(self, paged: bool = True) -> Select:
        columns = self._columns or (self.model,)
        stmt = select(*columns).select_from(self.model)
        for clause in self._criteria:
            stmt = stmt.where(clause)
        ordering = self._ordering
        if paged and self._page is not None:
            if not ordering:
                # Paging needs a stable order for windows to partition the rows.
                ordering = tuple(self._primary_key())
            stmt = stmt.order_by(*ordering)
            stmt = stmt.offset(self._page.offset).limit(self._page.limit)
        elif ordering:
            stmt = stmt.order_by(*ordering)
        return stmt

    @property
    def statement(self) -> Select:
        """The composed SELECT, for inspection or reuse."""
        return self._build()

    # Execution

    async def _run(self, stmt: Select) -> List[Any]:
        known = None if self.track_changes else set(self.session.identity_map.keys())
        result = await self.session.execute(stmt)
        if len(self._columns or (self.model,)) == 1:
            rows = list(result.scalars().all())
        else:
            rows = list(result.all())
        if known is not None:
            self._detach(rows, known)
        return rows

    def _detach(self, rows: List[Any], known: set) -> None:
        """Expunge entities loaded by an untracked read.

        Instances the session already tracked before the read stay attached.
        """
        for row in rows:
            values = tuple(row) if isinstance(row, Row) else (row,)
            for value in values:
                state = inspect(value, raiseerr=False)
                if not isinstance(state, InstanceState):
                    continue
                if state.persistent and state.key not in known:
                    self.session.expunge(value)

    async def all(self) -> List[Any]:
        """Execute and return every row."""
        return await self._run(self._build())

    async def first(self) -> Optional[Any]:
        """Execute and return the first row, or None."""
        rows = await self._run(self._build().limit(1))
        return rows[0] if rows else None

    async def count(self) -> int:
        """Count rows of the composed query, ignoring the page window."""
        inner = self._build(paged=False).order_by(None).subquery()
        result = await self.session.execute(select(func.count()).select_from(inner))
        return int(result.scalar_one())

    async def __aiter__(self) -> AsyncIterator[Any]:
        for row in await self.all():
            yield row

    def __repr__(self) -> str:
        return f"<EntityQuery {self.model.__name__} track={self.track_changes} page={self._page}>"
