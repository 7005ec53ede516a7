from __future__ import annotations

import functools
import logging
from typing import Any, Generic, List, Optional, Type, TypeVar

from sqlalchemy import func, inspect, select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import make_transient_to_detached
from sqlalchemy.orm.attributes import flag_modified

from globe_data.core.logging import entity_context
from globe_data.core.settings import get_settings
from globe_data.db.base import SMALLINT_MAX, SMALLINT_MIN
from globe_data.repositories.base import BaseRepository
from globe_data.repositories.errors import EntityStateError
from globe_data.repositories.query import EntityQuery, Predicate, Selector

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _operation(fn):
    """Run a repository coroutine with the entity name in the logging context."""

    @functools.wraps(fn)
    async def wrapper(self: "GenericRepository[Any]", *args: Any, **kwargs: Any) -> Any:
        with entity_context(self.entity_name):
            return await fn(self, *args, **kwargs)

    return wrapper


def _mutation(fn):
    """Like _operation, and any failure is logged at WARNING before it propagates."""

    @functools.wraps(fn)
    async def wrapper(self: "GenericRepository[Any]", *args: Any, **kwargs: Any) -> Any:
        with entity_context(self.entity_name):
            try:
                return await fn(self, *args, **kwargs)
            except Exception:
                logger.warning(
                    "%s failed for %s",
                    fn.__name__,
                    self.entity_name,
                    exc_info=True,
                    extra={"entity": self.entity_name},
                )
                raise

    return wrapper


class GenericRepository(BaseRepository, Generic[T]):
    """
    CRUD, projection, filtering, pagination and search over one mapped class.

    Every call is self-contained: reads compose a single SELECT
    (tracking -> filter -> projection -> page) and execute it, writes stage one
    change and commit it. Nothing is cached between calls.

    Usage:
        repo = GenericRepository(session, Country)
        names = await repo.get_selected_columns_with_pagination(
            lambda c: (c.id, c.name), False, 2, 20, where=lambda c: c.continent_id == 3
        )
    """

    def __init__(
        self,
        session: AsyncSession,
        model: Type[T],
        *,
        swallow_selector_errors: Optional[bool] = None,
    ) -> None:
        super().__init__(session)
        self.model = model
        self.entity_name = model.__name__
        if swallow_selector_errors is None:
            swallow_selector_errors = get_settings().LEGACY_SWALLOW_SELECTOR_ERRORS
        self.swallow_selector_errors = swallow_selector_errors

    # PUBLIC_INTERFACE
    def query(self, track_changes: bool) -> EntityQuery[T]:
        """Base collection with the tracking mode applied; nothing is executed."""
        return EntityQuery(self.session, self.model, track_changes=track_changes)

    # Lookups

    @_operation
    async def get_by_id(self, entity_id: int) -> Optional[T]:
        """Primary-key lookup. The entity stays tracked; None when absent."""
        logger.debug("get_by_id id=%s", entity_id)
        return await self.session.get(self.model, entity_id)

    @_operation
    async def get_by_small_id(self, entity_id: int) -> Optional[T]:
        """Primary-key lookup by a small-integer id returning a detached snapshot."""
        if not SMALLINT_MIN <= entity_id <= SMALLINT_MAX:
            raise ValueError(f"{entity_id} does not fit a small integer key")
        logger.debug("get_by_small_id id=%s", entity_id)
        entity = await self.session.get(self.model, entity_id)
        if entity is not None:
            self.session.expunge(entity)
        return entity

    @_operation
    async def get_all(self, track_changes: bool) -> EntityQuery[T]:
        """Lazy handle over the whole collection; execute with all()/first()/count()."""
        logger.debug("get_all track_changes=%s", track_changes)
        return self.query(track_changes)

    @_operation
    async def count(self) -> int:
        """Row count of the whole collection. Filters never apply here."""
        total = await self.scalar_one(select(func.count()).select_from(self.model))
        return int(total)

    # Mutations

    def _attach(self, entity: T) -> None:
        """Bring ``entity`` into this session as a persistent object."""
        state = inspect(entity)
        if state.deleted or state.pending:
            raise EntityStateError(
                f"{self.entity_name} is pending insert or delete and cannot be attached"
            )
        if state.persistent and state.session_id == self.session.sync_session.hash_key:
            return
        if state.transient:
            key = state.mapper.primary_key_from_instance(entity)
            if any(value is None for value in key):
                raise EntityStateError(f"{self.entity_name} has no primary key value")
            make_transient_to_detached(entity)
        self.session.add(entity)

    def _fill_unset_columns(self, entity: T) -> None:
        """Give every unset non-key column its scalar default, or None.

        A caller-built entity then carries a full row image, so update writes
        every column just as it would for a loaded entity.
        """
        state = inspect(entity)
        for attr in state.mapper.column_attrs:
            column = attr.columns[0]
            if attr.key in state.dict or column.primary_key:
                continue
            default = column.default
            value = default.arg if default is not None and default.is_scalar else None
            setattr(entity, attr.key, value)

    @_mutation
    async def add(self, entity: T) -> None:
        """Insert ``entity`` and commit; generated keys are set on it afterwards."""
        self.session.add(entity)
        await self.save_changes()
        logger.debug("added id=%s", getattr(entity, "id", None))

    @_mutation
    async def update(self, entity: T) -> None:
        """Persist the full loaded state of ``entity`` and commit.

        Every loaded non-key column is written, changed or not. A key with no
        matching row raises StaleDataError from the flush.
        """
        if inspect(entity).transient:
            self._fill_unset_columns(entity)
        self._attach(entity)
        state = inspect(entity)
        mapper = state.mapper
        key_attrs = {mapper.get_property_by_column(col).key for col in mapper.primary_key}
        for attr in mapper.column_attrs:
            if attr.key in state.dict and attr.key not in key_attrs:
                flag_modified(entity, attr.key)
        await self.save_changes()
        logger.debug("updated key=%s", state.identity)

    @_mutation
    async def delete(self, entity: T) -> None:
        """Remove ``entity`` and commit."""
        self._attach(entity)
        identity = inspect(entity).identity
        await self.session.delete(entity)
        await self.save_changes()
        logger.debug("deleted key=%s", identity)

    # Projections

    @_operation
    async def get_selected_columns(
        self,
        selector: Selector,
        track_changes: bool,
        *,
        where: Optional[Predicate] = None,
    ) -> Optional[List[Any]]:
        """
        Project every row (or every row matching ``where``) through ``selector``.

        Without ``where`` and with LEGACY_SWALLOW_SELECTOR_ERRORS enabled, a
        failure to build or run the query is logged and None is returned.
        """
        query = self.query(track_changes)
        if where is not None:
            return await query.where(where).select(selector).all()
        try:
            return await query.select(selector).all()
        except Exception as exc:
            if not self.swallow_selector_errors:
                raise
            logger.exception("Selector query failed; returning None")
            if isinstance(exc, DBAPIError):
                await self.rollback()
            return None

    @_operation
    async def get_selected_columns_with_pagination(
        self,
        selector: Selector,
        track_changes: bool,
        page_number: int,
        page_size: int,
        *,
        where: Optional[Predicate] = None,
        order_by: Optional[Predicate] = None,
    ) -> List[Any]:
        """Project, then return page ``page_number`` of ``page_size`` rows.

        ``where`` filters before projection, so it may use columns the selector
        leaves out. Rows are ordered by primary key unless ``order_by`` is given.
        """
        logger.debug("page=%s size=%s filtered=%s", page_number, page_size, where is not None)
        query = self.query(track_changes).where(where)
        if order_by is not None:
            query = query.order_by(order_by)
        return await query.select(selector).paginate(page_number, page_size).all()

    @_operation
    async def get_selected_columns_with_pagination_and_search(
        self,
        selector: Selector,
        search_filter: Optional[Predicate],
        page_number: int,
        page_size: int,
        track_changes: bool,
        *,
        order_by: Optional[Predicate] = None,
    ) -> List[Any]:
        """Server-side search and paging. A missing ``search_filter`` matches every row."""
        logger.debug(
            "search page=%s size=%s search=%s", page_number, page_size, search_filter is not None
        )
        query = self.query(track_changes).where(search_filter)
        if order_by is not None:
            query = query.order_by(order_by)
        return await query.select(selector).paginate(page_number, page_size).all()
