from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional, Union

from globe_data.core.settings import get_settings

# Context variables for enriched logging. The repository sets entity_var
# itself; correlation_id_var is owned by the caller (see correlation_context).
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
entity_var: ContextVar[Optional[str]] = ContextVar("entity", default=None)


class LoggingContextFilter(logging.Filter):
    """
    Logging filter that injects correlation_id and entity from contextvars
    into each log record so formatters can include them.

    If no values are present in the context, placeholders are used.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        cid = correlation_id_var.get()
        entity = entity_var.get()
        setattr(record, "correlation_id", cid or "-")
        setattr(record, "entity", entity or "-")
        return True


# PUBLIC_INTERFACE
@contextmanager
def entity_context(entity_name: str) -> Iterator[None]:
    """Tag log records emitted inside the block with the given entity name."""
    token = entity_var.set(entity_name)
    try:
        yield
    finally:
        entity_var.reset(token)


# PUBLIC_INTERFACE
@contextmanager
def correlation_context(correlation_id: str) -> Iterator[None]:
    """Tag log records emitted inside the block with a request or job id."""
    token = correlation_id_var.set(correlation_id)
    try:
        yield
    finally:
        correlation_id_var.reset(token)


# PUBLIC_INTERFACE
def configure_logging(level: Optional[Union[int, str]] = None) -> None:
    """Configure root logging with a structured format and context filter.

    Without an explicit level, LOG_LEVEL from settings is used.
    """
    if level is None:
        level = get_settings().LOG_LEVEL.upper()
    handler = logging.StreamHandler(stream=sys.stdout)
    fmt = (
        "%(asctime)s | %(levelname)s | %(name)s | cid=%(correlation_id)s | entity=%(entity)s | "
        "%(message)s"
    )
    formatter = logging.Formatter(fmt=fmt)
    handler.setFormatter(formatter)
    handler.addFilter(LoggingContextFilter())

    root = logging.getLogger()
    # Remove pre-existing default handlers configured elsewhere (e.g., basicConfig)
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(handler)
    root.setLevel(level)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
