"""Record store contract the evaluation core issues its reads and writes against."""

import functools
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any, Protocol

from evaluator.errors import StoreUnavailableError

type Record = dict[str, Any]
type Where = Mapping[str, Any]


class RecordStore(Protocol):
    """Async create/read/update/query operations over named tables.

    Records are plain dicts keyed by an opaque string ``id``. Implementations
    must apply each call atomically: a call either completes or leaves the
    table untouched.
    """

    async def insert(self, table: str, record: Record) -> Record:
        """Insert a new record, assigning an ``id`` if it has none."""
        ...

    async def get(self, table: str, record_id: str) -> Record | None:
        ...

    async def query(self, table: str, where: Where | None = None) -> list[Record]:
        """Return records whose fields equal every value in ``where``.

        A value given as a tuple, list, set or frozenset matches any member.
        """
        ...

    async def update(
        self,
        table: str,
        record_id: str,
        changes: Record,
        expected: Where | None = None,
    ) -> Record | None:
        """Apply ``changes`` to one record.

        Returns None when the record does not exist. When ``expected`` is
        given the write only happens if the stored fields still hold those
        values; otherwise ``ConflictError`` is raised and nothing changes.
        """
        ...

    async def update_where(self, table: str, where: Where, changes: Record) -> list[Record]:
        """Apply ``changes`` to every matching record and return them."""
        ...

    async def delete(self, table: str, record_id: str) -> bool:
        """Remove a record outright; returns False when it did not exist."""
        ...

    async def upsert(
        self,
        table: str,
        key: Sequence[str],
        record: Record,
        defaults: Record | None = None,
    ) -> Record:
        """Insert, or overwrite the single record sharing ``record``'s key fields.

        ``defaults`` are merged in only when a new record is created.
        """
        ...


def logs_store_failures[**P, R](method: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
    """Log a StoreUnavailableError once, at error level, on its way out of a service call."""
    logger = logging.getLogger(method.__module__)

    @functools.wraps(method)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return await method(*args, **kwargs)
        except StoreUnavailableError as exc:
            if not exc.logged:
                logger.error("%s failed, record store unavailable: %s", method.__qualname__, exc)
                exc.logged = True
            raise

    return wrapper
