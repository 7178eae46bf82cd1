"""In-process record store used by the CLI and the test-suite."""

import asyncio
import copy
import logging
import uuid
from collections.abc import Sequence

from evaluator.errors import ConflictError, StoreUnavailableError
from evaluator.store.base import Record, Where

logger = logging.getLogger(__name__)


def _matches(record: Record, where: Where | None) -> bool:
    if not where:
        return True
    for field, wanted in where.items():
        value = record.get(field)
        match wanted:
            case tuple() | list() | set() | frozenset():
                if value not in wanted:
                    return False
            case _:
                if value != wanted:
                    return False
    return True


class InMemoryRecordStore:
    """Dict-of-dicts store that serialises every call behind one lock.

    Records are deep-copied on the way in and out so callers can never
    mutate stored state without going through the store.
    """

    def __init__(self) -> None:
        self._tables: dict[str, dict[str, Record]] = {}
        self._lock = asyncio.Lock()
        self._closed = False

    def close(self) -> None:
        """Take the store offline; every later call raises StoreUnavailableError."""
        self._closed = True

    def reopen(self) -> None:
        self._closed = False

    def _table(self, name: str) -> dict[str, Record]:
        if self._closed:
            raise StoreUnavailableError(f"record store is closed (table {name})")
        return self._tables.setdefault(name, {})

    async def insert(self, table: str, record: Record) -> Record:
        async with self._lock:
            rows = self._table(table)
            stored = copy.deepcopy(record)
            stored.setdefault("id", str(uuid.uuid4()))
            if stored["id"] in rows:
                raise ConflictError(table, stored["id"], {"id": None}, {"id": stored["id"]})
            rows[stored["id"]] = stored
            logger.debug("Inserted %s/%s", table, stored["id"])
            return copy.deepcopy(stored)

    async def get(self, table: str, record_id: str) -> Record | None:
        async with self._lock:
            row = self._table(table).get(record_id)
            return copy.deepcopy(row) if row is not None else None

    async def query(self, table: str, where: Where | None = None) -> list[Record]:
        async with self._lock:
            rows = self._table(table)
            return [copy.deepcopy(r) for r in rows.values() if _matches(r, where)]

    async def update(
        self,
        table: str,
        record_id: str,
        changes: Record,
        expected: Where | None = None,
    ) -> Record | None:
        async with self._lock:
            row = self._table(table).get(record_id)
            if row is None:
                return None
            if expected and not _matches(row, expected):
                actual = {field: row.get(field) for field in expected}
                raise ConflictError(table, record_id, dict(expected), actual)
            row.update(copy.deepcopy(changes))
            row["id"] = record_id
            return copy.deepcopy(row)

    async def update_where(self, table: str, where: Where, changes: Record) -> list[Record]:
        async with self._lock:
            updated = []
            for row in self._table(table).values():
                if _matches(row, where):
                    row.update(copy.deepcopy(changes))
                    updated.append(copy.deepcopy(row))
            return updated

    async def delete(self, table: str, record_id: str) -> bool:
        async with self._lock:
            removed = self._table(table).pop(record_id, None)
            if removed is not None:
                logger.debug("Deleted %s/%s", table, record_id)
            return removed is not None

    async def upsert(
        self,
        table: str,
        key: Sequence[str],
        record: Record,
        defaults: Record | None = None,
    ) -> Record:
        async with self._lock:
            rows = self._table(table)
            key_values = {field: record[field] for field in key}
            existing = [r for r in rows.values() if _matches(r, key_values)]

            match existing:
                case []:
                    stored = copy.deepcopy({**(defaults or {}), **record})
                    stored.setdefault("id", str(uuid.uuid4()))
                    rows[stored["id"]] = stored
                case [current]:
                    stored = current
                    incoming = copy.deepcopy(record)
                    incoming.pop("id", None)
                    stored.update(incoming)
                case many:
                    raise ConflictError(
                        table, many[0]["id"], key_values, {"matches": len(many)},
                    )

            return copy.deepcopy(stored)
