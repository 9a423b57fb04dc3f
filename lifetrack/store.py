# File: store.py
"""Persistent store boundary for LifeTrack.

The engine talks to its relational store through a narrow async CRUD
interface (``LifeTrackStore``). Two implementations ship with the package:

- ``MemoryStore``: dict-backed tables with the same unique constraints and
  delete cascades as the relational schema, and transactions that snapshot and
  roll back on any exception.
- ``JsonFileStore``: a MemoryStore that writes committed state to a JSON file.

Any failure inside a store surfaces as ``StoreError`` with the original message
preserved.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
from contextlib import asynccontextmanager
import copy
import json
from pathlib import Path
from typing import TYPE_CHECKING, Any
import uuid

from . import const
from .exceptions import StoreError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable, Mapping


Row = dict[str, Any]

# Natural keys enforced on insert/update, per table
UNIQUE_CONSTRAINTS: dict[str, list[tuple[str, ...]]] = {
    const.TABLE_HABIT_COMPLETIONS: [
        (const.DATA_COMPLETION_HABIT_ID, const.DATA_COMPLETION_DATE)
    ],
    const.TABLE_HABIT_STREAKS: [(const.DATA_USER_ID, const.DATA_STREAK_HABIT_ID)],
    const.TABLE_USER_STATS: [(const.DATA_USER_ID,)],
    const.TABLE_ACHIEVEMENTS: [(const.DATA_USER_ID, const.DATA_ACHIEVEMENT_TYPE)],
    const.TABLE_XP_EVENTS: [(const.DATA_USER_ID, const.DATA_XP_EVENT_KEY)],
}

# Parent table -> [(child table, foreign key column)]
CASCADES: dict[str, list[tuple[str, str]]] = {
    const.TABLE_HABITS: [
        (const.TABLE_HABIT_COMPLETIONS, const.DATA_COMPLETION_HABIT_ID),
        (const.TABLE_HABIT_STREAKS, const.DATA_STREAK_HABIT_ID),
    ],
    const.TABLE_TASKS: [(const.TABLE_SUBTASKS, const.DATA_SUBTASK_TASK_ID)],
}


class LifeTrackStore(ABC):
    """Row-level async CRUD interface consumed by the managers.

    Filters:
        eq: column -> value, all must match
        neq: column -> value, none may match
        in_: column -> iterable of allowed values
    """

    @abstractmethod
    def get_user_id(self) -> str | None:
        """Return the authenticated user id, or None when signed out."""

    @abstractmethod
    async def async_select(
        self,
        table: str,
        *,
        eq: Mapping[str, Any] | None = None,
        neq: Mapping[str, Any] | None = None,
        in_: Mapping[str, Iterable[Any]] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Row]:
        """Return matching rows (copies)."""

    @abstractmethod
    async def async_insert(self, table: str, row: Mapping[str, Any]) -> Row:
        """Insert one row and return it."""

    @abstractmethod
    async def async_insert_many(
        self, table: str, rows: Iterable[Mapping[str, Any]]
    ) -> list[Row]:
        """Insert rows atomically and return them."""

    @abstractmethod
    async def async_update(
        self,
        table: str,
        values: Mapping[str, Any],
        *,
        eq: Mapping[str, Any] | None = None,
        in_: Mapping[str, Iterable[Any]] | None = None,
    ) -> list[Row]:
        """Update matching rows and return them."""

    @abstractmethod
    async def async_upsert(
        self, table: str, row: Mapping[str, Any], on_conflict: tuple[str, ...]
    ) -> Row:
        """Insert, or fully replace the row sharing the on_conflict columns."""

    @abstractmethod
    async def async_delete(
        self,
        table: str,
        *,
        eq: Mapping[str, Any] | None = None,
        in_: Mapping[str, Iterable[Any]] | None = None,
    ) -> int:
        """Delete matching rows (with cascades) and return how many."""

    @abstractmethod
    def transaction(self) -> Any:
        """Async context manager grouping writes; rolls back on exception."""

    async def async_select_one(
        self, table: str, *, eq: Mapping[str, Any]
    ) -> Row | None:
        """Return the single matching row, or None."""
        rows = await self.async_select(table, eq=eq, limit=1)
        return rows[0] if rows else None


class MemoryStore(LifeTrackStore):
    """In-memory reference store.

    Writes from one task are serialized against other tasks' transactions by
    an asyncio.Lock; a transaction re-entered from the task that owns it is a
    no-op, so nested stages share the outer unit.
    """

    def __init__(
        self,
        user_id: str | None = None,
        data: Mapping[str, list[Row]] | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            user_id: Authenticated user (None simulates a signed-out client)
            data: Optional initial tables
        """
        self._user_id = user_id
        self._tables: dict[str, list[Row]] = {table: [] for table in const.ALL_TABLES}
        if data:
            for table, rows in data.items():
                self._tables[table] = copy.deepcopy(list(rows))
        self._lock = asyncio.Lock()
        self._tx_owner: asyncio.Task[Any] | None = None

    # -------------------------------------------------------------------------
    # Identity
    # -------------------------------------------------------------------------

    def get_user_id(self) -> str | None:
        return self._user_id

    def set_user_id(self, user_id: str | None) -> None:
        """Sign in as user_id, or sign out with None."""
        self._user_id = user_id

    @property
    def tables(self) -> dict[str, list[Row]]:
        """Deep copy of every table (for diagnostics and tests)."""
        return copy.deepcopy(self._tables)

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        current = asyncio.current_task()
        if current is not None and self._tx_owner is current:
            yield
            return

        async with self._lock:
            snapshot = copy.deepcopy(self._tables)
            self._tx_owner = current
            try:
                yield
                await self._async_commit()
            except BaseException:
                self._tables = snapshot
                const.LOGGER.debug("Store transaction rolled back")
                raise
            finally:
                self._tx_owner = None

    def _in_transaction(self) -> bool:
        return self._tx_owner is not None and self._tx_owner is asyncio.current_task()

    async def _async_after_write(self) -> None:
        if not self._in_transaction():
            await self._async_commit()

    async def _async_commit(self) -> None:
        """Hook run after committed writes. Nothing to flush in memory."""

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    async def async_select(
        self,
        table: str,
        *,
        eq: Mapping[str, Any] | None = None,
        neq: Mapping[str, Any] | None = None,
        in_: Mapping[str, Iterable[Any]] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Row]:
        rows = [
            row
            for row in self._table(table)
            if self._matches(row, eq=eq, neq=neq, in_=in_)
        ]
        if order_by is not None:
            rows.sort(
                key=lambda row: (row.get(order_by) is None, row.get(order_by)),
                reverse=descending,
            )
        if limit is not None:
            rows = rows[:limit]
        return copy.deepcopy(rows)

    async def async_insert(self, table: str, row: Mapping[str, Any]) -> Row:
        inserted = await self.async_insert_many(table, [row])
        return inserted[0]

    async def async_insert_many(
        self, table: str, rows: Iterable[Mapping[str, Any]]
    ) -> list[Row]:
        target = self._table(table)
        staged: list[Row] = []
        for row in rows:
            new_row = copy.deepcopy(dict(row))
            if table != const.TABLE_USER_STATS:
                new_row.setdefault(const.DATA_ID, str(uuid.uuid4()))
            self._check_unique(table, new_row, [*target, *staged])
            staged.append(new_row)
        target.extend(staged)
        await self._async_after_write()
        return copy.deepcopy(staged)

    async def async_update(
        self,
        table: str,
        values: Mapping[str, Any],
        *,
        eq: Mapping[str, Any] | None = None,
        in_: Mapping[str, Iterable[Any]] | None = None,
    ) -> list[Row]:
        target = self._table(table)
        matched = [row for row in target if self._matches(row, eq=eq, in_=in_)]
        for row in matched:
            candidate = {**row, **copy.deepcopy(dict(values))}
            others = [other for other in target if other is not row]
            self._check_unique(table, candidate, others)
        for row in matched:
            row.update(copy.deepcopy(dict(values)))
        await self._async_after_write()
        return copy.deepcopy(matched)

    async def async_upsert(
        self, table: str, row: Mapping[str, Any], on_conflict: tuple[str, ...]
    ) -> Row:
        target = self._table(table)
        new_row = copy.deepcopy(dict(row))
        for index, existing in enumerate(target):
            if all(existing.get(col) == new_row.get(col) for col in on_conflict):
                if const.DATA_ID in existing:
                    new_row[const.DATA_ID] = existing[const.DATA_ID]
                others = [other for other in target if other is not existing]
                self._check_unique(table, new_row, others)
                target[index] = new_row
                break
        else:
            if table != const.TABLE_USER_STATS:
                new_row.setdefault(const.DATA_ID, str(uuid.uuid4()))
            self._check_unique(table, new_row, target)
            target.append(new_row)
        await self._async_after_write()
        return copy.deepcopy(new_row)

    async def async_delete(
        self,
        table: str,
        *,
        eq: Mapping[str, Any] | None = None,
        in_: Mapping[str, Iterable[Any]] | None = None,
    ) -> int:
        deleted = self._delete_rows(table, eq=eq, in_=in_)
        await self._async_after_write()
        return deleted

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _table(self, table: str) -> list[Row]:
        try:
            return self._tables[table]
        except KeyError as err:
            const.LOGGER.error("Store: unknown table '%s'", table)
            raise StoreError(f'relation "{table}" does not exist') from err

    def _delete_rows(
        self,
        table: str,
        *,
        eq: Mapping[str, Any] | None = None,
        in_: Mapping[str, Iterable[Any]] | None = None,
    ) -> int:
        target = self._table(table)
        doomed = [row for row in target if self._matches(row, eq=eq, in_=in_)]
        if not doomed:
            return 0
        doomed_refs = {id(row) for row in doomed}
        self._tables[table] = [row for row in target if id(row) not in doomed_refs]
        doomed_ids = [row.get(const.DATA_ID) for row in doomed]
        for child_table, fk in CASCADES.get(table, []):
            self._delete_rows(child_table, in_={fk: doomed_ids})
        return len(doomed)

    @staticmethod
    def _matches(
        row: Mapping[str, Any],
        *,
        eq: Mapping[str, Any] | None = None,
        neq: Mapping[str, Any] | None = None,
        in_: Mapping[str, Iterable[Any]] | None = None,
    ) -> bool:
        if eq and any(row.get(col) != value for col, value in eq.items()):
            return False
        if neq and any(row.get(col) == value for col, value in neq.items()):
            return False
        if in_:
            for col, allowed in in_.items():
                if row.get(col) not in set(allowed):
                    return False
        return True

    @staticmethod
    def _check_unique(table: str, row: Mapping[str, Any], others: list[Row]) -> None:
        keys: list[tuple[str, ...]] = [(const.DATA_ID,)] if const.DATA_ID in row else []
        keys.extend(UNIQUE_CONSTRAINTS.get(table, []))
        for columns in keys:
            for other in others:
                if all(other.get(col) == row.get(col) for col in columns):
                    const.LOGGER.error(
                        "Store: unique violation on %s(%s)", table, ", ".join(columns)
                    )
                    raise StoreError(
                        "duplicate key value violates unique constraint "
                        f'"{table}_{"_".join(columns)}_key"'
                    )


class JsonFileStore(MemoryStore):
    """MemoryStore persisted to a JSON file after every committed write.

    Call ``async_initialize()`` once before use to load existing data.
    """

    def __init__(self, path: str | Path, user_id: str | None = None) -> None:
        super().__init__(user_id=user_id)
        self._path = Path(path)

    async def async_initialize(self) -> None:
        """Load tables from disk, or start empty when the file does not exist."""
        const.LOGGER.debug("JsonFileStore: Loading data from %s", self._path)
        try:
            raw = await asyncio.to_thread(self._read)
        except (OSError, ValueError) as err:
            const.LOGGER.error("JsonFileStore: Cannot read %s: %s", self._path, err)
            raise StoreError(str(err)) from err

        if raw is None:
            const.LOGGER.info("No existing storage found. Initializing new data")
            return

        for table, rows in raw.get(const.STORAGE_KEY_TABLES, {}).items():
            self._tables[table] = rows
        const.LOGGER.debug(
            "JsonFileStore: Loaded %s",
            {table: len(rows) for table, rows in self._tables.items()},
        )

    async def _async_commit(self) -> None:
        payload = {
            const.STORAGE_KEY_VERSION: const.STORAGE_VERSION,
            const.STORAGE_KEY_TABLES: copy.deepcopy(self._tables),
        }
        try:
            await asyncio.to_thread(self._write, payload)
        except OSError as err:
            const.LOGGER.error("JsonFileStore: Cannot write %s: %s", self._path, err)
            raise StoreError(str(err)) from err

    def _read(self) -> dict[str, Any] | None:
        if not self._path.exists():
            return None
        with self._path.open(encoding="utf-8") as handle:
            return json.load(handle)

    def _write(self, payload: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2, sort_keys=True)
        tmp_path.replace(self._path)
