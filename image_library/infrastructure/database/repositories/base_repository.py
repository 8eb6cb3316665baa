from __future__ import annotations

import dataclasses
import itertools
import logging
import os
import threading
from contextlib import contextmanager
from typing import Any, Generic, Iterator, TypeVar

from supabase import Client

from image_library.domain.exceptions import RecordNotFoundError, StorageError

logger = logging.getLogger(__name__)

E = TypeVar("E")

_EVENTS = ("saving", "created", "updated", "deleting")


class Repository(Generic[E]):
    """Record store for one entity type with lifecycle observers.

    Works against a Supabase table, or an in-memory dict when ``SUPABASE_DISABLED=1``
    or no client is given. Observers are plain objects exposing any of
    ``saving(entity) -> entity``, ``created(entity)``, ``updated(entity, changed_fields)``
    and ``deleting(entity)``.
    """

    table: str = ""
    id_prefix: str = "rec"

    def __init__(self, client: Client | None = None) -> None:
        self.client = client
        self.disabled = os.getenv("SUPABASE_DISABLED", "0") == "1" or client is None
        # in-memory fallback
        self._mem: dict[str, E] = {}
        self._ids = itertools.count(1)
        self._lock = threading.RLock()
        self._observers: list[Any] = []
        # one rollback journal per thread
        self._local = threading.local()

    # --------- row mapping ---------
    def _to_row(self, entity: E) -> dict[str, Any]:
        raise NotImplementedError

    def _from_row(self, row: dict[str, Any]) -> E:
        raise NotImplementedError

    # --------- observers ---------
    def observe(self, observer: Any) -> None:
        self._observers.append(observer)

    def _fire(self, event: str, *args: Any) -> Any:
        result = args[0] if args else None
        for observer in self._observers:
            handler = getattr(observer, event, None)
            if handler is None:
                continue
            if event == "saving":
                result = handler(result)
                args = (result,)
            else:
                handler(*args)
        return result

    # --------- public API ---------
    def create(self, entity: E) -> E:
        entity = self._fire("saving", entity)
        with self._lock:
            if not getattr(entity, "id", None):
                entity = dataclasses.replace(entity, id=self._next_id())  # type: ignore[type-var]
            stored = self._insert(entity)
            self._record("insert", stored.id, None)  # type: ignore[attr-defined]
        self._fire("created", stored)
        return stored

    def update(self, entity_id: str, **changes: Any) -> E:
        current = self.get(entity_id)
        if current is None:
            raise RecordNotFoundError(f"{self.table} record '{entity_id}' not found")
        updated = self._fire("saving", dataclasses.replace(current, **changes))  # type: ignore[type-var]
        changed = {
            f.name
            for f in dataclasses.fields(updated)  # type: ignore[arg-type]
            if getattr(updated, f.name) != getattr(current, f.name)
        }
        if not changed:
            return current
        with self._lock:
            stored = self._replace(updated)
            self._record("update", entity_id, current)
        self._fire("updated", stored, changed)
        return stored

    def delete(self, entity_id: str) -> bool:
        current = self.get(entity_id)
        if current is None:
            return False
        self._fire("deleting", current)
        with self._lock:
            self._remove(entity_id)
            self._record("delete", entity_id, current)
        return True

    def get(self, entity_id: str) -> E | None:
        if self.disabled:
            return self._mem.get(entity_id)
        try:  # pragma: no cover - network
            res = self.client.table(self.table).select("*").eq("id", entity_id).limit(1).execute()
            rows = res.data or []
            return self._from_row(rows[0]) if rows else None
        except Exception as exc:  # pragma: no cover
            raise StorageError(f"DB get {self.table} failed: {exc}") from exc

    def list(self, **filters: Any) -> list[E]:
        if self.disabled:
            return [
                e for e in self._mem.values() if all(getattr(e, k) == v for k, v in filters.items())
            ]
        try:  # pragma: no cover - network
            query = self.client.table(self.table).select("*")
            for column, value in filters.items():
                query = query.eq(column, value)
            res = query.execute()
            return [self._from_row(row) for row in res.data or []]
        except Exception as exc:  # pragma: no cover
            raise StorageError(f"DB list {self.table} failed: {exc}") from exc

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Undo every write made inside the block if it raises.

        Rollback replays a compensating journal directly against the store, so no
        observer fires for the undone writes. Nested blocks join the outer one;
        journals are per thread.
        """
        if self._journal is not None:
            yield
            return
        self._local.journal = []
        try:
            yield
        except BaseException:
            journal, self._local.journal = self._local.journal, None
            self._rollback(journal)
            raise
        else:
            self._local.journal = None

    # --------- storage primitives ---------
    def _next_id(self) -> str:
        if self.disabled:
            return f"{self.id_prefix}_{next(self._ids)}"
        return ""  # pragma: no cover - assigned by the database

    def _insert(self, entity: E) -> E:
        if self.disabled:
            self._mem[entity.id] = entity  # type: ignore[attr-defined]
            return entity
        try:  # pragma: no cover - network
            row = self._to_row(entity)
            if not row.get("id"):
                row.pop("id", None)
            res = self.client.table(self.table).insert(row).execute()
            return self._from_row(res.data[0])
        except Exception as exc:  # pragma: no cover
            raise StorageError(f"DB insert {self.table} failed: {exc}") from exc

    def _replace(self, entity: E) -> E:
        if self.disabled:
            self._mem[entity.id] = entity  # type: ignore[attr-defined]
            return entity
        try:  # pragma: no cover - network
            row = self._to_row(entity)
            self.client.table(self.table).update(row).eq("id", row["id"]).execute()
            return entity
        except Exception as exc:  # pragma: no cover
            raise StorageError(f"DB update {self.table} failed: {exc}") from exc

    def _remove(self, entity_id: str) -> None:
        if self.disabled:
            self._mem.pop(entity_id, None)
            return
        try:  # pragma: no cover - network
            self.client.table(self.table).delete().eq("id", entity_id).execute()
        except Exception as exc:  # pragma: no cover
            raise StorageError(f"DB delete {self.table} failed: {exc}") from exc

    @property
    def _journal(self) -> list[tuple[str, str, E | None]] | None:
        return getattr(self._local, "journal", None)

    def _record(self, op: str, entity_id: str, before: E | None) -> None:
        journal = self._journal
        if journal is not None:
            journal.append((op, entity_id, before))

    def _rollback(self, journal: list[tuple[str, str, E | None]]) -> None:
        logger.warning("Rolling back %d %s write(s)", len(journal), self.table)
        with self._lock:
            for op, entity_id, before in reversed(journal):
                if op == "insert":
                    self._remove(entity_id)
                elif op == "update":
                    self._replace(before)  # type: ignore[arg-type]
                else:
                    self._insert(before)  # type: ignore[arg-type]
