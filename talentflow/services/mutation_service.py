from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping

from talentflow.db.storage import Derive, Record, StorageBackend, clone, key_field
from talentflow.errors import ValidationError


logger = logging.getLogger(__name__)

# Collection -> (id prefix, creation timestamp field).
_CREATE_RULES: dict[str, tuple[str, str]] = {
    "jobs": ("job", "created_at"),
    "candidates": ("candidate", "applied_at"),
}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MonotonicIdFactory:
    """``<prefix>-<nanoseconds>`` ids, strictly increasing even within one clock tick."""

    def __init__(self, clock_ns: Callable[[], int] = time.time_ns) -> None:
        self._clock_ns = clock_ns
        self._last = 0
        self._lock = threading.Lock()

    def __call__(self, prefix: str) -> str:
        with self._lock:
            value = max(self._clock_ns(), self._last + 1)
            self._last = value
        return f"{prefix}-{value}"


class MutationService:
    """The only write path into the store."""

    def __init__(
        self,
        storage: StorageBackend,
        *,
        id_factory: Callable[[str], str] | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.storage = storage
        self._new_id = id_factory or MonotonicIdFactory()
        self._clock = clock

    async def create_entity(
        self, collection: str, payload: Mapping[str, Any], *, derive: Derive | None = None
    ) -> Record:
        """Store a new record with a fresh id and creation timestamp.

        ``derive`` computes further fields from the collection as it is at write
        time (e.g. the next ``order``), inside the same serialized write.
        """

        if collection not in _CREATE_RULES:
            raise ValidationError(f"{collection} records cannot be created, only upserted")
        prefix, stamp_field = _CREATE_RULES[collection]
        record = clone(payload)
        record[key_field(collection)] = self._new_id(prefix)
        record[stamp_field] = self._clock().isoformat()
        if derive is None:
            stored = await self.storage.add(collection, record)
        else:
            stored = await self.storage.add_derived(collection, record, derive)
        logger.info("mutation.create collection=%s key=%s", collection, record[key_field(collection)])
        return stored

    async def update_entity(self, collection: str, key: str, patch: Mapping[str, Any]) -> Record:
        return await self.storage.update(collection, str(key), lambda existing: self._merge(collection, existing, patch))

    async def update_entities(self, collection: str, patches: Mapping[str, Mapping[str, Any]]) -> list[Record]:
        """Patch several records. Every key is checked before anything is written."""

        transforms = {
            str(key): (lambda existing, patch=patch: self._merge(collection, existing, patch))
            for key, patch in patches.items()
        }
        return await self.storage.update_many(collection, transforms)

    async def upsert_entity(self, collection: str, key: str, record: Mapping[str, Any]) -> Record:
        payload = clone(record)
        payload[key_field(collection)] = str(key)
        return await self.storage.put(collection, payload)

    async def import_records(self, collection: str, records: Iterable[Mapping[str, Any]]) -> int:
        """Bulk insert of fully formed records (seeding). All-or-nothing."""

        inserted = await self.storage.add_many(collection, records)
        logger.info("mutation.import collection=%s inserted=%s", collection, inserted)
        return inserted

    def _merge(self, collection: str, existing: Record, patch: Mapping[str, Any]) -> Record:
        field = key_field(collection)
        if field in patch and str(patch[field]) != str(existing[field]):
            raise ValidationError(f"{field} cannot be changed")
        merged = clone(existing)
        merged.update(clone(patch))
        return merged
