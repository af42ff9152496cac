from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable, Mapping

from talentflow.db.storage import (
    COLLECTION_KEYS,
    Derive,
    Record,
    StorageBackend,
    Transform,
    clone,
    key_field,
    record_key,
)
from talentflow.errors import DuplicateKey, NotFound


logger = logging.getLogger(__name__)


class MemoryStorageBackend(StorageBackend):
    """Non-durable store with the same contract as the SQL backend."""

    def __init__(self, name: str = "talentflow") -> None:
        self.name = name
        self._collections: dict[str, dict[str, Record]] | None = None
        self._write_locks: dict[str, asyncio.Lock] = {}

    @property
    def identity(self) -> str:
        return f"memory:{self.name}:{id(self):x}"

    async def open(self) -> None:
        if self._collections is not None:
            return
        # dicts keep insertion order, which is the collection order.
        self._collections = {collection: {} for collection in COLLECTION_KEYS}
        logger.info("store opened name=%s backend=memory", self.name)

    async def close(self) -> None:
        # Data is kept so a re-open sees the same records.
        return None

    def _collection(self, collection: str) -> dict[str, Record]:
        if self._collections is None:
            raise RuntimeError("store is not open; call open() first")
        key_field(collection)
        return self._collections[collection]

    def _lock(self, collection: str) -> asyncio.Lock:
        lock = self._write_locks.get(collection)
        if lock is None:
            lock = self._write_locks[collection] = asyncio.Lock()
        return lock

    async def get_all(self, collection: str) -> list[Record]:
        # Copied without suspending, so the snapshot cannot interleave with a write.
        return [clone(record) for record in self._collection(collection).values()]

    async def get_by_key(self, collection: str, key: str) -> Record | None:
        record = self._collection(collection).get(str(key))
        return clone(record) if record is not None else None

    async def count(self, collection: str) -> int:
        return len(self._collection(collection))

    async def add(self, collection: str, record: Mapping[str, Any]) -> Record:
        items = self._collection(collection)
        key = record_key(collection, record)
        async with self._lock(collection):
            if key in items:
                raise DuplicateKey(collection, key)
            items[key] = clone(record)
            return clone(items[key])

    async def add_many(self, collection: str, records: Iterable[Mapping[str, Any]]) -> int:
        items = self._collection(collection)
        staged: dict[str, Record] = {}
        for record in records:
            key = record_key(collection, record)
            if key in items or key in staged:
                raise DuplicateKey(collection, key)
            staged[key] = clone(record)
        async with self._lock(collection):
            collisions = staged.keys() & items.keys()
            if collisions:
                raise DuplicateKey(collection, sorted(collisions)[0])
            items.update(staged)
        return len(staged)

    async def put(self, collection: str, record: Mapping[str, Any]) -> Record:
        items = self._collection(collection)
        key = record_key(collection, record)
        async with self._lock(collection):
            items[key] = clone(record)
            return clone(items[key])

    async def add_derived(self, collection: str, record: Mapping[str, Any], derive: Derive) -> Record:
        items = self._collection(collection)
        async with self._lock(collection):
            staged = clone(record)
            staged.update(clone(derive([clone(r) for r in items.values()])))
            key = record_key(collection, staged)
            if key in items:
                raise DuplicateKey(collection, key)
            items[key] = staged
            return clone(staged)

    async def update_many(self, collection: str, transforms: Mapping[str, Transform]) -> list[Record]:
        items = self._collection(collection)
        async with self._lock(collection):
            for key in transforms:
                if str(key) not in items:
                    raise NotFound(collection, str(key))
            updated = {str(key): transform(clone(items[str(key)])) for key, transform in transforms.items()}
            for key, record in updated.items():
                if record_key(collection, record) != key:
                    raise ValueError(f"{collection} update may not change the key of {key}")
            for key, record in updated.items():
                items[key] = clone(record)
            return [clone(record) for record in updated.values()]
