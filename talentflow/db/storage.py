from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable, Mapping, Sequence


Record = dict[str, Any]

# Receives the current record, returns its replacement.
Transform = Callable[[Record], Record]
# Receives a snapshot of the collection, returns fields to set on the new record.
Derive = Callable[[Sequence[Record]], Mapping[str, Any]]

SCHEMA_VERSION = 1

# Collection name -> key field of its records.
COLLECTION_KEYS: dict[str, str] = {
    "jobs": "id",
    "candidates": "id",
    "assessments": "job_id",
}


def key_field(collection: str) -> str:
    try:
        return COLLECTION_KEYS[collection]
    except KeyError as exc:
        raise KeyError(f"Unknown collection: {collection}") from exc


def record_key(collection: str, record: Mapping[str, Any]) -> str:
    field = key_field(collection)
    value = record.get(field)
    if value is None or str(value) == "":
        raise ValueError(f"{collection} record is missing its key field '{field}'")
    return str(value)


def clone(record: Mapping[str, Any]) -> Record:
    return copy.deepcopy(dict(record))


class StorageBackend(ABC):
    """Durable keyed collections (jobs, candidates, assessments).

    Lifecycle: construct, ``await open()`` (idempotent), use, ``await close()``.
    Records cross this boundary as JSON-compatible dicts and are copied both
    ways. ``get_all`` returns insertion order; ``put`` on an existing key keeps
    the record's original position. Writes to one collection are serialized.
    """

    name: str

    @property
    @abstractmethod
    def identity(self) -> str:
        """Stable identity of the underlying store (used by single-flight guards)."""

    @property
    def durable(self) -> bool:
        return False

    @abstractmethod
    async def open(self) -> None: ...

    @abstractmethod
    async def close(self) -> None: ...

    @abstractmethod
    async def get_all(self, collection: str) -> list[Record]: ...

    @abstractmethod
    async def get_by_key(self, collection: str, key: str) -> Record | None: ...

    @abstractmethod
    async def count(self, collection: str) -> int: ...

    @abstractmethod
    async def add(self, collection: str, record: Mapping[str, Any]) -> Record: ...

    @abstractmethod
    async def add_many(self, collection: str, records: Iterable[Mapping[str, Any]]) -> int: ...

    @abstractmethod
    async def put(self, collection: str, record: Mapping[str, Any]) -> Record: ...

    @abstractmethod
    async def add_derived(self, collection: str, record: Mapping[str, Any], derive: Derive) -> Record:
        """``add`` with fields computed from the collection inside the same write step."""

    @abstractmethod
    async def update_many(self, collection: str, transforms: Mapping[str, Transform]) -> list[Record]:
        """Read, transform and write several records as one serialized step.

        Raises ``NotFound`` before anything is written if any key is absent.
        """

    async def update(self, collection: str, key: str, transform: Transform) -> Record:
        return (await self.update_many(collection, {str(key): transform}))[0]
