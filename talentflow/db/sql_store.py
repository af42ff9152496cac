from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Iterable, Mapping

from sqlalchemy import func, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from talentflow.database import Base, build_engine, build_session_factory, is_sqlite_memory, mask_db_url
from talentflow.db.storage import (
    SCHEMA_VERSION,
    Derive,
    Record,
    StorageBackend,
    Transform,
    clone,
    key_field,
    record_key,
)
from talentflow.errors import DuplicateKey, NotFound, SchemaVersionError, StorageUnavailable
from talentflow.models import AssessmentRecord, CandidateRecord, JobRecord, StoreMeta


logger = logging.getLogger(__name__)

_MODELS: dict[str, type] = {
    "jobs": JobRecord,
    "candidates": CandidateRecord,
    "assessments": AssessmentRecord,
}

# Stay well under sqlite's bound-parameter limit.
_KEY_CHUNK = 500


def _upgrade_to_1(conn: Connection) -> None:
    Base.metadata.create_all(bind=conn)


# schema version -> one-time step that brings the previous version up to it.
UPGRADE_STEPS: dict[int, Callable[[Connection], None]] = {
    1: _upgrade_to_1,
}


class SqlStorageBackend(StorageBackend):
    """SQLAlchemy-backed durable store.

    Every collection is a table of ``(seq, key, payload)`` rows: ``seq`` fixes
    insertion order, ``key`` is the collection's key field, ``payload`` the JSON
    record. Blocking database work runs on a worker thread; writes to a single
    collection are additionally serialized with an ``asyncio.Lock`` so they
    queue instead of racing for the sqlite write lock.
    """

    def __init__(self, db_url: str, name: str = "talentflow") -> None:
        self.name = name
        self.db_url = db_url
        self._engine: Engine | None = None
        self._sessions: sessionmaker | None = None
        self._write_locks: dict[str, asyncio.Lock] = {}
        self._open_lock = asyncio.Lock()

    @property
    def identity(self) -> str:
        return f"sql:{self.name}:{mask_db_url(self.db_url)}"

    @property
    def durable(self) -> bool:
        return True

    async def open(self) -> None:
        async with self._open_lock:
            if self._engine is not None:
                return
            if is_sqlite_memory(self.db_url):
                # Each pooled connection would see its own empty database.
                raise StorageUnavailable(f"in-memory sqlite is not a durable store: {mask_db_url(self.db_url)}")
            engine = build_engine(self.db_url)
            try:
                version = await asyncio.to_thread(self._migrate, engine)
            except SchemaVersionError:
                engine.dispose()
                raise
            except (SQLAlchemyError, OSError) as exc:
                engine.dispose()
                raise StorageUnavailable(
                    f"Cannot open durable store {mask_db_url(self.db_url)}: {type(exc).__name__}: {exc}"
                ) from exc
            self._engine = engine
            self._sessions = build_session_factory(engine)
            logger.info("store opened name=%s db_url=%s schema_version=%s", self.name, mask_db_url(self.db_url), version)

    def _migrate(self, engine: Engine) -> int:
        with engine.begin() as conn:
            StoreMeta.__table__.create(bind=conn, checkfirst=True)
            row = conn.execute(
                select(StoreMeta.schema_version).where(StoreMeta.store_name == self.name)
            ).first()
            current = int(row[0]) if row else 0
            if current > SCHEMA_VERSION:
                raise SchemaVersionError(
                    f"store {self.name} is at schema version {current}, code supports {SCHEMA_VERSION}"
                )
            for version in range(current + 1, SCHEMA_VERSION + 1):
                UPGRADE_STEPS[version](conn)
                logger.info("store upgraded name=%s schema_version=%s", self.name, version)
            if row is None:
                conn.execute(StoreMeta.__table__.insert().values(store_name=self.name, schema_version=SCHEMA_VERSION))
            elif current != SCHEMA_VERSION:
                conn.execute(
                    StoreMeta.__table__.update()
                    .where(StoreMeta.store_name == self.name)
                    .values(schema_version=SCHEMA_VERSION)
                )
        return SCHEMA_VERSION

    async def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._sessions = None

    async def schema_version(self) -> int | None:
        def _read(session: Session) -> int | None:
            row = session.get(StoreMeta, self.name)
            return int(row.schema_version) if row else None

        return await self._run(_read)

    def _model(self, collection: str) -> type:
        key_field(collection)
        return _MODELS[collection]

    def _lock(self, collection: str) -> asyncio.Lock:
        lock = self._write_locks.get(collection)
        if lock is None:
            lock = self._write_locks[collection] = asyncio.Lock()
        return lock

    async def _run(self, fn: Callable[[Session], Any]) -> Any:
        if self._sessions is None:
            raise RuntimeError("store is not open; call open() first")
        sessions = self._sessions

        def _call() -> Any:
            with sessions() as session:
                with session.begin():
                    return fn(session)

        return await asyncio.to_thread(_call)

    async def get_all(self, collection: str) -> list[Record]:
        model = self._model(collection)

        def _read(session: Session) -> list[Record]:
            rows = session.execute(select(model.payload).order_by(model.seq.asc())).scalars().all()
            return [clone(payload) for payload in rows]

        return await self._run(_read)

    async def get_by_key(self, collection: str, key: str) -> Record | None:
        model = self._model(collection)

        def _read(session: Session) -> Record | None:
            payload = session.execute(select(model.payload).where(model.key == str(key))).scalar_one_or_none()
            return clone(payload) if payload is not None else None

        return await self._run(_read)

    async def count(self, collection: str) -> int:
        model = self._model(collection)

        def _read(session: Session) -> int:
            return int(session.execute(select(func.count()).select_from(model)).scalar_one())

        return await self._run(_read)

    async def add(self, collection: str, record: Mapping[str, Any]) -> Record:
        await self.add_many(collection, [record])
        return clone(record)

    async def add_many(self, collection: str, records: Iterable[Mapping[str, Any]]) -> int:
        model = self._model(collection)
        staged: list[tuple[str, Record]] = []
        seen: set[str] = set()
        for record in records:
            key = record_key(collection, record)
            if key in seen:
                raise DuplicateKey(collection, key)
            seen.add(key)
            staged.append((key, clone(record)))

        def _write(session: Session) -> int:
            keys = [key for key, _ in staged]
            for start in range(0, len(keys), _KEY_CHUNK):
                existing = session.execute(
                    select(model.key).where(model.key.in_(keys[start : start + _KEY_CHUNK]))
                ).scalars().first()
                if existing is not None:
                    raise DuplicateKey(collection, existing)
            session.add_all([model(key=key, payload=payload) for key, payload in staged])
            return len(staged)

        async with self._lock(collection):
            try:
                return await self._run(_write)
            except IntegrityError as exc:
                raise DuplicateKey(collection, staged[0][0] if staged else "") from exc

    async def put(self, collection: str, record: Mapping[str, Any]) -> Record:
        model = self._model(collection)
        key = record_key(collection, record)
        payload = clone(record)

        def _write(session: Session) -> Record:
            row = session.execute(select(model).where(model.key == key)).scalar_one_or_none()
            if row is None:
                session.add(model(key=key, payload=payload))
            else:
                row.payload = payload
            return clone(payload)

        async with self._lock(collection):
            return await self._run(_write)

    async def add_derived(self, collection: str, record: Mapping[str, Any], derive: Derive) -> Record:
        model = self._model(collection)
        base = clone(record)

        def _write(session: Session) -> Record:
            snapshot = session.execute(select(model.payload).order_by(model.seq.asc())).scalars().all()
            staged = clone(base)
            staged.update(clone(derive([clone(payload) for payload in snapshot])))
            key = record_key(collection, staged)
            if session.execute(select(model.key).where(model.key == key)).scalar_one_or_none() is not None:
                raise DuplicateKey(collection, key)
            session.add(model(key=key, payload=staged))
            return clone(staged)

        async with self._lock(collection):
            return await self._run(_write)

    async def update_many(self, collection: str, transforms: Mapping[str, Transform]) -> list[Record]:
        model = self._model(collection)
        keys = [str(key) for key in transforms]

        def _write(session: Session) -> list[Record]:
            rows: dict[str, Any] = {}
            for start in range(0, len(keys), _KEY_CHUNK):
                chunk = keys[start : start + _KEY_CHUNK]
                for row in session.execute(select(model).where(model.key.in_(chunk))).scalars():
                    rows[row.key] = row
            for key in keys:
                if key not in rows:
                    raise NotFound(collection, key)
            updated: list[Record] = []
            for key, transform in transforms.items():
                record = transform(clone(rows[str(key)].payload))
                if record_key(collection, record) != str(key):
                    raise ValueError(f"{collection} update may not change the key of {key}")
                updated.append(record)
            for key, record in zip(keys, updated):
                rows[key].payload = clone(record)
            return [clone(record) for record in updated]

        async with self._lock(collection):
            return await self._run(_write)
