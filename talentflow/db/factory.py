from __future__ import annotations

import logging

from talentflow.config import Settings, build_store_url
from talentflow.database import mask_db_url
from talentflow.db.memory_store import MemoryStorageBackend
from talentflow.db.sql_store import SqlStorageBackend
from talentflow.db.storage import StorageBackend
from talentflow.errors import StorageUnavailable


logger = logging.getLogger(__name__)


async def open_storage(settings: Settings) -> StorageBackend:
    """Build and open the store for ``settings``.

    Falls back to an in-memory store with identical semantics when the durable
    store cannot be opened. A schema newer than the code is not a fallback case
    and propagates.
    """

    if not settings.store_durable:
        storage: StorageBackend = MemoryStorageBackend(name=settings.store_name)
        await storage.open()
        return storage

    db_url = build_store_url(settings)
    durable = SqlStorageBackend(db_url, name=settings.store_name)
    try:
        await durable.open()
        return durable
    except StorageUnavailable as exc:
        logger.warning("durable store unavailable db_url=%s, using in-memory store: %s", mask_db_url(db_url), exc)

    storage = MemoryStorageBackend(name=settings.store_name)
    await storage.open()
    return storage
