from talentflow.db.factory import open_storage
from talentflow.db.memory_store import MemoryStorageBackend
from talentflow.db.sql_store import SqlStorageBackend
from talentflow.db.storage import COLLECTION_KEYS, SCHEMA_VERSION, Record, StorageBackend

__all__ = [
	"COLLECTION_KEYS",
	"SCHEMA_VERSION",
	"MemoryStorageBackend",
	"Record",
	"SqlStorageBackend",
	"StorageBackend",
	"open_storage",
]
