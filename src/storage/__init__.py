"""Storage layer: PostgreSQL pool, blob store and keyed locks."""

from src.storage.blob_store import BlobStore, S3BlobStore
from src.storage.database import Database
from src.storage.locks import KeyedLock

__all__ = ["BlobStore", "Database", "KeyedLock", "S3BlobStore"]
