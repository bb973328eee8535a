"""Storage layer: domain records, backends and the aggregate store."""

from .backends import DirectoryBackend, MemoryBackend, StorageBackend
from .records import (
    BUCKET_FIELDS,
    STORE_SCHEMA,
    DomainRecord,
    Store,
    StoreData,
    store_errors,
    store_from_dict,
    store_to_dict,
)
from .store import DEFAULT_STORE_KEY, AggregateStore, validate_delta

__all__ = [
    "AggregateStore",
    "BUCKET_FIELDS",
    "DEFAULT_STORE_KEY",
    "DirectoryBackend",
    "DomainRecord",
    "MemoryBackend",
    "STORE_SCHEMA",
    "StorageBackend",
    "Store",
    "StoreData",
    "store_errors",
    "store_from_dict",
    "store_to_dict",
    "validate_delta",
]
