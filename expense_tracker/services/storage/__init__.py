"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Profiles live in a key-value store (JSON file, memory or Google Sheets)
behind the SnapshotRepository interface.
"""

from expense_tracker.services.storage.interface import (
    ConnectionError,
    CorruptSnapshotError,
    InvalidProfileNameError,
    KeyValueStore,
    NotFoundError,
    SnapshotRepository,
    StorageError,
)
from expense_tracker.services.storage.local import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
)
from expense_tracker.services.storage.repository import (
    CURRENT_PROFILE_KEY,
    PROFILES_KEY,
    KeyValueSnapshotRepository,
    ProfileDirectory,
    decode_snapshot,
    encode_snapshot,
    snapshot_key,
)

__all__ = [
    # Interfaces
    "KeyValueStore",
    "SnapshotRepository",
    # Exceptions
    "ConnectionError",
    "CorruptSnapshotError",
    "InvalidProfileNameError",
    "NotFoundError",
    "StorageError",
    # Implementations
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueSnapshotRepository",
    "ProfileDirectory",
    # Keys and encoding
    "CURRENT_PROFILE_KEY",
    "PROFILES_KEY",
    "decode_snapshot",
    "encode_snapshot",
    "snapshot_key",
]
