"""
Abstract Storage Interface

DESIGN DECISION: Business logic never touches a store directly. It is handed
a SnapshotRepository (load / save per profile). The default repository sits
on a plain key-value store, the same shape as the browser's local storage the
tracker started on:

    expense_tracker_<profile>        -> snapshot JSON
    expense_tracker_profiles         -> JSON list of profile names
    expense_tracker_current_profile  -> selected profile name

Any backend that can get/set/delete a string by key plugs in underneath:
a JSON file, memory (tests), a Google Sheet.
"""

from abc import ABC, abstractmethod
from typing import Optional

from expense_tracker.models.finance import FinanceSnapshot


class KeyValueStore(ABC):
    """
    Abstract string key-value store.

    Last write wins; there is no locking or versioning.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """
        Read a value.

        Returns:
            The stored text, or None if the key is absent

        Raises:
            StorageError: If the backend can't be read
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Write a value, replacing any previous one.

        Raises:
            StorageError: If the backend can't be written
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Remove a key.

        Returns:
            True if the key existed
        """
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        """All keys currently stored."""
        pass


class SnapshotRepository(ABC):
    """
    Abstract interface for per-profile snapshot persistence.

    Any implementation (key-value store, database, remote API) must
    implement these methods.
    """

    @abstractmethod
    def load(self, profile: str) -> FinanceSnapshot:
        """
        Load a profile's snapshot.

        Returns:
            The stored snapshot; a default snapshot if nothing is stored
            or the stored data is unreadable
        """
        pass

    @abstractmethod
    def save(self, profile: str, snapshot: FinanceSnapshot) -> bool:
        """
        Replace a profile's stored snapshot.

        Returns:
            True if saved successfully

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    def delete(self, profile: str) -> bool:
        """
        Remove a profile's snapshot.

        Returns:
            True if something was deleted
        """
        pass

    @abstractmethod
    def exists(self, profile: str) -> bool:
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class CorruptSnapshotError(StorageError):
    """Stored snapshot text is not a valid snapshot."""
    pass


class InvalidProfileNameError(StorageError):
    """Profile name is empty, reserved or already taken."""
    pass
