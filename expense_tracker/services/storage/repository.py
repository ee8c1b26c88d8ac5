"""
Snapshot Repository and Profile Directory

KeyValueSnapshotRepository stores one profile's FinanceSnapshot as JSON
under "expense_tracker_<profile>". ProfileDirectory keeps the ordered list
of profile names and the currently selected one in the same store.

CRITICAL: a stored snapshot that can't be parsed never crashes the app.
load() logs it and hands back a default snapshot; the broken text stays in
the store until the next save overwrites it.
"""

import json
from typing import Optional

from pydantic import ValidationError

from expense_tracker.audit import AuditLogger
from expense_tracker.models.audit import AuditEventBuilder, AuditEventType
from expense_tracker.models.finance import FinanceSnapshot
from expense_tracker.services.storage.interface import (
    CorruptSnapshotError,
    InvalidProfileNameError,
    KeyValueStore,
    NotFoundError,
    SnapshotRepository,
)


KEY_PREFIX = "expense_tracker_"
PROFILES_KEY = f"{KEY_PREFIX}profiles"
CURRENT_PROFILE_KEY = f"{KEY_PREFIX}current_profile"

# Profile names that would collide with the directory's own keys
RESERVED_PROFILE_NAMES = {"profiles", "current_profile"}

MAX_PROFILE_NAME_LENGTH = 50


def snapshot_key(profile: str) -> str:
    return f"{KEY_PREFIX}{profile}"


def encode_snapshot(snapshot: FinanceSnapshot) -> str:
    return json.dumps(snapshot.to_storage_dict(), ensure_ascii=False)


def decode_snapshot(raw: str) -> FinanceSnapshot:
    """
    Parse stored snapshot text.

    Raises:
        CorruptSnapshotError: If the text isn't a JSON object or fails validation
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise CorruptSnapshotError(f"Snapshot is not valid JSON: {e}")
    if not isinstance(data, dict):
        raise CorruptSnapshotError("Snapshot must be a JSON object")
    try:
        return FinanceSnapshot.model_validate(data)
    except ValidationError as e:
        raise CorruptSnapshotError(f"Snapshot failed validation: {e.error_count()} errors")


class KeyValueSnapshotRepository(SnapshotRepository):
    """SnapshotRepository over any KeyValueStore."""

    def __init__(
        self,
        store: KeyValueStore,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger or AuditLogger()

    @property
    def store(self) -> KeyValueStore:
        return self._store

    def load(self, profile: str) -> FinanceSnapshot:
        raw = self._store.get(snapshot_key(profile))
        if raw is None:
            return FinanceSnapshot.default()
        try:
            return decode_snapshot(raw)
        except CorruptSnapshotError as e:
            self._audit_logger.log(AuditEventBuilder.snapshot_corrupt(profile, str(e)))
            return FinanceSnapshot.default()

    def save(self, profile: str, snapshot: FinanceSnapshot) -> bool:
        self._store.set(snapshot_key(profile), encode_snapshot(snapshot))
        return True

    def delete(self, profile: str) -> bool:
        return self._store.delete(snapshot_key(profile))

    def exists(self, profile: str) -> bool:
        return self._store.get(snapshot_key(profile)) is not None


class ProfileDirectory:
    """
    Named profiles and the current selection.

    There is always at least one profile: with nothing stored, the
    directory reports just the default profile.
    """

    def __init__(
        self,
        store: KeyValueStore,
        repository: Optional[SnapshotRepository] = None,
        audit_logger: Optional[AuditLogger] = None,
        default_profile: str = "Default",
    ):
        self._store = store
        self._audit_logger = audit_logger or AuditLogger()
        self._repository = repository or KeyValueSnapshotRepository(store, self._audit_logger)
        self._default_profile = default_profile

    @property
    def repository(self) -> SnapshotRepository:
        return self._repository

    def _save_profiles(self, profiles: list[str]) -> None:
        self._store.set(PROFILES_KEY, json.dumps(profiles, ensure_ascii=False))

    def list_profiles(self) -> list[str]:
        raw = self._store.get(PROFILES_KEY)
        profiles: list[str] = []
        if raw:
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                data = []
            if isinstance(data, list):
                for name in data:
                    if isinstance(name, str) and name and name not in profiles:
                        profiles.append(name)
        return profiles or [self._default_profile]

    def validate_name(self, name: str) -> str:
        """
        Clean up a proposed profile name.

        Raises:
            InvalidProfileNameError: If the name is empty, too long or reserved
        """
        cleaned = (name or "").strip()
        if not cleaned:
            raise InvalidProfileNameError("Profile name cannot be empty")
        if len(cleaned) > MAX_PROFILE_NAME_LENGTH:
            raise InvalidProfileNameError(
                f"Profile name must be at most {MAX_PROFILE_NAME_LENGTH} characters"
            )
        if cleaned.lower() in RESERVED_PROFILE_NAMES:
            raise InvalidProfileNameError(f"'{cleaned}' is a reserved name")
        return cleaned

    def create_profile(self, name: str) -> str:
        name = self.validate_name(name)
        profiles = self.list_profiles()
        if name in profiles:
            raise InvalidProfileNameError(f"Profile '{name}' already exists")

        profiles.append(name)
        self._save_profiles(profiles)
        if not self._repository.exists(name):
            self._repository.save(name, FinanceSnapshot.default())

        self._audit_logger.log_profile_changed(AuditEventType.PROFILE_CREATED, name)
        return name

    def delete_profile(self, name: str) -> str:
        """
        Delete a profile and its data.

        Returns:
            The profile that is current afterwards

        Raises:
            NotFoundError: If no such profile exists
            InvalidProfileNameError: If it is the only profile left
        """
        profiles = self.list_profiles()
        if name not in profiles:
            raise NotFoundError(f"Profile not found: {name}")
        if len(profiles) == 1:
            raise InvalidProfileNameError("The last profile cannot be deleted")

        was_current = self.current_profile() == name
        profiles.remove(name)
        self._save_profiles(profiles)
        self._repository.delete(name)
        self._audit_logger.log_profile_changed(AuditEventType.PROFILE_DELETED, name)

        if was_current:
            self.select_profile(profiles[0])
        return self.current_profile()

    def rename_profile(self, old_name: str, new_name: str) -> str:
        profiles = self.list_profiles()
        if old_name not in profiles:
            raise NotFoundError(f"Profile not found: {old_name}")
        new_name = self.validate_name(new_name)
        if new_name == old_name:
            return new_name
        if new_name in profiles:
            raise InvalidProfileNameError(f"Profile '{new_name}' already exists")

        was_current = self.current_profile() == old_name
        self._repository.save(new_name, self._repository.load(old_name))
        self._repository.delete(old_name)
        profiles[profiles.index(old_name)] = new_name
        self._save_profiles(profiles)
        if was_current:
            self._store.set(CURRENT_PROFILE_KEY, new_name)

        self._audit_logger.log_profile_changed(
            AuditEventType.PROFILE_RENAMED, new_name, {"previous_name": old_name}
        )
        return new_name

    def current_profile(self) -> str:
        profiles = self.list_profiles()
        current = self._store.get(CURRENT_PROFILE_KEY)
        if current in profiles:
            return current
        return profiles[0]

    def select_profile(self, name: str) -> str:
        if name not in self.list_profiles():
            raise NotFoundError(f"Profile not found: {name}")
        self._store.set(CURRENT_PROFILE_KEY, name)
        self._audit_logger.log_profile_changed(AuditEventType.PROFILE_SELECTED, name)
        return name
