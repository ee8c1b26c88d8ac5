"""
Backup Export / Restore

A backup is the profile snapshot as pretty-printed JSON, in the same
camelCase shape used for storage. Restoring checks only that categories,
familyMembers and month are present; every other field falls back to its
default, so backups written by older versions still load.
"""

import json

from pydantic import ValidationError

from expense_tracker.models.finance import FinanceSnapshot


REQUIRED_BACKUP_FIELDS = ("categories", "familyMembers", "month")


class BackupFormatError(Exception):
    """The file is not a usable backup."""
    pass


def export_backup(snapshot: FinanceSnapshot) -> str:
    return json.dumps(snapshot.to_storage_dict(), indent=2, ensure_ascii=False)


def backup_filename(profile: str, month: str) -> str:
    safe_profile = "".join(ch if ch.isalnum() else "_" for ch in profile) or "profile"
    return f"expense_tracker_{safe_profile}_{month}.json"


def parse_backup(text: str | bytes) -> FinanceSnapshot:
    """
    Validate and load a backup file.

    Raises:
        BackupFormatError: If the file isn't JSON, isn't an object, lacks a
            required field or holds values of the wrong type
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise BackupFormatError(f"Backup is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise BackupFormatError("Backup must be a JSON object")

    missing = [name for name in REQUIRED_BACKUP_FIELDS if name not in data]
    if missing:
        raise BackupFormatError(f"Backup is missing required fields: {', '.join(missing)}")

    try:
        return FinanceSnapshot.model_validate(data)
    except ValidationError as exc:
        raise BackupFormatError(f"Backup contains invalid data: {exc.error_count()} errors") from exc
