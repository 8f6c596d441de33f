"""Key/value storage backends for the signup collection.

Each backend holds opaque string values under string keys. The signup store
keeps its whole collection under one key, so a backend only needs whole-value
reads and writes.
"""

import logging
import os
import tempfile
import threading
from datetime import datetime, timezone
from pathlib import Path

from playbook_gate import supabase_client as db

logger = logging.getLogger(__name__)


class StorageBackend:
    """Interface: read a value (None when absent) and overwrite a value."""

    name = "base"

    def read(self, key: str) -> str | None:
        raise NotImplementedError

    def write(self, key: str, value: str) -> None:
        raise NotImplementedError


class MemoryBackend(StorageBackend):
    """Process-local dict. Used by tests and the `memory` backend setting."""

    name = "memory"

    def __init__(self, initial: dict[str, str] | None = None):
        self.values: dict[str, str] = dict(initial or {})

    def read(self, key: str) -> str | None:
        return self.values.get(key)

    def write(self, key: str, value: str) -> None:
        self.values[key] = value


class FileBackend(StorageBackend):
    """One JSON document per key, written atomically into a directory.

    `path` is the file used for the default key; other keys are stored next
    to it as `<key>.json`.
    """

    name = "file"

    def __init__(self, path: Path, default_key: str):
        self.path = Path(path)
        self.default_key = default_key
        self._lock = threading.Lock()

    def _path_for(self, key: str) -> Path:
        if key == self.default_key:
            return self.path
        return self.path.parent / f"{key}.json"

    def read(self, key: str) -> str | None:
        path = self._path_for(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def write(self, key: str, value: str) -> None:
        path = self._path_for(key)
        with self._lock:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise


class SupabaseBackend(StorageBackend):
    """Rows of (key, value, updated_at) in a Supabase table, upserted on key."""

    name = "supabase"

    def __init__(self, table: str):
        self.table = table

    def read(self, key: str) -> str | None:
        row = db.select_one(self.table, columns="value", match={"key": key})
        if not row:
            return None
        return row.get("value")

    def write(self, key: str, value: str) -> None:
        db.upsert(self.table, {
            "key": key,
            "value": value,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }, on_conflict="key")


def build_backend(kind: str, signups_file: Path, signups_key: str, kv_table: str) -> StorageBackend:
    """Construct the backend named by the STORAGE_BACKEND setting."""
    if kind == "memory":
        logger.warning("Using in-memory signup storage; signups are lost on restart")
        return MemoryBackend()
    if kind == "file":
        return FileBackend(signups_file, signups_key)
    if kind == "supabase":
        return SupabaseBackend(kv_table)
    raise ValueError(f"Unknown storage backend: {kind!r} (expected file, supabase or memory)")
