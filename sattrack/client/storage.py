"""Durable key/value storage for client state (timer snapshots, preferences)."""

import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

THEME_PREFERENCE_KEY = "theme_preference"
PREMIUM_POPUP_DISMISSED_KEY = "premium_popup_dismissed"
CLASSIC_FOCUS_STATE_KEY = "classic_focus_state"
STUDY_ROOM_STATE_PREFIX = "study_room_state_"


def study_room_key(plan_id) -> str:
    """Storage key of the timer snapshot bound to one plan."""
    return f"{STUDY_ROOM_STATE_PREFIX}{plan_id}"


class LocalStorage:
    """
    String-keyed JSON storage backed by a single file.

    Values are JSON-serializable objects. A missing or unreadable file reads
    as empty storage. Every write rewrites the file through a temporary file
    and an atomic rename.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _load(self) -> dict[str, Any]:
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable client state %s: %s", self.path, str(e))
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, sort_keys=True)
        os.replace(tmp_path, self.path)

    def get_item(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def set_item(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove_item(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)

    def keys(self) -> list[str]:
        return sorted(self._load())


class MemoryStorage(LocalStorage):
    """In-memory storage with the same interface, for tests and headless runs."""

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] = json.loads(json.dumps(initial or {}))

    def _load(self) -> dict[str, Any]:
        return json.loads(json.dumps(self._data))

    def _save(self, data: dict[str, Any]) -> None:
        self._data = json.loads(json.dumps(data))
