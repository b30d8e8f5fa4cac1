"""Local persistence for the joke library, the diary and the diary selection.

Every collection lives under its own key as a JSON document. Reads are
best-effort: anything missing or malformed comes back as an empty
collection and is only logged.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from typing import Any, Dict, Iterable, List, Optional, Protocol, Set

from comedialab.errors import PersistenceReadFailure
from comedialab.models import DiaryEntry, JokeBit

logger = logging.getLogger(__name__)

JOKES_KEY = "comedia-lab-jokes"
DIARY_KEY = "comedia-lab-diary"
SELECTION_KEY = "comedia-lab-selected-diary-ids"


class KeyValueStorage(Protocol):
    def read(self, key: str) -> Optional[str]: ...

    def write(self, key: str, value: str) -> None: ...


class MemoryStorage:
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self.data: Dict[str, str] = dict(initial or {})

    def read(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def write(self, key: str, value: str) -> None:
        self.data[key] = value


class JsonFileStorage:
    """One ``<key>.json`` file per key inside ``directory``."""

    def __init__(self, directory: str) -> None:
        self.directory = directory

    def _path(self, key: str) -> str:
        return os.path.join(self.directory, f"{key}.json")

    def read(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    def write(self, key: str, value: str) -> None:
        if not os.path.exists(self.directory):
            os.makedirs(self.directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_path, self._path(key))
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise


# ============================================================
# READ
# ============================================================
def _read_list(storage: KeyValueStorage, key: str) -> List[Any]:
    try:
        raw = storage.read(key)
    except OSError as e:
        raise PersistenceReadFailure(f"cannot read {key}: {e}") from e
    if raw is None:
        raise PersistenceReadFailure(f"{key} not found")
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise PersistenceReadFailure(f"{key} is not valid JSON: {e}") from e
    if not isinstance(data, list):
        raise PersistenceReadFailure(f"{key} does not hold a list")
    return data


def _load_items(storage: KeyValueStorage, key: str, parse) -> List[Any]:
    try:
        raw_items = _read_list(storage, key)
    except PersistenceReadFailure as e:
        logger.info("Starting with an empty collection: %s", e)
        return []
    items = []
    seen: Set[str] = set()
    for raw in raw_items:
        try:
            item = parse(raw)
        except PersistenceReadFailure as e:
            logger.warning("Dropping unreadable item from %s: %s", key, e)
            continue
        if item.id in seen:
            logger.warning("Dropping duplicate id %s from %s", item.id, key)
            continue
        seen.add(item.id)
        items.append(item)
    return items


def load_jokes(storage: KeyValueStorage) -> List[JokeBit]:
    return _load_items(storage, JOKES_KEY, JokeBit.from_dict)


def load_diary(storage: KeyValueStorage) -> List[DiaryEntry]:
    return _load_items(storage, DIARY_KEY, DiaryEntry.from_dict)


def load_selection(storage: KeyValueStorage, valid_ids: Iterable[str]) -> Set[str]:
    """Load the selected diary ids, keeping only ids that still exist."""
    try:
        raw_ids = _read_list(storage, SELECTION_KEY)
    except PersistenceReadFailure as e:
        logger.info("Starting with an empty selection: %s", e)
        return set()
    valid = set(valid_ids)
    selected = {str(i) for i in raw_ids if isinstance(i, (str, int)) and not isinstance(i, bool)}
    dangling = selected - valid
    if dangling:
        logger.warning("Dropping %d selected ids with no diary entry", len(dangling))
    return selected & valid


# ============================================================
# WRITE
# ============================================================
def _write(storage: KeyValueStorage, key: str, payload: Any) -> None:
    try:
        storage.write(key, json.dumps(payload, ensure_ascii=False))
    except OSError as e:
        logger.error("Failed to persist %s: %s", key, e)


def save_jokes(storage: KeyValueStorage, jokes: Iterable[JokeBit]) -> None:
    _write(storage, JOKES_KEY, [j.to_dict() for j in jokes])


def save_diary(storage: KeyValueStorage, entries: Iterable[DiaryEntry]) -> None:
    _write(storage, DIARY_KEY, [e.to_dict() for e in entries])


def save_selection(storage: KeyValueStorage, selected: Iterable[str]) -> None:
    _write(storage, SELECTION_KEY, sorted(selected))
