"""
Shared key-value store with change notification.

Models the browser-local storage shared by every open tab: string values,
whole-value writes (last writer wins), and a change signal delivered to
every subscriber, including the one that made the write. Subscribers are
expected to re-read whatever state they need on each signal, so duplicate
or coalesced notifications are harmless.
"""

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from shop_dashboard.shared import metrics
from shop_dashboard.shared.exceptions import StoreError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StoreChange:
    """A change signal. ``key`` is None when the whole store was replaced."""

    key: str | None
    old_value: str | None = None
    new_value: str | None = None


StoreListener = Callable[[StoreChange], None]


class KeyValueStore(ABC):
    """
    Abstract shared store.

    Subclasses implement ``get``, ``_write`` and ``keys``; notification
    fan-out lives here. Listeners run on the writer's thread, outside any
    store lock.
    """

    def __init__(self) -> None:
        self._listeners: list[StoreListener] = []
        self._listener_lock = threading.Lock()

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the value for ``key`` or None."""

    @abstractmethod
    def keys(self) -> list[str]:
        """Return all keys currently stored."""

    @abstractmethod
    def _write(self, key: str, value: str | None) -> str | None:
        """Store ``value`` (None deletes) and return the previous value."""

    def set(self, key: str, value: str) -> None:
        old = self._write(key, value)
        if old != value:
            self._notify(StoreChange(key, old, value))

    def remove(self, key: str) -> bool:
        """Delete ``key``; returns True if something was removed."""
        old = self._write(key, None)
        if old is None:
            return False
        self._notify(StoreChange(key, old, None))
        return True

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Register a change listener; returns a callable that unsubscribes it."""
        with self._listener_lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._listener_lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, change: StoreChange) -> None:
        with self._listener_lock:
            listeners = list(self._listeners)
        metrics.store_notifications_total.labels(key=change.key or "*").inc()
        for listener in listeners:
            try:
                listener(change)
            except Exception:
                logger.exception(f"Store listener failed for key {change.key!r}")


class InMemoryKeyValueStore(KeyValueStore):
    """Thread-safe in-process store; share one instance to model several tabs."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        super().__init__()
        self._data: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._data)

    def _write(self, key: str, value: str | None) -> str | None:
        with self._lock:
            old = self._data.get(key)
            if value is None:
                self._data.pop(key, None)
            else:
                self._data[key] = value
            return old


class JsonFileKeyValueStore(KeyValueStore):
    """
    Store persisted as a single JSON object on disk.

    Writes from this process notify local subscribers immediately. Writes
    made by other processes are picked up by ``poll()``, which re-reads the
    file and broadcasts one change per differing key.
    """

    def __init__(self, path: str | Path) -> None:
        """
        Initialize the store.

        Args:
            path: JSON file backing the store; created on first write
        """
        super().__init__()
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._data: dict[str, str] = self._load()

    def _load(self) -> dict[str, str]:
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load store file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Store file {self.path} does not hold a JSON object")
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _save(self, data: dict[str, str]) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True)
            os.replace(tmp_name, self.path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise StoreError("failed to persist store", original_error=e)

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._data)

    def _write(self, key: str, value: str | None) -> str | None:
        """
        Apply one key change on top of the file's current contents.

        Keys written by other processes since the last ``poll()`` are kept
        on disk but not merged into this instance's view; the next ``poll()``
        reports them. The returned previous value is the one this instance
        last saw, so local subscribers are told about the change even if
        another process already wrote the same value.
        """
        with self._lock:
            old = self._data.get(key)
            current = self._load()
            if current.get(key) != value:
                if value is None:
                    current.pop(key, None)
                else:
                    current[key] = value
                try:
                    self._save(current)
                except StoreError as e:
                    raise StoreError("write failed", key=key, original_error=e.original_error)
            data = dict(self._data)
            if value is None:
                data.pop(key, None)
            else:
                data[key] = value
            self._data = data
            return old

    def poll(self) -> list[StoreChange]:
        """Reload the file and broadcast what other processes changed; returns those changes."""
        with self._lock:
            before = self._data
            self._data = self._load()
            after = self._data

        changes = [
            StoreChange(key, before.get(key), after.get(key))
            for key in sorted(set(before) | set(after))
            if before.get(key) != after.get(key)
        ]
        for change in changes:
            self._notify(change)
        if changes:
            logger.debug(f"Picked up {len(changes)} external change(s) from {self.path}")
        return changes


def create_store(store_path: str | Path | None = None) -> KeyValueStore:
    """File-backed store when ``store_path`` is set (``DashboardConfig.store_path``), else in-memory."""
    if store_path:
        logger.info(f"Using shared store file {store_path}")
        return JsonFileKeyValueStore(store_path)
    return InMemoryKeyValueStore()
