"""In-memory playback bookmark store with JSON snapshot helpers.

The store keeps item -> position pairs in memory and tracks whether anything changed since
the last snapshot was taken for writing. Disk I/O lives in the module-level helpers so the
lock is never held while reading or writing the file.
"""
from __future__ import annotations

import json
import logging
import os
import threading
from typing import Dict, Optional, Tuple, Union

logger = logging.getLogger("bookmarks")


class BookmarkStore:
    """Thread-safe item -> position map with a dirty flag for periodic persistence."""

    def __init__(self) -> None:
        self._entries: Dict[str, int] = {}
        self._dirty = False
        self._lock = threading.Lock()

    def set(self, item: str, position: int) -> None:
        with self._lock:
            self._entries[item] = position
            self._dirty = True

    def get(self, item: str) -> int:
        """Return the stored position for `item`, or 0 if it was never set."""
        with self._lock:
            return self._entries.get(item, 0)

    def snapshot(self) -> Tuple[Optional[Dict[str, int]], bool]:
        """Copy the entries and clear the dirty flag, if there is anything to save.

        Returns `(copy, True)` when dirty, `(None, False)` otherwise. The copy and the clear
        happen in one critical section, so a concurrent `set` either lands in this copy or
        re-dirties the store for the next cycle.
        """
        with self._lock:
            if not self._dirty:
                return None, False
            data = dict(self._entries)
            self._dirty = False
            return data, True

    def mark_dirty(self) -> None:
        with self._lock:
            self._dirty = True

    def load_from(self, raw: Union[bytes, str]) -> None:
        """Replace the entries with a decoded JSON object; ignore anything unusable."""
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            logger.debug("Ignoring undecodable bookmarks payload", exc_info=True)
            return
        if not isinstance(data, dict):
            logger.debug("Ignoring bookmarks payload of type %s", type(data).__name__)
            return
        # bool is a subclass of int but is not a valid position
        if any(type(v) is not int for v in data.values()):
            logger.debug("Ignoring bookmarks payload with non-integer positions")
            return
        with self._lock:
            self._entries = data

    @property
    def dirty(self) -> bool:
        with self._lock:
            return self._dirty

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def _ensure_dir(path: str) -> None:
    d = os.path.dirname(path)
    if d and not os.path.exists(d):
        os.makedirs(d, exist_ok=True)


def read_snapshot(path: str) -> Optional[bytes]:
    if not os.path.exists(path):
        return None
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError:
        logger.exception("Failed reading bookmarks from %s", path)
        return None


def write_snapshot(path: str, entries: Dict[str, int]) -> None:
    """Serialize `entries` and overwrite `path` with it. Errors propagate to the caller."""
    payload = json.dumps(entries)
    _ensure_dir(path)
    with open(path, "w", encoding="utf-8") as f:
        f.write(payload)


def hydrate(store: BookmarkStore, path: str) -> None:
    """Load the snapshot at `path` into `store`. Startup only, before any concurrent access."""
    raw = read_snapshot(path)
    if raw is None:
        logger.info("No bookmarks file at %s; starting empty", path)
        return
    store.load_from(raw)
    logger.info("Loaded %d bookmarks from %s", len(store), path)
