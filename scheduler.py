"""Background flush loop that persists the bookmark store on a fixed interval.

Each cycle sleeps, asks the store for a snapshot and writes it only if something changed,
so an idle service never touches the disk. Write failures are logged and the loop carries on.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Optional

import bookmarks

logger = logging.getLogger("scheduler")

Writer = Callable[[str, Dict[str, int]], None]


class PersistenceScheduler:
    """Writes the store to `path` every `flush_interval` seconds, only when it is dirty."""

    def __init__(
        self,
        store: bookmarks.BookmarkStore,
        path: str,
        flush_interval: float = 3600.0,
        writer: Optional[Writer] = None,
        requeue_on_failure: bool = False,
    ) -> None:
        self.store = store
        self.path = path
        self.flush_interval = flush_interval
        self.requeue_on_failure = requeue_on_failure
        self._writer = writer or bookmarks.write_snapshot
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def flush_once(self) -> bool:
        """Run one check/write cycle. Returns True if a snapshot was written."""
        data, dirty = self.store.snapshot()
        if not dirty:
            logger.debug("Bookmarks unchanged; skipping flush")
            return False
        try:
            self._writer(self.path, data)
        except (OSError, TypeError, ValueError):
            logger.exception("Failed writing %d bookmarks to %s", len(data), self.path)
            if self.requeue_on_failure:
                self.store.mark_dirty()
            return False
        logger.info("Flushed %d bookmarks to %s", len(data), self.path)
        return True

    def run(self) -> None:
        # wait() returns True only once stop() has been requested
        while not self._stop.wait(self.flush_interval):
            self.flush_once()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self.run, name="bookmark-flusher", daemon=True)
        self._thread.start()
        logger.info("Flushing bookmarks to %s every %ss", self.path, self.flush_interval)

    def stop(self, flush: bool = True, timeout: Optional[float] = None) -> None:
        """Cancel the loop, wait for it to exit, then optionally flush one last time."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("Flush thread still busy after %ss; skipping final flush", timeout)
                return
            self._thread = None
        if flush:
            self.flush_once()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
