"""
monitor.py — Directory change source for InsightMint.

Uses the ``watchdog`` library to watch directories (non-recursively) and
converts raw events into ``(event_kind, filename)`` callbacks:

``"change"``  the file's contents were modified
``"rename"``  the file was created, deleted or moved

Callbacks run on watchdog's observer thread.  Callers that own an event
loop must hop back onto it themselves.
"""

from __future__ import annotations

import logging
import os
import threading
from typing import Callable, Protocol

from watchdog.events import (
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer
from watchdog.observers.api import ObservedWatch

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[str, str], None]

# ---------------------------------------------------------------------------
# Mapping watchdog event types → change kinds
# ---------------------------------------------------------------------------
_EVENT_MAP = {
    FileModifiedEvent: "change",
    FileCreatedEvent: "rename",
    FileDeletedEvent: "rename",
    FileMovedEvent: "rename",
}


class WatchHandle(Protocol):
    def close(self) -> None: ...


class DirectoryChangeSource(Protocol):
    def watch(self, directory: str, callback: ChangeCallback) -> WatchHandle: ...

    def is_alive(self) -> bool: ...


class _ChangeHandler(FileSystemEventHandler):
    """Translates watchdog events for one directory into callbacks."""

    def __init__(self, directory: str, callback: ChangeCallback) -> None:
        super().__init__()
        self._directory = os.path.normcase(os.path.realpath(directory))
        self._callback = callback

    def on_any_event(self, event) -> None:  # noqa: ANN001
        if event.is_directory:
            return

        kind = _EVENT_MAP.get(type(event))
        if kind is None:
            return

        # For moved/renamed events, use the destination path
        path = getattr(event, "dest_path", None) or event.src_path
        if isinstance(path, bytes):
            path = os.fsdecode(path)

        # Shallow watch: ignore anything not directly inside the directory
        if os.path.normcase(os.path.dirname(os.path.realpath(path))) != self._directory:
            return

        try:
            self._callback(kind, os.path.basename(path))
        except Exception:
            logger.exception("Callback raised an exception for %s event: %s", kind, path)


class _ObserverWatch:
    def __init__(self, source: "WatchdogDirectorySource", watch: ObservedWatch, directory: str) -> None:
        self._source = source
        self._watch = watch
        self.directory = directory
        self._closed = False

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._source._unschedule(self._watch)
        logger.debug("Closed watcher for: %s", self.directory)


class WatchdogDirectorySource:
    """One watchdog observer shared by every watched directory.

    The observer thread starts on the first :meth:`watch` call and is
    stopped by :meth:`shutdown`.
    """

    def __init__(self) -> None:
        self._observer: Observer | None = None
        self._lock = threading.Lock()

    def watch(self, directory: str, callback: ChangeCallback) -> WatchHandle:
        """Start a non-recursive watch on *directory*.

        Raises:
            OSError: if the directory cannot be watched.
        """
        if not os.path.isdir(directory):
            raise FileNotFoundError(directory)

        with self._lock:
            if self._observer is None:
                self._observer = Observer()
                self._observer.daemon = True
                self._observer.start()
            watch = self._observer.schedule(_ChangeHandler(directory, callback), directory, recursive=False)
        logger.info("Watching: %s (recursive=False)", directory)
        return _ObserverWatch(self, watch, directory)

    def is_alive(self) -> bool:
        """False once a started observer thread has died."""
        with self._lock:
            return self._observer is None or self._observer.is_alive()

    def _unschedule(self, watch: ObservedWatch) -> None:
        with self._lock:
            if self._observer is not None:
                self._observer.unschedule(watch)

    def shutdown(self) -> None:
        """Stop the observer thread."""
        with self._lock:
            observer, self._observer = self._observer, None
        if observer is not None:
            observer.stop()
            observer.join(timeout=5)
            logger.info("Directory observer stopped.")
