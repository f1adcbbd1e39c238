"""
engine.py — File-access detection engine for InsightMint.

Infers that a supported document was just opened by combining four
independent strategies, all driven from one asyncio event loop:

1. Process scan     reader processes with a window title; their command
                    line and title are searched for document names.
2. Directory watch  a change to a document in a watched folder is
                    confirmed against live window titles.
3. Handle scan      reader processes whose command line names a
                    supported document.
4. Recent files     shell "Recent items" shortcuts touched in the last
                    few seconds.

Process identities are remembered in a :class:`DedupCache` so a
still-open reader is analysed once per residency period.  Strategies
key on different identities and may report the same file; consumers
must tolerate duplicates.

Every external call runs in the default executor and may fail on its
own: the failure is logged, that one cycle yields nothing, and the
timers keep going.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import os
import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from insightmint.config import MonitorConfig
from insightmint.dedup import DedupCache, handle_key, process_key
from insightmint.events import (
    RECENT_PROCESS_ID,
    RECENT_PROCESS_NAME,
    RECENT_READER_LABEL,
    UNKNOWN_PATH,
    DetectionSource,
    FileOpenEvent,
    ProcessId,
    ProcessRecord,
    RecentItem,
)
from insightmint.extractors import (
    extension_of,
    extract_file_names_from_title,
    extract_file_paths,
    file_name_of,
    is_supported,
)
from insightmint.monitor import DirectoryChangeSource, WatchdogDirectorySource, WatchHandle
from insightmint.process_monitor import ProcessQuery, ProcessSnapshotSource, create_process_source
from insightmint.readers import READER_NAME_PATTERN, resolve_reader_label
from insightmint.recent_files import RecentItemsSource, ShellRecentItemsSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MonitorError:
    """Payload of the ``error`` event."""

    message: str
    cause: BaseException | None = None


@dataclass(frozen=True)
class MonitorStatus:
    is_monitoring: bool
    process_count: int
    watcher_count: int
    interval_count: int


def default_sources(
    config: MonitorConfig,
) -> tuple[ProcessSnapshotSource, DirectoryChangeSource, RecentItemsSource]:
    """Build the real OS adapters selected by *config*."""
    return (
        create_process_source(config.process_backend, timeout=config.source_timeout),
        WatchdogDirectorySource(),
        ShellRecentItemsSource(config.resolved_recent_folder(), timeout=config.source_timeout),
    )


def _extension_pattern(extensions: tuple[str, ...]) -> str:
    names = sorted({e.lstrip(".") for e in extensions}, key=len, reverse=True)
    return r"\.(" + "|".join(re.escape(n) for n in names) + ")"


class FileAccessMonitor:
    """Detection engine.

    Parameters:
        config:           Tunables; ``MonitorConfig()`` by default.
        process_source:   Process snapshot source.
        directory_source: Directory change source.  A private watchdog
                          observer is shut down by :meth:`stop`.
        recent_source:    Recent-items source.
                          Omitted sources come from :func:`default_sources`.
        clock:            Seconds since the epoch; drives dedup aging, the
                          recent-items window and event timestamps.
    """

    def __init__(
        self,
        config: MonitorConfig | None = None,
        process_source: ProcessSnapshotSource | None = None,
        directory_source: DirectoryChangeSource | None = None,
        recent_source: RecentItemsSource | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or MonitorConfig()
        self._clock = clock

        if process_source is None or directory_source is None or recent_source is None:
            defaults = default_sources(self.config)
            process_source = process_source or defaults[0]
            self._owns_directory_source = directory_source is None
            directory_source = directory_source or defaults[1]
            recent_source = recent_source or defaults[2]
        else:
            self._owns_directory_source = False
        self._process_source = process_source
        self._directory_source = directory_source
        self._recent_source = recent_source

        self._extensions = frozenset(self.config.target_extensions)
        ext_pattern = _extension_pattern(self.config.target_extensions)
        self._scan_query = ProcessQuery(
            name_pattern=READER_NAME_PATTERN,
            require_title=True,
            include_command_line=True,
        )
        self._handle_query = ProcessQuery(
            name_pattern=READER_NAME_PATTERN,
            command_line_pattern=ext_pattern,
            include_command_line=True,
        )
        self._probe_query = ProcessQuery(
            name_pattern=READER_NAME_PATTERN,
            require_title=True,
            title_pattern=ext_pattern,
        )

        self.is_monitoring = False
        self._cache = DedupCache(self.config.max_process_age, clock=clock)
        self._watchers: dict[str, WatchHandle] = {}
        self._intervals: list[asyncio.Task] = []
        self._pending: set[asyncio.Task] = set()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._recent_disabled = False
        self._watch_error_reported = False

        self._file_opened_callbacks: list[Callable[[FileOpenEvent], None]] = []
        self._error_callbacks: list[Callable[[MonitorError], None]] = []

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def on_file_opened(self, cb: Callable[[FileOpenEvent], None]) -> None:
        self._file_opened_callbacks.append(cb)

    def on_error(self, cb: Callable[[MonitorError], None]) -> None:
        self._error_callbacks.append(cb)

    def _notify(self, callbacks: list[Callable[[Any], None]], payload: Any) -> None:
        for cb in list(callbacks):
            try:
                cb(payload)
            except Exception:
                logger.exception("Observer raised an exception for: %s", payload)

    def _emit_error(self, message: str, cause: BaseException | None = None) -> None:
        logger.error("%s: %s", message, cause or "")
        self._notify(self._error_callbacks, MonitorError(message, cause))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start every strategy and return once they are installed.

        Calling this while already running does nothing.
        """
        if self.is_monitoring:
            logger.info("Monitoring already started")
            return

        logger.info("Starting file access monitoring …")
        self.is_monitoring = True
        self._loop = asyncio.get_running_loop()
        self._recent_disabled = False
        self._watch_error_reported = False

        try:
            cfg = self.config
            self._intervals = [
                self._every(cfg.scan_interval, self.quick_process_scan, "process-scan"),
                self._every(cfg.handle_interval, self.monitor_file_handles, "handle-monitor"),
                self._every(cfg.recent_interval, self.monitor_recent_files, "recent-files"),
                self._every(cfg.cleanup_interval, self._cleanup_tick, "cleanup"),
            ]

            watchers = await self._loop.run_in_executor(None, self._setup_directory_watchers)
            if not self.is_monitoring:
                # stop() ran while the watches were being installed
                self._close_watchers(watchers)
                await self._shutdown_directory_source()
                return
            self._watchers = watchers

            logger.info(
                "All monitoring methods started (%d directories watched)", len(self._watchers)
            )
        except Exception as exc:
            await self.stop()
            self._emit_error("Failed to start monitoring", exc)

    async def stop(self) -> None:
        """Cancel timers and in-flight scans, close watches, forget processes.

        Safe to call at any time, including before :meth:`start` and
        from inside an observer callback.
        """
        if not self.is_monitoring:
            return

        self.is_monitoring = False

        current = asyncio.current_task()
        tasks = [t for t in self._intervals + list(self._pending) if t is not current]
        for task in tasks:
            task.cancel()
        self._intervals = []
        self._pending.clear()

        watchers, self._watchers = self._watchers, {}
        self._close_watchers(watchers)
        self._cache.clear()

        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        await self._shutdown_directory_source()

        logger.info("File monitoring stopped.")

    async def _shutdown_directory_source(self) -> None:
        shutdown = getattr(self._directory_source, "shutdown", None)
        if self._owns_directory_source and shutdown is not None:
            await asyncio.get_running_loop().run_in_executor(None, shutdown)

    def get_status(self) -> MonitorStatus:
        return MonitorStatus(
            is_monitoring=self.is_monitoring,
            process_count=len(self._cache),
            watcher_count=len(self._watchers),
            interval_count=len(self._intervals),
        )

    # ------------------------------------------------------------------
    # Scheduling helpers
    # ------------------------------------------------------------------

    def _every(self, interval: float, scan: Callable[[], Any], name: str) -> asyncio.Task:
        return self._loop.create_task(self._repeat(interval, scan), name=name)

    async def _repeat(self, interval: float, scan: Callable[[], Any]) -> None:
        # Ticks never wait for the previous scan of the same strategy
        while self.is_monitoring:
            await asyncio.sleep(interval)
            if not self.is_monitoring:
                return
            result = scan()
            if asyncio.iscoroutine(result):
                self._spawn(result)

    def _spawn(self, coro: Awaitable[Any]) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._pending.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Background scan failed", exc_info=task.exception())

    async def _call_source(self, func: Callable[..., Any], *args: Any) -> Any:
        loop = asyncio.get_running_loop()
        call = loop.run_in_executor(None, functools.partial(func, *args))
        return await asyncio.wait_for(call, timeout=self.config.source_timeout)

    def _cleanup_tick(self) -> None:
        self.cleanup()
        self.check_watchers()

    def cleanup(self) -> int:
        """Forget process identities older than ``max_process_age``."""
        return self._cache.purge()

    def check_watchers(self) -> bool:
        """Return False once the directory source has died under live watches.

        The first such check emits an ``error`` event.
        """
        if not self.is_monitoring or not self._watchers:
            return True
        is_alive = getattr(self._directory_source, "is_alive", None)
        if is_alive is None or is_alive():
            return True
        if not self._watch_error_reported:
            self._watch_error_reported = True
            self._emit_error(
                "Watcher error: directory observer stopped",
                RuntimeError(f"{len(self._watchers)} directory watches no longer delivered"),
            )
        return False

    # ------------------------------------------------------------------
    # Strategy 1: process scan
    # ------------------------------------------------------------------

    async def quick_process_scan(self) -> None:
        try:
            records = await self._call_source(self._process_source.snapshot, self._scan_query)
        except Exception as exc:
            logger.debug("process-scan error: %r", exc)
            return
        if not self.is_monitoring:
            return

        if records:
            logger.debug("Found %d relevant processes", len(records))
        for record in records:
            if not self.is_monitoring:
                break
            if self._cache.add_if_new(process_key(record.pid, record.name)):
                self.analyze_process(record, DetectionSource.PROCESS_SCAN)

    # ------------------------------------------------------------------
    # Strategy 2: directory watch
    # ------------------------------------------------------------------

    def _setup_directory_watchers(self) -> dict[str, WatchHandle]:
        watchers: dict[str, WatchHandle] = {}
        for directory in self.config.resolved_watch_dirs():
            if not os.path.isdir(directory):
                continue
            try:
                logger.debug("Setting up watcher for: %s", directory)
                callback = functools.partial(self._on_directory_change, directory)
                watchers[directory] = self._directory_source.watch(directory, callback)
            except Exception as exc:
                logger.error("Error setting up watcher for %s: %s", directory, exc)
        return watchers

    def _close_watchers(self, watchers: dict[str, WatchHandle]) -> None:
        for directory, handle in watchers.items():
            try:
                handle.close()
                logger.debug("Closed watcher for: %s", directory)
            except Exception as exc:
                logger.error("Error closing watcher for %s: %s", directory, exc)

    def _on_directory_change(self, directory: str, kind: str, filename: str) -> None:
        # May run on the watcher thread; hop onto the loop
        loop = self._loop
        if loop is None or not self.is_monitoring:
            return
        try:
            loop.call_soon_threadsafe(self.handle_file_system_event, directory, kind, filename)
        except RuntimeError:
            # loop already closed
            pass

    def handle_file_system_event(self, directory: str, kind: str, filename: str) -> None:
        """React to one change notification from a watched directory."""
        if not self.is_monitoring or kind != "change" or not filename:
            return
        if not is_supported(filename, self._extensions):
            return

        logger.debug("File system event: %s", filename)
        self._spawn(self.check_file_access(os.path.join(directory, filename), filename))

    async def check_file_access(self, full_path: str, file_name: str) -> None:
        """Confirm a changed document against live reader windows."""
        await asyncio.sleep(self.config.settle_delay)
        if not self.is_monitoring:
            return

        logger.debug("Checking file access for: %s", file_name)
        query = ProcessQuery(name_pattern=READER_NAME_PATTERN, title_contains=file_name)
        try:
            records = await self._call_source(self._process_source.snapshot, query)
        except Exception as exc:
            logger.debug("file-access error: %r", exc)
            return
        if not self.is_monitoring:
            return

        extension = extension_of(file_name)
        for record in records:
            if not self.is_monitoring:
                break
            self.emit_file_opened(
                file_name=file_name,
                full_path=full_path,
                extension=extension,
                reader_application=resolve_reader_label(record.name),
                process_name=record.name,
                process_id=record.pid,
                window_title=record.title or None,
                source=DetectionSource.FILE_SYSTEM_WATCH,
            )

    # ------------------------------------------------------------------
    # Strategy 3: handle / command-line scan
    # ------------------------------------------------------------------

    async def monitor_file_handles(self) -> None:
        try:
            records = await self._call_source(self._process_source.snapshot, self._handle_query)
        except Exception as exc:
            logger.debug("handle-monitor error: %r", exc)
            return
        if not self.is_monitoring:
            return

        for record in records:
            if not self.is_monitoring:
                break
            if self._cache.add_if_new(handle_key(record.pid)):
                self.analyze_process(record, DetectionSource.HANDLE_SCAN)

    # ------------------------------------------------------------------
    # Strategy 4: recent files
    # ------------------------------------------------------------------

    async def monitor_recent_files(self) -> None:
        if self._recent_disabled:
            return
        try:
            items = await self._call_source(self._recent_source.list_items)
        except Exception as exc:
            logger.debug("Recent files monitor error: %r", exc)
            return
        if not self.is_monitoring:
            return

        if items is None:
            self._recent_disabled = True
            logger.info("No recent items folder; recent-files monitoring disabled")
            return

        now = self._clock()
        for item in items:
            if now - item.modified_at < self.config.recent_window:
                logger.debug("Recent file detected: %s", item.file_name)
                await self.analyze_recent_file(item)

    async def analyze_recent_file(self, item: RecentItem) -> None:
        try:
            target = await self._call_source(self._recent_source.resolve_target, item.link_path)
        except Exception as exc:
            logger.debug("recent-file error for %s: %r", item.link_path, exc)
            return
        if not self.is_monitoring or not target:
            return

        extension = extension_of(target)
        if is_supported(target, self._extensions):
            self.emit_file_opened(
                file_name=file_name_of(target),
                full_path=target,
                extension=extension,
                reader_application=RECENT_READER_LABEL,
                process_name=RECENT_PROCESS_NAME,
                process_id=RECENT_PROCESS_ID,
                window_title=None,
                source=DetectionSource.RECENT_FILES,
            )

    # ------------------------------------------------------------------
    # Shared analysis
    # ------------------------------------------------------------------

    def analyze_process(
        self,
        record: ProcessRecord,
        source: DetectionSource = DetectionSource.PROCESS_SCAN,
    ) -> list[FileOpenEvent]:
        """Report every supported document *record* refers to.

        The command line yields full paths tagged with *source*; the
        window title yields bare names tagged ``WINDOW_TITLE``.  Both are
        always inspected, so one process can produce both kinds.
        """
        logger.debug("Analyzing process: %s (%s)", record.name, record.pid)
        reader = resolve_reader_label(record.name)
        extensions = self.config.target_extensions
        events: list[FileOpenEvent] = []

        if record.command_line:
            paths = extract_file_paths(record.command_line, extensions)
            logger.debug("Found %d file paths in command line", len(paths))
            for path in paths:
                extension = extension_of(path)
                if extension not in self._extensions:
                    continue
                events.append(
                    self.emit_file_opened(
                        file_name=file_name_of(path),
                        full_path=path,
                        extension=extension,
                        reader_application=reader,
                        process_name=record.name,
                        process_id=record.pid,
                        window_title=record.title or None,
                        source=source,
                    )
                )

        if record.title:
            for name in extract_file_names_from_title(record.title, extensions):
                extension = extension_of(name)
                if extension not in self._extensions:
                    continue
                events.append(
                    self.emit_file_opened(
                        file_name=name,
                        full_path=UNKNOWN_PATH,
                        extension=extension,
                        reader_application=reader,
                        process_name=record.name,
                        process_id=record.pid,
                        window_title=record.title,
                        source=DetectionSource.WINDOW_TITLE,
                    )
                )

        return events

    def emit_file_opened(
        self,
        *,
        file_name: str,
        full_path: str,
        extension: str,
        reader_application: str,
        process_name: str,
        process_id: ProcessId,
        window_title: str | None,
        source: DetectionSource,
    ) -> FileOpenEvent:
        """Build a :class:`FileOpenEvent`, log it and hand it to observers."""
        event = FileOpenEvent(
            file_name=file_name,
            full_path=full_path,
            extension=extension,
            reader_application=reader_application,
            process_name=process_name,
            process_id=process_id,
            window_title=window_title,
            source=source,
            timestamp=datetime.fromtimestamp(self._clock(), tz=timezone.utc),
        )
        logger.info(
            "File opened: %s via %s (%s pid=%s) [%s]",
            file_name,
            reader_application,
            process_name,
            process_id,
            source.value,
        )
        self._notify(self._file_opened_callbacks, event)
        return event

    # ------------------------------------------------------------------
    # One-shot diagnostics
    # ------------------------------------------------------------------

    async def probe_open_documents(self) -> list[ProcessRecord]:
        """List reader windows that look like they show a document right now.

        Independent of :meth:`start`; emits nothing.
        """
        try:
            return await self._call_source(self._process_source.snapshot, self._probe_query)
        except Exception as exc:
            logger.warning("Probe failed: %r", exc)
            return []
