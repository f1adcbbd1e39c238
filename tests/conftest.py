import asyncio
import threading
import time

import pytest

from insightmint.config import MonitorConfig
from insightmint.engine import FileAccessMonitor


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProcessSource:
    """Returns the configured records that satisfy each query."""

    def __init__(self):
        self.records = []
        self.queries = []
        self.error = None
        self.gate = None  # threading.Event that blocks snapshot() until set

    def snapshot(self, query):
        self.queries.append(query)
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.error is not None:
            raise self.error
        return [r for r in self.records if query.matches(r)]


class FakeHandle:
    def __init__(self, directory, fail_on_close=False):
        self.directory = directory
        self.closed = False
        self.fail_on_close = fail_on_close

    def close(self):
        if self.fail_on_close:
            raise OSError("handle already gone")
        self.closed = True


class FakeDirectorySource:
    def __init__(self):
        self.callbacks = {}
        self.handles = {}
        self.fail_for = set()
        self.fail_on_close = set()
        self.alive = True

    def is_alive(self):
        return self.alive

    def watch(self, directory, callback):
        if directory in self.fail_for:
            raise PermissionError(directory)
        self.callbacks[directory] = callback
        handle = FakeHandle(directory, fail_on_close=directory in self.fail_on_close)
        self.handles[directory] = handle
        return handle

    def fire(self, directory, kind, filename):
        self.callbacks[directory](kind, filename)


class FakeRecentSource:
    def __init__(self):
        self.items = []
        self.targets = {}
        self.list_calls = 0

    def list_items(self):
        self.list_calls += 1
        return self.items

    def resolve_target(self, link_path):
        target = self.targets.get(link_path)
        if isinstance(target, Exception):
            raise target
        return target


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def processes():
    return FakeProcessSource()


@pytest.fixture
def directories():
    return FakeDirectorySource()


@pytest.fixture
def recent():
    return FakeRecentSource()


@pytest.fixture
def watch_dir(tmp_path):
    d = tmp_path / "Documents"
    d.mkdir()
    return str(d)


@pytest.fixture
def make_monitor(clock, processes, directories, recent, watch_dir):
    """Build an engine whose timers never fire during a test."""

    def _make(**overrides):
        settings = dict(
            scan_interval=3600,
            handle_interval=3600,
            recent_interval=3600,
            cleanup_interval=3600,
            settle_delay=0,
            source_timeout=2.0,
            watch_dirs=[watch_dir],
        )
        settings.update(overrides)
        monitor = FileAccessMonitor(
            MonitorConfig(**settings),
            process_source=processes,
            directory_source=directories,
            recent_source=recent,
            clock=clock,
        )
        monitor.events = []
        monitor.errors = []
        monitor.on_file_opened(monitor.events.append)
        monitor.on_error(monitor.errors.append)
        return monitor

    return _make


async def wait_until(predicate, timeout=3.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            return False
        await asyncio.sleep(0.01)
    return True


def new_gate():
    return threading.Event()
