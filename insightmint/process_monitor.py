"""
process_monitor.py — Process snapshot sources for InsightMint.

A source answers one question: which running processes match a
:class:`ProcessQuery` right now?  Two implementations are provided:

``PsutilProcessSource``
    Cross-platform.  Walks ``psutil.process_iter`` and, on Windows with
    pywin32 installed, attaches each process's main window title.

``PowerShellProcessSource``
    Windows only.  Runs a ``Get-Process`` pipeline and decodes its JSON.

Both are blocking and fail closed: any tool or parse failure is logged
and the snapshot is empty.  The engine runs them off the event loop.
"""

from __future__ import annotations

import logging
import re
import subprocess
import sys
from dataclasses import dataclass
from typing import Any, Protocol

import psutil

from insightmint import shell
from insightmint.events import ProcessRecord

try:
    import win32gui
    import win32process
    WINDOWS_AVAILABLE = True
except ImportError:
    WINDOWS_AVAILABLE = False

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessQuery:
    """Filter for a process snapshot.

    A process is selected when its image name matches ``name_pattern``
    (case-sensitive), or its title contains ``title_contains``, or its
    title matches ``title_pattern`` (both case-insensitive).  The result
    is then narrowed by ``require_title`` and ``command_line_pattern``.
    """

    name_pattern: str
    require_title: bool = False
    title_contains: str | None = None
    title_pattern: str | None = None
    command_line_pattern: str | None = None
    include_command_line: bool = False

    def matches(self, record: ProcessRecord) -> bool:
        title = record.title or ""
        selected = re.search(self.name_pattern, record.name) is not None
        if not selected and self.title_contains:
            selected = self.title_contains.lower() in title.lower()
        if not selected and self.title_pattern:
            selected = re.search(self.title_pattern, title, re.IGNORECASE) is not None
        if not selected:
            return False

        if self.require_title and not title:
            return False
        if self.command_line_pattern is not None:
            if not record.command_line:
                return False
            if re.search(self.command_line_pattern, record.command_line, re.IGNORECASE) is None:
                return False
        return True

    @property
    def needs_command_line(self) -> bool:
        return self.include_command_line or self.command_line_pattern is not None


class ProcessSnapshotSource(Protocol):
    def snapshot(self, query: ProcessQuery) -> list[ProcessRecord]: ...


def strip_exe(name: str) -> str:
    """``WINWORD.EXE`` → ``WINWORD``; other names are returned unchanged."""
    return name[:-4] if name.lower().endswith(".exe") else name


# ---------------------------------------------------------------------------
# psutil
# ---------------------------------------------------------------------------

def get_window_titles() -> dict[int, str]:
    """Map pid → first visible, non-empty top-level window title.

    Returns an empty mapping when the Windows APIs are not available.
    """
    if not WINDOWS_AVAILABLE:
        return {}

    titles: dict[int, str] = {}

    def _collect(hwnd: int, _extra: Any) -> bool:
        if not win32gui.IsWindowVisible(hwnd):
            return True
        title = win32gui.GetWindowText(hwnd).strip()
        if title:
            _, pid = win32process.GetWindowThreadProcessId(hwnd)
            titles.setdefault(pid, title)
        return True

    win32gui.EnumWindows(_collect, None)
    return titles


class PsutilProcessSource:
    """Snapshot source backed by ``psutil``."""

    def snapshot(self, query: ProcessQuery) -> list[ProcessRecord]:
        try:
            titles = get_window_titles()
        except Exception as exc:
            logger.warning("Window title enumeration failed: %s", exc)
            titles = {}

        attrs = ["pid", "name", "cmdline"] if query.needs_command_line else ["pid", "name"]
        records: list[ProcessRecord] = []
        skipped = 0

        try:
            for proc in psutil.process_iter(attrs):
                try:
                    info = proc.info
                    pid = info["pid"]
                    command_line = None
                    if query.needs_command_line and info.get("cmdline"):
                        command_line = subprocess.list2cmdline(info["cmdline"])
                    record = ProcessRecord(
                        pid=pid,
                        name=strip_exe(info.get("name") or ""),
                        title=titles.get(pid, ""),
                        command_line=command_line,
                    )
                except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                    skipped += 1
                    continue
                if query.matches(record):
                    records.append(record)
        except psutil.Error as exc:
            logger.warning("Process enumeration failed: %s", exc)
            return []

        logger.debug("psutil snapshot: %d matching (%d skipped)", len(records), skipped)
        return records


# ---------------------------------------------------------------------------
# PowerShell
# ---------------------------------------------------------------------------

def build_powershell_query(query: ProcessQuery) -> str:
    """Render *query* as a ``Get-Process`` pipeline ending in ``ConvertTo-Json``."""
    selectors = [f"($_.ProcessName -cmatch {shell.quote(query.name_pattern)})"]
    if query.title_contains:
        pattern = f"('*' + [WildcardPattern]::Escape({shell.quote(query.title_contains)}) + '*')"
        selectors.append(f"($_.MainWindowTitle -like {pattern})")
    if query.title_pattern:
        selectors.append(f"($_.MainWindowTitle -match {shell.quote(query.title_pattern)})")

    where = "(" + " -or ".join(selectors) + ")"
    if query.require_title:
        where += " -and ($_.MainWindowTitle -ne '')"

    command_line = "$null"
    if query.needs_command_line:
        command_line = (
            '(Get-CimInstance Win32_Process -Filter "ProcessId = $($_.Id)" '
            "-ErrorAction SilentlyContinue).CommandLine"
        )

    script = (
        "$ErrorActionPreference = 'SilentlyContinue'\n"
        f"Get-Process | Where-Object {{ {where} }} | ForEach-Object {{\n"
        "    [PSCustomObject]@{\n"
        "        Name = $_.ProcessName\n"
        "        Id = $_.Id\n"
        "        Title = $_.MainWindowTitle\n"
        f"        CommandLine = {command_line}\n"
        "    }\n"
        "}"
    )
    if query.command_line_pattern is not None:
        script += (
            " | Where-Object { $_.CommandLine -and "
            f"($_.CommandLine -match {shell.quote(query.command_line_pattern)}) }}"
        )
    return script + " | ConvertTo-Json -Depth 2 -Compress"


def parse_process_json(data: Any) -> list[ProcessRecord]:
    """Turn decoded ``ConvertTo-Json`` output into records.

    Raises:
        ValueError: if any entry is malformed.  The caller discards the
                    whole batch.
    """
    if data is None:
        return []
    items = data if isinstance(data, list) else [data]
    records: list[ProcessRecord] = []
    for item in items:
        if not isinstance(item, dict) or "Id" not in item or not item.get("Name"):
            raise ValueError(f"unexpected process entry: {item!r}")
        try:
            pid = int(item["Id"])
        except (TypeError, ValueError) as exc:
            raise ValueError(f"bad process id: {item['Id']!r}") from exc
        records.append(
            ProcessRecord(
                pid=pid,
                name=str(item["Name"]),
                title=str(item.get("Title") or ""),
                command_line=item.get("CommandLine") or None,
            )
        )
    return records


class PowerShellProcessSource:
    """Snapshot source that shells out to ``Get-Process``."""

    def __init__(self, timeout: float = 10.0, executable: str | None = None) -> None:
        self.timeout = timeout
        self.executable = executable

    def snapshot(self, query: ProcessQuery) -> list[ProcessRecord]:
        data = shell.run_powershell_json(
            build_powershell_query(query),
            context="process-scan",
            timeout=self.timeout,
            executable=self.executable,
        )
        try:
            records = parse_process_json(data)
        except ValueError as exc:
            logger.warning("process-scan parse error, batch discarded: %s", exc)
            return []
        # -cmatch already filtered on the Windows side; re-check locally
        return [r for r in records if query.matches(r)]


def create_process_source(backend: str = "auto", timeout: float = 10.0) -> ProcessSnapshotSource:
    """Pick a snapshot source for *backend* (``auto``, ``psutil``, ``powershell``)."""
    if backend == "psutil":
        return PsutilProcessSource()
    if backend == "powershell":
        return PowerShellProcessSource(timeout=timeout)
    if backend != "auto":
        raise ValueError(f"unknown process backend: {backend!r}")

    if sys.platform == "win32" and shell.find_powershell():
        logger.info("Using PowerShell process source")
        return PowerShellProcessSource(timeout=timeout)
    logger.info("Using psutil process source (window titles: %s)", WINDOWS_AVAILABLE)
    return PsutilProcessSource()
