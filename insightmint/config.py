"""
config.py — Monitoring configuration for InsightMint.

All intervals are in seconds.  ``MonitorConfig`` is plain data: the CLI
builds one from its flags and hands it to the engine, tests build one
directly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from insightmint.extractors import DEFAULT_EXTENSIONS

PUBLIC_DOCUMENTS = r"C:\Users\Public\Documents"

PROCESS_BACKENDS = ("auto", "psutil", "powershell")


def default_watch_dirs() -> list[str]:
    """Candidate directories for the directory-watch strategy."""
    home = Path.home()
    return [
        str(home / "Documents"),
        str(home / "Desktop"),
        str(home / "Downloads"),
        PUBLIC_DOCUMENTS,
    ]


def default_recent_folder() -> str:
    """Location of the shell "Recent items" shortcuts."""
    appdata = os.environ.get("APPDATA")
    if appdata:
        return os.path.join(appdata, "Microsoft", "Windows", "Recent")
    return str(Path.home() / "AppData" / "Roaming" / "Microsoft" / "Windows" / "Recent")


@dataclass
class MonitorConfig:
    """Tunables for :class:`insightmint.engine.FileAccessMonitor`.

    Attributes:
        target_extensions: Supported document extensions (lowercase, dotted).
        scan_interval:     Process-scan period.
        handle_interval:   Command-line (handle) scan period.
        recent_interval:   Recent-items scan period.
        cleanup_interval:  Dedup-cache purge period.
        max_process_age:   Dedup entry lifetime.
        settle_delay:      Wait after a directory change before confirming.
        recent_window:     A recent item counts as "just accessed" if its
                           shortcut was modified within this many seconds.
        source_timeout:    Upper bound for a single external source call.
        process_backend:   ``"auto"``, ``"psutil"`` or ``"powershell"``.
        watch_dirs:        Directories to watch; ``None`` for the defaults.
        recent_folder:     Recent-items folder; ``None`` for the default.
    """

    target_extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    scan_interval: float = 1.0
    handle_interval: float = 2.0
    recent_interval: float = 3.0
    cleanup_interval: float = 30.0
    max_process_age: float = 300.0
    settle_delay: float = 0.5
    recent_window: float = 10.0
    source_timeout: float = 10.0
    process_backend: str = "auto"
    watch_dirs: list[str] | None = None
    recent_folder: str | None = None

    def __post_init__(self) -> None:
        self.target_extensions = tuple(self.target_extensions)
        if not self.target_extensions:
            raise ValueError("target_extensions must not be empty")
        for ext in self.target_extensions:
            if not ext.startswith(".") or len(ext) < 2 or ext != ext.lower():
                raise ValueError(f"extension must be lowercase and dotted: {ext!r}")

        for name in (
            "scan_interval",
            "handle_interval",
            "recent_interval",
            "cleanup_interval",
            "max_process_age",
            "recent_window",
            "source_timeout",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.settle_delay < 0:
            raise ValueError("settle_delay must not be negative")

        if self.process_backend not in PROCESS_BACKENDS:
            raise ValueError(
                f"process_backend must be one of {', '.join(PROCESS_BACKENDS)}"
            )

    def resolved_watch_dirs(self) -> list[str]:
        dirs = self.watch_dirs if self.watch_dirs is not None else default_watch_dirs()
        return [os.path.expandvars(os.path.expanduser(d)) for d in dirs]

    def resolved_recent_folder(self) -> str:
        folder = self.recent_folder or default_recent_folder()
        return os.path.expandvars(os.path.expanduser(folder))
