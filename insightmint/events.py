"""
events.py — Shared event schema for InsightMint.

Defines the records that flow between the source adapters and the
detection engine, plus the ``FileOpenEvent`` the engine emits to its
observers.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Union

# Sentinels used when a detection path cannot observe the real value
UNKNOWN_PATH = "Unknown (from window title)"
RECENT_READER_LABEL = "Recently Accessed"
RECENT_PROCESS_NAME = "System"
RECENT_PROCESS_ID = "Recent"

ProcessId = Union[int, str]


class DetectionSource(enum.Enum):
    """Strategy that produced a detection.

    The value is the human-readable label shown in reports.
    """

    PROCESS_SCAN = "Process Analysis"
    WINDOW_TITLE = "Window Title Analysis"
    FILE_SYSTEM_WATCH = "File System Monitor"
    HANDLE_SCAN = "Handle Monitor"
    RECENT_FILES = "Recent Files Monitor"


@dataclass(frozen=True)
class ProcessRecord:
    """One process observed by a single snapshot.

    Attributes:
        pid:          Process identifier.
        name:         Image name without the ``.exe`` suffix (``WINWORD``).
        title:        Main window title, empty if the process has none.
        command_line: Full command line, or ``None`` if it was not
                      requested or could not be read.
    """

    pid: int
    name: str
    title: str = ""
    command_line: str | None = None


@dataclass(frozen=True)
class RecentItem:
    """A shell "recent items" shortcut and its last-modified time."""

    link_path: str
    file_name: str
    modified_at: float


@dataclass(frozen=True)
class FileOpenEvent:
    """A supported document that some reader application just opened.

    Attributes:
        file_name:          Base name of the document.
        full_path:          Absolute path, or ``UNKNOWN_PATH`` when only a
                            window title was observed.
        extension:          Lowercase extension including the dot.
        reader_application: Human-readable reader label.
        process_name:       Source process image name.
        process_id:         Source pid, or ``RECENT_PROCESS_ID``.
        window_title:       Window title if one was observed.
        source:             Strategy that produced the detection.
        timestamp:          Emission time (UTC).
    """

    file_name: str
    full_path: str
    extension: str
    reader_application: str
    process_name: str
    process_id: ProcessId
    window_title: str | None
    source: DetectionSource
    timestamp: datetime

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serialisable mapping of this event."""
        return {
            "fileName": self.file_name,
            "fullPath": self.full_path,
            "extension": self.extension,
            "readerApplication": self.reader_application,
            "processName": self.process_name,
            "processId": self.process_id,
            "windowTitle": self.window_title,
            "source": self.source.value,
            "timestamp": self.timestamp.isoformat(),
        }
