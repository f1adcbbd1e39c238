"""InsightMint — Console display of detections.

Plain ASCII banners for detected documents, the engine status and the
one-shot probe listing.
"""

from __future__ import annotations

from typing import Iterable

from insightmint.engine import MonitorStatus
from insightmint.events import FileOpenEvent, ProcessRecord


def _banner(char: str = "=", width: int = 60) -> str:
    return char * width


def show_file_opened(event: FileOpenEvent) -> None:
    """Display one detection."""
    print()
    print("  [>] FILE OPENED DETECTED")
    print(f"  File    : {event.file_name}")
    print(f"  Path    : {event.full_path}")
    print(f"  Reader  : {event.reader_application}")
    print(f"  Process : {event.process_name} ({event.process_id})")
    print(f"  Window  : {event.window_title or 'N/A'}")
    print(f"  Time    : {event.timestamp.isoformat(timespec='seconds')}")
    print(f"  Source  : {event.source.value}")
    print(_banner())


def show_status(status: MonitorStatus) -> None:
    print()
    print(_banner("-"))
    print(f"  Monitoring : {'yes' if status.is_monitoring else 'no'}")
    print(f"  Processes  : {status.process_count}")
    print(f"  Watchers   : {status.watcher_count}")
    print(f"  Timers     : {status.interval_count}")
    print(_banner("-"))


def show_probe_results(records: Iterable[ProcessRecord]) -> None:
    """List the processes found by a probe, numbered."""
    records = list(records)
    print()
    if not records:
        print("  No relevant processes found")
        return
    print(f"  Found {len(records)} processes with windows:")
    for index, record in enumerate(records, start=1):
        print(f"  {index}. {record.name} ({record.pid})")
        print(f"     Title: {record.title}")
