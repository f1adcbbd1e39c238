from datetime import datetime, timezone

from insightmint.alerts import show_file_opened, show_probe_results, show_status
from insightmint.engine import MonitorStatus
from insightmint.events import UNKNOWN_PATH, DetectionSource, FileOpenEvent, ProcessRecord


def _event(**overrides):
    fields = dict(
        file_name="Doc.docx",
        full_path=UNKNOWN_PATH,
        extension=".docx",
        reader_application="Microsoft Word",
        process_name="WINWORD",
        process_id=1234,
        window_title=None,
        source=DetectionSource.WINDOW_TITLE,
        timestamp=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
    )
    fields.update(overrides)
    return FileOpenEvent(**fields)


def test_file_opened_banner(capsys):
    show_file_opened(_event())
    out = capsys.readouterr().out
    assert "FILE OPENED DETECTED" in out
    assert "Doc.docx" in out
    assert "WINWORD (1234)" in out
    assert "Window  : N/A" in out
    assert "Window Title Analysis" in out
    assert "2024-01-02T03:04:05+00:00" in out


def test_status(capsys):
    show_status(MonitorStatus(is_monitoring=True, process_count=3, watcher_count=2, interval_count=4))
    out = capsys.readouterr().out
    assert "Monitoring : yes" in out
    assert "Processes  : 3" in out
    assert "Watchers   : 2" in out


def test_probe_results(capsys):
    show_probe_results([ProcessRecord(7, "chrome", "a.pdf - Chrome")])
    out = capsys.readouterr().out
    assert "Found 1 processes with windows:" in out
    assert "1. chrome (7)" in out
    assert "Title: a.pdf - Chrome" in out

    show_probe_results([])
    assert "No relevant processes found" in capsys.readouterr().out


def test_event_to_dict_uses_labels():
    data = _event(process_id="Recent", source=DetectionSource.RECENT_FILES).to_dict()
    assert data["fileName"] == "Doc.docx"
    assert data["processId"] == "Recent"
    assert data["source"] == "Recent Files Monitor"
    assert data["timestamp"] == "2024-01-02T03:04:05+00:00"
