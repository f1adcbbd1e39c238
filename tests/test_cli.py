import json
from datetime import datetime, timezone

import pytest

from insightmint import insightmint_main
from insightmint.engine import MonitorStatus
from insightmint.events import DetectionSource, FileOpenEvent, ProcessRecord


class FakeMonitor:
    """Stands in for the engine so the CLI can be driven without real sources."""

    instances = []

    def __init__(self, config):
        self.config = config
        self.file_callbacks = []
        self.error_callbacks = []
        self.started = False
        self.stopped = False
        FakeMonitor.instances.append(self)

    def on_file_opened(self, cb):
        self.file_callbacks.append(cb)

    def on_error(self, cb):
        self.error_callbacks.append(cb)

    async def start(self):
        self.started = True
        for cb in self.file_callbacks:
            cb(
                FileOpenEvent(
                    file_name="a.pdf",
                    full_path="C:\\a.pdf",
                    extension=".pdf",
                    reader_application="Google Chrome",
                    process_name="chrome",
                    process_id=9,
                    window_title="a.pdf",
                    source=DetectionSource.PROCESS_SCAN,
                    timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
                )
            )

    async def stop(self):
        self.stopped = True

    def get_status(self):
        return MonitorStatus(self.started and not self.stopped, 0, 0, 0)

    async def probe_open_documents(self):
        return [ProcessRecord(3, "WINWORD", "Doc.docx - Word")]


@pytest.fixture
def fake_monitor(monkeypatch):
    FakeMonitor.instances = []
    monkeypatch.setattr(insightmint_main, "FileAccessMonitor", FakeMonitor)
    monkeypatch.setattr(insightmint_main, "_configure_logging", lambda verbose: None)
    return FakeMonitor


def test_parser_defaults():
    args = insightmint_main.build_parser().parse_args(["watch"])
    assert args.scan_interval == 1.0
    assert args.handle_interval == 2.0
    assert args.backend == "auto"
    assert args.watch_dirs is None
    assert not args.json


def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        insightmint_main.build_parser().parse_args([])


def test_config_from_args_normalises_extensions():
    args = insightmint_main.build_parser().parse_args(
        ["watch", "--extensions", "PDF", ".RTF", "--watch-dirs", "/tmp/a", "--scan-interval", "0.5"]
    )
    config = insightmint_main.config_from_args(args)
    assert config.target_extensions == (".pdf", ".rtf")
    assert config.watch_dirs == ["/tmp/a"]
    assert config.scan_interval == 0.5


def test_watch_json_runs_for_duration(fake_monitor, capsys):
    insightmint_main.main(["watch", "--json", "--duration", "0.01", "--backend", "psutil"])

    monitor = fake_monitor.instances[0]
    assert monitor.started and monitor.stopped
    assert monitor.config.process_backend == "psutil"
    line = capsys.readouterr().out.strip().splitlines()[0]
    assert json.loads(line)["fileName"] == "a.pdf"


def test_watch_banner_shows_status(fake_monitor, capsys):
    insightmint_main.main(["watch", "--duration", "0.01"])
    out = capsys.readouterr().out
    assert "FILE OPENED DETECTED" in out
    assert "Monitoring :" in out


def test_watch_rejects_invalid_config(fake_monitor):
    with pytest.raises(SystemExit) as exc:
        insightmint_main.main(["watch", "--scan-interval", "0"])
    assert exc.value.code == 2
    assert fake_monitor.instances == []


def test_probe(fake_monitor, capsys):
    insightmint_main.main(["probe"])
    assert "1. WINWORD (3)" in capsys.readouterr().out
