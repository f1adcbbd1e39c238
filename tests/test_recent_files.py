import os

from insightmint import recent_files
from insightmint.recent_files import ShellRecentItemsSource


def test_lists_shortcuts_with_mtime(tmp_path):
    link = tmp_path / "Report.pdf.lnk"
    link.write_bytes(b"L\x00\x00\x00")
    os.utime(link, (1_700_000_000, 1_700_000_000))
    (tmp_path / "desktop.ini").write_text("[.ShellClassInfo]")
    (tmp_path / "AutomaticDestinations").mkdir()

    items = ShellRecentItemsSource(str(tmp_path)).list_items()

    assert len(items) == 1
    assert items[0].file_name == "Report.pdf.lnk"
    assert items[0].link_path == str(link)
    assert items[0].modified_at == 1_700_000_000


def test_missing_folder_returns_none(tmp_path):
    assert ShellRecentItemsSource(str(tmp_path / "nope")).list_items() is None


def test_resolve_target(monkeypatch):
    scripts = []

    def fake_json(script, context, timeout):
        scripts.append(script)
        return {"TargetPath": "C:\\Docs\\O'Neil.pdf", "Arguments": ""}

    monkeypatch.setattr(recent_files.shell, "run_powershell_json", fake_json)

    target = ShellRecentItemsSource("C:\\Recent").resolve_target("C:\\Recent\\O'Neil.pdf.lnk")

    assert target == "C:\\Docs\\O'Neil.pdf"
    assert "CreateShortcut('C:\\Recent\\O''Neil.pdf.lnk')" in scripts[0]


def test_resolve_target_failures(monkeypatch):
    results = iter([None, {"TargetPath": ""}, ["unexpected"]])
    monkeypatch.setattr(recent_files.shell, "run_powershell_json", lambda *a, **k: next(results))

    source = ShellRecentItemsSource("C:\\Recent")
    assert source.resolve_target("a.lnk") is None
    assert source.resolve_target("b.lnk") is None
    assert source.resolve_target("c.lnk") is None
