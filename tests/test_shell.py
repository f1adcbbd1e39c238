import subprocess

from insightmint import shell


class Completed:
    def __init__(self, returncode=0, stdout="", stderr=""):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


def test_quote_escapes_single_quotes():
    assert shell.quote("O'Brien") == "'O''Brien'"
    assert shell.quote("") == "''"


def test_find_powershell_order(monkeypatch):
    available = {"pwsh": "/usr/bin/pwsh"}
    monkeypatch.setattr(shell.shutil, "which", lambda name: available.get(name))
    assert shell.find_powershell() == "/usr/bin/pwsh"

    available["powershell.exe"] = "C:\\ps\\powershell.exe"
    assert shell.find_powershell() == "C:\\ps\\powershell.exe"


def test_run_without_powershell(monkeypatch):
    monkeypatch.setattr(shell.shutil, "which", lambda name: None)
    result = shell.run_powershell("Get-Process")
    assert not result.ok
    assert "not found" in result.stderr


def test_run_passes_script_and_timeout(monkeypatch):
    seen = {}

    def fake_run(argv, **kwargs):
        seen["argv"] = argv
        seen["kwargs"] = kwargs
        return Completed(stdout="  hello \n")

    monkeypatch.setattr(shell.subprocess, "run", fake_run)

    result = shell.run_powershell("Write-Output hello", timeout=3, executable="pwsh")

    assert result.ok
    assert result.stdout == "hello"
    assert seen["argv"] == ["pwsh", "-NoProfile", "-NonInteractive", "-Command", "Write-Output hello"]
    assert seen["kwargs"]["timeout"] == 3


def test_run_reports_timeout_and_os_errors(monkeypatch):
    def timeout(argv, **kwargs):
        raise subprocess.TimeoutExpired(argv, kwargs["timeout"])

    monkeypatch.setattr(shell.subprocess, "run", timeout)
    result = shell.run_powershell("x", timeout=1, executable="pwsh")
    assert not result.ok
    assert "timed out" in result.stderr

    def missing(argv, **kwargs):
        raise FileNotFoundError("pwsh")

    monkeypatch.setattr(shell.subprocess, "run", missing)
    assert not shell.run_powershell("x", executable="pwsh").ok


def test_run_json(monkeypatch):
    outputs = iter(
        [
            Completed(stdout='{"Name": "chrome", "Id": 1}'),
            Completed(stdout=""),
            Completed(stdout="not json"),
            Completed(returncode=1, stderr="boom"),
        ]
    )
    monkeypatch.setattr(shell.subprocess, "run", lambda argv, **kw: next(outputs))

    assert shell.run_powershell_json("x", "test", executable="pwsh") == {"Name": "chrome", "Id": 1}
    assert shell.run_powershell_json("x", "test", executable="pwsh") is None
    assert shell.run_powershell_json("x", "test", executable="pwsh") is None
    assert shell.run_powershell_json("x", "test", executable="pwsh") is None
