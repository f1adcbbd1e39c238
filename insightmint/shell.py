"""
shell.py — PowerShell invocation for the Windows source adapters.

``run_powershell`` never raises for tool failures: a missing executable,
a timeout and a non-zero exit all come back as an unsuccessful
``ShellResult``.  ``run_powershell_json`` adds the JSON decoding that
every PowerShell query here ends with (``| ConvertTo-Json``).
"""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

_EXECUTABLES = ("powershell.exe", "powershell", "pwsh")


@dataclass(frozen=True)
class ShellResult:
    ok: bool
    stdout: str = ""
    stderr: str = ""


def find_powershell() -> str | None:
    """Return the first PowerShell executable on PATH, or ``None``."""
    for name in _EXECUTABLES:
        path = shutil.which(name)
        if path:
            return path
    return None


def quote(text: str) -> str:
    """Render *text* as a single-quoted PowerShell string literal."""
    return "'" + text.replace("'", "''") + "'"


def run_powershell(script: str, timeout: float = 10.0, executable: str | None = None) -> ShellResult:
    """Run *script* with ``-Command`` and capture its output."""
    exe = executable or find_powershell()
    if exe is None:
        return ShellResult(False, stderr="PowerShell not found")

    try:
        result = subprocess.run(
            [exe, "-NoProfile", "-NonInteractive", "-Command", script],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        return ShellResult(False, stderr=f"timed out after {timeout:.1f}s")
    except OSError as exc:
        return ShellResult(False, stderr=str(exc))

    return ShellResult(
        ok=result.returncode == 0,
        stdout=(result.stdout or "").strip(),
        stderr=(result.stderr or "").strip(),
    )


def run_powershell_json(
    script: str,
    context: str,
    timeout: float = 10.0,
    executable: str | None = None,
) -> Any | None:
    """Run *script* and decode its JSON output.

    Returns ``None`` when the command fails, prints nothing, or prints
    something that is not JSON.  *context* only labels the log lines.
    """
    result = run_powershell(script, timeout=timeout, executable=executable)
    if not result.ok:
        logger.debug("%s error: %s", context, result.stderr or "non-zero exit")
        return None
    if not result.stdout:
        return None
    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError as exc:
        logger.debug("%s parse error: %s", context, exc)
        return None
