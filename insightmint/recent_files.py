"""
recent_files.py — Shell "Recent items" source for InsightMint.

Windows drops a ``.lnk`` shortcut into ``%APPDATA%\\Microsoft\\Windows\\Recent``
whenever a document is opened through the shell.  This source lists
those shortcuts with their modification times and resolves a shortcut
to the document it points at.
"""

from __future__ import annotations

import logging
import os
from typing import Protocol

from insightmint import shell
from insightmint.events import RecentItem

logger = logging.getLogger(__name__)

SHORTCUT_SUFFIX = ".lnk"


class RecentItemsSource(Protocol):
    def list_items(self) -> list[RecentItem] | None: ...

    def resolve_target(self, link_path: str) -> str | None: ...


class ShellRecentItemsSource:
    """Reads the Windows Recent folder; resolves shortcuts via ``WScript.Shell``."""

    def __init__(self, folder: str, timeout: float = 10.0) -> None:
        self.folder = folder
        self.timeout = timeout

    def list_items(self) -> list[RecentItem] | None:
        """Return every shortcut in the folder.

        ``None`` means the folder does not exist at all; ``[]`` means it
        could not be read this time.
        """
        if not os.path.isdir(self.folder):
            return None

        items: list[RecentItem] = []
        try:
            with os.scandir(self.folder) as entries:
                for entry in entries:
                    if not entry.name.lower().endswith(SHORTCUT_SUFFIX):
                        continue
                    try:
                        mtime = entry.stat().st_mtime
                    except OSError:
                        continue
                    items.append(RecentItem(link_path=entry.path, file_name=entry.name, modified_at=mtime))
        except OSError as exc:
            logger.warning("Recent files monitor error: %s", exc)
            return []
        return items

    def resolve_target(self, link_path: str) -> str | None:
        script = (
            "$shell = New-Object -ComObject WScript.Shell\n"
            f"$shortcut = $shell.CreateShortcut({shell.quote(link_path)})\n"
            "@{ TargetPath = $shortcut.TargetPath; Arguments = $shortcut.Arguments } "
            "| ConvertTo-Json -Compress"
        )
        data = shell.run_powershell_json(script, context="recent-file", timeout=self.timeout)
        if not isinstance(data, dict):
            return None
        return data.get("TargetPath") or None
