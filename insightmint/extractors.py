"""
extractors.py — Document path and file-name extraction for InsightMint.

Pure functions that scan a process command line or a window title for
references to supported documents.  Nothing here touches the OS, so
every function can be exercised with plain strings.

Command lines are scanned with three layered patterns, in order:

1. quoted paths           ``"C:\\My Docs\\a.pdf"``
2. drive-letter paths     ``C:\\Users\\a\\b.docx``
3. bare tokens            ``notes.doc`` / ``/home/a/b.pdf``

A later pass never reports text that lies inside a match from an
earlier pass, so a quoted path containing spaces is not also reported
as its trailing fragment.
"""

from __future__ import annotations

import ntpath
import re
from typing import Iterable, Pattern

DEFAULT_EXTENSIONS: tuple[str, ...] = (".pdf", ".doc", ".docx")

# Characters that cannot appear in a Windows file name
_NAME_CHARS = r'[^\\/:*?"<>|]'


def _ext_alternation(extensions: Iterable[str]) -> str:
    # Longest first so ".docx" is not cut short at ".doc"
    names = sorted({e.lstrip(".").lower() for e in extensions}, key=len, reverse=True)
    return "(?:" + "|".join(re.escape(n) for n in names) + r")(?!\w)"


def _path_patterns(extensions: Iterable[str]) -> list[Pattern[str]]:
    ext = _ext_alternation(extensions)
    return [
        re.compile(r'"([^"]*\.' + ext + r')"', re.IGNORECASE),
        re.compile(r'([A-Za-z]:\\[^\s"]*\.' + ext + r")", re.IGNORECASE),
        re.compile(r'([^\s"]*\.' + ext + r")", re.IGNORECASE),
    ]


def _title_pattern(extensions: Iterable[str]) -> Pattern[str]:
    # A name starts the title or follows a path or title separator
    ext = _ext_alternation(extensions)
    return re.compile(
        r"(?:^|(?<=[\\/:|]))\s*(" + _NAME_CHARS + r"+?\." + ext + ")",
        re.IGNORECASE,
    )


def extension_of(path: str) -> str:
    """Return the lowercase extension of *path* (``".pdf"``), or ``""``.

    Accepts both Windows and POSIX separators.
    """
    return ntpath.splitext(path)[1].lower()


def file_name_of(path: str) -> str:
    """Return the base name of *path*, accepting both separator styles."""
    return ntpath.basename(path)


def is_supported(path: str, extensions: Iterable[str] = DEFAULT_EXTENSIONS) -> bool:
    """True if *path* ends in one of *extensions* (case-insensitive)."""
    ext = extension_of(path)
    return bool(ext) and ext in {e.lower() for e in extensions}


def extract_file_paths(
    command_line: str | None,
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
) -> list[str]:
    """Return document paths referenced by *command_line*.

    Results keep first-seen order and contain each distinct path once.

    >>> extract_file_paths('"C:\\\\Users\\\\a\\\\Doc.docx" /p')
    ['C:\\\\Users\\\\a\\\\Doc.docx']
    """
    if not command_line:
        return []

    paths: list[str] = []
    claimed: list[tuple[int, int]] = []

    for pattern in _path_patterns(extensions):
        spans: list[tuple[int, int]] = []
        for match in pattern.finditer(command_line):
            start, end = match.span()
            if any(s <= start and end <= e for s, e in claimed):
                continue
            spans.append((start, end))
            path = match.group(1)
            if path and path not in paths:
                paths.append(path)
        claimed.extend(spans)

    return paths


def extract_file_names_from_title(
    title: str | None,
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
) -> list[str]:
    """Return bare document names (``report.pdf``) found in a window title.

    Names may contain spaces (``Quarterly Report 2024.pdf``).  A title
    holds one name per segment, segments being separated by ``|``, ``:``
    or a path separator, so directory parts are dropped.  Names are
    returned in order of appearance.
    """
    if not title:
        return []
    return [m.group(1).strip() for m in _title_pattern(extensions).finditer(title)]
