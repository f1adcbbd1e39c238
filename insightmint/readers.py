"""
readers.py — Reader-application registry for InsightMint.

Maps OS process image names to the label shown to the user, and holds
the allow-list of reader names the process scans filter on.
"""

from __future__ import annotations

READER_APPS: dict[str, str] = {
    "AcroRd32.exe": "Adobe Acrobat Reader",
    "AcroRd32": "Adobe Acrobat Reader",
    "Acrobat.exe": "Adobe Acrobat",
    "Acrobat": "Adobe Acrobat",
    "WINWORD.EXE": "Microsoft Word",
    "WINWORD": "Microsoft Word",
    "chrome.exe": "Google Chrome",
    "chrome": "Google Chrome",
    "firefox.exe": "Mozilla Firefox",
    "firefox": "Mozilla Firefox",
    "msedge.exe": "Microsoft Edge",
    "msedge": "Microsoft Edge",
    "FoxitReader.exe": "Foxit Reader",
    "SumatraPDF.exe": "SumatraPDF",
    "POWERPNT.EXE": "Microsoft PowerPoint",
    "EXCEL.EXE": "Microsoft Excel",
    "notepad.exe": "Notepad",
    "Code.exe": "Visual Studio Code",
}

# Substrings of image names that count as document readers (case-sensitive)
READER_NAMES = ("AcroRd32", "Acrobat", "WINWORD", "chrome", "firefox", "msedge", "Foxit", "Sumatra")

READER_NAME_PATTERN = "(" + "|".join(READER_NAMES) + ")"


def resolve_reader_label(image_name: str) -> str:
    """Return the reader label for *image_name*.

    Tries the exact name, then the name with an ``.exe`` suffix, and
    falls back to *image_name* itself.
    """
    return READER_APPS.get(image_name) or READER_APPS.get(image_name + ".exe") or image_name
