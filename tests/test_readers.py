import re

import pytest

from insightmint.readers import READER_NAME_PATTERN, resolve_reader_label


@pytest.mark.parametrize(
    "image_name, label",
    [
        ("WINWORD.EXE", "Microsoft Word"),
        ("WINWORD", "Microsoft Word"),
        ("AcroRd32", "Adobe Acrobat Reader"),
        ("FoxitReader", "Foxit Reader"),
        ("SumatraPDF", "SumatraPDF"),
        ("unknownapp.exe", "unknownapp.exe"),
        ("evince", "evince"),
    ],
)
def test_resolve_reader_label(image_name, label):
    assert resolve_reader_label(image_name) == label


@pytest.mark.parametrize(
    "image_name, matches",
    [
        ("chrome", True),
        ("FoxitPDFReader", True),
        ("Acrobat", True),
        ("Chrome", False),
        ("explorer", False),
        ("", False),
    ],
)
def test_reader_allow_list_is_case_sensitive_substring(image_name, matches):
    assert (re.search(READER_NAME_PATTERN, image_name) is not None) is matches
