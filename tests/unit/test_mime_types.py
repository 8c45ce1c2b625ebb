"""
Unit tests for the MIME table.
"""

import pytest

from digistar.http.mime_types import DEFAULT_MIME_TYPE, MIME_TYPES, get_mime_type


@pytest.mark.parametrize("filename, expected", [
    ("index.html", "text/html"),
    ("app.js", "text/javascript"),
    ("style.css", "text/css"),
    ("data.json", "application/json"),
    ("logo.png", "image/png"),
    ("photo.jpg", "image/jpeg"),
    ("favicon.ico", "image/x-icon"),
    ("icon.svg", "image/svg+xml"),
    ("sound.wav", "audio/wav"),
    ("clip.mp4", "video/mp4"),
    ("font.woff", "application/font-woff"),
    ("font.ttf", "application/font-ttf"),
    ("font.eot", "application/vnd.ms-fontobject"),
    ("font.otf", "application/font-otf"),
])
def test_known_extensions(filename, expected):
    assert get_mime_type(filename) == expected


def test_unknown_extension_defaults_to_text_plain():
    assert DEFAULT_MIME_TYPE == "text/plain"
    assert get_mime_type("archive.tar.gz") == "text/plain"
    assert get_mime_type("README") == "text/plain"


def test_lookup_is_case_sensitive():
    assert get_mime_type("STYLE.CSS") == "text/plain"


def test_full_paths():
    assert get_mime_type("public/docs/index.html") == "text/html"


def test_custom_default():
    assert get_mime_type("file.xyz", default="application/octet-stream") == "application/octet-stream"


def test_table_has_no_charset_parameters():
    assert all(";" not in value for value in MIME_TYPES.values())
