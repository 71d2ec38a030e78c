"""Tests for core/file_validation.py — upload type, name, content and virus checks."""

import re

import pytest

from smokehouse.core.file_validation import (
    detect_file_type, file_hash, scan_for_viruses, secure_file_name,
    validate_file, validate_file_name,
)

PNG = bytes([0x89, 0x50, 0x4E, 0x47, 0x0D, 0x0A, 0x1A, 0x0A]) + b"\x00" * 16
JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 16 + b"\xff\xd9"


def test_valid_png():
    result = validate_file("ribs.png", "image/png", PNG)
    assert result.is_valid
    assert result.detected_mime_type == "image/png"
    assert result.extension == ".png"


def test_jpeg_needs_footer():
    result = validate_file("ribs.jpg", "image/jpeg", JPEG[:-2])
    assert "Invalid JPEG footer" in result.errors


def test_oversize_and_empty():
    assert not validate_file("a.png", "image/png", PNG, max_bytes=10).is_valid
    assert "File is empty" in validate_file("a.png", "image/png", b"").errors


def test_signature_must_match_declared_type():
    result = validate_file("ribs.jpg", "image/jpeg", PNG)
    assert any(e.startswith("File signature mismatch") for e in result.errors)


def test_webp_requires_marker():
    riff_only = b"RIFF\x00\x00\x00\x00AVI " + b"\x00" * 8
    assert detect_file_type(riff_only) is None
    assert detect_file_type(b"RIFF\x00\x00\x00\x00WEBP" + b"\x00" * 8) == "image/webp"


def test_declared_type_without_detected_signature_is_rejected():
    wav = b"RIFF\x24\x00\x00\x00WAVEfmt " + b"\x00" * 16
    result = validate_file("cover.webp", "image/webp", wav)
    assert not result.is_valid
    assert result.detected_mime_type is None
    assert "File signature mismatch. Detected: unknown, Declared: image/webp" in result.errors


def test_plain_bytes_declared_as_png_are_rejected():
    result = validate_file("ribs.png", "image/png", b"just some text, not an image")
    assert any(e.startswith("File signature mismatch") for e in result.errors)


def test_image_with_script_is_rejected():
    result = validate_file("ribs.png", "image/png", PNG + b"<script>alert(1)</script>")
    assert "Image contains suspicious embedded content" in result.errors


def test_pdf_with_javascript_is_rejected():
    result = validate_file("menu.pdf", "application/pdf", b"%PDF-1.7 /JavaScript (x)")
    assert "PDF contains potentially dangerous embedded content" in result.errors


@pytest.mark.parametrize("name", [
    "../etc/passwd.png",
    "CON.png",
    "menu.php.jpg.png",
    "bad|name.png",
])
def test_unsafe_file_names(name):
    assert validate_file_name(name)


def test_secure_file_name_shape():
    name = secure_file_name("Rib Tips (2).PNG", now_ms=1700000000000)
    assert re.fullmatch(r"Rib_Tips__2__1700000000000_[0-9a-f]{16}\.png", name)


def test_virus_scan_detects_eicar():
    eicar = rb"X5O!P%@AP[4\PZX54(P^)7CC)7}$EICAR-STANDARD-ANTIVIRUS-TEST-FILE!$H+H*"
    assert not scan_for_viruses(PNG + eicar).is_clean
    assert scan_for_viruses(PNG).is_clean


def test_file_hash_is_sha256():
    assert file_hash(b"") == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
