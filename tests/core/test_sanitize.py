"""Input Sanitization — tests for string cleaning, injection rejection and validators.

Tests cover:
    - trimming, null bytes, truncation, tag stripping
    - markup payloads rejected in every mode; SQL/shell syntax only in strict mode
    - basic-HTML whitelist and escaping
    - container limits (list length, nesting depth)
    - email / phone validation and slugify
"""

import pytest

from smokehouse.core.errors import InputValidationError, MaliciousInputError
from smokehouse.core.sanitize import (
    EMAIL_MAX_LENGTH, RICH_TEXT, STRICT_TEXT, SanitizeOptions, clean_basic_html, escape_html,
    sanitize_input, sanitize_string, slugify, validate_email, validate_phone,
)


# ─── Strings ────────────────────────────────────────────────────

def test_trims_and_removes_null_bytes():
    assert sanitize_string("  pulled\x00 pork  ") == "pulled pork"


def test_truncates_to_max_length():
    assert sanitize_string("a" * 20, SanitizeOptions(max_length=5)) == "aaaaa"


def test_strips_tags_in_plain_mode():
    assert sanitize_string("<b>Brisket</b> plate") == "Brisket plate"


def test_free_text_punctuation_survives_plain_mode():
    text = "Mac & Cheese; no onions -- extra sauce"
    assert sanitize_string(text) == text


def test_script_is_rejected():
    with pytest.raises(MaliciousInputError):
        sanitize_string("<script>alert(1)</script>", field="notes")


def test_event_handler_attribute_is_rejected():
    with pytest.raises(MaliciousInputError):
        sanitize_string('<img src=x onerror="steal()">')


def test_javascript_url_is_rejected():
    with pytest.raises(MaliciousInputError):
        sanitize_string("javascript:void(0)")


def test_strict_mode_rejects_sql_and_shell():
    with pytest.raises(MaliciousInputError):
        sanitize_string("1; DROP TABLE orders", STRICT_TEXT)
    with pytest.raises(MaliciousInputError):
        sanitize_string("name | cat", STRICT_TEXT)
    assert sanitize_string("smoked-turkey", STRICT_TEXT) == "smoked-turkey"


def test_malicious_error_carries_field():
    with pytest.raises(MaliciousInputError) as exc_info:
        sanitize_string("<script>x</script>", field="special_requests")
    assert exc_info.value.http_status == 400


# ─── HTML handling ──────────────────────────────────────────────

def test_basic_html_keeps_whitelist_and_drops_attributes():
    assert clean_basic_html('<p class="x">Hi <em>there</em></p>') == "<p>Hi <em>there</em></p>"
    assert clean_basic_html("<div>text</div><br/>") == "text<br/>"


def test_rich_text_drops_style_blocks():
    assert sanitize_string("<style>p{}</style><b>ok</b>", RICH_TEXT) == "<b>ok</b>"


def test_escape_html():
    assert escape_html("<a href='/x'>") == "&lt;a href&#x3D;&#39;&#x2F;x&#39;&gt;"


# ─── Containers ─────────────────────────────────────────────────

def test_nested_structures_are_sanitized():
    cleaned = sanitize_input({" <b>name</b> ": "  Troy ", "tags": ["<i>bbq</i>"], "count": 3})
    assert cleaned == {"name": "Troy", "tags": ["bbq"], "count": 3}


def test_list_too_large():
    with pytest.raises(InputValidationError):
        sanitize_input(["x"] * 1001)


def test_nesting_too_deep():
    value: dict = {}
    node = value
    for _ in range(11):
        node["k"] = {}
        node = node["k"]
    with pytest.raises(InputValidationError):
        sanitize_input(value)


def test_non_finite_float_rejected():
    with pytest.raises(InputValidationError):
        sanitize_input(float("nan"))


# ─── Validators ─────────────────────────────────────────────────

def test_validate_email_normalizes():
    assert validate_email("  Pit.Master@Example.COM ") == "pit.master@example.com"


@pytest.mark.parametrize("bad", ["", "no-at-sign", "a..b@example.com", ".a@example.com", "a@b"])
def test_validate_email_rejects(bad):
    with pytest.raises(InputValidationError):
        validate_email(bad)


def test_validate_email_rejects_overlong_address():
    # 255 characters that would still match the pattern if cut to 254
    overlong = "a" * 243 + "@example.com"
    assert len(overlong) == EMAIL_MAX_LENGTH + 1
    with pytest.raises(InputValidationError):
        validate_email(overlong)
    assert validate_email(overlong[1:]) == overlong[1:]


def test_validate_phone():
    assert validate_phone("(555) 123-4567") == "(555) 123-4567"
    with pytest.raises(InputValidationError):
        validate_phone("call me maybe")


def test_slugify():
    assert slugify("Jalapeño Cheddar Sausage!") == "jalapeno-cheddar-sausage"
