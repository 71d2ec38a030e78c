"""Input Sanitization — normalizes user strings and rejects injection payloads.

Invariants:
    - Strings: null bytes removed, trimmed, truncated to max_length, then HTML handling;
      blocked patterns are checked both before and after HTML handling
    - Containers: lists <= 1000 items, dict nesting <= 10 levels, dict keys always HTML-stripped
    - Malicious content raises MaliciousInputError; structural limits raise InputValidationError

Design Decisions:
    - Two pattern tiers: MARKUP_PATTERNS always apply; STRICT_PATTERNS (SQL keywords, shell
      metacharacters, eval/alert calls) only when strict=True. Free text such as "Mac & Cheese; no onions"
      must survive, identifiers and slugs must not carry shell or SQL syntax
    - Regex whitelist for basic HTML instead of a DOM sanitizer: the allowed set is tiny
      (b, i, em, strong, p, br, ul, ol, li) and attributes are always dropped
"""

import html
import math
import re
import unicodedata
from dataclasses import dataclass
from typing import Any

from smokehouse.core.errors import InputValidationError, MaliciousInputError

MAX_STRING_LENGTH = 10_000
MAX_LIST_LENGTH = 1000
MAX_OBJECT_DEPTH = 10
EMAIL_MAX_LENGTH = 254
ALLOWED_HTML_TAGS = frozenset({"b", "i", "em", "strong", "p", "br", "ul", "ol", "li"})

PHONE_RE = re.compile(r"^\+?[\d\s\-\(\)]{7,15}$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MARKUP_PATTERNS = (
    re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE),
    re.compile(r"<iframe\b[^<]*(?:(?!</iframe>)<[^<]*)*</iframe>", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"vbscript:", re.IGNORECASE),
    re.compile(r"\bon\w+\s*=", re.IGNORECASE),
)

STRICT_PATTERNS = (
    re.compile(
        r"(\b(union|select|insert|update|delete|drop|create|alter|exec|execute)\b)|(-{2,})|/\*|\*/",
        re.IGNORECASE,
    ),
    re.compile(r"[;&|`$\\]"),
    re.compile(r"\b(eval|exec|system|shell_exec|passthru|proc_open)\s*\(", re.IGNORECASE),
    re.compile(r"(\bxss\b)|(\balert\s*\()|(\bconfirm\s*\()|(\bprompt\s*\()", re.IGNORECASE),
)

_TAG_RE = re.compile(r"<[^>]*>")
_DANGEROUS_BLOCK_RE = re.compile(
    r"<(script|style)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL,
)
_ANY_TAG_RE = re.compile(r"<\s*(/?)\s*([a-zA-Z0-9]+)[^>]*?(/?)\s*>")
_HTML_ESCAPES = {"/": "&#x2F;", "`": "&#x60;", "=": "&#x3D;"}


@dataclass(frozen=True)
class SanitizeOptions:
    remove_html: bool = False
    allow_basic_html: bool = False
    escape_html: bool = False
    trim_whitespace: bool = True
    remove_null_bytes: bool = True
    max_length: int = MAX_STRING_LENGTH
    strict: bool = False


PLAIN_TEXT = SanitizeOptions(remove_html=True)
STRICT_TEXT = SanitizeOptions(remove_html=True, strict=True)
RICH_TEXT = SanitizeOptions(allow_basic_html=True)


def sanitize_input(value: Any, options: SanitizeOptions = PLAIN_TEXT, field: str | None = None) -> Any:
    """Sanitize a scalar or nested structure in place of the raw request value."""
    return _sanitize(value, options, field, depth=0)


def _sanitize(value: Any, options: SanitizeOptions, field: str | None, depth: int) -> Any:
    if isinstance(value, str):
        return sanitize_string(value, options, field)
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            raise InputValidationError("Invalid numeric value", field=field)
        return value
    if isinstance(value, (list, tuple)):
        if len(value) > MAX_LIST_LENGTH:
            raise InputValidationError("Array too large", field=field)
        return [_sanitize(item, options, field, depth) for item in value]
    if isinstance(value, dict):
        if depth >= MAX_OBJECT_DEPTH:
            raise InputValidationError("Object nesting too deep", field=field)
        key_options = SanitizeOptions(
            remove_html=True, max_length=options.max_length, strict=options.strict,
        )
        return {
            sanitize_string(str(k), key_options, field): _sanitize(v, options, str(k), depth + 1)
            for k, v in value.items()
        }
    return value


def sanitize_string(value: str, options: SanitizeOptions = PLAIN_TEXT, field: str | None = None) -> str:
    text = value
    if options.remove_null_bytes:
        text = text.replace("\x00", "")
    if options.trim_whitespace:
        text = text.strip()
    if options.max_length and len(text) > options.max_length:
        text = text[: options.max_length]

    # scan before markup is stripped so "<script>" cannot hide behind remove_html
    _reject_blocked(text, options, field)
    if options.remove_html:
        text = _TAG_RE.sub("", text)
    elif options.allow_basic_html:
        text = clean_basic_html(text)
    elif options.escape_html:
        text = escape_html(text)
    _reject_blocked(text, options, field)
    return text


def _reject_blocked(text: str, options: SanitizeOptions, field: str | None) -> None:
    patterns = MARKUP_PATTERNS + STRICT_PATTERNS if options.strict else MARKUP_PATTERNS
    for pattern in patterns:
        if pattern.search(text):
            raise MaliciousInputError(field=field)


def clean_basic_html(text: str) -> str:
    """Keep whitelisted tags without attributes; drop everything else but its text."""
    text = _DANGEROUS_BLOCK_RE.sub("", text)

    def _rewrite(match: re.Match) -> str:
        closing, tag, self_closing = match.group(1), match.group(2).lower(), match.group(3)
        if tag not in ALLOWED_HTML_TAGS:
            return ""
        if closing:
            return f"</{tag}>"
        return f"<{tag}/>" if self_closing else f"<{tag}>"

    return _ANY_TAG_RE.sub(_rewrite, text)


def escape_html(text: str) -> str:
    escaped = html.escape(text, quote=True).replace("&#x27;", "&#39;")
    return "".join(_HTML_ESCAPES.get(ch, ch) for ch in escaped)


# ─── Validators ──────────────────────────────────────────────────

def validate_email(email: str) -> str:
    """Return the normalized (lower-cased, trimmed) email or raise."""
    if not email or not isinstance(email, str):
        raise InputValidationError("Email is required", field="email")
    if len(email.strip()) > EMAIL_MAX_LENGTH:
        raise InputValidationError(
            f"Email must be at most {EMAIL_MAX_LENGTH} characters", field="email",
        )
    cleaned = sanitize_string(
        email, SanitizeOptions(remove_html=True, max_length=EMAIL_MAX_LENGTH), "email",
    ).lower()
    local = cleaned.split("@", 1)[0]
    if (
        not EMAIL_RE.match(cleaned)
        or ".." in cleaned
        or local.startswith(".")
        or local.endswith(".")
        or cleaned.startswith(".")
        or cleaned.endswith(".")
    ):
        raise InputValidationError("Invalid email format", field="email")
    return cleaned


def validate_phone(phone: str) -> str:
    cleaned = sanitize_string(phone, PLAIN_TEXT, "phone")
    if not PHONE_RE.match(cleaned):
        raise InputValidationError("Invalid phone number format", field="phone")
    return cleaned


def slugify(text: str) -> str:
    normalized = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode()
    slug = re.sub(r"[^a-z0-9]+", "-", normalized.lower()).strip("-")
    return slug
