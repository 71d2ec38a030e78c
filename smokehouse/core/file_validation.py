"""File Validation — upload policy checks on name, type, magic numbers and content.

Invariants:
    - validate_file collects EVERY failing check (errors list), never stops at the first
    - Declared MIME type must match the magic-number signature; a type that has a
      signature entry is refused when none is detected
    - Pure functions over (name, declared type, bytes): no filesystem access here

Design Decisions:
    - Heuristic virus scan lives next to validation but is run separately by the upload
      service so a hit quarantines the file instead of just rejecting it
    - RIFF prefix alone is not accepted as WebP: bytes 8..12 must read "WEBP"
"""

import hashlib
import re
import secrets
import time
from dataclasses import dataclass, field
from pathlib import PurePosixPath

DEFAULT_MAX_BYTES = 5 * 1024 * 1024

ALLOWED_MIME_TYPES = (
    "image/jpeg", "image/png", "image/webp", "image/gif", "application/pdf",
)
ALLOWED_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp", ".gif", ".pdf")

FILE_SIGNATURES: dict[str, tuple[str, ...]] = {
    "image/jpeg": ("ffd8ff",),
    "image/png": ("89504e47",),
    "image/webp": ("52494646",),
    "image/gif": ("47494638",),
    "application/pdf": ("25504446",),
}

RESERVED_NAMES = frozenset(
    ["CON", "PRN", "AUX", "NUL"]
    + [f"COM{i}" for i in range(1, 10)]
    + [f"LPT{i}" for i in range(1, 10)]
)

_DANGEROUS_CHARS = re.compile(r'[<>:"|?*\x00-\x1f]')
_IMAGE_SUSPICIOUS = (
    re.compile(rb"<script", re.IGNORECASE),
    re.compile(rb"<\?php", re.IGNORECASE),
    re.compile(rb"eval\s*\(", re.IGNORECASE),
    re.compile(rb"javascript:", re.IGNORECASE),
    re.compile(rb"vbscript:", re.IGNORECASE),
    re.compile(rb"data:text/html", re.IGNORECASE),
    re.compile(rb"&#x", re.IGNORECASE),
)
_PDF_SUSPICIOUS = (
    re.compile(rb"/JavaScript", re.IGNORECASE),
    re.compile(rb"/JS", re.IGNORECASE),
    re.compile(rb"/Launch", re.IGNORECASE),
    re.compile(rb"/EmbeddedFile", re.IGNORECASE),
    re.compile(rb"/URI", re.IGNORECASE),
)
_VIRUS_PATTERNS = (
    re.compile(
        rb"X5O!P%@AP\[4\\PZX54\(P\^\)7CC\)7\}\$EICAR-STANDARD-ANTIVIRUS-TEST-FILE!\$H\+H\*",
        re.IGNORECASE,
    ),
    re.compile(rb"eval\s*\(\s*base64_decode", re.IGNORECASE),
    re.compile(rb"shell_exec\s*\(", re.IGNORECASE),
    re.compile(rb"system\s*\(", re.IGNORECASE),
    re.compile(rb"exec\s*\(", re.IGNORECASE),
)
_PNG_SIGNATURE = bytes([0x89, 0x50, 0x4E, 0x47, 0x0D, 0x0A, 0x1A, 0x0A])


@dataclass
class FileValidationResult:
    is_valid: bool
    errors: list[str] = field(default_factory=list)
    detected_mime_type: str | None = None
    extension: str = ""


@dataclass(frozen=True)
class VirusScanResult:
    is_clean: bool
    threats: tuple[str, ...] = ()


def file_extension(file_name: str) -> str:
    return PurePosixPath(file_name).suffix.lower()


def validate_file(
    file_name: str,
    declared_type: str,
    content: bytes,
    max_bytes: int = DEFAULT_MAX_BYTES,
) -> FileValidationResult:
    errors: list[str] = []
    size = len(content)
    if size > max_bytes:
        errors.append(f"File size {size} exceeds maximum allowed size of {max_bytes} bytes")
    if size == 0:
        errors.append("File is empty")

    if declared_type not in ALLOWED_MIME_TYPES:
        errors.append(
            f"MIME type {declared_type} is not allowed. "
            f"Allowed types: {', '.join(ALLOWED_MIME_TYPES)}"
        )
    extension = file_extension(file_name)
    if extension not in ALLOWED_EXTENSIONS:
        errors.append(
            f"File extension {extension or '(none)'} is not allowed. "
            f"Allowed extensions: {', '.join(ALLOWED_EXTENSIONS)}"
        )
    errors.extend(validate_file_name(file_name))

    detected = detect_file_type(content)
    if detected != declared_type and (detected or declared_type in FILE_SIGNATURES):
        errors.append(
            f"File signature mismatch. Detected: {detected or 'unknown'}, Declared: {declared_type}"
        )
    errors.extend(validate_file_content(content, declared_type))
    return FileValidationResult(
        is_valid=not errors, errors=errors,
        detected_mime_type=detected, extension=extension,
    )


def validate_file_name(file_name: str) -> list[str]:
    errors: list[str] = []
    if _DANGEROUS_CHARS.search(file_name):
        errors.append("Filename contains dangerous characters")
    if ".." in file_name or "/" in file_name or "\\" in file_name:
        errors.append("Filename contains directory traversal characters")
    stem = file_name.split(".", 1)[0] if file_name else ""
    if stem.upper() in RESERVED_NAMES:
        errors.append("Filename uses reserved system name")
    if len(file_name) > 255:
        errors.append("Filename too long (max 255 characters)")
    if not file_name:
        errors.append("Filename is empty")
    if len(file_name.split(".")) > 3:
        errors.append("Filename has too many extensions (possible double extension attack)")
    return errors


def detect_file_type(content: bytes) -> str | None:
    head = content[:10].hex()
    for mime_type, signatures in FILE_SIGNATURES.items():
        if any(head.startswith(sig) for sig in signatures):
            if mime_type == "image/webp" and content[8:12] != b"WEBP":
                return None
            return mime_type
    return None


def validate_file_content(content: bytes, mime_type: str) -> list[str]:
    if mime_type.startswith("image/"):
        return _validate_image(content, mime_type)
    if mime_type == "application/pdf":
        return _validate_pdf(content)
    return []


def _validate_image(content: bytes, mime_type: str) -> list[str]:
    errors: list[str] = []
    if any(p.search(content) for p in _IMAGE_SUSPICIOUS):
        errors.append("Image contains suspicious embedded content")
    if mime_type == "image/jpeg":
        if len(content) < 4:
            errors.append("JPEG file too small")
        else:
            if content[:2] != b"\xff\xd8":
                errors.append("Invalid JPEG header")
            if content[-2:] != b"\xff\xd9":
                errors.append("Invalid JPEG footer")
    elif mime_type == "image/png":
        if len(content) < 8:
            errors.append("PNG file too small")
        elif content[:8] != _PNG_SIGNATURE:
            errors.append("Invalid PNG signature")
    return errors


def _validate_pdf(content: bytes) -> list[str]:
    if len(content) < 5:
        return ["PDF file too small"]
    errors: list[str] = []
    if content[:5] != b"%PDF-":
        errors.append("Invalid PDF header")
    if any(p.search(content) for p in _PDF_SUSPICIOUS):
        errors.append("PDF contains potentially dangerous embedded content")
    return errors


def secure_file_name(original_name: str, now_ms: int | None = None) -> str:
    """{safe stem (<=50)}_{epoch ms}_{16 hex}{ext}"""
    path = PurePosixPath(original_name)
    stem = re.sub(r"[^a-zA-Z0-9_-]", "_", path.stem)[:50]
    ms = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{stem}_{ms}_{secrets.token_hex(8)}{path.suffix.lower()}"


def file_hash(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


def scan_for_viruses(content: bytes) -> VirusScanResult:
    threats = tuple(
        "Suspicious code pattern detected" for p in _VIRUS_PATTERNS if p.search(content)
    )
    return VirusScanResult(is_clean=not threats, threats=threats)
