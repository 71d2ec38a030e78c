"""Upload Service — admin image/PDF uploads behind validation, scanning and a per-IP limit.

Invariants:
    - Nothing reaches upload_dir unless validate_file() passed and (when enabled) the
      virus scan came back clean
    - Infected files are written to quarantine_dir, never to upload_dir
    - Every rejection is recorded as a file_upload_blocked security event
    - Stored names come from secure_file_name(); the client's name is never used as a path
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import Any

from smokehouse.config import Settings
from smokehouse.core.domain_types import SecurityEventType, SecuritySeverity
from smokehouse.core.errors import RateLimitExceededError, UploadRejectedError
from smokehouse.core.file_validation import (
    file_hash, scan_for_viruses, secure_file_name, validate_file,
)
from smokehouse.services.security_state import SecurityState

logger = logging.getLogger(__name__)


def _write(directory: Path, name: str, content: bytes) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    target = directory / name
    target.write_bytes(content)
    return target


class UploadService:
    def __init__(self, settings: Settings, security: SecurityState):
        self.settings = settings
        self.security = security

    async def store(
        self,
        file_name: str,
        content_type: str,
        content: bytes,
        client_ip: str,
        user_agent: str | None = None,
    ) -> dict[str, Any]:
        decision = self.security.upload_limiter.hit(f"upload:{client_ip}")
        if not decision.allowed:
            raise RateLimitExceededError(
                decision.retry_after_seconds, "Too many uploads, try again later",
            )

        result = validate_file(file_name, content_type, content, self.settings.upload_max_bytes)
        if not result.is_valid:
            self._blocked(result.errors, file_name, client_ip, user_agent)
            raise UploadRejectedError(result.errors)

        stored_name = secure_file_name(file_name, int(time.time() * 1000))
        if self.settings.upload_virus_scan_enabled:
            scan = scan_for_viruses(content)
            if not scan.is_clean:
                await asyncio.to_thread(
                    _write, Path(self.settings.quarantine_dir), stored_name, content,
                )
                errors = ["File failed security scan", *scan.threats]
                self._blocked(errors, file_name, client_ip, user_agent, quarantined=True)
                raise UploadRejectedError(errors)

        target = await asyncio.to_thread(
            _write, Path(self.settings.upload_dir), stored_name, content,
        )
        digest = file_hash(content)
        logger.info(
            f"Upload stored as {stored_name}",
            extra={"client_ip": client_ip},
        )
        return {
            "file_name": stored_name,
            "file_path": str(target),
            "file_hash": digest,
            "size": len(content),
            "content_type": content_type,
            "url": f"{self.settings.upload_public_path.rstrip('/')}/{stored_name}",
        }

    def _blocked(
        self,
        errors: list[str],
        file_name: str,
        client_ip: str,
        user_agent: str | None,
        quarantined: bool = False,
    ) -> None:
        self.security.monitor.log_event(
            SecurityEventType.FILE_UPLOAD_BLOCKED,
            SecuritySeverity.HIGH if quarantined else SecuritySeverity.MEDIUM,
            client_ip=client_ip,
            user_agent=user_agent,
            details={"file_name": file_name[:255], "errors": errors, "quarantined": quarantined},
        )
