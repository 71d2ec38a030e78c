"""Admin Upload Routes — multipart image/PDF uploads.

Invariants:
    - Requires an admin session; per-IP upload rate limit applies on top of the API limit
    - The body is read once, capped at upload_max_bytes + 1 so oversize files are
      rejected without buffering them whole
"""

import logging

from fastapi import APIRouter, Depends, File, UploadFile, status

from smokehouse.api.dependencies import get_client_info, get_security, require_admin
from smokehouse.config import Settings, get_settings
from smokehouse.services.admin_auth import ClientInfo
from smokehouse.services.security_state import SecurityState
from smokehouse.services.upload_service import UploadService

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/v1/admin/uploads", tags=["admin-uploads"],
    dependencies=[Depends(require_admin)],
)


@router.post("", status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = File(...),
    client: ClientInfo = Depends(get_client_info),
    settings: Settings = Depends(get_settings),
    security: SecurityState = Depends(get_security),
):
    content = await file.read(settings.upload_max_bytes + 1)
    stored = await UploadService(settings, security).store(
        file.filename or "",
        file.content_type or "application/octet-stream",
        content,
        client.ip,
        client.user_agent or None,
    )
    return {"success": True, **stored}
