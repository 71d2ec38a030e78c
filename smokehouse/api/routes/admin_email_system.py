"""Admin Email System Routes — sending-domain verification."""

import logging

from fastapi import APIRouter, Depends

from smokehouse.api.dependencies import get_email_service, require_admin
from smokehouse.services.email_service import EmailService

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/v1/admin/email-system", tags=["admin-email"],
    dependencies=[Depends(require_admin)],
)


@router.get("/verify")
async def verify_email_domain(email_service: EmailService = Depends(get_email_service)):
    """DKIM/SPF/DMARC status of the sending domain; status=failed when Resend errors."""
    return await email_service.verify_domain()
