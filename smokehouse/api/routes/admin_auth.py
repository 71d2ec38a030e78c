"""Admin Auth Routes — login, logout and session introspection.

Invariants:
    - The session token travels only in an HttpOnly SameSite=Strict cookie
    - Login failures never reveal whether the email or the password was wrong
    - logout?everywhere=true ends every session of the admin, not just this device
"""

import logging

from fastapi import APIRouter, Depends, Query, Response

from smokehouse.api.dependencies import (
    get_admin_auth, get_client_info, require_admin, session_token,
)
from smokehouse.core.session_tokens import SessionData
from smokehouse.schemas.auth import LoginRequest
from smokehouse.services.admin_auth import AdminAuthService, ClientInfo

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/admin/auth", tags=["admin-auth"])


def _session_view(session: SessionData) -> dict:
    return {
        "user_id": session.user_id,
        "email": session.email,
        "is_admin": session.is_admin,
        "permissions": list(session.permissions),
        "created_at": session.created_at,
        "last_activity": session.last_activity,
    }


@router.post("/login")
async def login(
    body: LoginRequest,
    response: Response,
    client: ClientInfo = Depends(get_client_info),
    auth: AdminAuthService = Depends(get_admin_auth),
):
    token, session = auth.login(body.email, body.password, client)
    response.headers.append("set-cookie", auth.session_cookie(token))
    return {"authenticated": True, "session": _session_view(session)}


@router.post("/logout")
async def logout(
    response: Response,
    everywhere: bool = Query(False),
    token: str | None = Depends(session_token),
    client: ClientInfo = Depends(get_client_info),
    auth: AdminAuthService = Depends(get_admin_auth),
):
    auth.logout(token, client, everywhere)
    response.headers.append("set-cookie", auth.logout_cookie())
    return {"authenticated": False}


@router.get("/session")
async def get_session(session: SessionData = Depends(require_admin)):
    return {"authenticated": True, "session": _session_view(session)}
