"""Cache Policy Route — the caching rule table the service worker consumes."""

from fastapi import APIRouter

from smokehouse.core.cache_policy import policy_document

router = APIRouter(prefix="/api/v1", tags=["cache-policy"])


@router.get("/cache-policy")
async def get_cache_policy():
    return policy_document()
