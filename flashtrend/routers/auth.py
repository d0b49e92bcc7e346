from fastapi import APIRouter, Depends

from flashtrend.dependencies import get_identity, get_query_cache
from flashtrend.identity import Identity
from flashtrend.queries import QueryCache

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])

@router.post("/logout", status_code=204)
async def logout(
    identity: Identity | None = Depends(get_identity),
    cache: QueryCache = Depends(get_query_cache),
):
    await cache.logout(identity)
