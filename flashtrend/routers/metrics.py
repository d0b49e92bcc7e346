from fastapi import APIRouter, Depends

from flashtrend.dependencies import get_query_cache
from flashtrend.queries import QueryCache
from flashtrend.schemas import MetricsResponse

router = APIRouter(prefix="/api/v1/metrics", tags=["metrics"])

@router.get("", response_model=MetricsResponse)
async def get_metrics(cache: QueryCache = Depends(get_query_cache)):
    return MetricsResponse(
        sessions=len(cache.actors),
        cache_info=cache.store.stats,
    )
