from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import CachePruneRequest
from server.models.responses import CachePruneResponse
from shared.models.document import CacheStats

router = APIRouter(prefix="/cache", tags=["cache"])


@router.get("/stats")
async def get_cache_stats(
    request: Request,
    _: None = Depends(verify_api_key),
) -> CacheStats:
    return request.app.state.chunk_cache.get_stats()


@router.post("/prune")
def prune_cache(
    request: Request,
    body: CachePruneRequest,
    _: None = Depends(verify_api_key),
) -> CachePruneResponse:
    """Delete cached chunk sets older than max_age_days (default: the cache TTL).

    Plain def so the store rewrites run in the threadpool.
    """
    settings = request.app.state.helper_config.get_rag_settings()
    if body.max_age_days is None:
        max_age_ms = settings.chunk_cache_ttl_ms
    else:
        max_age_ms = int(body.max_age_days * 24 * 60 * 60 * 1000)
    removed = request.app.state.chunk_cache.prune_older_than(max_age_ms)
    return CachePruneResponse(removed=removed)
