from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import SearchRequest
from server.models.responses import SearchResponse, SearchResultItem
from services.search.Highlighter import highlight_spans

router = APIRouter(prefix="/search", tags=["search"])


@router.post("")
async def search_conversations(
    request: Request,
    body: SearchRequest,
    _: None = Depends(verify_api_key),
) -> SearchResponse:
    """Full-text search over the conversation history, with highlighted previews."""
    results = request.app.state.search_service.search(body.query, body.filters)
    items = [
        SearchResultItem(**result.model_dump(), highlights=highlight_spans(result.preview, body.query))
        for result in results
    ]
    return SearchResponse(query=body.query, results=items, total=len(items))
