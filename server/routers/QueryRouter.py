from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import QueryRequest
from server.models.responses import QueryResponse

router = APIRouter(prefix="/query", tags=["query"])


@router.post("")
async def query_documents(
    request: Request,
    body: QueryRequest,
    _: None = Depends(verify_api_key),
) -> QueryResponse:
    """Answer a question from the given documents, or from all active documents.

    Args:
        request (Request): FastAPI request (provides app.state.rag_service).
        body (QueryRequest): JSON body with the question and optional file ids.
        _ (None): Auth dependency result (unused).

    Returns:
        QueryResponse: The generated answer and the cited chunks.
    """
    result = await request.app.state.rag_service.do_answer(body.question, body.file_ids)
    return QueryResponse(question=body.question, answer=result.answer, sources=result.sources)
