import uuid

from fastapi import APIRouter, Depends, Request, Response

from server.dependencies.auth import verify_api_key
from server.models.requests import DocumentActiveRequest, DocumentUploadRequest
from server.models.responses import DocumentInfo, DocumentListResponse, DocumentUploadResponse
from shared.models.document import SourceDocument

router = APIRouter(prefix="/documents", tags=["documents"])


def _document_info(request: Request, document: SourceDocument) -> DocumentInfo:
    vector_store = request.app.state.vector_store
    return DocumentInfo(
        file_id=document.file_id,
        file_name=document.file_name,
        active=document.active,
        page_count=len(document.pages),
        char_count=len(document.text),
        chunk_count=len(vector_store.chunks_for_files([document.file_id])),
    )


@router.post("", status_code=201)
async def upload_document(
    request: Request,
    body: DocumentUploadRequest,
    _: None = Depends(verify_api_key),
) -> DocumentUploadResponse:
    """Register a document and index it right away.

    Args:
        request (Request): FastAPI request (provides app.state.rag_service).
        body (DocumentUploadRequest): Extracted text, optional pages and the active flag.
        _ (None): Auth dependency result (unused).

    Returns:
        DocumentUploadResponse: The stored document and its indexing report.
    """
    document = SourceDocument(
        file_id=body.file_id or uuid.uuid4().hex,
        file_name=body.file_name,
        text=body.text,
        pages=body.pages,
        active=body.active,
    )
    report = await request.app.state.rag_service.do_add_document(document)
    return DocumentUploadResponse(document=_document_info(request, document), report=report)


@router.get("")
async def list_documents(
    request: Request,
    active_only: bool = False,
    _: None = Depends(verify_api_key),
) -> DocumentListResponse:
    documents = request.app.state.document_registry.list_documents(active_only=active_only)
    infos = [_document_info(request, doc) for doc in documents]
    return DocumentListResponse(documents=infos, total=len(infos))


@router.patch("/{file_id}")
async def set_document_active(
    request: Request,
    file_id: str,
    body: DocumentActiveRequest,
    _: None = Depends(verify_api_key),
) -> DocumentInfo:
    document = request.app.state.document_registry.set_active(file_id, body.active)
    return _document_info(request, document)


@router.delete("/{file_id}", status_code=204)
def delete_document(
    request: Request,
    file_id: str,
    _: None = Depends(verify_api_key),
) -> Response:
    """Delete a document together with its indexed chunks and cached chunk sets.

    Plain def: every cache key removal rewrites the store, so this runs in the threadpool.
    """
    request.app.state.rag_service.remove_document(file_id)
    return Response(status_code=204)
