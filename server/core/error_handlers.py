"""Maps core errors onto HTTP responses."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from shared.errors import (
    AnswerAIError,
    DocumentProcessingFailure,
    EmbeddingFailure,
    GenerationFailure,
    NotFoundError,
    RetrievalFailure,
    StorageFailure,
    ValidationError,
)


def status_for_error(exc: AnswerAIError) -> int:
    if isinstance(exc, ValidationError):
        return 422
    if isinstance(exc, StorageFailure):
        return 507
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, RetrievalFailure):
        return 404 if exc.no_indexed_content else 502
    if isinstance(exc, (DocumentProcessingFailure, GenerationFailure, EmbeddingFailure)):
        return 502
    return 500


async def handle_answerai_error(request: Request, exc: AnswerAIError) -> JSONResponse:
    status_code = status_for_error(exc)
    logging = request.app.state.helper_config.get_logger()
    if status_code >= 500:
        logging.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    else:
        logging.info("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content={"detail": exc.message, "error": type(exc).__name__})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AnswerAIError, handle_answerai_error)
