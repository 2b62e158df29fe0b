from fastapi import APIRouter, Depends, Request, Response

from server.dependencies.auth import verify_api_key
from server.models.requests import ConversationCreateRequest, ConversationUpdateRequest
from server.models.responses import ConversationListResponse
from shared.errors import NotFoundError, StorageFailure
from shared.models.conversation import Conversation

router = APIRouter(prefix="/conversations", tags=["conversations"])


@router.post("", status_code=201)
async def create_conversation(
    request: Request,
    body: ConversationCreateRequest,
    _: None = Depends(verify_api_key),
) -> Conversation:
    return request.app.state.conversation_store.create(title=body.title, active_file_ids=body.active_file_ids)


@router.get("")
async def list_conversations(
    request: Request,
    _: None = Depends(verify_api_key),
) -> ConversationListResponse:
    conversations = request.app.state.conversation_store.list_in_order()
    return ConversationListResponse(conversations=conversations, total=len(conversations))


@router.get("/{conversation_id}")
async def get_conversation(
    request: Request,
    conversation_id: str,
    _: None = Depends(verify_api_key),
) -> Conversation:
    return request.app.state.conversation_store.load(conversation_id)


@router.put("/{conversation_id}")
async def update_conversation(
    request: Request,
    conversation_id: str,
    body: ConversationUpdateRequest,
    _: None = Depends(verify_api_key),
) -> Conversation:
    """Replace the given fields of a conversation and save it.

    Raises:
        StorageFailure: If the conversation could not be persisted (answered with 507).
    """
    store = request.app.state.conversation_store
    conversation = store.load(conversation_id)
    if body.title is not None:
        conversation.title = body.title
    if body.messages is not None:
        conversation.messages = body.messages
    if body.active_file_ids is not None:
        conversation.active_file_ids = body.active_file_ids

    result = store.save(conversation)
    if not result.is_ok:
        raise StorageFailure(f"Could not save conversation '{conversation_id}': {result.reason}")
    return conversation


@router.delete("/{conversation_id}", status_code=204)
async def delete_conversation(
    request: Request,
    conversation_id: str,
    _: None = Depends(verify_api_key),
) -> Response:
    if not request.app.state.conversation_store.delete(conversation_id):
        raise NotFoundError(f"Conversation '{conversation_id}' not found.")
    return Response(status_code=204)
