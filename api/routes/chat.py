"""
Direct message API routes
"""
from fastapi import APIRouter, Depends, Query, status

from api.dependencies import get_current_user, get_direct_message_service
from application.dto import (
    ChatMessageDTO,
    ChatMessageListDTO,
    ConversationDTO,
    ConversationListDTO,
    CurrentUserDTO,
    OpenConversationDTO,
    PostMessageDTO,
)
from application.services.chat_service import DirectMessageService
from core.response import Response as ApiResponse, success_response


router = APIRouter(
    prefix="/chat",
    tags=["Chat"]
)


@router.get(
    "/conversations",
    summary="List my conversations",
    response_model=ApiResponse[ConversationListDTO],
)
async def list_conversations(
    user: CurrentUserDTO = Depends(get_current_user),
    service: DirectMessageService = Depends(get_direct_message_service),
):
    conversations = await service.list_conversations(user.id)
    return success_response(
        data=ConversationListDTO(
            conversations=[ConversationDTO.from_entity(c, user.id) for c in conversations]
        )
    )


@router.post(
    "/conversations",
    summary="Open a conversation",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[ConversationDTO],
)
async def open_conversation(
    payload: OpenConversationDTO,
    user: CurrentUserDTO = Depends(get_current_user),
    service: DirectMessageService = Depends(get_direct_message_service),
):
    """Find or create the conversation between the caller and `participant_id`."""
    conversation = await service.open_conversation(user.id, payload.participant_id)
    return success_response(data=ConversationDTO.from_entity(conversation, user.id))


@router.get(
    "/conversations/{conversation_id}/messages",
    summary="List conversation messages",
    response_model=ApiResponse[ChatMessageListDTO],
)
async def list_messages(
    conversation_id: str,
    limit: int = Query(200, ge=1, le=200),
    user: CurrentUserDTO = Depends(get_current_user),
    service: DirectMessageService = Depends(get_direct_message_service),
):
    messages = await service.list_messages(conversation_id, user.id, limit=limit)
    return success_response(
        data=ChatMessageListDTO(messages=[ChatMessageDTO.from_entity(m) for m in messages])
    )


@router.post(
    "/conversations/{conversation_id}/messages",
    summary="Post a direct message",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[ChatMessageDTO],
)
async def post_message(
    conversation_id: str,
    payload: PostMessageDTO,
    user: CurrentUserDTO = Depends(get_current_user),
    service: DirectMessageService = Depends(get_direct_message_service),
):
    """
    Post a message; the other participant gets a `direct_message`
    notification if they have an open stream.
    """
    message = await service.post_message(conversation_id, user.id, user.name, payload.body)
    return success_response(data=ChatMessageDTO.from_entity(message), message="Message sent")
