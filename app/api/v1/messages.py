from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db
from app.services.message_service import MessageService
from app.schemas.base import success_response
from app.schemas.message import (
    ConversationSummary,
    MarkRead,
    ModifiedCount,
    SendMessage,
    UnreadCount,
    serialize_message,
)
from app.schemas.user import UserPublic
from app.auth import get_current_active_user
from app.models.user import User
from app.gateway import gateway

router = APIRouter()

@router.get("/conversations")
async def get_conversations(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    items = await MessageService(db).list_conversations_for_user(current_user.id)
    data = [
        ConversationSummary.model_validate(item).to_wire()
        for item in items
    ]
    return success_response(data, "Conversations retrieved successfully")

@router.get("/users")
async def get_available_users(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Messaging partners: admins see clients, clients see admins."""
    users = await MessageService(db).available_partners(current_user)
    data = [UserPublic.model_validate(user).to_wire() for user in users]
    return success_response(data, "Available users retrieved successfully")

@router.get("/unread-count")
async def get_unread_count(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    unread_count = await MessageService(db).unread_count_for(current_user.id)
    return success_response(
        UnreadCount(unread_count=unread_count).to_wire(),
        "Unread count retrieved successfully",
    )

@router.get("/conversation/user/{other_user_id}")
async def get_conversation_between_users(
    other_user_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    page = await MessageService(db).list_conversation_with(current_user.id, other_user_id)
    if page.marked_read:
        await gateway.push_read_receipt(page.conversation_id, current_user.id, page.marked_read)
    return success_response(
        [serialize_message(message) for message in page.messages],
        "Conversation retrieved successfully",
    )

@router.get("/conversation/{conversation_id}")
async def get_messages(
    conversation_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.MESSAGE_PAGE_SIZE, ge=1, le=settings.MESSAGE_MAX_PAGE_SIZE),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    result = await MessageService(db).list_by_conversation(
        conversation_id, current_user.id, page=page, limit=limit
    )
    if result.marked_read:
        await gateway.push_read_receipt(conversation_id, current_user.id, result.marked_read)
    return success_response(
        [serialize_message(message) for message in result.messages],
        "Messages retrieved successfully",
    )

@router.post("/send", status_code=status.HTTP_201_CREATED)
async def send_message(
    message_data: SendMessage,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    message = await MessageService(db).append(
        sender_id=current_user.id,
        receiver_id=message_data.receiver_id,
        content=message_data.content,
        message_type=message_data.message_type,
        file_name=message_data.file_name,
        file_url=message_data.file_url,
    )
    # same fan-out as the socket path, so live clients see REST sends too
    data = await gateway.deliver_message(message)
    return success_response(data, "Message sent successfully")

@router.patch("/mark-read")
async def mark_as_read(
    payload: MarkRead,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    modified_count = await MessageService(db).mark_read(
        current_user.id,
        conversation_id=payload.conversation_id,
        message_ids=payload.message_ids,
    )
    if payload.conversation_id:
        await gateway.push_read_receipt(payload.conversation_id, current_user.id, modified_count)
    return success_response(
        ModifiedCount(modified_count=modified_count).to_wire(),
        "Messages marked as read",
    )
