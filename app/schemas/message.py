from typing import Optional, List
from pydantic import Field
from datetime import datetime

from app.models.message import MessageType
from app.schemas.base import CamelModel
from app.schemas.user import UserPublic

# content and messageType stay unconstrained here: MessageService owns those rules
class SendMessage(CamelModel):
    receiver_id: str
    content: str = ""
    message_type: str = MessageType.TEXT.value
    file_name: Optional[str] = None
    file_url: Optional[str] = None

class SendMessageWebSocket(SendMessage):
    temp_id: Optional[str] = None

class MarkRead(CamelModel):
    conversation_id: Optional[str] = None
    message_ids: Optional[List[str]] = None

class ConversationRef(CamelModel):
    conversation_id: str
    receiver_id: Optional[str] = None

class MessageResponse(CamelModel):
    """A stored message; ``senderId``/``receiverId`` carry the public user, not a bare id."""

    id: str
    sender_id: UserPublic = Field(validation_alias="sender", serialization_alias="senderId")
    receiver_id: UserPublic = Field(validation_alias="receiver", serialization_alias="receiverId")
    content: str
    message_type: MessageType
    file_name: Optional[str] = None
    file_url: Optional[str] = None
    conversation_id: str
    read: bool
    read_at: Optional[datetime] = None
    created_at: datetime

class ConversationSummary(CamelModel):
    conversation_id: str
    last_message: MessageResponse
    unread_count: int
    other_user: Optional[UserPublic] = None

class ModifiedCount(CamelModel):
    modified_count: int

class UnreadCount(CamelModel):
    unread_count: int


def serialize_message(message) -> dict:
    return MessageResponse.model_validate(message).to_wire()
