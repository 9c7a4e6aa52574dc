"""
Message store for direct conversations.

Handles the business rules of the messaging subsystem on top of
``MessageRepository``:
- content and type validation on send
- conversation id derivation and participant checks
- read-state updates (explicit and as a side effect of viewing)
- per-user conversation summaries and unread counts
"""

from dataclasses import dataclass
import logging
from typing import Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.clock import utcnow
from app.config import settings
from app.conversations import conversation_id, conversation_participants
from app.exceptions import AuthorizationError, NotFoundError, ValidationError
from app.models.message import MAX_CONTENT_LENGTH, Message, MessageType, content_length
from app.models.user import User, UserRole
from app.repositories.message_repository import MessageRepository
from app.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)


@dataclass
class ConversationPage:
    """Messages returned to a reader plus how many were marked read by the fetch."""

    conversation_id: str
    messages: List[Message]
    marked_read: int
    other_user_id: str


@dataclass
class ConversationSummaryItem:
    conversation_id: str
    last_message: Message
    unread_count: int
    other_user: Optional[User]


class MessageService:
    """
    Service for persisting and reading direct messages.

    Every method opens no transaction of its own beyond the repository's
    commits; bulk read updates are single statements.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repository = MessageRepository(db)
        self.users = UserRepository(db)

    async def append(
        self,
        sender_id: str,
        receiver_id: str,
        content: str,
        message_type: str = MessageType.TEXT.value,
        file_name: Optional[str] = None,
        file_url: Optional[str] = None,
    ) -> Message:
        """Validate and persist a new message, returning it with both users loaded."""
        if content is None or not content.strip():
            raise ValidationError("Message content is required")
        if content_length(content) > MAX_CONTENT_LENGTH:
            raise ValidationError(f"Message cannot exceed {MAX_CONTENT_LENGTH} characters")

        try:
            kind = MessageType(message_type or MessageType.TEXT.value)
        except ValueError:
            raise ValidationError(f"Unsupported message type: {message_type}")

        if not receiver_id:
            raise ValidationError("Receiver ID is required")
        if str(receiver_id) == str(sender_id):
            raise ValidationError("Cannot send a message to yourself")

        receiver = await self.users.get_by_id(receiver_id)
        if receiver is None or not receiver.is_active:
            raise NotFoundError("Receiver not found")

        message = await self.repository.create(
            sender_id=sender_id,
            receiver_id=receiver.id,
            content=content,
            message_type=kind,
            conversation_id=conversation_id(sender_id, receiver.id),
            file_name=file_name,
            file_url=file_url,
        )
        logger.debug("Stored message %s in conversation %s", message.id, message.conversation_id)
        return message

    def _require_participant(self, value: str, reader_id: str) -> str:
        first, second = conversation_participants(value)
        if str(reader_id) not in (first, second):
            raise AuthorizationError("Conversation not found or access denied")
        return second if first == str(reader_id) else first

    async def list_by_conversation(
        self,
        value: str,
        reader_id: str,
        page: int = 1,
        limit: int = settings.MESSAGE_PAGE_SIZE,
    ) -> ConversationPage:
        """Return one page of a conversation and mark the reader's unread messages read.

        Page 1 holds the newest ``limit`` messages; each page is ordered
        oldest-first. Only messages that existed when the call started are
        marked read.
        """
        other_user_id = self._require_participant(value, reader_id)
        if page < 1:
            raise ValidationError("Page must be at least 1")
        if limit < 1 or limit > settings.MESSAGE_MAX_PAGE_SIZE:
            raise ValidationError(f"Limit must be between 1 and {settings.MESSAGE_MAX_PAGE_SIZE}")

        marked = await self._mark_seen(value, reader_id)
        messages = await self.repository.get_conversation_page(value, limit=limit, offset=(page - 1) * limit)
        return ConversationPage(value, messages, marked, other_user_id)

    async def list_conversation_with(self, reader_id: str, other_user_id: str) -> ConversationPage:
        """Full history between the reader and another user, oldest-first."""
        if str(other_user_id) == str(reader_id):
            raise ValidationError("Invalid user ID")
        other = await self.users.get_by_id(other_user_id)
        if other is None:
            raise NotFoundError("User not found")

        value = conversation_id(reader_id, other.id)
        marked = await self._mark_seen(value, reader_id)
        messages = await self.repository.get_conversation_history(value)
        return ConversationPage(value, messages, marked, other.id)

    async def _mark_seen(self, value: str, reader_id: str) -> int:
        # runs before the read query: a message committed after this UPDATE
        # stays unread, one committed before it is visible to the read
        started_at = utcnow()
        return await self.repository.mark_read(
            reader_id, conversation_id=value, created_before=started_at, read_at=started_at
        )

    async def list_conversations_for_user(self, user_id: str) -> List[ConversationSummaryItem]:
        rows = await self.repository.get_conversation_summaries(user_id)
        items = []
        for message, unread_count in rows:
            other = message.receiver if message.sender_id == str(user_id) else message.sender
            items.append(ConversationSummaryItem(
                conversation_id=message.conversation_id,
                last_message=message,
                unread_count=unread_count,
                other_user=other,
            ))
        return items

    async def mark_read(
        self,
        reader_id: str,
        conversation_id: Optional[str] = None,
        message_ids: Optional[Iterable[str]] = None,
    ) -> int:
        """Mark unread messages addressed to the reader as read.

        Exactly one selector is used; ``conversation_id`` wins when both are
        given.
        """
        if conversation_id:
            self._require_participant(conversation_id, reader_id)
            return await self.repository.mark_read(reader_id, conversation_id=conversation_id)
        if message_ids is not None:
            ids = [str(message_id) for message_id in message_ids]
            if not ids:
                return 0
            return await self.repository.mark_read(reader_id, message_ids=ids)
        raise ValidationError("Either conversationId or messageIds must be provided")

    async def unread_count_for(self, user_id: str) -> int:
        return await self.repository.count_unread(user_id)

    async def available_partners(self, user: User) -> List[User]:
        """Admins message clients, clients message admins."""
        role = UserRole.CLIENT if user.role == UserRole.ADMIN else UserRole.ADMIN
        return [partner for partner in await self.users.list_by_role(role) if partner.id != user.id]
