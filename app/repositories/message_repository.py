from datetime import datetime
from typing import Optional, List, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, and_, or_, func, case
from sqlalchemy.orm import selectinload

from app.clock import utcnow
from app.models.message import Message, MessageType

class MessageRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    def _with_users(self, stmt):
        return stmt.options(selectinload(Message.sender), selectinload(Message.receiver))

    async def create(
        self,
        sender_id: str,
        receiver_id: str,
        content: str,
        message_type: MessageType,
        conversation_id: str,
        file_name: Optional[str] = None,
        file_url: Optional[str] = None,
    ) -> Message:
        message = Message(
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
            message_type=message_type,
            file_name=file_name,
            file_url=file_url,
            conversation_id=conversation_id,
            read=False,
            created_at=utcnow(),
        )
        self.db.add(message)
        await self.db.commit()
        return await self.get_by_id(message.id)

    async def get_by_id(self, message_id: str) -> Optional[Message]:
        result = await self.db.execute(
            self._with_users(select(Message)).where(Message.id == message_id)
        )
        return result.scalar_one_or_none()

    async def get_conversation_page(self, conversation_id: str, limit: int = 50, offset: int = 0) -> List[Message]:
        """Newest-first window of the conversation, returned oldest-first."""
        result = await self.db.execute(
            self._with_users(select(Message))
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.desc())
            .offset(offset)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        messages = list(result.scalars().all())
        messages.reverse()
        return messages

    async def get_conversation_history(self, conversation_id: str) -> List[Message]:
        result = await self.db.execute(
            self._with_users(select(Message))
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.asc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def mark_read(
        self,
        receiver_id: str,
        conversation_id: Optional[str] = None,
        message_ids: Optional[List[str]] = None,
        created_before: Optional[datetime] = None,
        read_at: Optional[datetime] = None,
    ) -> int:
        """Flip unread messages addressed to ``receiver_id`` in one UPDATE.

        Returns the number of rows changed. Concurrent callers never count
        the same message twice because the ``read = false`` filter is
        evaluated by the database inside the statement.
        """
        conditions = [Message.receiver_id == receiver_id, Message.read.is_(False)]
        if conversation_id is not None:
            conditions.append(Message.conversation_id == conversation_id)
        if message_ids is not None:
            conditions.append(Message.id.in_(message_ids))
        if created_before is not None:
            conditions.append(Message.created_at <= created_before)

        result = await self.db.execute(
            update(Message)
            .where(and_(*conditions))
            .values(read=True, read_at=read_at or utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount or 0

    async def count_unread(self, receiver_id: str, conversation_id: Optional[str] = None) -> int:
        stmt = select(func.count(Message.id)).where(
            Message.receiver_id == receiver_id,
            Message.read.is_(False),
        )
        if conversation_id is not None:
            stmt = stmt.where(Message.conversation_id == conversation_id)
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def get_conversation_summaries(self, user_id: str) -> List[Tuple[Message, int]]:
        """Last message and unread count per conversation, most recent first."""
        unread = func.sum(
            case((and_(Message.receiver_id == user_id, Message.read.is_(False)), 1), else_=0)
        )
        stats = (
            select(
                Message.conversation_id.label("conversation_id"),
                func.max(Message.created_at).label("last_at"),
                unread.label("unread_count"),
            )
            .where(or_(Message.sender_id == user_id, Message.receiver_id == user_id))
            .group_by(Message.conversation_id)
            .subquery()
        )
        result = await self.db.execute(
            self._with_users(select(Message, stats.c.unread_count))
            .join(
                stats,
                and_(
                    Message.conversation_id == stats.c.conversation_id,
                    Message.created_at == stats.c.last_at,
                ),
            )
            .order_by(stats.c.last_at.desc())
        )

        summaries = []
        seen = set()
        for message, unread_count in result.all():
            # equal timestamps across processes could yield two rows per conversation
            if message.conversation_id in seen:
                continue
            seen.add(message.conversation_id)
            summaries.append((message, int(unread_count or 0)))
        return summaries
