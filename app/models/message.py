from sqlalchemy import Column, ForeignKey, Text, DateTime, Boolean, String, Enum, Index
from sqlalchemy.orm import relationship
from enum import Enum as PyEnum
from .base import BaseModel

# counted in UTF-16 code units, the way browser clients count
MAX_CONTENT_LENGTH = 1000

class MessageType(str, PyEnum):
    TEXT = "text"
    FILE = "file"
    IMAGE = "image"

class Message(BaseModel):
    __tablename__ = "messages"
    
    sender_id = Column(String(32), ForeignKey("users.id"), nullable=False, index=True)
    receiver_id = Column(String(32), ForeignKey("users.id"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    message_type = Column(
        Enum(MessageType, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=MessageType.TEXT,
    )
    file_name = Column(String(255), nullable=True)
    file_url = Column(String(1000), nullable=True)
    conversation_id = Column(String(65), nullable=False, index=True)
    read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime, nullable=True)
    
    # relationships
    sender = relationship("User", foreign_keys=[sender_id], lazy="raise")
    receiver = relationship("User", foreign_keys=[receiver_id], lazy="raise")

    __table_args__ = (
        Index("ix_messages_conversation_created", "conversation_id", "created_at"),
        Index("ix_messages_receiver_read", "receiver_id", "read"),
    )


def content_length(content: str) -> int:
    """Length in UTF-16 code units: characters outside the BMP count twice."""
    return len(content.encode("utf-16-le", errors="surrogatepass")) // 2
