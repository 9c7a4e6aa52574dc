from .base import Base
from .user import User, UserRole
from .message import Message, MessageType

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Message",
    "MessageType",
]
