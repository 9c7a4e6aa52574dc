"""
Real-time gateway.

Routes the socket events of an authenticated connection to the message
store and fans the results out through rooms. Each connection feeds its
events through ``handle_raw`` one at a time; many connections run
concurrently. Handler failures are reported to the originating connection
as ``message:error`` and never escape the gateway.
"""

import json
import logging
from typing import Any, Optional

from fastapi import WebSocket
from pydantic import ValidationError as PayloadValidationError

from app.clock import utcnow
from app.conversations import conversation_participants, is_participant, other_participant
from app.database import AsyncSessionLocal
from app.exceptions import AuthorizationError, DomainException
from app.models.message import Message
from app.models.user import User
from app.presence import PresenceRegistry, presence
from app.schemas.message import ConversationRef, MarkRead, SendMessageWebSocket, serialize_message
from app.services.message_service import MessageService
from app.websocket_manager import Connection, ConnectionManager, manager

logger = logging.getLogger(__name__)

NOTIFICATION_PREVIEW_LENGTH = 100

FAILURE_MESSAGES = {
    "message:send": "Failed to send message",
    "message:read": "Failed to mark messages as read",
    "join:conversation": "Failed to join conversation",
}


class RealtimeGateway:
    def __init__(
        self,
        connections: ConnectionManager,
        registry: PresenceRegistry,
        session_factory=AsyncSessionLocal,
    ):
        self.connections = connections
        self.presence = registry
        self.session_factory = session_factory
        self._handlers = {
            "message:send": self.handle_send,
            "message:read": self.handle_read,
            "join:conversation": self.handle_join,
            "leave:conversation": self.handle_leave,
            "typing:start": self.handle_typing_start,
            "typing:stop": self.handle_typing_stop,
            "users:get-online": self.handle_get_online,
            "ping": self.handle_ping,
        }

    # connection lifecycle

    async def connect(self, websocket: WebSocket, user: User) -> Connection:
        await websocket.accept()
        connection = Connection(websocket, user)
        self.connections.add(connection)
        self.presence.register(user.id, connection)
        self.connections.join(user.id, connection)
        logger.info("User %s connected (%s)", user.id, connection.id)

        await self.connections.broadcast("user:online", _user_status(connection), exclude=connection)
        return connection

    async def disconnect(self, connection: Connection) -> None:
        connection.closed = True
        self.connections.remove(connection)
        removed = self.presence.unregister(connection.user_id, connection)
        logger.info("User %s disconnected (%s)", connection.user_id, connection.id)

        if removed:
            await self.connections.broadcast("user:offline", _user_status(connection))

    # inbound events

    async def handle_raw(self, connection: Connection, raw: str) -> None:
        try:
            envelope = json.loads(raw)
        except (TypeError, ValueError):
            await connection.send("message:error", {"error": "Invalid JSON format"})
            return

        if not isinstance(envelope, dict) or not isinstance(envelope.get("event"), str):
            await connection.send("message:error", {"error": "Event name is required"})
            return

        await self.dispatch(connection, envelope["event"], envelope.get("data"))

    async def dispatch(self, connection: Connection, event: str, data: Any = None) -> None:
        handler = self._handlers.get(event)
        if handler is None:
            await self._send_error(connection, event, f"Unknown event: {event}", data)
            return

        try:
            await handler(connection, data)
        except DomainException as exc:
            await self._send_error(connection, event, exc.message, data)
        except PayloadValidationError:
            await self._send_error(connection, event, "Invalid payload", data)
        except Exception:
            logger.exception("Unhandled error in %s for user %s", event, connection.user_id)
            await self._send_error(
                connection, event, FAILURE_MESSAGES.get(event, "Failed to process event"), data
            )

    async def handle_send(self, connection: Connection, data: Any) -> None:
        payload = SendMessageWebSocket.model_validate(data or {})
        async with self.session_factory() as db:
            message = await MessageService(db).append(
                sender_id=connection.user_id,
                receiver_id=payload.receiver_id,
                content=payload.content,
                message_type=payload.message_type,
                file_name=payload.file_name,
                file_url=payload.file_url,
            )

        message_data = await self.deliver_message(message, sender_connection=connection)
        await connection.send("message:sent", {"tempId": payload.temp_id, "message": message_data})

    async def handle_read(self, connection: Connection, data: Any) -> None:
        payload = MarkRead.model_validate(data or {})
        async with self.session_factory() as db:
            count = await MessageService(db).mark_read(
                connection.user_id,
                conversation_id=payload.conversation_id,
                message_ids=payload.message_ids,
            )

        if payload.conversation_id:
            await self.push_read_receipt(payload.conversation_id, connection.user_id, count)

        await connection.send("message:marked-read", {
            "conversationId": payload.conversation_id,
            "messageIds": payload.message_ids,
            "count": count,
        })

    async def handle_join(self, connection: Connection, data: Any) -> None:
        value = _conversation_from(data)
        conversation_participants(value)
        if not is_participant(value, connection.user_id):
            raise AuthorizationError("Conversation not found or access denied")
        self.connections.join(value, connection)
        logger.debug("User %s joined conversation %s", connection.user_id, value)

    async def handle_leave(self, connection: Connection, data: Any) -> None:
        value = _conversation_from(data)
        self.connections.leave(value, connection)
        logger.debug("User %s left conversation %s", connection.user_id, value)

    async def handle_typing_start(self, connection: Connection, data: Any) -> None:
        value = self._typing_target(connection, data)
        if value is None:
            return
        await self.connections.emit(value, "typing:user-typing", {
            "userId": connection.user_id,
            "userName": connection.user_name,
            "conversationId": value,
        }, exclude=connection)

    async def handle_typing_stop(self, connection: Connection, data: Any) -> None:
        value = self._typing_target(connection, data)
        if value is None:
            return
        await self.connections.emit(value, "typing:user-stopped", {
            "userId": connection.user_id,
            "conversationId": value,
        }, exclude=connection)

    async def handle_get_online(self, connection: Connection, data: Any = None) -> None:
        await connection.send("users:online-list", sorted(self.presence.list_online()))

    async def handle_ping(self, connection: Connection, data: Any = None) -> None:
        await connection.send("pong", {"timestamp": utcnow().isoformat()})

    # outbound fan-out, shared with the REST routes

    async def deliver_message(self, message: Message, sender_connection: Optional[Connection] = None) -> dict:
        """Push a stored message to the conversation room and notify the receiver.

        An online receiver is subscribed to the conversation room first, so
        it gets ``message:new`` exactly once. The sending connection is left
        out; it gets ``message:sent`` instead.
        """
        message_data = serialize_message(message)
        room = message.conversation_id

        receiver_connection = self.presence.lookup(message.receiver_id)
        if receiver_connection is not None and not receiver_connection.closed:
            self.connections.join(room, receiver_connection)

        await self.connections.emit(room, "message:new", message_data, exclude=sender_connection)
        await self.connections.emit(message.receiver_id, "notification:new-message", {
            "senderId": message.sender_id,
            "senderName": message.sender.name if message.sender is not None else None,
            "content": message.content[:NOTIFICATION_PREVIEW_LENGTH],
            "conversationId": room,
        })
        return message_data

    async def push_read_receipt(self, conversation_id: str, reader_id: str, count: int) -> int:
        """Tell the other participant that ``reader_id`` read ``count`` messages.

        None of the reader's own connections get the receipt, whichever
        channel the read came through.
        """
        other_user_id = other_participant(conversation_id, reader_id)
        return await self.connections.emit(
            [conversation_id, other_user_id],
            "message:read-receipt",
            {"conversationId": conversation_id, "readByUserId": reader_id, "readCount": count},
            exclude_user=reader_id,
        )

    def _typing_target(self, connection: Connection, data: Any) -> Optional[str]:
        value = _conversation_from(data)
        if not is_participant(value, connection.user_id):
            logger.debug("Ignoring typing event from %s for %s", connection.user_id, value)
            return None
        return value

    async def _send_error(self, connection: Connection, event: str, error: str, data: Any) -> None:
        payload = {"error": error, "event": event}
        if isinstance(data, dict) and "tempId" in data:
            payload["tempId"] = data["tempId"]
        await connection.send("message:error", payload)


def _conversation_from(data: Any) -> str:
    if isinstance(data, str):
        return data
    return ConversationRef.model_validate(data or {}).conversation_id


def _user_status(connection: Connection) -> dict:
    return {
        "userId": connection.user_id,
        "name": connection.user_name,
        "role": connection.user_role,
    }


gateway = RealtimeGateway(manager, presence)
