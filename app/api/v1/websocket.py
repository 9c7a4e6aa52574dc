import logging
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from app.auth import get_user_from_token
from app.exceptions import AuthenticationError
from app.gateway import gateway
from app.schemas.base import success_response

logger = logging.getLogger(__name__)

router = APIRouter()


def extract_token(websocket: WebSocket, token: Optional[str]) -> Optional[str]:
    """Handshake token: ``?token=`` first, then ``Authorization: Bearer``."""
    if token:
        return token
    authorization = websocket.headers.get("authorization")
    if authorization:
        scheme, _, value = authorization.partition(" ")
        if scheme.lower() == "bearer" and value:
            return value.strip()
    return None


def frame_text(frame: dict) -> Optional[str]:
    # binary frames are accepted if they carry UTF-8 JSON
    if frame.get("text") is not None:
        return frame["text"]
    if frame.get("bytes") is not None:
        return frame["bytes"].decode("utf-8", errors="replace")
    return None


@router.websocket("/chat")
async def websocket_chat(websocket: WebSocket, token: Optional[str] = None):
    try:
        async with gateway.session_factory() as db:
            user = await get_user_from_token(extract_token(websocket, token), db)
    except AuthenticationError as exc:
        logger.info("Rejected socket connection: %s", exc.message)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=exc.message)
        return

    connection = await gateway.connect(websocket, user)
    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                break
            await gateway.handle_raw(connection, frame_text(frame))
    except WebSocketDisconnect:
        pass
    finally:
        await gateway.disconnect(connection)


@router.get("/online-users")
async def get_online_users():
    """Users with a live socket on this process."""
    online_users = sorted(gateway.presence.list_online())
    return success_response(
        {"onlineUsers": online_users, "count": len(online_users)},
        "Online users retrieved successfully",
    )
