import pytest
from starlette.websockets import WebSocketDisconnect

from app.conversations import conversation_id

from conftest import auth_headers, ws_url


def _online_list(websocket):
    websocket.send_json({"event": "users:get-online"})
    reply = websocket.receive_json()
    assert reply["event"] == "users:online-list"
    return reply["data"]


async def test_connection_without_token_is_rejected(client):
    with pytest.raises(WebSocketDisconnect) as excinfo:
        with client.websocket_connect("/api/v1/ws/chat"):
            pass
    assert excinfo.value.code == 1008


async def test_connection_with_bad_token_is_rejected(client):
    with pytest.raises(WebSocketDisconnect) as excinfo:
        with client.websocket_connect("/api/v1/ws/chat?token=garbage"):
            pass
    assert excinfo.value.code == 1008


async def test_inactive_user_is_rejected(client, make_user):
    gone = await make_user("Gone", active=False)

    with pytest.raises(WebSocketDisconnect) as excinfo:
        with client.websocket_connect(ws_url(gone)):
            pass
    assert excinfo.value.code == 1008


async def test_bearer_header_is_accepted(client, make_user):
    alice = await make_user("Alice")

    with client.websocket_connect("/api/v1/ws/chat", headers=auth_headers(alice)) as websocket:
        assert alice.id in _online_list(websocket)


async def test_online_conversation_end_to_end(client, make_user):
    alice, bob = await make_user("Alice"), await make_user("Bob")
    value = conversation_id(alice.id, bob.id)

    with client.websocket_connect(ws_url(alice)) as ws_alice:
        _online_list(ws_alice)

        with client.websocket_connect(ws_url(bob)) as ws_bob:
            announced = ws_alice.receive_json()
            assert announced == {
                "event": "user:online",
                "data": {"userId": bob.id, "name": "Bob", "role": "client"},
            }
            assert {alice.id, bob.id} <= set(_online_list(ws_bob))

            ws_alice.send_json({
                "event": "message:send",
                "data": {"receiverId": bob.id, "content": "Hi Bob", "tempId": "tmp-1"},
            })

            new_message = ws_bob.receive_json()
            assert new_message["event"] == "message:new"
            assert new_message["data"]["content"] == "Hi Bob"
            assert new_message["data"]["conversationId"] == value
            notification = ws_bob.receive_json()
            assert notification["event"] == "notification:new-message"
            assert notification["data"]["senderName"] == "Alice"

            sent = ws_alice.receive_json()
            assert sent["event"] == "message:sent"
            assert sent["data"]["tempId"] == "tmp-1"
            assert sent["data"]["message"]["id"] == new_message["data"]["id"]

            ws_bob.send_json({"event": "message:read", "data": {"conversationId": value}})
            receipt = ws_alice.receive_json()
            assert receipt == {
                "event": "message:read-receipt",
                "data": {"conversationId": value, "readByUserId": bob.id, "readCount": 1},
            }
            marked = ws_bob.receive_json()
            assert marked["event"] == "message:marked-read"
            assert marked["data"]["count"] == 1

        offline = ws_alice.receive_json()
        assert offline["event"] == "user:offline"
        assert offline["data"]["userId"] == bob.id
        online = _online_list(ws_alice)
        assert alice.id in online
        assert bob.id not in online


async def test_rest_send_reaches_live_receiver(client, make_user):
    alice, bob = await make_user("Alice"), await make_user("Bob")

    with client.websocket_connect(ws_url(bob)) as ws_bob:
        _online_list(ws_bob)

        response = client.post(
            "/api/v1/messages/send",
            json={"receiverId": bob.id, "content": "sent over REST"},
            headers=auth_headers(alice),
        )
        assert response.status_code == 201

        new_message = ws_bob.receive_json()
        assert new_message["event"] == "message:new"
        assert new_message["data"]["id"] == response.json()["data"]["id"]
        assert ws_bob.receive_json()["event"] == "notification:new-message"


async def test_errors_stay_on_the_connection(client, make_user):
    alice = await make_user("Alice")

    with client.websocket_connect(ws_url(alice)) as websocket:
        websocket.send_text("not json")
        assert websocket.receive_json()["data"]["error"] == "Invalid JSON format"

        websocket.send_json({"event": "message:send", "data": {"receiverId": alice.id, "content": "me"}})
        assert websocket.receive_json()["data"]["error"] == "Cannot send a message to yourself"

        websocket.send_json({"event": "ping"})
        assert websocket.receive_json()["event"] == "pong"


async def test_binary_frames_do_not_drop_the_socket(client, make_user):
    alice = await make_user("Alice")

    with client.websocket_connect(ws_url(alice)) as websocket:
        websocket.send_bytes(b"\x00\x01")
        error = websocket.receive_json()
        assert error["event"] == "message:error"
        assert error["data"]["error"] == "Invalid JSON format"

        websocket.send_bytes(b'{"event": "ping"}')
        assert websocket.receive_json()["event"] == "pong"

        websocket.send_json({"event": "ping"})
        assert websocket.receive_json()["event"] == "pong"

    data = client.get("/api/v1/ws/online-users").json()["data"]
    assert alice.id not in data["onlineUsers"]


async def test_online_users_endpoint(client, make_user):
    alice = await make_user("Alice")

    with client.websocket_connect(ws_url(alice)) as websocket:
        _online_list(websocket)
        data = client.get("/api/v1/ws/online-users").json()["data"]
        assert alice.id in data["onlineUsers"]
        assert data["count"] == len(data["onlineUsers"])

    data = client.get("/api/v1/ws/online-users").json()["data"]
    assert alice.id not in data["onlineUsers"]


async def test_rest_fetch_does_not_echo_receipt_to_reader(client, make_user):
    alice, bob = await make_user("Alice"), await make_user("Bob")
    value = conversation_id(alice.id, bob.id)
    client.post(
        "/api/v1/messages/send",
        json={"receiverId": bob.id, "content": "please confirm"},
        headers=auth_headers(alice),
    )

    with client.websocket_connect(ws_url(bob)) as ws_bob:
        ws_bob.send_json({"event": "join:conversation", "data": {"conversationId": value}})
        _online_list(ws_bob)

        fetched = client.get(f"/api/v1/messages/conversation/{value}", headers=auth_headers(bob))
        assert fetched.json()["data"][0]["read"] is True

        ws_bob.send_json({"event": "ping"})
        assert ws_bob.receive_json()["event"] == "pong"
