import asyncio

import pytest
from starlette.websockets import WebSocketDisconnect

from app.utils.auth_utils import create_access_token
from conftest import auth
from skillconnect.db.database import BOOKINGS
from skillconnect.serialize import to_object_id

URL = "/api/v1/service-requests"


def _ws(client, user):
    return client.websocket_connect(f"/api/v1/ws?token={create_access_token(user)}")


@pytest.fixture
def booking(client, make_user, make_provider, post_request):
    requester, provider = make_user(), make_provider()
    request = post_request(requester)
    body = client.post(f"{URL}/{request['id']}/accept", headers=auth(provider)).json()
    return requester, provider, body["booking"]


def test_socket_rejects_missing_or_bad_token(client):
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect("/api/v1/ws"):
            pass
    assert exc.value.code == 1008

    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/api/v1/ws?token=garbage"):
            pass


def test_join_chat_returns_history(client, booking):
    requester, provider, b = booking
    client.post(f"/api/v1/chat/{b['id']}/messages", json={"text": "Hello there"}, headers=auth(requester))

    with _ws(client, provider) as ws:
        ws.send_json({"event": "join-chat", "data": {"booking_id": b["id"]}})
        reply = ws.receive_json()

    assert reply["event"] == "chat-history"
    assert [m["text"] for m in reply["data"]["messages"]] == ["Hello there"]


def test_outsider_cannot_join_or_send(client, booking, make_user):
    _, _, b = booking
    outsider = make_user()

    with _ws(client, outsider) as ws:
        ws.send_json({"event": "join-chat", "data": {"booking_id": b["id"]}})
        joined = ws.receive_json()
        ws.send_json({"event": "send-message", "data": {"booking_id": b["id"], "text": "let me in"}})
        sent = ws.receive_json()

    assert joined == {"event": "error", "data": {"message": "Not authorized"}}
    assert sent["event"] == "error"
    assert client.get(f"/api/v1/chat/{b['id']}/messages", headers=auth(outsider)).status_code == 403


def test_removed_participant_loses_room_access(client, db, booking, make_provider):
    requester, provider, b = booking
    replacement = make_provider()

    with _ws(client, requester) as ws_requester, _ws(client, provider) as ws_provider:
        for ws in (ws_requester, ws_provider):
            ws.send_json({"event": "join-chat", "data": {"booking_id": b["id"]}})
            assert ws.receive_json()["event"] == "chat-history"

        asyncio.run(
            db[BOOKINGS].update_one({"_id": to_object_id(b["id"])}, {"$set": {"provider": replacement["_id"]}})
        )

        ws_provider.send_json({"event": "send-message", "data": {"booking_id": b["id"], "text": "still here"}})
        assert ws_provider.receive_json() == {"event": "error", "data": {"message": "Not authorized"}}

        ws_requester.send_json({"event": "send-message", "data": {"booking_id": b["id"], "text": "private"}})
        assert ws_requester.receive_json()["event"] == "new-message"

        # The next frame on the stale socket is the join error, not the broadcast
        ws_provider.send_json({"event": "join-chat", "data": {"booking_id": b["id"]}})
        assert ws_provider.receive_json() == {"event": "error", "data": {"message": "Not authorized"}}

    assert client.get(f"/api/v1/chat/{b['id']}/messages", headers=auth(provider)).status_code == 403


def test_messages_reach_both_participants_in_room(client, booking):
    requester, provider, b = booking

    with _ws(client, requester) as ws_requester, _ws(client, provider) as ws_provider:
        for ws in (ws_requester, ws_provider):
            ws.send_json({"event": "join-chat", "data": {"booking_id": b["id"]}})
            assert ws.receive_json()["event"] == "chat-history"

        ws_requester.send_json({"event": "typing", "data": {"booking_id": b["id"]}})
        typing = ws_provider.receive_json()
        assert typing["event"] == "user-typing"
        assert typing["data"]["user_id"] == str(requester["_id"])

        ws_requester.send_json({"event": "send-message", "data": {"booking_id": b["id"], "text": "On my way?"}})
        for ws in (ws_requester, ws_provider):
            event = ws.receive_json()
            assert event["event"] == "new-message"
            assert event["data"]["text"] == "On my way?"
            assert event["data"]["status"] == "delivered"

        ws_provider.send_json({"event": "mark-seen", "data": {"booking_id": b["id"]}})
        seen = ws_requester.receive_json()
        assert seen["event"] == "messages-seen"
        assert seen["data"]["count"] == 1


def test_message_notification_when_not_in_room(client, booking):
    requester, provider, b = booking

    with _ws(client, provider) as ws_provider:
        response = client.post(f"/api/v1/chat/{b['id']}/messages", json={"text": "Are you free?"}, headers=auth(requester))
        assert response.status_code == 201
        event = ws_provider.receive_json()

    assert event["event"] == "message-notification"
    assert event["data"]["booking_id"] == b["id"]
    assert event["data"]["message"]["text"] == "Are you free?"


def test_live_request_updates(client, make_user, make_provider, post_request):
    requester, provider = make_user(), make_provider()
    request = post_request(requester)

    with _ws(client, requester) as ws:
        client.post(f"{URL}/{request['id']}/accept", headers=auth(provider))
        notification = ws.receive_json()
        update = ws.receive_json()

    assert notification["event"] == "new-notification"
    assert notification["data"]["title"] == "Request Accepted"
    assert update["event"] == "service-request-updated"
    assert update["data"]["status"] == "Assigned"


def test_chat_rest_list_and_seen(client, booking):
    requester, provider, b = booking
    client.post(f"/api/v1/chat/{b['id']}/messages", json={"text": "Hi"}, headers=auth(requester))
    client.post(f"/api/v1/chat/{b['id']}/messages", json={"text": "Still there?"}, headers=auth(requester))

    chats = client.get("/api/v1/chat/", headers=auth(provider)).json()["chats"]
    assert chats[0]["booking_id"] == b["id"]
    assert chats[0]["unread_count"] == 2
    assert chats[0]["last_message"]["text"] == "Still there?"

    assert client.put(f"/api/v1/chat/{b['id']}/seen", headers=auth(provider)).json()["updated"] == 2
    assert client.get("/api/v1/chat/", headers=auth(provider)).json()["chats"][0]["unread_count"] == 0

    empty = client.post(f"/api/v1/chat/{b['id']}/messages", json={"text": "   "}, headers=auth(requester))
    assert empty.status_code == 400
