"""Integration tests exercising the chat API via FastAPI's TestClient."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.config import get_settings
from app.core.security import create_access_token
from app.models import UserRole
from app.services import MESSAGE_POSTED, ROOM_CREATED, chat_event_hub


def auth_headers(user) -> dict[str, str]:
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def media_root(tmp_path, monkeypatch):
    monkeypatch.setattr(get_settings(), "media_root", tmp_path)
    return tmp_path


@pytest.fixture()
def captured_events(client):
    events: list[dict] = []

    async def capture(event: dict) -> None:
        events.append(event)

    client.portal.call(chat_event_hub.subscribe, ROOM_CREATED, capture)
    client.portal.call(chat_event_hub.subscribe, MESSAGE_POSTED, capture)
    yield events
    client.portal.call(chat_event_hub.unsubscribe, ROOM_CREATED, capture)
    client.portal.call(chat_event_hub.unsubscribe, MESSAGE_POSTED, capture)


def test_login_returns_bearer_token(client: TestClient, make_user):
    make_user("Alice Smith", email="Alice@Example.com")

    response = client.post(
        "/api/auth/login", json={"email": "alice@example.com", "password": "supersecret"}
    )
    assert response.status_code == 200, response.text
    token = response.json()["access_token"]

    rooms = client.get("/api/chat/rooms", headers={"Authorization": f"Bearer {token}"})
    assert rooms.status_code == 200

    bad = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "wrongpassword"})
    assert bad.status_code == 401


def test_chat_requires_authentication(client: TestClient):
    assert client.get("/api/chat/rooms").status_code == 401
    assert client.get("/api/chat/rooms", headers={"Authorization": "Bearer junk"}).status_code == 401


def test_hello_flow_materializes_one_room(client: TestClient, make_user, captured_events):
    alice = make_user("Alice Smith")
    bob = make_user("Bob Jones")

    listing = client.get("/api/chat/rooms", headers=auth_headers(alice)).json()
    assert listing["rooms"] == []
    virtual = [entry for entry in listing["conversations"] if entry["kind"] == "virtual"]
    assert [entry["partner"]["id"] for entry in virtual] == [bob.id]
    assert virtual[0]["room_id"] is None
    assert virtual[0]["unread_count"] == 0

    created = client.post(
        "/api/chat/rooms",
        json={"type": "direct", "user_ids": [bob.id]},
        headers=auth_headers(alice),
    )
    assert created.status_code == 201, created.text
    room_id = created.json()["id"]

    sent = client.post(
        f"/api/chat/rooms/{room_id}/messages",
        data={"message": "hello", "type": "text"},
        headers=auth_headers(alice),
    )
    assert sent.status_code == 201, sent.text
    assert sent.json()["message"] == "hello"

    reused = client.post(
        "/api/chat/rooms",
        json={"type": "direct", "user_ids": [alice.id]},
        headers=auth_headers(bob),
    )
    assert reused.status_code == 201
    assert reused.json()["id"] == room_id

    bob_rooms = client.get("/api/chat/rooms", headers=auth_headers(bob)).json()
    assert [room["id"] for room in bob_rooms["rooms"]] == [room_id]
    assert bob_rooms["rooms"][0]["display_name"] == "Alice Smith"
    assert bob_rooms["rooms"][0]["unread_count"] == 1
    assert bob_rooms["rooms"][0]["last_message"]["message"] == "hello"
    assert all(entry["kind"] == "room" for entry in bob_rooms["conversations"])

    types = [event["type"] for event in captured_events]
    assert types == [ROOM_CREATED, MESSAGE_POSTED]
    assert captured_events[1]["recipient_ids"] == [bob.id]


def test_viewing_marks_read_unless_opted_out(client: TestClient, make_user):
    alice = make_user("Alice Smith")
    bob = make_user("Bob Jones")
    room_id = client.post(
        "/api/chat/rooms", json={"type": "direct", "user_ids": [bob.id]}, headers=auth_headers(alice)
    ).json()["id"]
    for text in ("one", "two", "three"):
        client.post(
            f"/api/chat/rooms/{room_id}/messages",
            data={"message": text, "type": "text"},
            headers=auth_headers(alice),
        )

    peek = client.get(
        f"/api/chat/rooms/{room_id}/messages",
        params={"mark_read": "false"},
        headers=auth_headers(bob),
    )
    assert peek.status_code == 200
    body = peek.json()
    assert [message["message"] for message in body["messages"]] == ["one", "two", "three"]
    assert body["room"]["unread_count"] == 3

    marked = client.post(f"/api/chat/rooms/{room_id}/mark-read", headers=auth_headers(bob))
    assert marked.json() == {"success": True, "marked": 3}

    client.post(
        f"/api/chat/rooms/{room_id}/messages",
        data={"message": "four", "type": "text"},
        headers=auth_headers(alice),
    )
    viewed = client.get(f"/api/chat/rooms/{room_id}/messages", headers=auth_headers(bob)).json()
    assert viewed["room"]["unread_count"] == 0
    again = client.post(f"/api/chat/rooms/{room_id}/mark-read", headers=auth_headers(bob))
    assert again.json()["marked"] == 0


def test_room_access_errors(client: TestClient, make_user):
    alice = make_user("Alice Smith")
    bob = make_user("Bob Jones")
    outsider = make_user("Olivia Out")
    room_id = client.post(
        "/api/chat/rooms", json={"type": "direct", "user_ids": [bob.id]}, headers=auth_headers(alice)
    ).json()["id"]

    assert client.get(
        f"/api/chat/rooms/{room_id}/messages", headers=auth_headers(outsider)
    ).status_code == 403
    assert client.post(
        f"/api/chat/rooms/{room_id}/messages",
        data={"message": "hi", "type": "text"},
        headers=auth_headers(outsider),
    ).status_code == 403
    assert client.get("/api/chat/rooms/999/messages", headers=auth_headers(alice)).status_code == 404


def test_validation_errors(client: TestClient, make_user):
    alice = make_user("Alice Smith")
    bob = make_user("Bob Jones")
    room_id = client.post(
        "/api/chat/rooms", json={"type": "direct", "user_ids": [bob.id]}, headers=auth_headers(alice)
    ).json()["id"]

    empty = client.post(
        f"/api/chat/rooms/{room_id}/messages",
        data={"message": "   ", "type": "text"},
        headers=auth_headers(alice),
    )
    assert empty.status_code == 422

    too_long = client.post(
        f"/api/chat/rooms/{room_id}/messages",
        data={"message": "x" * 5001, "type": "text"},
        headers=auth_headers(alice),
    )
    assert too_long.status_code == 422

    with_self = client.post(
        "/api/chat/rooms", json={"type": "direct", "user_ids": [alice.id]}, headers=auth_headers(alice)
    )
    assert with_self.status_code == 422

    two_targets = client.post(
        "/api/chat/rooms",
        json={"type": "direct", "user_ids": [bob.id, 99]},
        headers=auth_headers(alice),
    )
    assert two_targets.status_code == 422

    blank_group = client.post(
        "/api/chat/rooms",
        json={"type": "group", "name": " ", "user_ids": [bob.id]},
        headers=auth_headers(alice),
    )
    assert blank_group.status_code == 422


def test_group_name_limit_follows_settings(client: TestClient, make_user, monkeypatch):
    alice = make_user("Alice Smith")
    bob = make_user("Bob Jones")

    def create(name: str):
        return client.post(
            "/api/chat/rooms",
            json={"type": "group", "name": name, "user_ids": [bob.id]},
            headers=auth_headers(alice),
        )

    assert create("x" * 256).status_code == 422
    assert create("x" * 255).status_code == 201

    monkeypatch.setattr(get_settings(), "chat_group_name_max_length", 12)
    assert create("Release team").status_code == 201
    assert create("Release team!").status_code == 422


def test_group_room_and_mentions(client: TestClient, make_user, captured_events):
    alice = make_user("Alice Smith")
    bob = make_user("Bob Jones")
    carol = make_user("Carol White", UserRole.MANAGER)

    response = client.post(
        "/api/chat/rooms",
        json={"type": "group", "name": "Launch", "user_ids": [bob.id, carol.id], "project_id": 7},
        headers=auth_headers(alice),
    )
    assert response.status_code == 201, response.text
    room = response.json()
    assert room["display_name"] == "Launch"
    assert room["project_id"] == 7
    assert {member["id"] for member in room["members"]} == {alice.id, bob.id, carol.id}

    sent = client.post(
        f"/api/chat/rooms/{room['id']}/messages",
        data={"message": "@carol and @bob please review", "type": "text"},
        headers=auth_headers(alice),
    )
    assert sent.json()["mentions"] == [carol.id, bob.id]
    posted = captured_events[-1]
    assert posted["mentioned_ids"] == [carol.id, bob.id]
    assert posted["recipient_ids"] == sorted([bob.id, carol.id])

    listing = client.get("/api/chat/rooms", headers=auth_headers(bob)).json()
    assert [message["message"] for message in listing["recentByUser"][str(alice.id)]] == [
        "@carol and @bob please review"
    ]


def test_file_upload(client: TestClient, make_user, media_root):
    alice = make_user("Alice Smith")
    bob = make_user("Bob Jones")
    room_id = client.post(
        "/api/chat/rooms", json={"type": "direct", "user_ids": [bob.id]}, headers=auth_headers(alice)
    ).json()["id"]

    response = client.post(
        f"/api/chat/rooms/{room_id}/messages",
        data={"message": "diagram.png", "type": "image"},
        files={"file": ("diagram.png", b"\x89PNG fake", "image/png")},
        headers=auth_headers(alice),
    )
    assert response.status_code == 201, response.text
    message = response.json()
    assert message["type"] == "image"
    assert message["file_name"] == "diagram.png"
    assert message["file_size"] == 9
    assert message["file_url"].startswith(f"/storage/chat-files/room_{room_id}/")
    assert (media_root / message["file_path"]).read_bytes() == b"\x89PNG fake"


def test_oversized_upload_is_rejected_and_removed(client: TestClient, make_user, media_root, monkeypatch):
    monkeypatch.setattr(get_settings(), "chat_max_file_size", 4)
    alice = make_user("Alice Smith")
    bob = make_user("Bob Jones")
    room_id = client.post(
        "/api/chat/rooms", json={"type": "direct", "user_ids": [bob.id]}, headers=auth_headers(alice)
    ).json()["id"]

    response = client.post(
        f"/api/chat/rooms/{room_id}/messages",
        data={"type": "file"},
        files={"file": ("big.bin", b"0123456789", "application/octet-stream")},
        headers=auth_headers(alice),
    )
    assert response.status_code == 413
    assert list((media_root / "chat-files" / f"room_{room_id}").iterdir()) == []


def test_presence_and_team_members(client: TestClient, make_user):
    alice = make_user("Alice Smith")
    bob = make_user("Bob Jones", UserRole.MANAGER)
    client_user = make_user("Client Corp", UserRole.CLIENT)

    assert client.post(
        "/api/chat/online-status", json={"is_online": True}, headers=auth_headers(alice)
    ).json() == {"success": True}
    client.post("/api/chat/online-status", json={"is_online": True}, headers=auth_headers(bob))
    client.post("/api/chat/online-status", json={"is_online": False}, headers=auth_headers(bob))

    online = client.get("/api/chat/online-users", headers=auth_headers(bob)).json()
    assert [user["id"] for user in online] == [alice.id]
    assert online[0]["last_seen_at"] is not None

    members = client.get("/api/chat/team-members", headers=auth_headers(client_user)).json()
    assert [member["id"] for member in members] == [bob.id]
    assert members[0]["role"] == "manager"

    contributor_view = client.get("/api/chat/team-members", headers=auth_headers(alice)).json()
    assert client_user.id not in {member["id"] for member in contributor_view}


def test_health_and_metrics(client: TestClient, make_user):
    alice = make_user("Alice Smith")
    bob = make_user("Bob Jones")
    client.post("/api/chat/rooms", json={"type": "direct", "user_ids": [bob.id]}, headers=auth_headers(alice))

    assert client.get("/health").json()["status"] == "ok"
    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    assert 'chat_rooms_created_total{type="direct"}' in metrics.text
    assert "chat_direct_room_races_total" in metrics.text
