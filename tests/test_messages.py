"""
test_messages.py
-----------------

Message history, sending, editing, deletion and reactions.
"""

import uuid

import pytest

from talkify.database.models import Message
from tests.conftest import as_user


@pytest.fixture
def alice(make_user):
    return make_user("alice")


@pytest.fixture
def bob(make_user):
    return make_user("bob")


@pytest.fixture
def conversation(client, alice, bob):
    response = client.post("/api/conversations", headers=as_user(alice), json={"user_ids": [bob["id"]]})
    return response.json()


@pytest.fixture
def url(conversation):
    return f"/api/messages/{conversation['id']}"


def send(client, url, user, content, **extra):
    response = client.post(url, headers=as_user(user), json={"content": content, **extra})
    assert response.status_code == 201, response.text
    return response.json()


def test_send_message(client, url, alice, conversation):
    message = send(client, url, alice, "Hello Bob")
    assert message["content"] == "Hello Bob"
    assert message["type"] == "text"
    assert message["sender_id"] == alice["id"]
    assert message["sender_username"] == "alice"
    assert message["conversation_id"] == conversation["id"]
    assert message["is_edited"] is False
    assert message["reactions"] == []


def test_content_is_encrypted_at_rest(client, url, alice, session, encryptor):
    message = send(client, url, alice, "top secret")
    row = session.get(Message, uuid.UUID(message["id"]))
    assert row.content != "top secret"
    assert encryptor.decrypt_string(row.content) == "top secret"


def test_media_message(client, url, alice):
    message = send(
        client, url, alice, "", type="image",
        media_url="https://cdn.test/cat.png", media_size=2048,
    )
    assert message["type"] == "image"
    assert message["media_url"] == "https://cdn.test/cat.png"
    assert message["media_size"] == 2048


def test_reply(client, url, alice, bob):
    original = send(client, url, alice, "question?")
    reply = send(client, url, bob, "answer", reply_to_id=original["id"])
    assert reply["reply_to_id"] == original["id"]

    response = client.post(
        url, headers=as_user(bob), json={"content": "lost", "reply_to_id": str(uuid.uuid4())}
    )
    assert response.status_code == 404


def test_send_to_unknown_conversation(client, alice):
    response = client.post(f"/api/messages/{uuid.uuid4()}", headers=as_user(alice), json={"content": "hi"})
    assert response.status_code == 404


def test_send_requires_acting_user(client, url):
    assert client.post(url, json={"content": "hi"}).status_code == 401


def test_invalid_message_type(client, url, alice):
    response = client.post(url, headers=as_user(alice), json={"content": "x", "type": "hologram"})
    assert response.status_code == 422


# -------------------------
# History
# -------------------------
def test_history_is_oldest_first(client, url, alice, bob):
    for i in range(5):
        send(client, url, alice if i % 2 == 0 else bob, f"m{i}")

    history = client.get(url, headers=as_user(bob)).json()
    assert [m["content"] for m in history] == ["m0", "m1", "m2", "m3", "m4"]


def test_history_limit_returns_newest(client, url, alice):
    for i in range(5):
        send(client, url, alice, f"m{i}")

    history = client.get(url, headers=as_user(alice), params={"limit": 2}).json()
    assert [m["content"] for m in history] == ["m3", "m4"]


def test_history_before(client, url, alice):
    sent = [send(client, url, alice, f"m{i}") for i in range(4)]

    history = client.get(url, headers=as_user(alice), params={"before": sent[2]["created_at"]}).json()
    assert [m["content"] for m in history] == ["m0", "m1"]


@pytest.mark.parametrize("limit", [0, 201])
def test_history_limit_bounds(client, url, alice, limit):
    assert client.get(url, headers=as_user(alice), params={"limit": limit}).status_code == 422


# -------------------------
# Edit / delete
# -------------------------
def test_edit_own_message(client, url, alice, session, encryptor):
    message = send(client, url, alice, "typo")
    response = client.put(f"{url}/{message['id']}", headers=as_user(alice), json={"content": "fixed"})
    assert response.status_code == 200
    assert response.json()["content"] == "fixed"
    assert response.json()["is_edited"] is True

    row = session.get(Message, uuid.UUID(message["id"]))
    assert encryptor.decrypt_string(row.content) == "fixed"


def test_cannot_edit_someone_elses_message(client, url, alice, bob):
    message = send(client, url, alice, "mine")
    response = client.put(f"{url}/{message['id']}", headers=as_user(bob), json={"content": "hacked"})
    assert response.status_code == 403


def test_edit_unknown_message(client, url, alice):
    response = client.put(f"{url}/{uuid.uuid4()}", headers=as_user(alice), json={"content": "x"})
    assert response.status_code == 404


def test_soft_delete(client, url, alice, bob):
    message = send(client, url, alice, "regret")

    assert client.delete(f"{url}/{message['id']}", headers=as_user(bob)).status_code == 403
    assert client.delete(f"{url}/{message['id']}", headers=as_user(alice)).status_code == 204

    history = client.get(url, headers=as_user(bob)).json()
    assert len(history) == 1
    assert history[0]["is_deleted"] is True
    assert history[0]["content"] == ""


def test_deleted_message_cannot_be_edited(client, url, alice, session):
    message = send(client, url, alice, "gone")
    assert client.delete(f"{url}/{message['id']}", headers=as_user(alice)).status_code == 204

    response = client.put(f"{url}/{message['id']}", headers=as_user(alice), json={"content": "back again"})
    assert response.status_code == 404

    row = session.get(Message, uuid.UUID(message["id"]))
    assert row.is_deleted is True
    assert row.content == ""
    assert row.is_edited is False


def test_deleting_twice(client, url, alice):
    message = send(client, url, alice, "once")
    assert client.delete(f"{url}/{message['id']}", headers=as_user(alice)).status_code == 204
    assert client.delete(f"{url}/{message['id']}", headers=as_user(alice)).status_code == 404


def test_deleted_messages_are_not_unread(client, url, alice, bob, conversation):
    message = send(client, url, alice, "oops")
    client.delete(f"{url}/{message['id']}", headers=as_user(alice))

    listed = client.get(f"/api/conversations/{conversation['id']}", headers=as_user(bob)).json()
    assert listed["unread_count"] == 0


# -------------------------
# Reactions
# -------------------------
def test_reactions(client, url, alice, bob):
    message = send(client, url, alice, "good news")
    reactions_url = f"{url}/{message['id']}/reactions"

    response = client.post(reactions_url, headers=as_user(bob), json={"emoji": "🎉"})
    assert response.status_code == 201
    assert response.json()["user_id"] == bob["id"]

    assert client.post(reactions_url, headers=as_user(bob), json={"emoji": "🎉"}).status_code == 409
    assert client.post(reactions_url, headers=as_user(alice), json={"emoji": "🎉"}).status_code == 201

    history = client.get(url, headers=as_user(alice)).json()
    assert sorted(r["user_id"] for r in history[0]["reactions"]) == sorted([alice["id"], bob["id"]])

    assert client.delete(f"{reactions_url}/🎉", headers=as_user(bob)).status_code == 204
    assert client.delete(f"{reactions_url}/🎉", headers=as_user(bob)).status_code == 404

    history = client.get(url, headers=as_user(alice)).json()
    assert [r["user_id"] for r in history[0]["reactions"]] == [alice["id"]]


def test_reaction_on_message_from_other_conversation(client, url, alice, make_user):
    carol = make_user("carol")
    other = client.post("/api/conversations", headers=as_user(alice), json={"user_ids": [carol["id"]]}).json()
    message = send(client, f"/api/messages/{other['id']}", alice, "elsewhere")

    response = client.post(f"{url}/{message['id']}/reactions", headers=as_user(alice), json={"emoji": "👍"})
    assert response.status_code == 404
