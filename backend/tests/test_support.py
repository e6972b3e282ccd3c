import uuid

import pytest

from auracargo.core.errors import ConflictError, NotFoundError, ValidationError
from auracargo.models.notification import Notification
from auracargo.models.profile import ProfileRole
from auracargo.models.support import ConversationStatus
from auracargo.services import support as support_service
from auracargo.services.support import GUEST_CONVERSATION_TITLE, Perspective


def test_guest_conversation_and_admin_reply(client, admin):
    resp = client.post(
        "/support/guest/conversations",
        json={"guest_name": "Ann", "guest_email": "ann@x.io", "content": "Hi"},
    )
    assert resp.status_code == 201, resp.text
    conversation = resp.json()
    assert conversation["user_id"] is None
    assert conversation["title"] == GUEST_CONVERSATION_TITLE
    assert conversation["unread_for_admin"] == 1

    reply = client.post(
        f"/admin/support/conversations/{conversation['id']}/messages",
        json={"content": "Hello Ann, how can we help?"},
        headers=admin["headers"],
    )
    assert reply.status_code == 201

    messages = client.get(
        f"/support/guest/conversations/{conversation['id']}/messages",
        params={"guest_email": "ann@x.io"},
    ).json()
    assert [m["is_admin"] for m in messages] == [False, True]
    assert messages[0]["sender_label"] == "Ann"
    # Opening the thread as the guest marks the admin reply read
    assert messages[1]["read_by_customer"] is True
    assert messages[1]["read"] is True


def test_guest_needs_matching_email(client):
    conversation = client.post(
        "/support/guest/conversations",
        json={"guest_email": "ann@x.io", "content": "Hi"},
    ).json()
    resp = client.get(
        f"/support/guest/conversations/{conversation['id']}/messages",
        params={"guest_email": "eve@x.io"},
    )
    assert resp.status_code == 404


def test_guest_requires_email(db):
    with pytest.raises(ValidationError):
        support_service.create_conversation(db, None, "Hi")


def test_updated_at_follows_latest_message(db, make_profile):
    user = make_profile()
    conversation = support_service.create_conversation(db, "Billing", "First", user=user)
    message = support_service.append_message(db, conversation.id, "Second", is_admin=False, sender=user)
    db.refresh(conversation)
    assert conversation.updated_at >= conversation.created_at
    assert conversation.updated_at == message.created_at


def test_read_flags_are_per_perspective(db, make_profile):
    user = make_profile()
    staff = make_profile("staff@auracargo.com", role=ProfileRole.STAFF)
    conversation = support_service.create_conversation(db, "Damaged box", "It arrived crushed", user=user)
    support_service.append_message(db, conversation.id, "Sorry to hear that", is_admin=True, sender=staff)

    counts = support_service.unread_counts(db, [conversation.id])[conversation.id]
    assert counts == {"customer": 1, "admin": 1}

    assert support_service.mark_read(db, conversation.id, Perspective.ADMIN) == 1
    counts = support_service.unread_counts(db, [conversation.id])[conversation.id]
    assert counts == {"customer": 1, "admin": 0}

    # Admin reading does not mark the reply as seen by the customer
    reply = support_service.list_messages(db, conversation.id)[-1]
    assert reply.read_by_customer is False
    assert reply.read is False


def test_admin_reply_notifies_owner(db, make_profile):
    user = make_profile()
    staff = make_profile("staff@auracargo.com", role=ProfileRole.STAFF)
    conversation = support_service.create_conversation(db, "Where is it?", "Tracking?", user=user)
    support_service.append_message(db, conversation.id, "On its way", is_admin=True, sender=staff)
    titles = [n.title for n in db.query(Notification).filter(Notification.user_id == user.id)]
    assert titles == ["New support reply"]


def test_closed_conversation_rejects_messages(db, make_profile):
    user = make_profile()
    conversation = support_service.create_conversation(db, "Done", "Thanks", user=user)
    support_service.set_status(db, conversation.id, ConversationStatus.CLOSED)
    with pytest.raises(ConflictError):
        support_service.append_message(db, conversation.id, "One more thing", is_admin=False, sender=user)


def test_missing_conversation(db):
    with pytest.raises(NotFoundError):
        support_service.append_message(db, uuid.uuid4(), "hello", is_admin=False)


def test_customer_flow_and_admin_close(client, customer, admin):
    created = client.post(
        "/support/conversations",
        json={"title": "Invoice", "content": "Wrong amount"},
        headers=customer["headers"],
    )
    assert created.status_code == 201
    conversation_id = created.json()["id"]

    listed = client.get("/admin/support/conversations", params={"status": "open"}, headers=admin["headers"]).json()
    assert [c["id"] for c in listed] == [conversation_id]

    closed = client.post(
        f"/admin/support/conversations/{conversation_id}/close", headers=admin["headers"]
    )
    assert closed.json()["status"] == "closed"

    resp = client.post(
        f"/support/conversations/{conversation_id}/messages",
        json={"content": "Hello?"},
        headers=customer["headers"],
    )
    assert resp.status_code == 409

    client.post(f"/admin/support/conversations/{conversation_id}/reopen", headers=admin["headers"])
    resp = client.post(
        f"/support/conversations/{conversation_id}/messages",
        json={"content": "Hello?"},
        headers=customer["headers"],
    )
    assert resp.status_code == 201
