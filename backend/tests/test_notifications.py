import uuid

import pytest

from auracargo.core.errors import NotFoundError, UnknownRecipientError, ValidationError
from auracargo.services import notifications as notification_service


def test_notify_unknown_recipient(db):
    with pytest.raises(UnknownRecipientError):
        notification_service.notify(db, uuid.uuid4(), "Hello", "World")


def test_notify_requires_title_and_content(db, make_profile):
    user = make_profile()
    with pytest.raises(ValidationError):
        notification_service.notify(db, user.id, "", "content")
    with pytest.raises(ValidationError):
        notification_service.notify(db, user.id, "title", "   ")


def test_newest_first_and_unread_count(db, make_profile):
    user = make_profile()
    first = notification_service.notify(db, user.id, "One", "first")
    notification_service.notify(db, user.id, "Two", "second")

    assert [n.title for n in notification_service.list_for_user(db, user.id)] == ["Two", "One"]
    assert notification_service.unread_count(db, user.id) == 2

    notification_service.mark_read(db, user.id, first.id)
    assert notification_service.unread_count(db, user.id) == 1
    unread = notification_service.list_for_user(db, user.id, unread_only=True)
    assert [n.title for n in unread] == ["Two"]


def test_cannot_mark_someone_elses_notification(db, make_profile):
    owner = make_profile("owner@example.com")
    other = make_profile("other@example.com")
    notification = notification_service.notify(db, owner.id, "Mine", "private")
    with pytest.raises(NotFoundError):
        notification_service.mark_read(db, other.id, notification.id)


def test_api_create_and_read_all(client, customer):
    resp = client.post(
        "/notifications",
        json={"title": "Reminder", "content": "Pay your invoice"},
        headers=customer["headers"],
    )
    assert resp.status_code == 201
    assert resp.json()["is_read"] is False

    assert client.get("/notifications/unread-count", headers=customer["headers"]).json() == {"unread": 1}
    assert client.post("/notifications/read-all", headers=customer["headers"]).json() == {"updated": 1}
    assert client.get("/notifications/unread-count", headers=customer["headers"]).json() == {"unread": 0}


def test_api_missing_content_is_422(client, customer):
    resp = client.post("/notifications", json={"title": "x"}, headers=customer["headers"])
    assert resp.status_code == 422
