from uuid import UUID
from sqlalchemy.orm import Session

from auracargo.core.errors import NotFoundError, UnknownRecipientError, ValidationError
from auracargo.models.notification import Notification
from auracargo.models.profile import Profile


def build_notification(
    db: Session, user_id: UUID, title: str, content: str
) -> Notification:
    """Stage a notification in the current transaction without committing."""
    if not title or not title.strip() or not content or not content.strip():
        raise ValidationError("Missing required fields: title and/or content")
    if db.get(Profile, user_id) is None:
        raise UnknownRecipientError(f"No user with id {user_id}")
    notification = Notification(
        user_id=user_id,
        title=title.strip(),
        content=content.strip(),
        is_read=False,
    )
    db.add(notification)
    return notification


def notify(db: Session, user_id: UUID, title: str, content: str) -> Notification:
    notification = build_notification(db, user_id, title, content)
    db.commit()
    db.refresh(notification)
    return notification


def list_for_user(
    db: Session, user_id: UUID, unread_only: bool = False, limit: int = 100
) -> list[Notification]:
    q = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        q = q.filter(Notification.is_read.is_(False))
    return (
        q.order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
        .all()
    )


def unread_count(db: Session, user_id: UUID) -> int:
    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .count()
    )


def mark_read(db: Session, user_id: UUID, notification_id: int) -> Notification:
    notification = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == user_id)
        .first()
    )
    if not notification:
        raise NotFoundError("Notification not found")
    if not notification.is_read:
        notification.is_read = True
        db.commit()
        db.refresh(notification)
    return notification


def mark_all_read(db: Session, user_id: UUID) -> int:
    unread = (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .all()
    )
    for notification in unread:
        notification.is_read = True
    db.commit()
    return len(unread)
