"""
Support conversations.

Read state is tracked per side: ``read_by_customer`` is what the customer
(or guest) has seen, ``read_by_admin`` what the back office has seen. A
message always counts as read for the side that wrote it.
"""

from __future__ import annotations

import enum
import logging
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from auracargo.core.clock import utcnow
from auracargo.core.errors import ConflictError, NotFoundError, ValidationError
from auracargo.models.profile import Profile
from auracargo.models.support import (
    ConversationStatus,
    SupportConversation,
    SupportMessage,
)
from auracargo.services.notifications import build_notification

logger = logging.getLogger(__name__)

GUEST_CONVERSATION_TITLE = "Quick Support Chat"


class Perspective(str, enum.Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"


def get_conversation(db: Session, conversation_id: UUID) -> SupportConversation | None:
    return (
        db.query(SupportConversation)
        .filter(SupportConversation.id == conversation_id)
        .first()
    )


def require_conversation(db: Session, conversation_id: UUID) -> SupportConversation:
    conversation = get_conversation(db, conversation_id)
    if not conversation:
        raise NotFoundError("Conversation not found")
    return conversation


def require_guest_conversation(
    db: Session, conversation_id: UUID, guest_email: str
) -> SupportConversation:
    conversation = get_conversation(db, conversation_id)
    if (
        not conversation
        or conversation.user_id is not None
        or not guest_email
        or (conversation.guest_email or "").lower() != guest_email.strip().lower()
    ):
        raise NotFoundError("Conversation not found")
    return conversation


def _new_message(
    conversation: SupportConversation,
    content: str,
    is_admin: bool,
    sender: Profile | None,
    guest_name: str | None,
    guest_email: str | None,
) -> SupportMessage:
    if not content or not content.strip():
        raise ValidationError("Message content is required")
    now = utcnow()
    message = SupportMessage(
        conversation_id=conversation.id,
        sender_id=sender.id if sender else None,
        guest_name=None if sender else guest_name,
        guest_email=None if sender else guest_email,
        is_admin=is_admin,
        content=content.strip(),
        read_by_admin=is_admin,
        read_by_customer=not is_admin,
        created_at=now,
    )
    conversation.updated_at = now
    return message


def create_conversation(
    db: Session,
    title: str | None,
    first_message: str,
    user: Profile | None = None,
    guest_name: str | None = None,
    guest_email: str | None = None,
) -> SupportConversation:
    """Open a conversation for a signed-in user, or for a guest identified by email."""
    if user is None:
        if not guest_email or not guest_email.strip():
            raise ValidationError("guest_email is required when not signed in")
        guest_email = guest_email.strip().lower()
        title = (title or "").strip() or GUEST_CONVERSATION_TITLE
    else:
        guest_name = guest_email = None
        title = (title or "").strip()
        if not title:
            raise ValidationError("Conversation title is required")

    conversation = SupportConversation(
        user_id=user.id if user else None,
        guest_name=guest_name,
        guest_email=guest_email,
        title=title,
        status=ConversationStatus.OPEN.value,
    )
    db.add(conversation)
    db.flush()
    db.add(
        _new_message(conversation, first_message, False, user, guest_name, guest_email)
    )
    db.commit()
    db.refresh(conversation)
    logger.info(
        "Support conversation %s opened by %s",
        conversation.id,
        user.email if user else f"guest {guest_email}",
    )
    return conversation


def append_message(
    db: Session,
    conversation_id: UUID,
    content: str,
    is_admin: bool,
    sender: Profile | None = None,
    guest_name: str | None = None,
    guest_email: str | None = None,
) -> SupportMessage:
    conversation = require_conversation(db, conversation_id)
    if conversation.status == ConversationStatus.CLOSED.value:
        raise ConflictError("Conversation is closed")
    message = _new_message(
        conversation, content, is_admin, sender, guest_name, guest_email
    )
    db.add(message)
    if is_admin and conversation.user_id:
        build_notification(
            db,
            conversation.user_id,
            "New support reply",
            f"Support replied to \"{conversation.title}\".",
        )
    db.commit()
    db.refresh(message)
    return message


def list_messages(db: Session, conversation_id: UUID) -> list[SupportMessage]:
    return (
        db.query(SupportMessage)
        .filter(SupportMessage.conversation_id == conversation_id)
        .order_by(SupportMessage.created_at.asc(), SupportMessage.id.asc())
        .all()
    )


def mark_read(db: Session, conversation_id: UUID, perspective: Perspective) -> int:
    """Mark the other side's messages as seen by ``perspective``. Returns rows flipped."""
    require_conversation(db, conversation_id)
    perspective = Perspective(perspective)
    q = db.query(SupportMessage).filter(SupportMessage.conversation_id == conversation_id)
    if perspective == Perspective.CUSTOMER:
        unread = q.filter(
            SupportMessage.is_admin.is_(True),
            SupportMessage.read_by_customer.is_(False),
        ).all()
        for message in unread:
            message.read_by_customer = True
    else:
        unread = q.filter(
            SupportMessage.is_admin.is_(False),
            SupportMessage.read_by_admin.is_(False),
        ).all()
        for message in unread:
            message.read_by_admin = True
    if unread:
        db.commit()
    return len(unread)


def set_status(
    db: Session, conversation_id: UUID, status: ConversationStatus | str
) -> SupportConversation:
    conversation = require_conversation(db, conversation_id)
    status = ConversationStatus(status)
    if conversation.status != status.value:
        conversation.status = status.value
        conversation.updated_at = utcnow()
        db.commit()
        db.refresh(conversation)
    return conversation


def list_conversations(
    db: Session,
    user_id: UUID | None = None,
    status: str | None = None,
    search: str | None = None,
) -> list[SupportConversation]:
    q = db.query(SupportConversation).order_by(SupportConversation.updated_at.desc())
    if user_id:
        q = q.filter(SupportConversation.user_id == user_id)
    if status:
        q = q.filter(SupportConversation.status == ConversationStatus(status).value)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(
            or_(
                SupportConversation.title.ilike(like),
                SupportConversation.guest_email.ilike(like),
                SupportConversation.guest_name.ilike(like),
            )
        )
    return q.all()


def unread_counts(db: Session, conversation_ids: list[UUID]) -> dict[UUID, dict[str, int]]:
    """Per conversation: unread for the customer side and for the admin side."""
    counts = {cid: {"customer": 0, "admin": 0} for cid in conversation_ids}
    if not conversation_ids:
        return counts
    rows = (
        db.query(
            SupportMessage.conversation_id,
            SupportMessage.is_admin,
            func.count(SupportMessage.id),
        )
        .filter(
            SupportMessage.conversation_id.in_(conversation_ids),
            or_(
                (SupportMessage.is_admin.is_(True))
                & (SupportMessage.read_by_customer.is_(False)),
                (SupportMessage.is_admin.is_(False))
                & (SupportMessage.read_by_admin.is_(False)),
            ),
        )
        .group_by(SupportMessage.conversation_id, SupportMessage.is_admin)
        .all()
    )
    for conversation_id, is_admin, count in rows:
        counts[conversation_id]["customer" if is_admin else "admin"] = count
    return counts


def support_stats(db: Session) -> dict[str, int]:
    open_count = (
        db.query(SupportConversation)
        .filter(SupportConversation.status == ConversationStatus.OPEN.value)
        .count()
    )
    unread_for_admin = (
        db.query(SupportMessage)
        .filter(
            SupportMessage.is_admin.is_(False),
            SupportMessage.read_by_admin.is_(False),
        )
        .count()
    )
    return {"open_conversations": open_count, "unread_for_admin": unread_for_admin}
