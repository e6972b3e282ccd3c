"""Support tickets: a conversation and its ordered messages."""

import uuid
import enum
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship

from auracargo.core.clock import utcnow
from auracargo.database import Base


class ConversationStatus(str, enum.Enum):
    OPEN = "open"
    CLOSED = "closed"


class SupportConversation(Base):
    __tablename__ = "support_conversations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    # Null for guest conversations, which are keyed by guest_email instead.
    user_id = Column(
        Uuid,
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    guest_name = Column(String(255), nullable=True)
    guest_email = Column(String(255), nullable=True, index=True)

    title = Column(String(255), nullable=False)
    status = Column(String(16), nullable=False, default=ConversationStatus.OPEN.value)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    # Set explicitly whenever a message is appended.
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    owner = relationship("Profile")
    messages = relationship(
        "SupportMessage",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="SupportMessage.id",
    )


class SupportMessage(Base):
    __tablename__ = "support_messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    conversation_id = Column(
        Uuid,
        ForeignKey("support_conversations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sender_id = Column(
        Uuid,
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
    )
    guest_name = Column(String(255), nullable=True)
    guest_email = Column(String(255), nullable=True)

    is_admin = Column(Boolean, nullable=False, default=False)
    content = Column(Text, nullable=False)

    read_by_customer = Column(Boolean, nullable=False, default=False)
    read_by_admin = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    conversation = relationship("SupportConversation", back_populates="messages")
    sender = relationship("Profile")

    @property
    def read(self) -> bool:
        """Whether the other side has seen this message."""
        return self.read_by_customer if self.is_admin else self.read_by_admin

    @property
    def sender_label(self) -> str:
        if self.sender is not None:
            return self.sender.display_name
        return self.guest_name or self.guest_email or "Guest"
