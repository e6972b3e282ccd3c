from pydantic import BaseModel, EmailStr, Field
from uuid import UUID
from datetime import datetime


class CreateConversation(BaseModel):
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)


class CreateGuestConversation(BaseModel):
    guest_name: str | None = None
    guest_email: EmailStr
    title: str | None = None
    content: str = Field(..., min_length=1)


class PostMessage(BaseModel):
    content: str = Field(..., min_length=1)


class PostGuestMessage(PostMessage):
    guest_email: EmailStr


class MessageResponse(BaseModel):
    id: int
    conversation_id: UUID
    sender_id: UUID | None = None
    sender_label: str
    guest_name: str | None = None
    guest_email: str | None = None
    is_admin: bool
    content: str
    read: bool
    read_by_customer: bool
    read_by_admin: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class ConversationResponse(BaseModel):
    id: UUID
    user_id: UUID | None = None
    guest_name: str | None = None
    guest_email: str | None = None
    title: str
    status: str
    created_at: datetime
    updated_at: datetime
    unread_for_customer: int = 0
    unread_for_admin: int = 0

    model_config = {"from_attributes": True}
