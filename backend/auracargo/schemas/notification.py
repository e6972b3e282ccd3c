from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime


class CreateNotification(BaseModel):
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)


class NotificationResponse(BaseModel):
    id: int
    user_id: UUID
    title: str
    content: str
    is_read: bool
    created_at: datetime
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}
