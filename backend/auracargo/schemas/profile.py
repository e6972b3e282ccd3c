from pydantic import BaseModel, EmailStr
from uuid import UUID
from datetime import datetime

from auracargo.models.profile import ProfileRole, ProfileStatus


class RegisterProfile(BaseModel):
    email: EmailStr
    first_name: str | None = None
    last_name: str | None = None
    admin_code: str | None = None


class LoginProfile(BaseModel):
    email: EmailStr


class ProfileUpdate(BaseModel):
    first_name: str | None = None
    last_name: str | None = None


class AdminProfileUpdate(BaseModel):
    role: ProfileRole | None = None
    status: ProfileStatus | None = None


class ProfileResponse(BaseModel):
    id: UUID
    email: str
    first_name: str | None = None
    last_name: str | None = None
    role: str
    status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    profile: ProfileResponse
    token: str
    is_admin: bool
