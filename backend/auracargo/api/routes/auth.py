from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from auracargo.database import get_db
from auracargo.api.deps import AuthContext, create_access_token, get_auth_context
from auracargo.models.profile import Profile
from auracargo.schemas.profile import (
    LoginProfile,
    ProfileResponse,
    ProfileUpdate,
    RegisterProfile,
    TokenResponse,
)
from auracargo.services.profiles import login_profile, register_profile, update_profile

router = APIRouter(prefix="/auth", tags=["auth"])


def _token_response(profile: Profile) -> TokenResponse:
    return TokenResponse(
        profile=ProfileResponse.model_validate(profile),
        token=create_access_token(profile.id, profile.email),
        is_admin=profile.is_back_office,
    )


@router.post("/register", response_model=TokenResponse)
def register(
    dto: RegisterProfile,
    db: Session = Depends(get_db),
):
    return _token_response(register_profile(db, dto))


@router.post("/login", response_model=TokenResponse)
def login(
    dto: LoginProfile,
    db: Session = Depends(get_db),
):
    return _token_response(login_profile(db, dto.email))


@router.get("/me", response_model=ProfileResponse)
def get_me(ctx: AuthContext = Depends(get_auth_context)):
    return ProfileResponse.model_validate(ctx.profile)


@router.put("/me", response_model=ProfileResponse)
def update_me(
    body: ProfileUpdate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    data = {k: v for k, v in body.model_dump().items() if v is not None}
    return ProfileResponse.model_validate(update_profile(db, ctx.profile_id, data))
