from uuid import UUID
from sqlalchemy import or_
from sqlalchemy.orm import Session

from auracargo.config import settings
from auracargo.core.errors import ConflictError, NotFoundError, UnauthorizedError
from auracargo.models.profile import Profile, ProfileRole, ProfileStatus
from auracargo.schemas.profile import RegisterProfile


def get_profile_by_id(db: Session, profile_id: UUID) -> Profile | None:
    return db.query(Profile).filter(Profile.id == profile_id).first()


def get_profile_by_email(db: Session, email: str) -> Profile | None:
    normalized = email.strip().lower()
    return db.query(Profile).filter(Profile.email == normalized).first()


def register_profile(db: Session, dto: RegisterProfile) -> Profile:
    if get_profile_by_email(db, dto.email):
        raise ConflictError("An account with this email is already registered.")
    role = ProfileRole.CUSTOMER
    if dto.admin_code is not None:
        if not settings.admin_signup_code or dto.admin_code != settings.admin_signup_code:
            raise UnauthorizedError("Invalid admin signup code.")
        role = ProfileRole.ADMIN
    profile = Profile(
        email=dto.email.strip().lower(),
        first_name=(dto.first_name or "").strip() or None,
        last_name=(dto.last_name or "").strip() or None,
        role=role.value,
    )
    db.add(profile)
    db.commit()
    db.refresh(profile)
    return profile


def login_profile(db: Session, email: str) -> Profile:
    """Email-only sign-in; first sign-in creates a customer profile."""
    normalized = email.strip().lower()
    profile = get_profile_by_email(db, normalized)
    if not profile:
        profile = Profile(email=normalized, first_name=normalized.split("@")[0])
        db.add(profile)
        db.commit()
        db.refresh(profile)
    if profile.status == ProfileStatus.SUSPENDED.value:
        raise UnauthorizedError("This account has been suspended.")
    return profile


def update_profile(db: Session, profile_id: UUID, data: dict) -> Profile:
    profile = get_profile_by_id(db, profile_id)
    if not profile:
        raise NotFoundError("Profile not found")
    for key, value in data.items():
        if value is not None:
            setattr(profile, key, value.value if hasattr(value, "value") else value)
    db.commit()
    db.refresh(profile)
    return profile


def list_profiles(db: Session, search: str | None = None) -> list[Profile]:
    q = db.query(Profile).order_by(Profile.created_at.desc())
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(
            or_(
                Profile.email.ilike(like),
                Profile.first_name.ilike(like),
                Profile.last_name.ilike(like),
            )
        )
    return q.all()
