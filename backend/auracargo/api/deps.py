from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Annotated
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from auracargo.config import settings
from auracargo.core.errors import AuthenticationError, UnauthorizedError
from auracargo.database import get_db
from auracargo.models.profile import Profile, ProfileStatus
from auracargo.services.payment_gateway import PaymentGateway, get_payment_gateway
from auracargo.services.profiles import get_profile_by_id

security = HTTPBearer(auto_error=False)


def create_access_token(profile_id: UUID, email: str) -> str:
    expire = datetime.now(timezone.utc) + timedelta(days=settings.jwt_expire_days)
    to_encode = {"sub": str(profile_id), "email": email, "exp": expire}
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> UUID:
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
        return UUID(payload["sub"])
    except (JWTError, KeyError, ValueError, TypeError):
        raise AuthenticationError("Invalid or missing token")


@dataclass
class AuthContext:
    """
    Who is calling and whether they may use the back office.

    ``refresh`` re-reads the profile so a role change or suspension takes
    effect on the caller's next request instead of when the token expires.
    """

    profile_id: UUID
    profile: Profile | None = None
    is_admin: bool = False

    def refresh(self, db: Session) -> "AuthContext":
        profile = get_profile_by_id(db, self.profile_id)
        if not profile:
            raise AuthenticationError("Account not found")
        if profile.status == ProfileStatus.SUSPENDED.value:
            raise UnauthorizedError("This account has been suspended.")
        self.profile = profile
        self.is_admin = profile.is_back_office
        return self

    def require_admin(self) -> "AuthContext":
        if not self.is_admin:
            raise UnauthorizedError("Admin access required")
        return self


def auth_context_from_token(db: Session, token: str) -> AuthContext:
    return AuthContext(profile_id=decode_token(token)).refresh(db)


async def get_auth_context(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
) -> AuthContext:
    if not credentials:
        raise AuthenticationError("Invalid or missing token")
    return auth_context_from_token(db, credentials.credentials)


async def get_admin_context(
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
) -> AuthContext:
    return ctx.require_admin()


def get_gateway() -> PaymentGateway:
    return get_payment_gateway()
