import uuid
import enum
from sqlalchemy import Column, DateTime, String, Uuid

from auracargo.core.clock import utcnow
from auracargo.database import Base


class ProfileRole(str, enum.Enum):
    ADMIN = "admin"
    STAFF = "staff"
    CUSTOMER = "customer"


class ProfileStatus(str, enum.Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"


BACK_OFFICE_ROLES = frozenset({ProfileRole.ADMIN.value, ProfileRole.STAFF.value})


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String, unique=True, nullable=False, index=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)

    role = Column(String(16), nullable=False, default=ProfileRole.CUSTOMER.value)
    status = Column(String(16), nullable=False, default=ProfileStatus.ACTIVE.value)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    @property
    def display_name(self) -> str:
        full = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return full or self.email

    @property
    def is_back_office(self) -> bool:
        return self.role in BACK_OFFICE_ROLES
