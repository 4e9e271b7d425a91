# marketplace/db/models/user.py
import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Table, Text, Uuid
from sqlalchemy.orm import relationship
from marketplace.db.base import Base

CUSTOMER = "customer"
PROVIDER = "provider"
RECRUITER = "recruiter"
ADMINISTRATOR = "administrator"

ROLE_DESCRIPTIONS = {
    CUSTOMER: "Customer role",
    PROVIDER: "Service provider role",
    RECRUITER: "Offline recruiter responsible for onboarding service providers",
    ADMINISTRATOR: "Platform administrator",
}

# many-to-many join between users and roles
user_roles = Table(
    "user_roles",
    Base.metadata,
    Column("user_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


class Role(Base):
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False, unique=True)
    description = Column(Text, nullable=True)


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column("password", String(255), nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    roles = relationship("Role", secondary=user_roles, lazy="selectin", passive_deletes=True)

    provider_profile = relationship(
        "ProviderProfile", back_populates="user", uselist=False, passive_deletes=True
    )
    recruiter = relationship("Recruiter", back_populates="user", uselist=False, passive_deletes=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()
