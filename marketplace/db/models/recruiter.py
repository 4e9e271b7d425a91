# marketplace/db/models/recruiter.py
import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship
from marketplace.db.base import Base

RECRUITER_STATUSES = ("active", "away", "offline", "pending", "suspended")
INVITATION_STATUSES = ("pending", "accepted", "revoked")


class Recruiter(Base):
    __tablename__ = "recruiters"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    phone = Column(String(30), nullable=False)
    city = Column(String(100), nullable=True)
    status = Column(String(20), nullable=False, default="active")
    latitude = Column(Numeric(10, 8), nullable=True)
    longitude = Column(Numeric(11, 8), nullable=True)
    avatar_url = Column(Text, nullable=True)
    last_active_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="recruiter")
    onboarded_providers = relationship("ProviderProfile", back_populates="onboarded_by_recruiter")
    events = relationship("RecruiterEvent", back_populates="recruiter", passive_deletes=True)


class RecruiterInvitation(Base):
    __tablename__ = "recruiter_invitations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False)
    token = Column(Uuid, unique=True, nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    invited_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    expires_at = Column(DateTime, nullable=True)
    accepted_at = Column(DateTime, nullable=True)
    revoked_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class RecruiterEvent(Base):
    """Append-only audit log row. Never updated or deleted."""
    __tablename__ = "recruiter_events"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    recruiter_id = Column(
        Uuid, ForeignKey("recruiters.id", ondelete="CASCADE"), nullable=False, index=True
    )
    event_type = Column(String(50), nullable=False)
    # "metadata" is reserved on declarative classes
    event_metadata = Column("metadata", JSON, nullable=True, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    recruiter = relationship("Recruiter", back_populates="events")
