# marketplace/db/models/provider_profile.py
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship
from marketplace.db.base import Base

PROFILE_STATUSES = ("pending", "active", "rejected", "suspended")


class ProviderProfile(Base):
    __tablename__ = "provider_profiles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    business_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    profile_picture_url = Column(Text, nullable=True)
    service_title = Column(String(255), nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)

    price_per_hour = Column(Numeric(10, 2), nullable=True)
    rating = Column(Numeric(2, 1), nullable=True, default=Decimal("0.0"))
    review_count = Column(Integer, nullable=True, default=0)
    next_availability = Column(DateTime, nullable=True)
    portfolio_image_urls = Column(JSON, nullable=True)

    # location
    latitude = Column(Numeric(10, 8), nullable=True)
    longitude = Column(Numeric(11, 8), nullable=True)
    location_string = Column(String(255), nullable=True)
    contact_phone = Column(String(30), nullable=True)
    full_address = Column(Text, nullable=True)
    is_available = Column(Integer, nullable=True, default=1)  # 1 = available, 0 = unavailable

    status = Column(String(20), nullable=False, default="pending")

    # onboarding
    onboarded_by = Column(Uuid, ForeignKey("recruiters.id", ondelete="SET NULL"), nullable=True)
    onboarded_at = Column(DateTime, nullable=True)

    # earnings
    commission_rate = Column(Numeric(5, 4), nullable=True, default=Decimal("0.0200"))
    total_earnings = Column(Numeric(12, 2), nullable=True, default=Decimal("0"))
    total_commission = Column(Numeric(12, 2), nullable=True, default=Decimal("0"))
    archived_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="provider_profile")
    category = relationship("Category", back_populates="provider_profiles")
    onboarded_by_recruiter = relationship("Recruiter", back_populates="onboarded_providers")
    documents = relationship(
        "ProviderDocument",
        back_populates="provider",
        order_by="ProviderDocument.created_at.desc()",
        passive_deletes=True,
    )


class ProviderDocument(Base):
    __tablename__ = "provider_documents"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    provider_id = Column(
        Uuid, ForeignKey("provider_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    document_type = Column(String(50), nullable=False)
    # null for externally hosted files
    storage_key = Column(Text, nullable=True)
    file_url = Column(Text, nullable=False)
    file_name = Column(Text, nullable=True)
    mime_type = Column(String(180), nullable=True)
    file_size = Column(Integer, nullable=True)
    uploaded_by = Column(Uuid, ForeignKey("recruiters.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    provider = relationship("ProviderProfile", back_populates="documents")
    uploaded_by_recruiter = relationship("Recruiter")


class ProviderCommission(Base):
    """Append-only commission ledger entry."""
    __tablename__ = "provider_commissions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    provider_id = Column(
        Uuid, ForeignKey("provider_profiles.id", ondelete="CASCADE"), nullable=False
    )
    recruiter_id = Column(Uuid, ForeignKey("recruiters.id", ondelete="SET NULL"), nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    commission_rate = Column(Numeric(5, 4), nullable=True, default=Decimal("0.0200"))
    notes = Column(Text, nullable=True)
    recorded_at = Column(DateTime, default=datetime.utcnow, nullable=False)
