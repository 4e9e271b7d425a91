# marketplace/db/models/booking.py
import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship
from marketplace.db.base import Base

BOOKING_STATUSES = ("pending", "confirmed", "completed", "cancelled")


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    customer_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    provider_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    service_id = Column(Uuid, ForeignKey("services.id", ondelete="CASCADE"), nullable=False)

    booking_date = Column(DateTime, nullable=False)
    # free-text clock times, e.g. "09:00 AM"
    start_time = Column(String(10), nullable=False)
    end_time = Column(String(10), nullable=False)

    total_price = Column(Numeric(10, 2), nullable=False)
    notes = Column(Text, nullable=True)

    status = Column(String(20), nullable=False, default="pending")

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # relationships
    customer = relationship("User", foreign_keys=[customer_id])
    provider = relationship("User", foreign_keys=[provider_id])
    service = relationship("Service", foreign_keys=[service_id])


class TimeSlot(Base):
    """
    Bookable slot published by a provider.
    is_available: 1 = open, 0 = booked
    """
    __tablename__ = "time_slots"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    provider_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    date = Column(DateTime, nullable=False)
    time = Column(String(10), nullable=False)
    is_available = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    provider = relationship("User", foreign_keys=[provider_id])
