# marketplace/schemas/booking.py
from pydantic import Field, field_validator
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from marketplace.schemas.common import CamelModel

TIME_PATTERN = r"^(0?[1-9]|1[0-2]):[0-5][0-9] (AM|PM)$"


# --- CREATE ---
class BookingCreate(CamelModel):
    provider_id: UUID
    service_id: UUID
    booking_date: datetime
    start_time: str = Field(pattern=TIME_PATTERN)
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("booking_date")
    @classmethod
    def not_in_past(cls, value: datetime):
        if value.tzinfo is not None:
            value = (value - value.utcoffset()).replace(tzinfo=None)
        if value < datetime.utcnow():
            raise ValueError("Booking date cannot be in the past")
        return value


# --- RESPONSE ---
class BookingResponse(CamelModel):
    id: UUID
    customer_id: UUID
    provider_id: UUID
    service_id: UUID
    booking_date: datetime
    start_time: str
    end_time: str
    total_price: Decimal
    notes: Optional[str] = None
    status: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class BookingServiceSummary(CamelModel):
    id: UUID
    name: str
    duration: int


class BookingProviderSummary(CamelModel):
    id: UUID
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: str


class BookingListItem(CamelModel):
    id: UUID
    booking_date: datetime
    start_time: str
    end_time: str
    total_price: Decimal
    notes: Optional[str] = None
    status: str
    service: Optional[BookingServiceSummary] = None
    provider: Optional[BookingProviderSummary] = None
    created_at: datetime
