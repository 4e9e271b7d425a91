# marketplace/api/routes/bookings.py
import logging
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session, joinedload

from marketplace.core.errors import NotFoundError, format_success
from marketplace.core.security import TokenIdentity, get_current_identity
from marketplace.db.base import get_db
from marketplace.db.models.booking import Booking
from marketplace.db.models.service import Service
from marketplace.db.models.user import User
from marketplace.schemas.booking import BookingCreate, BookingListItem, BookingResponse
from marketplace.schemas.common import dump

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bookings", tags=["bookings"])


def parse_clock_time(value: str):
    """'9:30 PM' -> (21, 30)"""
    clock, period = value.strip().split(" ")
    hours, minutes = (int(part) for part in clock.split(":"))
    if period == "PM" and hours != 12:
        hours += 12
    if period == "AM" and hours == 12:
        hours = 0
    return hours, minutes


def format_clock_time(moment: datetime) -> str:
    hour12 = moment.hour % 12 or 12
    period = "AM" if moment.hour < 12 else "PM"
    return f"{hour12}:{moment.minute:02d} {period}"


def compute_end_time(booking_date: datetime, start_time: str, duration_minutes: int) -> str:
    hours, minutes = parse_clock_time(start_time)
    start = booking_date.replace(hour=hours, minute=minutes, second=0, microsecond=0)
    return format_clock_time(start + timedelta(minutes=duration_minutes))


# Customer creates booking
@router.post("", status_code=201)
@router.post("/", status_code=201, include_in_schema=False)
def create_booking(
    payload: BookingCreate,
    db: Session = Depends(get_db),
    identity: TokenIdentity = Depends(get_current_identity),
):
    service = db.query(Service).filter(Service.id == payload.service_id).first()
    if not service:
        raise NotFoundError("Service not found", "SERVICE_NOT_FOUND")

    provider = db.query(User).filter(User.id == payload.provider_id).first()
    if not provider:
        raise NotFoundError("Provider not found", "PROVIDER_NOT_FOUND")

    booking = Booking(
        customer_id=identity.user_id,
        provider_id=provider.id,
        service_id=service.id,
        booking_date=payload.booking_date,
        start_time=payload.start_time,
        end_time=compute_end_time(payload.booking_date, payload.start_time, service.duration),
        total_price=service.base_price,
        notes=payload.notes or None,
        status="pending",
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)

    logger.info(f"Booking {booking.id} created by {identity.user_id}")
    return format_success(dump(BookingResponse, booking), "Booking created successfully")


# Customer lists own bookings
@router.get("")
@router.get("/", include_in_schema=False)
def list_my_bookings(
    db: Session = Depends(get_db),
    identity: TokenIdentity = Depends(get_current_identity),
):
    bookings = (
        db.query(Booking)
        .options(joinedload(Booking.service), joinedload(Booking.provider))
        .filter(Booking.customer_id == identity.user_id)
        .order_by(Booking.booking_date.desc())
        .all()
    )
    return format_success(
        [dump(BookingListItem, b) for b in bookings], "Bookings retrieved successfully"
    )
