# marketplace/api/routes/services.py
from decimal import Decimal
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session, joinedload

from marketplace.core.errors import NotFoundError, format_success
from marketplace.core.security import TokenIdentity, require_any_role
from marketplace.db.base import get_db
from marketplace.db.models.category import Category
from marketplace.db.models.service import Service
from marketplace.db.models.user import ADMINISTRATOR
from marketplace.schemas.common import dump
from marketplace.schemas.service import ServiceCreate, ServiceResponse

router = APIRouter(prefix="/api/services", tags=["services"])

DEFAULT_SERVICES = [
    ("Carpentry", "Custom furniture and woodworking services", 120, "150"),
    ("Plumbing", "24/7 emergency plumbing and maintenance", 90, "120"),
    ("Painting", "Interior and exterior painting specialists", 180, "200"),
    ("Electrical Work", "Residential and commercial electrical services", 60, "100"),
    ("HVAC Repair", "Heating, ventilation, and air conditioning services", 90, "130"),
    ("Flooring Installation", "Professional flooring installation and repair", 240, "300"),
    ("Roofing", "Roof repair and installation services", 300, "400"),
    ("Tiling", "Tile installation and repair services", 150, "180"),
    ("Window Installation", "Window installation and repair services", 120, "160"),
    ("Door Installation", "Door installation and repair services", 90, "140"),
]


@router.get("")
@router.get("/", include_in_schema=False)
def list_services(
    category_id: Optional[int] = Query(None, alias="categoryId"),
    db: Session = Depends(get_db),
):
    q = db.query(Service).options(joinedload(Service.category))
    if category_id is not None:
        q = q.filter(Service.category_id == category_id)
    services = q.order_by(Service.name).all()
    return format_success(
        [dump(ServiceResponse, s) for s in services], "Services retrieved successfully"
    )


@router.get("/{service_id}")
def get_service(service_id: UUID, db: Session = Depends(get_db)):
    service = (
        db.query(Service)
        .options(joinedload(Service.category))
        .filter(Service.id == service_id)
        .first()
    )
    if not service:
        raise NotFoundError("Service not found", "SERVICE_NOT_FOUND")
    return format_success(dump(ServiceResponse, service), "Service retrieved successfully")


# --------------------------
# Admin
# --------------------------
@router.post("", status_code=201)
@router.post("/", status_code=201, include_in_schema=False)
def create_service(
    payload: ServiceCreate,
    db: Session = Depends(get_db),
    identity: TokenIdentity = Depends(require_any_role(ADMINISTRATOR)),
):
    if payload.category_id is not None:
        if not db.query(Category).filter(Category.id == payload.category_id).first():
            raise NotFoundError("Category not found", "CATEGORY_NOT_FOUND")

    service = Service(
        name=payload.name,
        description=payload.description,
        duration=payload.duration,
        base_price=payload.base_price,
        category_id=payload.category_id,
    )
    db.add(service)
    db.commit()
    db.refresh(service)
    return format_success(dump(ServiceResponse, service), "Service created successfully")


@router.post("/init-defaults", status_code=201)
def init_default_services(
    db: Session = Depends(get_db),
    identity: TokenIdentity = Depends(require_any_role(ADMINISTRATOR)),
):
    # services have no unique name column, so skip names that already exist
    existing = {name for (name,) in db.query(Service.name).all()}
    inserted = []
    for name, description, duration, price in DEFAULT_SERVICES:
        if name in existing:
            continue
        service = Service(
            name=name, description=description, duration=duration, base_price=Decimal(price)
        )
        db.add(service)
        inserted.append(service)
    db.commit()

    for service in inserted:
        db.refresh(service)
    return format_success(
        {"inserted": len(inserted), "services": [dump(ServiceResponse, s) for s in inserted]},
        "Default services initialized successfully",
    )
