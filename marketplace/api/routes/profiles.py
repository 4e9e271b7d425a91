# marketplace/api/routes/profiles.py
import logging
import math
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from marketplace.core.errors import NotFoundError, format_success
from marketplace.core.security import (
    TokenIdentity,
    ensure_owner_or_admin,
    get_current_identity,
    require_provider_or_admin,
)
from marketplace.db.base import get_db
from marketplace.db.models.category import Category
from marketplace.db.models.provider_profile import ProviderProfile
from marketplace.db.models.user import PROVIDER, ROLE_DESCRIPTIONS, User
from marketplace.schemas.common import dump
from marketplace.schemas.profile import (
    ProfileCreate,
    ProfileDetail,
    ProfileListItem,
    ProfilesPagination,
    ProfileUpdate,
    ProviderProfileCreateInput,
    ProviderProfilePatch,
    ProviderProfileResponse,
)
from marketplace.services.provider_profiles import (
    create_profile,
    ensure_role,
    ensure_user_has_role,
    update_profile,
)
from marketplace.utils.geo import haversine_km

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/profiles", tags=["profiles"])

SORT_COLUMNS = {
    "rating": ProviderProfile.rating,
    "pricePerHour": ProviderProfile.price_per_hour,
    "createdAt": ProviderProfile.created_at,
}


def _list_item(profile: ProviderProfile, distance: Optional[float] = None) -> dict:
    name = f"{profile.first_name} {profile.last_name}"
    category = profile.category
    return dump(ProfileListItem, {
        "id": profile.id,
        "name": name,
        "business_name": profile.business_name,
        "category": category.name if category else None,
        "description": profile.description,
        "owner_name": name,
        "image": profile.profile_picture_url,
        "profile_picture_url": profile.profile_picture_url,
        "service_title": profile.service_title,
        "price_per_hour": profile.price_per_hour,
        "rating": profile.rating,
        "review_count": profile.review_count,
        "location": profile.location_string,
        "next_availability": profile.next_availability,
        "portfolio_image_urls": profile.portfolio_image_urls,
        "latitude": profile.latitude,
        "longitude": profile.longitude,
        "is_available": profile.is_available,
        "created_at": profile.created_at,
        "user": profile.user,
        "category_info": category,
        "distance": f"{distance:.1f} km" if distance is not None else None,
    })


def _ensure_category_exists(db: Session, category_id: Optional[int]) -> None:
    if category_id is None:
        return
    if not db.query(Category.id).filter(Category.id == category_id).first():
        raise NotFoundError("Category not found", "CATEGORY_NOT_FOUND")


# --------------------------
# Public listing
# --------------------------
@router.get("")
@router.get("/", include_in_schema=False)
def list_profiles(
    page: int = Query(1),
    limit: int = Query(10),
    search: Optional[str] = Query(None),
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    min_rating: Optional[float] = Query(None, alias="minRating"),
    sort_by: str = Query("rating", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    latitude: Optional[float] = Query(None),
    longitude: Optional[float] = Query(None),
    radius: float = Query(50.0),
    db: Session = Depends(get_db),
):
    page = max(1, page)
    limit = min(50, max(1, limit))
    offset = (page - 1) * limit
    descending = sort_order != "asc"

    q = db.query(ProviderProfile).options(
        joinedload(ProviderProfile.user), joinedload(ProviderProfile.category)
    )
    if search:
        term = f"%{search}%"
        q = q.filter(
            or_(
                ProviderProfile.business_name.ilike(term),
                ProviderProfile.first_name.ilike(term),
                ProviderProfile.last_name.ilike(term),
                ProviderProfile.service_title.ilike(term),
                ProviderProfile.description.ilike(term),
            )
        )
    if min_price is not None:
        q = q.filter(ProviderProfile.price_per_hour >= min_price)
    if max_price is not None:
        q = q.filter(ProviderProfile.price_per_hour <= max_price)
    if min_rating is not None and 0 <= min_rating <= 5:
        q = q.filter(ProviderProfile.rating >= min_rating)

    if latitude is not None and longitude is not None:
        # distance is computed per row so the filter works on any database
        candidates = q.filter(
            ProviderProfile.latitude.isnot(None), ProviderProfile.longitude.isnot(None)
        ).all()
        ranked = []
        for profile in candidates:
            distance = haversine_km(
                latitude, longitude, float(profile.latitude), float(profile.longitude)
            )
            if distance <= radius:
                ranked.append((profile, distance))

        if sort_by == "distance":
            ranked.sort(key=lambda item: item[1], reverse=descending)
        elif sort_by in SORT_COLUMNS:
            attr = SORT_COLUMNS[sort_by].key
            present = [item for item in ranked if getattr(item[0], attr) is not None]
            missing = [item for item in ranked if getattr(item[0], attr) is None]
            present.sort(key=lambda item: getattr(item[0], attr), reverse=descending)
            ranked = present + missing

        total = len(ranked)
        rows = [_list_item(profile, distance) for profile, distance in ranked[offset:offset + limit]]
    else:
        total = q.count()
        column = SORT_COLUMNS.get(sort_by)
        if column is not None:
            q = q.order_by(column.desc() if descending else column.asc())
        rows = [_list_item(profile) for profile in q.offset(offset).limit(limit).all()]

    total_pages = math.ceil(total / limit)
    pagination = ProfilesPagination(
        current_page=page,
        total_pages=total_pages,
        total_count=total,
        limit=limit,
        has_next_page=page < total_pages,
        has_previous_page=page > 1,
    ).model_dump(by_alias=True)

    return format_success(
        {"profiles": rows, "pagination": pagination},
        "Provider profiles retrieved successfully",
    )


@router.get("/{profile_id}")
def get_profile(profile_id: UUID, db: Session = Depends(get_db)):
    profile = (
        db.query(ProviderProfile)
        .options(joinedload(ProviderProfile.user))
        .filter(ProviderProfile.id == profile_id)
        .first()
    )
    if not profile:
        raise NotFoundError("Provider profile not found", "PROFILE_NOT_FOUND")
    return format_success(dump(ProfileDetail, profile), "Provider profile retrieved successfully")


# --------------------------
# Provider creates own profile
# --------------------------
@router.post("", status_code=201)
@router.post("/", status_code=201, include_in_schema=False)
def create_provider_profile(
    payload: ProfileCreate,
    db: Session = Depends(get_db),
    identity: TokenIdentity = Depends(require_provider_or_admin),
):
    user = db.query(User).filter(User.id == identity.user_id).first()
    if not user:
        raise NotFoundError("User not found", "USER_NOT_FOUND")
    _ensure_category_exists(db, payload.category_id)

    try:
        profile = create_profile(
            db, ProviderProfileCreateInput(user_id=user.id, **payload.model_dump())
        )
        role_id = ensure_role(db, PROVIDER, ROLE_DESCRIPTIONS[PROVIDER])
        ensure_user_has_role(db, user.id, role_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(profile)

    logger.info(f"Created provider profile {profile.id} for user {user.id}")
    return format_success(
        dump(ProviderProfileResponse, profile), "Provider profile created successfully"
    )


@router.put("/{profile_id}")
def update_provider_profile(
    profile_id: UUID,
    payload: ProfileUpdate,
    db: Session = Depends(get_db),
    identity: TokenIdentity = Depends(get_current_identity),
):
    profile = db.query(ProviderProfile).filter(ProviderProfile.id == profile_id).first()
    if not profile:
        raise NotFoundError("Provider profile not found", "PROFILE_NOT_FOUND")
    ensure_owner_or_admin(identity, profile.user_id)
    _ensure_category_exists(db, payload.category_id)

    patch = ProviderProfilePatch(**payload.model_dump(exclude_unset=True))
    try:
        profile = update_profile(db, profile_id, patch)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(profile)

    return format_success(
        dump(ProviderProfileResponse, profile), "Provider profile updated successfully"
    )
