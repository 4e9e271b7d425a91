# marketplace/services/provider_profiles.py
"""
Provider profile lifecycle plus the idempotent "ensure" helpers for roles,
role assignments and categories.

Nothing here commits: the calling handler owns the transaction so that a
profile and its role assignment land together or not at all.
"""
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from marketplace.core.errors import BadRequestError, ConflictError
from marketplace.db.models.category import DEFAULT_COLOR, DEFAULT_ICON, Category
from marketplace.db.models.provider_profile import PROFILE_STATUSES, ProviderProfile
from marketplace.db.models.user import Role, user_roles
from marketplace.db.upsert import insert_ignore
from marketplace.schemas.profile import (
    DateInput,
    DecimalInput,
    ProviderProfileCreateInput,
    ProviderProfilePatch,
)

logger = logging.getLogger(__name__)

DECIMAL_FIELDS = ("price_per_hour", "latitude", "longitude")
DATE_FIELDS = ("next_availability",)


# --------------------------
# Normalizers
# --------------------------
def normalize_decimal(value: DecimalInput) -> Optional[Decimal]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise BadRequestError(f"Invalid decimal value: {value}")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise BadRequestError(f"Invalid decimal value: {value}")
    if not result.is_finite():
        raise BadRequestError(f"Invalid decimal value: {value}")
    return result


def normalize_datetime(value: DateInput) -> Optional[datetime]:
    """Accept a datetime or an ISO-8601 string; anything unparseable becomes None."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        # stored as naive UTC
        parsed = (parsed - parsed.utcoffset()).replace(tzinfo=None)
    return parsed


# --------------------------
# Reference data
# --------------------------
def ensure_role(db: Session, name: str, description: Optional[str] = None) -> int:
    role = db.query(Role).filter(Role.name == name).first()
    if role:
        return role.id

    insert_ignore(db, Role.__table__, {"name": name, "description": description}, ["name"])

    role = db.query(Role).filter(Role.name == name).first()
    if role is None:
        raise RuntimeError(f"Failed to ensure role {name}")
    logger.info(f"Created role {name}")
    return role.id


def ensure_user_has_role(db: Session, user_id, role_id: int) -> None:
    insert_ignore(db, user_roles, {"user_id": user_id, "role_id": role_id}, ["user_id", "role_id"])


def _find_category(db: Session, name: str) -> Optional[Category]:
    return db.query(Category).filter(func.lower(Category.name) == name.lower()).first()


def ensure_category_by_name(db: Session, name: Optional[str]) -> Optional[int]:
    """Case-insensitive get-or-create; blank names resolve to no category."""
    trimmed = (name or "").strip()
    if not trimmed:
        return None

    category = _find_category(db, trimmed)
    if category:
        return category.id

    insert_ignore(
        db,
        Category.__table__,
        {
            "name": trimmed,
            "icon": DEFAULT_ICON,
            "color": DEFAULT_COLOR,
            "created_at": datetime.utcnow(),
        },
        ["name"],
    )

    category = _find_category(db, trimmed)
    if category is None:
        raise RuntimeError(f"Failed to ensure category {trimmed}")
    return category.id


# --------------------------
# Profiles
# --------------------------
def _check_status(status: str) -> str:
    if status not in PROFILE_STATUSES:
        raise BadRequestError(f"Invalid status: {status}")
    return status


def create_profile(
    db: Session, data: ProviderProfileCreateInput, status: str = "pending"
) -> ProviderProfile:
    existing = db.query(ProviderProfile).filter(ProviderProfile.user_id == data.user_id).first()
    if existing:
        raise ConflictError("Provider profile already exists for this user", "PROFILE_EXISTS")

    values = data.model_dump()
    for field in DECIMAL_FIELDS:
        values[field] = normalize_decimal(values[field])
    for field in DATE_FIELDS:
        values[field] = normalize_datetime(values[field])

    now = datetime.utcnow()
    profile = ProviderProfile(
        **values,
        status=_check_status(status),
        created_at=now,
        updated_at=now,
    )
    db.add(profile)
    db.flush()
    db.refresh(profile)
    return profile


def update_profile(
    db: Session, profile_id, patch: ProviderProfilePatch
) -> Optional[ProviderProfile]:
    profile = db.query(ProviderProfile).filter(ProviderProfile.id == profile_id).first()
    if not profile:
        return None

    for field, value in patch.model_dump(exclude_unset=True).items():
        if field in DECIMAL_FIELDS:
            value = normalize_decimal(value)
        elif field in DATE_FIELDS:
            value = normalize_datetime(value)
        elif field == "status":
            if value is None:
                continue
            value = _check_status(value)
        setattr(profile, field, value)

    profile.updated_at = datetime.utcnow()
    db.flush()
    db.refresh(profile)
    return profile
