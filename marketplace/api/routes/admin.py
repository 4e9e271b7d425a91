# marketplace/api/routes/admin.py
import logging
import math
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from marketplace.core.errors import BadRequestError, ConflictError, NotFoundError, format_success
from marketplace.core.security import TokenIdentity, require_any_role
from marketplace.db.base import get_db
from marketplace.db.models.provider_profile import ProviderProfile
from marketplace.db.models.user import ADMINISTRATOR, Role, User, user_roles
from marketplace.schemas.admin import RoleAssign, RoleItem, SystemStats, UserDetail, UserListItem
from marketplace.schemas.common import dump
from marketplace.services.users import get_role_names

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])

require_admin = require_any_role(ADMINISTRATOR)


def _get_user_or_404(db: Session, user_id: UUID) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found", "USER_NOT_FOUND")
    return user


def _get_role_or_404(db: Session, role_name: str) -> Role:
    role = db.query(Role).filter(Role.name == role_name).first()
    if not role:
        raise NotFoundError("Role not found", "ROLE_NOT_FOUND")
    return role


def _has_role(db: Session, user_id: UUID, role_id: int) -> bool:
    return (
        db.query(user_roles)
        .filter(user_roles.c.user_id == user_id, user_roles.c.role_id == role_id)
        .first()
        is not None
    )


# -------------------------
# 1. List users
# -------------------------
@router.get("/users")
def list_users(
    page: int = Query(1),
    limit: int = Query(10),
    sort_order: str = Query("desc", alias="sortOrder"),
    db: Session = Depends(get_db),
    identity: TokenIdentity = Depends(require_admin),
):
    page = max(1, page)
    limit = min(100, max(1, limit))
    order = User.created_at.asc() if sort_order == "asc" else User.created_at.desc()

    users = db.query(User).order_by(order).offset((page - 1) * limit).limit(limit).all()
    total = db.query(func.count(User.id)).scalar() or 0
    total_pages = math.ceil(total / limit)

    items = [
        dump(UserListItem, {
            "id": u.id,
            "email": u.email,
            "roles": get_role_names(db, u.id),
            "created_at": u.created_at,
            "updated_at": u.updated_at,
        })
        for u in users
    ]
    return format_success(
        {
            "users": items,
            "pagination": {
                "currentPage": page,
                "totalPages": total_pages,
                "totalCount": total,
                "limit": limit,
                "hasNext": page < total_pages,
                "hasPrev": page > 1,
            },
        },
        "Users retrieved successfully",
    )


# -------------------------
# 2. User detail
# -------------------------
@router.get("/users/{user_id}")
def get_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    identity: TokenIdentity = Depends(require_admin),
):
    user = _get_user_or_404(db, user_id)
    roles = (
        db.query(Role)
        .join(user_roles, user_roles.c.role_id == Role.id)
        .filter(user_roles.c.user_id == user.id)
        .order_by(Role.id)
        .all()
    )
    profile = db.query(ProviderProfile).filter(ProviderProfile.user_id == user.id).first()

    data = dump(UserDetail, {
        "id": user.id,
        "email": user.email,
        "roles": [RoleItem(id=r.id, name=r.name) for r in roles],
        "provider_profile": profile,
        "created_at": user.created_at,
        "updated_at": user.updated_at,
    })
    return format_success(data, "User details retrieved successfully")


# -------------------------
# 3. Delete user
# -------------------------
@router.delete("/users/{user_id}")
def delete_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    identity: TokenIdentity = Depends(require_admin),
):
    _get_user_or_404(db, user_id)
    if identity.user_id == user_id:
        raise BadRequestError("Cannot delete your own account", "CANNOT_DELETE_SELF")

    # bulk delete so ON DELETE CASCADE removes roles, profiles and recruiter rows
    db.query(User).filter(User.id == user_id).delete(synchronize_session=False)
    db.commit()
    logger.info(f"User {user_id} deleted by {identity.user_id}")
    return format_success({"deletedUserId": str(user_id)}, "User deleted successfully")


# -------------------------
# 4. Role assignment
# -------------------------
@router.post("/users/{user_id}/roles")
def assign_role(
    user_id: UUID,
    payload: RoleAssign,
    db: Session = Depends(get_db),
    identity: TokenIdentity = Depends(require_admin),
):
    _get_user_or_404(db, user_id)
    role = _get_role_or_404(db, payload.role_name)
    if _has_role(db, user_id, role.id):
        raise ConflictError("User already has this role", "ROLE_ALREADY_ASSIGNED")

    db.execute(user_roles.insert().values(user_id=user_id, role_id=role.id))
    db.commit()
    return format_success(
        {"userId": str(user_id), "roleName": role.name}, "Role assigned to user successfully"
    )


@router.delete("/users/{user_id}/roles/{role_name}")
def remove_role(
    user_id: UUID,
    role_name: str,
    db: Session = Depends(get_db),
    identity: TokenIdentity = Depends(require_admin),
):
    _get_user_or_404(db, user_id)
    role = _get_role_or_404(db, role_name)

    result = db.execute(
        user_roles.delete().where(
            user_roles.c.user_id == user_id, user_roles.c.role_id == role.id
        )
    )
    if result.rowcount == 0:
        db.rollback()
        raise NotFoundError("User does not have this role", "USER_ROLE_NOT_FOUND")
    db.commit()
    return format_success(
        {"userId": str(user_id), "roleName": role.name}, "Role removed from user successfully"
    )


# -------------------------
# 5. Stats
# -------------------------
@router.get("/stats")
def system_stats(
    db: Session = Depends(get_db),
    identity: TokenIdentity = Depends(require_admin),
):
    total_users = db.query(func.count(User.id)).scalar() or 0
    total_providers = db.query(func.count(ProviderProfile.id)).scalar() or 0

    distribution = (
        db.query(Role.name, func.count(user_roles.c.user_id))
        .join(user_roles, user_roles.c.role_id == Role.id)
        .group_by(Role.name)
        .all()
    )

    stats = SystemStats(
        total_users=total_users,
        total_providers=total_providers,
        total_customers=total_users - total_providers,
        role_distribution={name: count for name, count in distribution},
        last_updated=datetime.utcnow(),
    )
    return format_success(stats.model_dump(mode="json", by_alias=True), "System statistics retrieved successfully")
