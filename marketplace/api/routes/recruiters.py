# marketplace/api/routes/recruiters.py
import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import case, func, or_
from sqlalchemy.orm import Session

from marketplace.core.errors import (
    AuthorizationError,
    BadRequestError,
    ConflictError,
    NotFoundError,
    format_success,
)
from marketplace.core.security import (
    TokenIdentity,
    create_access_token,
    hash_password,
    require_any_role,
)
from marketplace.db.base import get_db
from marketplace.db.models.provider_profile import ProviderProfile
from marketplace.db.models.recruiter import Recruiter, RecruiterInvitation
from marketplace.db.models.user import ADMINISTRATOR, RECRUITER, ROLE_DESCRIPTIONS, User
from marketplace.db.upsert import upsert
from marketplace.schemas.common import dump
from marketplace.schemas.profile import UserSummary
from marketplace.schemas.recruiter import (
    InvitationCreate,
    InvitationResponse,
    RecruiterRegister,
    RecruiterResponse,
    RecruiterSelfUpdate,
    RecruiterStatusUpdate,
)
from marketplace.services import recruiter_events
from marketplace.services.provider_profiles import ensure_role, ensure_user_has_role
from marketplace.services.users import get_recruiter_for_user, get_user_by_email
from marketplace.utils.names import sanitize_string, split_full_name

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/recruiters", tags=["recruiters"])

require_admin = require_any_role(ADMINISTRATOR)
require_recruiter_or_admin = require_any_role(RECRUITER, ADMINISTRATOR)


def provider_counts(db: Session, recruiter_id: Optional[UUID] = None):
    """Returns {recruiter_id: (total, pending)} for providers each recruiter onboarded."""
    q = db.query(
        ProviderProfile.onboarded_by,
        func.count(ProviderProfile.id),
        func.sum(case((ProviderProfile.status == "pending", 1), else_=0)),
    ).filter(ProviderProfile.onboarded_by.isnot(None))
    if recruiter_id is not None:
        q = q.filter(ProviderProfile.onboarded_by == recruiter_id)
    rows = q.group_by(ProviderProfile.onboarded_by).all()
    return {rid: (int(total or 0), int(pending or 0)) for rid, total, pending in rows}


# --------------------------
# Public registration
# --------------------------
@router.post("/register", status_code=201)
def register_recruiter(payload: RecruiterRegister, db: Session = Depends(get_db)):
    email = payload.email.lower()

    invitation = None
    if payload.token:
        invitation = (
            db.query(RecruiterInvitation)
            .filter(
                RecruiterInvitation.token == payload.token,
                RecruiterInvitation.status == "pending",
            )
            .first()
        )
        if not invitation:
            raise BadRequestError("Invitation token is invalid or already used", "INVALID_INVITE_TOKEN")
        if invitation.email.lower() != email:
            raise BadRequestError("Invitation email mismatch", "INVITE_EMAIL_MISMATCH")
        if invitation.expires_at and invitation.expires_at < datetime.utcnow():
            raise BadRequestError("Invitation token has expired", "INVITE_EXPIRED")

    if get_user_by_email(db, email):
        raise ConflictError("An account with this email already exists", "USER_EXISTS")

    first_name, last_name = split_full_name(payload.full_name)
    now = datetime.utcnow()
    try:
        user = User(
            email=email,
            password_hash=hash_password(payload.password),
            first_name=first_name,
            last_name=last_name,
        )
        db.add(user)
        db.flush()

        role_id = ensure_role(db, RECRUITER, ROLE_DESCRIPTIONS[RECRUITER])
        ensure_user_has_role(db, user.id, role_id)

        recruiter = Recruiter(
            user_id=user.id,
            phone=sanitize_string(payload.phone),
            city=sanitize_string(payload.city),
            status="active" if invitation else "pending",
            latitude=payload.latitude,
            longitude=payload.longitude,
            avatar_url=payload.avatar_url,
            created_at=now,
            updated_at=now,
        )
        db.add(recruiter)
        db.flush()

        recruiter_events.log_recruiter_event(
            db,
            recruiter.id,
            recruiter_events.RECRUITER_REGISTERED,
            {"viaInvitation": invitation is not None, "city": recruiter.city},
        )

        if invitation:
            invitation.status = "accepted"
            invitation.accepted_at = now

        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(user)
    db.refresh(recruiter)

    token = create_access_token(user.id, [RECRUITER])
    logger.info(f"Recruiter {recruiter.id} registered ({recruiter.status})")

    user_data = dump(UserSummary, user)
    user_data["roles"] = [RECRUITER]
    return format_success(
        {"user": user_data, "recruiter": dump(RecruiterResponse, recruiter), "token": token},
        "Recruiter registered successfully",
    )


# --------------------------
# Invitations (admin)
# --------------------------
@router.post("/invitations", status_code=201)
def create_invitation(
    payload: InvitationCreate,
    db: Session = Depends(get_db),
    identity: TokenIdentity = Depends(require_admin),
):
    email = payload.email.lower()
    if get_user_by_email(db, email):
        raise ConflictError("A user with this email already exists", "USER_EXISTS")

    now = datetime.utcnow()
    expires_at = now + timedelta(days=payload.expires_in_days)
    token = uuid.uuid4()
    inviter = db.query(User.id).filter(User.id == identity.user_id).scalar()

    # re-inviting an email replaces its token and reopens the invitation
    upsert(
        db,
        RecruiterInvitation.__table__,
        {
            "id": uuid.uuid4(),
            "email": email,
            "token": token,
            "status": "pending",
            "invited_by": inviter,
            "expires_at": expires_at,
            "created_at": now,
        },
        ["email"],
        {
            "token": token,
            "status": "pending",
            "invited_by": inviter,
            "expires_at": expires_at,
            "revoked_at": None,
            "accepted_at": None,
            "created_at": now,
        },
    )
    db.commit()

    invitation = db.query(RecruiterInvitation).filter(RecruiterInvitation.email == email).first()
    db.refresh(invitation)
    return format_success(
        {"invitation": dump(InvitationResponse, invitation)}, "Recruiter invitation generated"
    )


@router.get("/invitations")
def list_invitations(
    db: Session = Depends(get_db),
    identity: TokenIdentity = Depends(require_admin),
):
    invitations = db.query(RecruiterInvitation).order_by(RecruiterInvitation.created_at.desc()).all()
    return format_success(
        [dump(InvitationResponse, i) for i in invitations],
        "Recruiter invitations retrieved successfully",
    )


@router.patch("/invitations/{invitation_id}/revoke")
def revoke_invitation(
    invitation_id: UUID,
    db: Session = Depends(get_db),
    identity: TokenIdentity = Depends(require_admin),
):
    invitation = db.query(RecruiterInvitation).filter(RecruiterInvitation.id == invitation_id).first()
    if not invitation:
        raise NotFoundError("Invitation not found", "INVITATION_NOT_FOUND")
    if invitation.status == "accepted":
        raise BadRequestError("Cannot revoke an already accepted invitation", "INVITE_ALREADY_ACCEPTED")
    if invitation.status == "revoked":
        raise BadRequestError("Invitation has already been revoked", "INVITE_ALREADY_REVOKED")

    invitation.status = "revoked"
    invitation.revoked_at = datetime.utcnow()
    db.commit()
    return format_success({"id": str(invitation_id)}, "Invitation revoked successfully")


# --------------------------
# Recruiter directory (admin)
# --------------------------
@router.get("")
@router.get("/", include_in_schema=False)
def list_recruiters(
    status: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    identity: TokenIdentity = Depends(require_admin),
):
    q = db.query(Recruiter, User).outerjoin(User, Recruiter.user_id == User.id)
    if status:
        q = q.filter(Recruiter.status == status)
    if city:
        q = q.filter(Recruiter.city.ilike(f"%{city}%"))
    if search:
        term = f"%{search}%"
        q = q.filter(
            or_(
                User.first_name.ilike(term),
                User.last_name.ilike(term),
                User.email.ilike(term),
                Recruiter.city.ilike(term),
                Recruiter.phone.ilike(term),
            )
        )
    rows = q.order_by(Recruiter.created_at.desc()).all()
    counts = provider_counts(db)

    data = []
    for recruiter, user in rows:
        total, pending = counts.get(recruiter.id, (0, 0))
        has_coordinates = recruiter.latitude is not None and recruiter.longitude is not None
        data.append({
            "id": str(recruiter.id),
            "userId": str(recruiter.user_id),
            "name": user.full_name if user else "",
            "email": user.email if user else None,
            "phone": recruiter.phone,
            "location": recruiter.city,
            "coordinates": (
                {"lat": float(recruiter.latitude), "lng": float(recruiter.longitude)}
                if has_coordinates else None
            ),
            "status": recruiter.status,
            "avatarUrl": recruiter.avatar_url,
            "lastActiveAt": recruiter.last_active_at.isoformat() if recruiter.last_active_at else None,
            "totalProviders": total,
            "pendingProviders": pending,
            "createdAt": recruiter.created_at.isoformat(),
        })
    return format_success(data, "Recruiters retrieved successfully")


# --------------------------
# Own recruiter profile
# --------------------------
@router.get("/me")
def get_my_recruiter_profile(
    db: Session = Depends(get_db),
    identity: TokenIdentity = Depends(require_recruiter_or_admin),
):
    recruiter = get_recruiter_for_user(db, identity.user_id)
    if not recruiter:
        raise NotFoundError("Recruiter profile not found", "RECRUITER_NOT_FOUND")

    total, pending = provider_counts(db, recruiter.id).get(recruiter.id, (0, 0))
    return format_success(
        {
            "recruiter": dump(RecruiterResponse, recruiter),
            "user": dump(UserSummary, recruiter.user),
            "stats": {"totalProviders": total, "pendingProviders": pending},
        },
        "Recruiter profile retrieved successfully",
    )


@router.patch("/me")
def update_my_recruiter_profile(
    payload: RecruiterSelfUpdate,
    db: Session = Depends(get_db),
    identity: TokenIdentity = Depends(require_recruiter_or_admin),
):
    recruiter = get_recruiter_for_user(db, identity.user_id)
    if not recruiter:
        raise NotFoundError("Recruiter profile not found", "RECRUITER_NOT_FOUND")

    updates = payload.model_dump(exclude_unset=True)
    if "status" in updates and recruiter.status in ("pending", "suspended") and not identity.is_admin:
        raise AuthorizationError("Your recruiter account status can only be changed by an administrator")

    try:
        for field, value in updates.items():
            if field in ("phone", "city") and value:
                value = sanitize_string(value)
            setattr(recruiter, field, value)
        recruiter.updated_at = datetime.utcnow()

        recruiter_events.log_recruiter_event(
            db,
            recruiter.id,
            recruiter_events.PROFILE_UPDATED,
            {"updatedFields": list(payload.model_dump(exclude_unset=True, by_alias=True).keys())},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(recruiter)
    return format_success(dump(RecruiterResponse, recruiter), "Recruiter profile updated successfully")


@router.patch("/{recruiter_id}/status")
def update_recruiter_status(
    recruiter_id: UUID,
    payload: RecruiterStatusUpdate,
    db: Session = Depends(get_db),
    identity: TokenIdentity = Depends(require_admin),
):
    recruiter = db.query(Recruiter).filter(Recruiter.id == recruiter_id).first()
    if not recruiter:
        raise NotFoundError("Recruiter not found", "RECRUITER_NOT_FOUND")

    recruiter.status = payload.status
    recruiter.updated_at = datetime.utcnow()
    recruiter_events.log_recruiter_event(
        db,
        recruiter.id,
        recruiter_events.STATUS_UPDATED,
        {"status": payload.status, "updatedBy": str(identity.user_id)},
    )
    db.commit()
    db.refresh(recruiter)
    return format_success(dump(RecruiterResponse, recruiter), "Recruiter status updated successfully")
