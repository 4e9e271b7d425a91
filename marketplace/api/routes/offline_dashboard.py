# marketplace/api/routes/offline_dashboard.py
from fastapi import APIRouter, Depends
from sqlalchemy import case, func
from sqlalchemy.orm import Session

from marketplace.core.errors import format_success
from marketplace.core.security import TokenIdentity, require_any_role
from marketplace.db.base import get_db
from marketplace.db.models.category import Category
from marketplace.db.models.provider_profile import ProviderProfile
from marketplace.db.models.recruiter import Recruiter, RecruiterEvent
from marketplace.db.models.user import ADMINISTRATOR, RECRUITER, User
from marketplace.schemas.recruiter import RecruiterEventResponse

router = APIRouter(prefix="/api/offline/dashboard", tags=["offline-dashboard"])

require_recruiter_or_admin = require_any_role(RECRUITER, ADMINISTRATOR)

RECENT_PROVIDERS = 6
ACTIVITY_FEED_SIZE = 25


def _status_count(status: str):
    return func.coalesce(func.sum(case((ProviderProfile.status == status, 1), else_=0)), 0)


def _name(first_name, last_name) -> str:
    return f"{first_name or ''} {last_name or ''}".strip()


@router.get("/overview")
def get_overview(
    db: Session = Depends(get_db),
    identity: TokenIdentity = Depends(require_recruiter_or_admin),
):
    total, active, pending, earnings, commission = db.query(
        func.count(ProviderProfile.id),
        _status_count("active"),
        _status_count("pending"),
        func.coalesce(func.sum(ProviderProfile.total_earnings), 0),
        func.coalesce(func.sum(ProviderProfile.total_commission), 0),
    ).one()

    provider_count = func.count(ProviderProfile.id)
    by_city = (
        db.query(ProviderProfile.location_string, provider_count)
        .group_by(ProviderProfile.location_string)
        .order_by(provider_count.desc())
        .all()
    )

    recruiter_rows = (
        db.query(
            Recruiter.id,
            User.first_name,
            User.last_name,
            User.email,
            provider_count,
            _status_count("active"),
            _status_count("pending"),
        )
        .outerjoin(User, Recruiter.user_id == User.id)
        .outerjoin(ProviderProfile, ProviderProfile.onboarded_by == Recruiter.id)
        .group_by(Recruiter.id, User.first_name, User.last_name, User.email)
        .order_by(provider_count.desc())
        .all()
    )

    recent = (
        db.query(ProviderProfile, Category.name)
        .outerjoin(Category, ProviderProfile.category_id == Category.id)
        .order_by(ProviderProfile.created_at.desc())
        .limit(RECENT_PROVIDERS)
        .all()
    )

    overview = {
        "summary": {
            "totalProviders": int(total or 0),
            "activeProviders": int(active or 0),
            "pendingProviders": int(pending or 0),
            "totalEarnings": float(earnings or 0),
            "walletBalance": float(commission or 0),
        },
        "providersByCity": [
            {"city": city or "Unknown", "count": int(count)} for city, count in by_city
        ],
        "recruiterStats": [
            {
                "recruiterId": str(recruiter_id),
                "name": _name(first_name, last_name),
                "email": email,
                "totalProviders": int(count or 0),
                "activeProviders": int(active_count or 0),
                "pendingProviders": int(pending_count or 0),
            }
            for recruiter_id, first_name, last_name, email, count, active_count, pending_count in recruiter_rows
        ],
        "recentProviders": [
            {
                "id": str(profile.id),
                "firstName": profile.first_name,
                "lastName": profile.last_name,
                "status": profile.status,
                "serviceTitle": profile.service_title,
                "categoryName": category_name,
                "createdAt": profile.created_at.isoformat(),
            }
            for profile, category_name in recent
        ],
    }
    return format_success(overview, "Offline dashboard overview retrieved successfully")


@router.get("/activity")
def get_activity(
    db: Session = Depends(get_db),
    identity: TokenIdentity = Depends(require_recruiter_or_admin),
):
    rows = (
        db.query(RecruiterEvent, User.first_name, User.last_name)
        .outerjoin(Recruiter, RecruiterEvent.recruiter_id == Recruiter.id)
        .outerjoin(User, Recruiter.user_id == User.id)
        .order_by(RecruiterEvent.created_at.desc())
        .limit(ACTIVITY_FEED_SIZE)
        .all()
    )

    events = []
    for event, first_name, last_name in rows:
        item = RecruiterEventResponse.model_validate(event)
        item.recruiter_name = _name(first_name, last_name)
        events.append(item.model_dump(mode="json", by_alias=True))
    return format_success(events, "Offline activity feed retrieved successfully")
