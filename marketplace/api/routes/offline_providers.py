# marketplace/api/routes/offline_providers.py
"""
Recruiter-driven onboarding of offline providers and their documents.

Onboarding creates (or reuses) the provider's user account, grants the
provider role, resolves the free-text category and creates the profile in a
single transaction. Uploaded files are stored before their metadata row is
written; if that write fails the stored object is left behind and only logged.
"""
import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from marketplace.core.config import settings
from marketplace.core.errors import (
    ApiError,
    AuthorizationError,
    BadRequestError,
    ConflictError,
    NotFoundError,
    format_success,
)
from marketplace.core.security import TokenIdentity, hash_password, require_any_role
from marketplace.db.base import get_db
from marketplace.db.models.category import Category
from marketplace.db.models.provider_profile import ProviderProfile
from marketplace.db.models.recruiter import Recruiter
from marketplace.db.models.user import ADMINISTRATOR, PROVIDER, RECRUITER, ROLE_DESCRIPTIONS, User
from marketplace.infrastructure import storage
from marketplace.schemas.common import dump, paginate
from marketplace.schemas.offline import (
    DocumentResponse,
    DocumentsAttach,
    OfflineProviderCreate,
    OfflineProviderListItem,
    OfflineProviderUpdate,
    ProviderStatusUpdate,
    RecruiterSummary,
)
from marketplace.schemas.profile import (
    ProviderProfileCreateInput,
    ProviderProfilePatch,
    ProviderProfileResponse,
    UserSummary,
)
from marketplace.services import provider_documents, provider_profiles, recruiter_events
from marketplace.services.provider_documents import ProviderDocumentInput
from marketplace.services.users import get_recruiter_for_user, get_user_by_email
from marketplace.utils.names import generate_random_string, sanitize_string, split_full_name

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/offline/providers", tags=["offline-providers"])

require_recruiter_or_admin = require_any_role(RECRUITER, ADMINISTRATOR)
require_admin = require_any_role(ADMINISTRATOR)

TEMPORARY_PASSWORD_LENGTH = 12


def _get_provider_or_404(db: Session, provider_id: UUID) -> ProviderProfile:
    provider = db.query(ProviderProfile).filter(ProviderProfile.id == provider_id).first()
    if not provider:
        raise NotFoundError("Provider not found", "PROVIDER_NOT_FOUND")
    return provider


def resolve_recruiter_id(db: Session, identity: TokenIdentity, body_recruiter_id: Optional[UUID]) -> UUID:
    """Recruiters act as themselves; administrators must name the recruiter they act for."""
    if identity.has_role(RECRUITER):
        recruiter = get_recruiter_for_user(db, identity.user_id)
        if not recruiter:
            raise BadRequestError("Recruiter profile not found for current user", "RECRUITER_PROFILE_NOT_FOUND")
        return recruiter.id

    if identity.is_admin:
        if not body_recruiter_id:
            raise BadRequestError(
                "Recruiter ID is required when creating providers as an administrator",
                "RECRUITER_ID_REQUIRED",
            )
        recruiter = db.query(Recruiter).filter(Recruiter.id == body_recruiter_id).first()
        if not recruiter:
            raise BadRequestError("Recruiter not found", "RECRUITER_NOT_FOUND")
        return recruiter.id

    raise AuthorizationError("Only recruiters and administrators can onboard providers")


def _uploader_recruiter_id(db: Session, identity: TokenIdentity) -> Optional[UUID]:
    if not identity.has_role(RECRUITER):
        return None
    recruiter = get_recruiter_for_user(db, identity.user_id)
    return recruiter.id if recruiter else None


def _recruiter_summary(recruiter: Optional[Recruiter]) -> Optional[dict]:
    if recruiter is None:
        return None
    user = recruiter.user
    return {
        "id": recruiter.id,
        "name": user.full_name if user else "",
        "email": user.email if user else None,
    }


# --------------------------
# Onboarding
# --------------------------
@router.post("", status_code=201)
@router.post("/", status_code=201, include_in_schema=False)
def create_offline_provider(
    payload: OfflineProviderCreate,
    db: Session = Depends(get_db),
    identity: TokenIdentity = Depends(require_recruiter_or_admin),
):
    recruiter_id = resolve_recruiter_id(db, identity, payload.recruiter_id)
    first_name, last_name = split_full_name(payload.full_name)
    email = payload.email.lower()

    temporary_password = None
    try:
        user = get_user_by_email(db, email)
        if user is None:
            temporary_password = generate_random_string(TEMPORARY_PASSWORD_LENGTH)
            user = User(
                email=email,
                password_hash=hash_password(temporary_password),
                first_name=first_name,
                last_name=last_name,
            )
            db.add(user)
            db.flush()
        elif db.query(ProviderProfile.id).filter(ProviderProfile.user_id == user.id).first():
            raise ConflictError("Provider profile already exists for this email", "PROVIDER_EXISTS")

        role_id = provider_profiles.ensure_role(db, PROVIDER, ROLE_DESCRIPTIONS[PROVIDER])
        provider_profiles.ensure_user_has_role(db, user.id, role_id)

        service_category = sanitize_string(payload.service_category)
        category_id = provider_profiles.ensure_category_by_name(db, service_category)

        profile = provider_profiles.create_profile(
            db,
            ProviderProfileCreateInput(
                user_id=user.id,
                first_name=first_name,
                last_name=last_name,
                business_name=f"{sanitize_string(payload.full_name)} {service_category} Services".strip(),
                description=sanitize_string(payload.bio) if payload.bio else None,
                profile_picture_url=payload.profile_picture_url,
                service_title=service_category,
                category_id=category_id,
                price_per_hour=payload.price_per_hour,
                location_string=sanitize_string(payload.city),
                full_address=sanitize_string(payload.full_address) if payload.full_address else None,
                contact_phone=sanitize_string(payload.phone),
                latitude=payload.latitude,
                longitude=payload.longitude,
                onboarded_by=recruiter_id,
                onboarded_at=datetime.utcnow(),
            ),
            status="pending",
        )

        provider_documents.insert_documents(
            db,
            [
                ProviderDocumentInput(provider_id=profile.id, uploaded_by=recruiter_id, **doc.model_dump())
                for doc in payload.documents or []
            ],
        )

        recruiter_events.log_recruiter_event(
            db,
            recruiter_id,
            recruiter_events.PROVIDER_ONBOARDED,
            {"providerId": str(profile.id), "serviceCategory": payload.service_category},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(profile)
    db.refresh(user)

    logger.info(f"Recruiter {recruiter_id} onboarded provider {profile.id}")
    return format_success(
        {
            "provider": dump(ProviderProfileResponse, profile),
            "user": dump(UserSummary, user),
            "temporaryPassword": temporary_password,
        },
        "Provider onboarded successfully",
    )


# --------------------------
# Listing and detail
# --------------------------
@router.get("")
@router.get("/", include_in_schema=False)
def list_offline_providers(
    status: Optional[str] = Query(None),
    recruiter_id: Optional[UUID] = Query(None, alias="recruiterId"),
    category: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
    identity: TokenIdentity = Depends(require_recruiter_or_admin),
):
    q = (
        db.query(ProviderProfile, User, Category)
        .outerjoin(User, ProviderProfile.user_id == User.id)
        .outerjoin(Category, ProviderProfile.category_id == Category.id)
    )
    if status:
        q = q.filter(ProviderProfile.status == status)
    if recruiter_id:
        q = q.filter(ProviderProfile.onboarded_by == recruiter_id)
    if city:
        q = q.filter(ProviderProfile.location_string.ilike(f"%{city}%"))
    if category:
        term = f"%{category}%"
        q = q.filter(or_(ProviderProfile.service_title.ilike(term), Category.name.ilike(term)))
    if search:
        term = f"%{search}%"
        q = q.filter(
            or_(
                ProviderProfile.first_name.ilike(term),
                ProviderProfile.last_name.ilike(term),
                ProviderProfile.business_name.ilike(term),
                User.email.ilike(term),
            )
        )

    total = q.count()
    rows = (
        q.order_by(ProviderProfile.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    recruiter_ids = {profile.onboarded_by for profile, _, _ in rows if profile.onboarded_by}
    recruiters = {}
    if recruiter_ids:
        for recruiter in db.query(Recruiter).filter(Recruiter.id.in_(recruiter_ids)).all():
            recruiters[recruiter.id] = _recruiter_summary(recruiter)

    providers = []
    for profile, user, category_row in rows:
        providers.append(dump(OfflineProviderListItem, {
            "id": profile.id,
            "status": profile.status,
            "first_name": profile.first_name,
            "last_name": profile.last_name,
            "service_title": profile.service_title,
            "category": category_row.name if category_row else None,
            "price_per_hour": profile.price_per_hour,
            "location": profile.location_string,
            "full_address": profile.full_address,
            "phone": profile.contact_phone,
            "email": user.email if user else None,
            "recruiter": recruiters.get(profile.onboarded_by),
            "total_earnings": profile.total_earnings or 0,
            "total_commission": profile.total_commission or 0,
            "created_at": profile.created_at,
        }))

    status_counts = dict(
        db.query(ProviderProfile.status, func.count(ProviderProfile.id))
        .group_by(ProviderProfile.status)
        .all()
    )
    return format_success(
        {
            "providers": providers,
            "pagination": paginate(page, limit, total),
            "summary": {
                "total": total,
                "pending": status_counts.get("pending", 0),
                "active": status_counts.get("active", 0),
            },
        },
        "Providers retrieved successfully",
    )


@router.get("/{provider_id}")
def get_offline_provider(
    provider_id: UUID,
    db: Session = Depends(get_db),
    identity: TokenIdentity = Depends(require_recruiter_or_admin),
):
    provider = _get_provider_or_404(db, provider_id)
    documents = provider_documents.list_documents(db, provider.id)

    return format_success(
        {
            "provider": dump(ProviderProfileResponse, provider),
            "user": dump(UserSummary, provider.user) if provider.user else None,
            "category": (
                {"id": provider.category.id, "name": provider.category.name} if provider.category else None
            ),
            "documents": [dump(DocumentResponse, d) for d in documents],
            "recruiter": (
                dump(RecruiterSummary, _recruiter_summary(provider.onboarded_by_recruiter))
                if provider.onboarded_by_recruiter else None
            ),
        },
        "Provider retrieved successfully",
    )


# --------------------------
# Updates
# --------------------------
@router.patch("/{provider_id}")
def update_offline_provider(
    provider_id: UUID,
    payload: OfflineProviderUpdate,
    db: Session = Depends(get_db),
    identity: TokenIdentity = Depends(require_recruiter_or_admin),
):
    provider = _get_provider_or_404(db, provider_id)

    if not identity.is_admin and provider.onboarded_by:
        recruiter = get_recruiter_for_user(db, identity.user_id)
        if not recruiter or recruiter.id != provider.onboarded_by:
            raise AuthorizationError("You can only update providers you onboarded")

    fields = payload.model_fields_set
    patch = {}
    if payload.phone:
        patch["contact_phone"] = sanitize_string(payload.phone)
    if payload.city:
        patch["location_string"] = sanitize_string(payload.city)
    if "full_address" in fields:
        patch["full_address"] = sanitize_string(payload.full_address) if payload.full_address else None
    if "bio" in fields:
        patch["description"] = sanitize_string(payload.bio) if payload.bio else None
    if "profile_picture_url" in fields:
        patch["profile_picture_url"] = payload.profile_picture_url
    for field in ("price_per_hour", "latitude", "longitude"):
        if field in fields:
            patch[field] = getattr(payload, field)
    if payload.service_category:
        service_category = sanitize_string(payload.service_category)
        if service_category:
            patch["service_title"] = service_category
            patch["category_id"] = provider_profiles.ensure_category_by_name(db, service_category)
    if payload.status and identity.is_admin:
        patch["status"] = payload.status

    try:
        provider = provider_profiles.update_profile(db, provider.id, ProviderProfilePatch(**patch))
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(provider)
    return format_success(dump(ProviderProfileResponse, provider), "Provider updated successfully")


@router.patch("/{provider_id}/status")
def update_offline_provider_status(
    provider_id: UUID,
    payload: ProviderStatusUpdate,
    db: Session = Depends(get_db),
    identity: TokenIdentity = Depends(require_admin),
):
    _get_provider_or_404(db, provider_id)
    try:
        provider = provider_profiles.update_profile(
            db, provider_id, ProviderProfilePatch(status=payload.status)
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(provider)
    logger.info(f"Provider {provider_id} status set to {payload.status}")
    return format_success(dump(ProviderProfileResponse, provider), "Provider status updated successfully")


# --------------------------
# Documents
# --------------------------
@router.post("/{provider_id}/documents/upload", status_code=201)
def upload_provider_document(
    provider_id: UUID,
    file: Optional[UploadFile] = File(None),
    document_type: Optional[str] = Form(None, alias="documentType"),
    db: Session = Depends(get_db),
    identity: TokenIdentity = Depends(require_recruiter_or_admin),
):
    _get_provider_or_404(db, provider_id)

    if file is None:
        raise BadRequestError("A file is required", "FILE_REQUIRED")
    if not document_type or not document_type.strip():
        raise BadRequestError("documentType is required")
    if len(document_type) > 50:
        raise BadRequestError("documentType must be at most 50 characters")

    content = file.file.read()
    if len(content) > settings.UPLOAD_MAX_FILE_MB * 1024 * 1024:
        raise ApiError(413, f"File exceeds the {settings.UPLOAD_MAX_FILE_MB}MB limit", "FILE_TOO_LARGE")

    stored = storage.save_file(
        content,
        file.filename or "",
        f"providers/{provider_id}/documents",
        content_type=file.content_type,
    )

    uploader_id = _uploader_recruiter_id(db, identity)
    try:
        (document,) = provider_documents.insert_documents(
            db,
            [
                ProviderDocumentInput(
                    provider_id=provider_id,
                    document_type=document_type,
                    storage_key=stored.key,
                    file_url=stored.url,
                    file_name=stored.file_name,
                    mime_type=stored.mime_type or file.content_type,
                    file_size=stored.size,
                    uploaded_by=uploader_id,
                )
            ],
        )
        if uploader_id:
            recruiter_events.log_recruiter_event(
                db,
                uploader_id,
                recruiter_events.PROVIDER_DOCUMENT_UPLOADED,
                {"providerId": str(provider_id), "documentId": str(document.id), "documentType": document_type},
            )
        db.commit()
    except Exception:
        db.rollback()
        logger.error(f"Document metadata write failed; stored file left at {stored.key}")
        raise
    db.refresh(document)
    return format_success(dump(DocumentResponse, document), "Document uploaded successfully")


@router.post("/{provider_id}/documents", status_code=201)
def attach_provider_documents(
    provider_id: UUID,
    payload: DocumentsAttach,
    db: Session = Depends(get_db),
    identity: TokenIdentity = Depends(require_recruiter_or_admin),
):
    _get_provider_or_404(db, provider_id)
    uploader_id = _uploader_recruiter_id(db, identity)

    documents = provider_documents.insert_documents(
        db,
        [
            ProviderDocumentInput(provider_id=provider_id, uploaded_by=uploader_id, **doc.model_dump())
            for doc in payload.documents
        ],
    )
    db.commit()
    return format_success(
        [dump(DocumentResponse, d) for d in documents], "Documents attached successfully"
    )


@router.delete("/{provider_id}/documents/{document_id}")
def delete_provider_document(
    provider_id: UUID,
    document_id: UUID,
    db: Session = Depends(get_db),
    identity: TokenIdentity = Depends(require_recruiter_or_admin),
):
    document = provider_documents.delete_document(db, provider_id, document_id)
    if not document:
        raise NotFoundError("Document not found", "DOCUMENT_NOT_FOUND")
    storage_key = document.storage_key
    db.commit()

    # row is gone; a failed object delete is not rolled back
    storage.delete_file(storage_key)
    return format_success({"id": str(document_id)}, "Document removed successfully")
