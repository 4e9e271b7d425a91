# marketplace/api/routes/auth.py
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.core.errors import AuthenticationError, ConflictError, NotFoundError, format_success
from marketplace.core.security import (
    TokenIdentity,
    create_access_token,
    get_current_identity,
    hash_password,
    verify_password,
)
from marketplace.db.base import get_db
from marketplace.db.models.user import CUSTOMER, ROLE_DESCRIPTIONS, User
from marketplace.schemas.common import dump
from marketplace.schemas.user import UserLogin, UserRegister, UserResponse
from marketplace.services.provider_profiles import ensure_role, ensure_user_has_role
from marketplace.services.users import get_role_names, get_user_by_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _user_payload(user: User, roles, include_updated: bool = False) -> dict:
    data = dump(UserResponse, {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "roles": roles,
        "created_at": user.created_at,
        "updated_at": user.updated_at,
    })
    if not include_updated:
        data.pop("updatedAt", None)
    return data


@router.post("/register", status_code=201)
def register(payload: UserRegister, db: Session = Depends(get_db)):
    email = payload.email.lower()
    if get_user_by_email(db, email):
        raise ConflictError("User with this email already exists", "USER_EXISTS")

    user = User(
        email=email,
        password_hash=hash_password(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
    )
    try:
        db.add(user)
        db.flush()
        role_id = ensure_role(db, CUSTOMER, ROLE_DESCRIPTIONS[CUSTOMER])
        ensure_user_has_role(db, user.id, role_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(user)

    roles = [CUSTOMER]
    token = create_access_token(user.id, roles)
    logger.info(f"Registered user {user.id}")
    return format_success(
        {"user": _user_payload(user, roles), "token": token},
        "User registered successfully",
    )


@router.post("/login")
def login(payload: UserLogin, db: Session = Depends(get_db)):
    user = get_user_by_email(db, payload.email)
    if not user or not verify_password(payload.password, user.password_hash):
        raise AuthenticationError("Invalid email or password", "INVALID_CREDENTIALS")

    roles = get_role_names(db, user.id)
    token = create_access_token(user.id, roles)
    return format_success(
        {"user": _user_payload(user, roles), "token": token},
        "Login successful",
    )


@router.get("/profile")
def profile(identity: TokenIdentity = Depends(get_current_identity), db: Session = Depends(get_db)):
    user = db.query(User).filter(User.id == identity.user_id).first()
    if not user:
        raise NotFoundError("User not found", "USER_NOT_FOUND")

    roles = get_role_names(db, user.id)
    return format_success(_user_payload(user, roles, include_updated=True), "Profile retrieved successfully")
