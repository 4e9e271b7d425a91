"""
Password hashing, access tokens and role checks.

Tokens carry a snapshot of the user's role names taken when the token was
issued. Requests are authorized against that snapshot without reading the
database, so a role granted or revoked after issuance only takes effect once
the user logs in again (or the token expires after JWT_EXPIRES_MINUTES).
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional, Sequence
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from marketplace.core.config import settings
from marketplace.core.errors import AuthenticationError, AuthorizationError
from marketplace.db.models.user import ADMINISTRATOR, PROVIDER

logger = logging.getLogger(__name__)

pwd_context = CryptContext(
    schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS
)
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class TokenIdentity:
    user_id: UUID
    roles: List[str] = field(default_factory=list)

    def has_role(self, role: str) -> bool:
        return role in self.roles

    @property
    def is_admin(self) -> bool:
        return ADMINISTRATOR in self.roles


# --------------------------
# Passwords
# --------------------------
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)


# --------------------------
# Tokens
# --------------------------
def create_access_token(user_id, roles: Sequence[str], expires_delta: Optional[timedelta] = None) -> str:
    if not settings.JWT_SECRET:
        raise RuntimeError("JWT_SECRET is not configured")

    issued_at = datetime.utcnow()
    expire = issued_at + (expires_delta or timedelta(minutes=settings.JWT_EXPIRES_MINUTES))
    payload = {
        "userId": str(user_id),
        "roles": list(roles),
        "iat": issued_at,
        "exp": expire,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> TokenIdentity:
    if not settings.JWT_SECRET:
        raise RuntimeError("JWT_SECRET is not configured")
    try:
        data = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise AuthenticationError("Token has expired", "TOKEN_EXPIRED")
    except JWTError as exc:
        logger.debug(f"Rejected access token: {exc}")
        raise AuthenticationError("Invalid token", "INVALID_TOKEN")

    roles = data.get("roles")
    try:
        user_id = UUID(str(data.get("userId")))
    except ValueError:
        raise AuthenticationError("Invalid token", "INVALID_TOKEN")
    if not isinstance(roles, list):
        raise AuthenticationError("Invalid token", "INVALID_TOKEN")
    return TokenIdentity(user_id=user_id, roles=[str(r) for r in roles])


# --------------------------
# Dependencies
# --------------------------
def get_current_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> TokenIdentity:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authentication required", "UNAUTHENTICATED")

    identity = decode_access_token(credentials.credentials)
    request.state.identity = identity
    return identity


def require_any_role(*roles: str):
    """Dependency factory: caller must hold at least one of ``roles``."""

    def dependency(identity: TokenIdentity = Depends(get_current_identity)) -> TokenIdentity:
        if not any(role in identity.roles for role in roles):
            raise AuthorizationError(f"Access denied. Required roles: {' or '.join(roles)}")
        return identity

    return dependency


def require_all_roles(*roles: str):
    """Dependency factory: caller must hold every one of ``roles``."""

    def dependency(identity: TokenIdentity = Depends(get_current_identity)) -> TokenIdentity:
        if not all(role in identity.roles for role in roles):
            raise AuthorizationError(f"Access denied. Required roles: {' and '.join(roles)}")
        return identity

    return dependency


def ensure_owner_or_admin(identity: TokenIdentity, owner_user_id) -> None:
    if identity.is_admin or str(identity.user_id) == str(owner_user_id):
        return
    raise AuthorizationError("Access denied. You can only access your own resources")


def require_owner_or_admin(
    user_id: UUID, identity: TokenIdentity = Depends(get_current_identity)
) -> TokenIdentity:
    # user_id is read from the path of the route using this dependency
    ensure_owner_or_admin(identity, user_id)
    return identity


def require_provider_or_admin(identity: TokenIdentity = Depends(get_current_identity)) -> TokenIdentity:
    if identity.is_admin or identity.has_role(PROVIDER):
        return identity
    raise AuthorizationError("Access denied. Provider or administrator role required")
