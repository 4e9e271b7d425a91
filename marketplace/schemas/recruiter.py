# marketplace/schemas/recruiter.py
import re
from pydantic import EmailStr, Field, ValidationInfo, field_validator, model_validator
from typing import Any, Dict, Literal, Optional
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from marketplace.schemas.common import CamelModel, reject_null
from marketplace.schemas.profile import check_url

PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d).+$")


class RecruiterRegister(CamelModel):
    full_name: str = Field(min_length=2, max_length=120)
    email: EmailStr
    password: str = Field(min_length=8)
    confirm_password: str
    phone: str = Field(min_length=7, max_length=30)
    city: str = Field(max_length=100)
    token: Optional[UUID] = None
    latitude: Optional[Decimal] = Field(default=None, ge=-90, le=90)
    longitude: Optional[Decimal] = Field(default=None, ge=-180, le=180)
    avatar_url: Optional[str] = None

    @field_validator("password")
    @classmethod
    def password_complexity(cls, value: str):
        if not PASSWORD_PATTERN.match(value):
            raise ValueError("Password must contain uppercase, lowercase, and a number")
        return value

    @field_validator("avatar_url")
    @classmethod
    def validate_avatar(cls, value):
        return check_url(value)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class InvitationCreate(CamelModel):
    email: EmailStr
    expires_in_days: int = Field(default=7, ge=1, le=30)


class RecruiterSelfUpdate(CamelModel):
    phone: Optional[str] = Field(default=None, min_length=7, max_length=30)
    city: Optional[str] = Field(default=None, max_length=100)
    status: Optional[Literal["active", "away", "offline", "pending"]] = None
    latitude: Optional[Decimal] = Field(default=None, ge=-90, le=90)
    longitude: Optional[Decimal] = Field(default=None, ge=-180, le=180)
    avatar_url: Optional[str] = None

    @field_validator("phone", "status")
    @classmethod
    def validate_required(cls, value, info: ValidationInfo):
        return reject_null(value, info)

    @field_validator("avatar_url")
    @classmethod
    def validate_avatar(cls, value):
        if value == "":
            return None
        return check_url(value)


class RecruiterStatusUpdate(CamelModel):
    status: Literal["active", "away", "offline", "suspended"]


class RecruiterResponse(CamelModel):
    id: UUID
    user_id: UUID
    phone: str
    city: Optional[str] = None
    status: str
    latitude: Optional[Decimal] = None
    longitude: Optional[Decimal] = None
    avatar_url: Optional[str] = None
    last_active_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class InvitationResponse(CamelModel):
    id: UUID
    email: str
    token: UUID
    status: str
    invited_by: Optional[UUID] = None
    expires_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    revoked_at: Optional[datetime] = None
    created_at: datetime


class RecruiterEventResponse(CamelModel):
    id: UUID
    recruiter_id: UUID
    event_type: str
    event_metadata: Optional[Dict[str, Any]] = Field(default=None, serialization_alias="metadata")
    created_at: datetime
    recruiter_name: Optional[str] = None
