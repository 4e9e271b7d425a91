# marketplace/schemas/offline.py
from pydantic import EmailStr, Field, field_validator
from typing import List, Literal, Optional
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from marketplace.schemas.common import CamelModel
from marketplace.schemas.profile import check_url

ProfileStatus = Literal["pending", "active", "rejected", "suspended"]


class DocumentPayload(CamelModel):
    document_type: str = Field(max_length=50)
    file_url: str
    storage_key: Optional[str] = Field(default=None, max_length=500)
    file_name: Optional[str] = Field(default=None, max_length=255)
    mime_type: Optional[str] = Field(default=None, max_length=180)
    file_size: Optional[int] = Field(default=None, ge=0)

    @field_validator("file_url")
    @classmethod
    def validate_file_url(cls, value):
        return check_url(value)


def _blank_url(value):
    if value == "":
        return None
    return check_url(value)


# Recruiter onboards a provider
class OfflineProviderCreate(CamelModel):
    full_name: str = Field(min_length=1, max_length=120)
    email: EmailStr
    phone: str = Field(max_length=30)
    service_category: str = Field(max_length=100)
    city: str = Field(max_length=120)
    price_per_hour: Optional[Decimal] = Field(default=None, ge=0)
    full_address: Optional[str] = Field(default=None, max_length=255)
    bio: Optional[str] = Field(default=None, max_length=1000)
    profile_picture_url: Optional[str] = None
    recruiter_id: Optional[UUID] = None
    latitude: Optional[Decimal] = Field(default=None, ge=-90, le=90)
    longitude: Optional[Decimal] = Field(default=None, ge=-180, le=180)
    documents: Optional[List[DocumentPayload]] = None

    @field_validator("profile_picture_url")
    @classmethod
    def validate_picture(cls, value):
        return _blank_url(value)


class OfflineProviderUpdate(CamelModel):
    phone: Optional[str] = Field(default=None, max_length=30)
    city: Optional[str] = Field(default=None, max_length=120)
    full_address: Optional[str] = Field(default=None, max_length=255)
    bio: Optional[str] = Field(default=None, max_length=1000)
    profile_picture_url: Optional[str] = None
    price_per_hour: Optional[Decimal] = Field(default=None, ge=0)
    status: Optional[ProfileStatus] = None
    latitude: Optional[Decimal] = Field(default=None, ge=-90, le=90)
    longitude: Optional[Decimal] = Field(default=None, ge=-180, le=180)
    service_category: Optional[str] = Field(default=None, max_length=100)

    @field_validator("profile_picture_url")
    @classmethod
    def validate_picture(cls, value):
        return _blank_url(value)


class ProviderStatusUpdate(CamelModel):
    status: ProfileStatus


class DocumentsAttach(CamelModel):
    documents: List[DocumentPayload] = Field(min_length=1)


class DocumentResponse(CamelModel):
    id: UUID
    provider_id: UUID
    document_type: str
    storage_key: Optional[str] = None
    file_url: str
    file_name: Optional[str] = None
    mime_type: Optional[str] = None
    file_size: Optional[int] = None
    uploaded_by: Optional[UUID] = None
    created_at: datetime


class RecruiterSummary(CamelModel):
    id: UUID
    name: str
    email: Optional[str] = None


class OfflineProviderListItem(CamelModel):
    id: UUID
    status: str
    first_name: str
    last_name: str
    service_title: str
    category: Optional[str] = None
    price_per_hour: Optional[Decimal] = None
    location: Optional[str] = None
    full_address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    recruiter: Optional[RecruiterSummary] = None
    total_earnings: Decimal = Decimal("0")
    total_commission: Decimal = Decimal("0")
    created_at: datetime
