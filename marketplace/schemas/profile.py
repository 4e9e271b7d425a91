# marketplace/schemas/profile.py

from pydantic import BaseModel, Field, ValidationInfo, field_validator
from typing import List, Optional, Union
from datetime import datetime
from decimal import Decimal
from urllib.parse import urlparse
from uuid import UUID

from marketplace.schemas.common import CamelModel, reject_null

DecimalInput = Union[Decimal, int, float, str, None]
DateInput = Union[datetime, str, None]


def check_url(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("Must be a valid URI")
    return value


# --------------------------
# Service-layer value types
# --------------------------
class ProviderProfileCreateInput(BaseModel):
    user_id: UUID
    first_name: str
    last_name: str
    business_name: str
    service_title: str
    description: Optional[str] = None
    profile_picture_url: Optional[str] = None
    category_id: Optional[int] = None
    price_per_hour: DecimalInput = None
    location_string: Optional[str] = None
    full_address: Optional[str] = None
    contact_phone: Optional[str] = None
    latitude: DecimalInput = None
    longitude: DecimalInput = None
    portfolio_image_urls: Optional[List[str]] = None
    next_availability: DateInput = None
    onboarded_by: Optional[UUID] = None
    onboarded_at: Optional[datetime] = None


class ProviderProfilePatch(BaseModel):
    """Sparse update: only fields explicitly set are written, None clears."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    business_name: Optional[str] = None
    service_title: Optional[str] = None
    description: Optional[str] = None
    profile_picture_url: Optional[str] = None
    category_id: Optional[int] = None
    price_per_hour: DecimalInput = None
    location_string: Optional[str] = None
    full_address: Optional[str] = None
    contact_phone: Optional[str] = None
    latitude: DecimalInput = None
    longitude: DecimalInput = None
    portfolio_image_urls: Optional[List[str]] = None
    next_availability: DateInput = None
    status: Optional[str] = None
    onboarded_by: Optional[UUID] = None
    onboarded_at: Optional[datetime] = None


# --------------------------
# Request bodies
# --------------------------
class ProfileUpdate(CamelModel):
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    business_name: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = Field(default=None, max_length=1000)
    service_title: Optional[str] = Field(default=None, max_length=255)
    category_id: Optional[int] = None
    price_per_hour: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)
    profile_picture_url: Optional[str] = Field(default=None, alias="profilePictureURL")
    portfolio_image_urls: Optional[List[str]] = Field(default=None, alias="portfolioImageURLs")
    latitude: Optional[Decimal] = Field(default=None, ge=-90, le=90)
    longitude: Optional[Decimal] = Field(default=None, ge=-180, le=180)
    location_string: Optional[str] = Field(default=None, max_length=255)
    next_availability: Optional[datetime] = None

    @field_validator("first_name", "last_name", "business_name", "service_title")
    @classmethod
    def validate_required(cls, value, info: ValidationInfo):
        return reject_null(value, info)

    @field_validator("profile_picture_url")
    @classmethod
    def validate_picture(cls, value):
        return check_url(value)

    @field_validator("portfolio_image_urls")
    @classmethod
    def validate_portfolio(cls, value):
        if value is not None:
            for url in value:
                check_url(url)
        return value


class ProfileCreate(ProfileUpdate):
    first_name: str = Field(max_length=100)
    last_name: str = Field(max_length=100)
    business_name: str = Field(max_length=255)
    service_title: str = Field(max_length=255)


# --------------------------
# Responses
# --------------------------
class UserSummary(CamelModel):
    id: UUID
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class CategorySummary(CamelModel):
    id: int
    name: str
    icon: Optional[str] = None
    color: Optional[str] = None


class ProviderProfileResponse(CamelModel):
    id: UUID
    user_id: UUID
    first_name: str
    last_name: str
    business_name: str
    description: Optional[str] = None
    profile_picture_url: Optional[str] = Field(default=None, alias="profilePictureURL")
    service_title: str
    category_id: Optional[int] = None
    price_per_hour: Optional[Decimal] = None
    rating: Optional[Decimal] = None
    review_count: Optional[int] = None
    next_availability: Optional[datetime] = None
    portfolio_image_urls: Optional[List[str]] = Field(default=None, alias="portfolioImageURLs")
    latitude: Optional[Decimal] = None
    longitude: Optional[Decimal] = None
    location_string: Optional[str] = None
    contact_phone: Optional[str] = None
    full_address: Optional[str] = None
    is_available: Optional[int] = None
    status: str
    onboarded_by: Optional[UUID] = None
    onboarded_at: Optional[datetime] = None
    commission_rate: Optional[Decimal] = None
    total_earnings: Optional[Decimal] = None
    total_commission: Optional[Decimal] = None
    archived_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class ProfileListItem(CamelModel):
    id: UUID
    name: str
    business_name: str
    category: Optional[str] = None
    description: Optional[str] = None
    owner_name: str
    image: Optional[str] = None
    profile_picture_url: Optional[str] = Field(default=None, alias="profilePictureURL")
    service_title: str
    price_per_hour: Optional[Decimal] = None
    rating: Optional[Decimal] = None
    review_count: Optional[int] = None
    location: Optional[str] = None
    next_availability: Optional[datetime] = None
    portfolio_image_urls: Optional[List[str]] = Field(default=None, alias="portfolioImageURLs")
    latitude: Optional[Decimal] = None
    longitude: Optional[Decimal] = None
    is_available: Optional[int] = None
    created_at: datetime
    user: Optional[UserSummary] = None
    category_info: Optional[CategorySummary] = None
    distance: Optional[str] = None


class ProfileDetail(CamelModel):
    id: UUID
    first_name: str
    last_name: str
    profile_picture_url: Optional[str] = Field(default=None, alias="profilePictureURL")
    service_title: str
    price_per_hour: Optional[Decimal] = None
    rating: Optional[Decimal] = None
    review_count: Optional[int] = None
    next_availability: Optional[datetime] = None
    portfolio_image_urls: Optional[List[str]] = Field(default=None, alias="portfolioImageURLs")
    latitude: Optional[Decimal] = None
    longitude: Optional[Decimal] = None
    created_at: datetime
    updated_at: datetime
    user: Optional[UserSummary] = None


class ProfilesPagination(CamelModel):
    current_page: int
    total_pages: int
    total_count: int
    limit: int
    has_next_page: bool
    has_previous_page: bool
