# marketplace/schemas/service.py

from pydantic import Field
from typing import Optional
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from marketplace.schemas.common import CamelModel
from marketplace.schemas.category import CategoryResponse


# Admin creates service
class ServiceCreate(CamelModel):
    name: str = Field(max_length=255)
    description: Optional[str] = None
    duration: int = Field(gt=0)
    base_price: Decimal = Field(gt=0, decimal_places=2)
    category_id: Optional[int] = None


# What API returns
class ServiceResponse(CamelModel):
    id: UUID
    name: str
    description: Optional[str] = None
    duration: int
    base_price: Decimal
    category_id: Optional[int] = None
    category: Optional[CategoryResponse] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
