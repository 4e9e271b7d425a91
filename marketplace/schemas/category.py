# marketplace/schemas/category.py
from pydantic import Field
from datetime import datetime
from typing import Optional

from marketplace.schemas.common import CamelModel


class CategoryCreate(CamelModel):
    name: str = Field(max_length=100)
    icon: str = Field(max_length=10)
    color: str = Field(pattern=r"^#[0-9A-Fa-f]{6}$")


class CategoryResponse(CamelModel):
    id: int
    name: str
    icon: str
    color: str
    created_at: Optional[datetime] = None
