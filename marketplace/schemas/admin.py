# marketplace/schemas/admin.py
from pydantic import Field
from typing import Dict, List, Optional
from datetime import datetime
from uuid import UUID

from marketplace.schemas.common import CamelModel
from marketplace.schemas.profile import ProviderProfileResponse


class RoleAssign(CamelModel):
    role_name: str = Field(min_length=1, max_length=50)


class RoleItem(CamelModel):
    id: int
    name: str


class UserListItem(CamelModel):
    id: UUID
    email: str
    roles: List[str]
    created_at: datetime
    updated_at: datetime


class UserDetail(CamelModel):
    id: UUID
    email: str
    roles: List[RoleItem]
    provider_profile: Optional[ProviderProfileResponse] = None
    created_at: datetime
    updated_at: datetime


class SystemStats(CamelModel):
    total_users: int
    total_providers: int
    total_customers: int
    role_distribution: Dict[str, int]
    last_updated: datetime
