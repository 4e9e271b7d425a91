# marketplace/schemas/user.py
from pydantic import EmailStr, Field, model_validator
from typing import List, Optional
from datetime import datetime
from uuid import UUID

from marketplace.schemas.common import CamelModel


class UserRegister(CamelModel):
    first_name: str = Field(max_length=100)
    last_name: str = Field(max_length=100)
    email: EmailStr
    password: str = Field(min_length=8)
    confirm_password: str

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class UserLogin(CamelModel):
    email: EmailStr
    password: str


class UserResponse(CamelModel):
    id: UUID
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    roles: List[str] = []
    created_at: datetime
    updated_at: Optional[datetime] = None
