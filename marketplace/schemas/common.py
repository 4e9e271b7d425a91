# marketplace/schemas/common.py
from typing import Any, Type

from pydantic import BaseModel, ValidationInfo
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for request/response bodies; snake_case in Python, camelCase on the wire."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


def dump(schema: Type[BaseModel], obj: Any) -> dict:
    """Validate an ORM row (or dict) through ``schema`` and return its JSON form."""
    return schema.model_validate(obj).model_dump(mode="json", by_alias=True)


def paginate(page: int, limit: int, total: int) -> dict:
    # an empty result still reports one page
    total_pages = max(1, (total + limit - 1) // limit)
    return Pagination(page=page, limit=limit, total=total, total_pages=total_pages).model_dump(by_alias=True)


def reject_null(value: Any, info: ValidationInfo) -> Any:
    """Optional in a sparse update means "may be omitted", not "may be cleared"."""
    if value is None:
        raise ValueError(f"{to_camel(info.field_name)} cannot be null")
    return value
