# marketplace/api/routes/categories.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.core.errors import ConflictError, NotFoundError, format_success
from marketplace.core.security import TokenIdentity, require_any_role
from marketplace.db.base import get_db
from marketplace.db.models.category import Category
from marketplace.db.models.user import ADMINISTRATOR
from marketplace.db.upsert import insert_ignore
from marketplace.schemas.category import CategoryCreate, CategoryResponse
from marketplace.schemas.common import dump

router = APIRouter(prefix="/api/categories", tags=["categories"])

DEFAULT_CATEGORIES = [
    {"name": "Builder", "icon": "🏗️", "color": "#4A90E2"},
    {"name": "Painting", "icon": "🎨", "color": "#7ED321"},
    {"name": "Carpenter", "icon": "🔨", "color": "#FFC107"},
    {"name": "Plumber", "icon": "🔧", "color": "#FF5722"},
    {"name": "Electrician", "icon": "⚡", "color": "#9C27B0"},
    {"name": "Gardener", "icon": "🌱", "color": "#455A64"},
    {"name": "Cleaner", "icon": "🧹", "color": "#2196F3"},
    {"name": "AC Repair", "icon": "❄️", "color": "#00BCD4"},
    {"name": "Flooring", "icon": "🏠", "color": "#FF9800"},
    {"name": "Roofing", "icon": "🏘️", "color": "#FFEB3B"},
]


@router.get("")
@router.get("/", include_in_schema=False)
def list_categories(db: Session = Depends(get_db)):
    categories = db.query(Category).order_by(Category.name).all()
    return format_success(
        [dump(CategoryResponse, c) for c in categories], "Categories retrieved successfully"
    )


@router.get("/{category_id}")
def get_category(category_id: int, db: Session = Depends(get_db)):
    category = db.query(Category).filter(Category.id == category_id).first()
    if not category:
        raise NotFoundError("Category not found", "CATEGORY_NOT_FOUND")
    return format_success(dump(CategoryResponse, category), "Category retrieved successfully")


# --------------------------
# Admin
# --------------------------
@router.post("", status_code=201)
@router.post("/", status_code=201, include_in_schema=False)
def create_category(
    payload: CategoryCreate,
    db: Session = Depends(get_db),
    identity: TokenIdentity = Depends(require_any_role(ADMINISTRATOR)),
):
    if db.query(Category).filter(Category.name == payload.name).first():
        raise ConflictError("Category with this name already exists", "CATEGORY_EXISTS")

    category = Category(name=payload.name, icon=payload.icon, color=payload.color)
    db.add(category)
    db.commit()
    db.refresh(category)
    return format_success(dump(CategoryResponse, category), "Category created successfully")


@router.post("/init-defaults", status_code=201)
def init_default_categories(
    db: Session = Depends(get_db),
    identity: TokenIdentity = Depends(require_any_role(ADMINISTRATOR)),
):
    existing = {name for (name,) in db.query(Category.name).all()}
    for values in DEFAULT_CATEGORIES:
        insert_ignore(db, Category.__table__, values, ["name"])
    db.commit()

    inserted = (
        db.query(Category)
        .filter(Category.name.in_([c["name"] for c in DEFAULT_CATEGORIES if c["name"] not in existing]))
        .order_by(Category.id)
        .all()
    )
    return format_success(
        {"inserted": len(inserted), "categories": [dump(CategoryResponse, c) for c in inserted]},
        "Default categories initialized successfully",
    )
