# marketplace/db/models/category.py
from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import relationship
from marketplace.db.base import Base

DEFAULT_ICON = "🛠️"
DEFAULT_COLOR = "#2563eb"


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True)
    icon = Column(String(10), nullable=False, default=DEFAULT_ICON)
    color = Column(String(7), nullable=False, default=DEFAULT_COLOR)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    services = relationship("Service", back_populates="category", lazy="selectin")
    provider_profiles = relationship("ProviderProfile", back_populates="category")
