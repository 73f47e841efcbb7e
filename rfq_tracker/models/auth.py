"""Auth & user models."""

from sqlalchemy import Boolean, Column, Integer, String
from sqlalchemy.orm import relationship, validates

from ..database import UTCDateTime, utcnow
from .base import Base


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    email = Column(String(255), unique=True, nullable=False)
    name = Column(String(255))
    role = Column(String(20), default="sales")  # sales | manager | admin
    is_active = Column(Boolean, default=True)
    created_at = Column(UTCDateTime, default=utcnow)

    rfqs = relationship("Rfq", back_populates="sales_person")

    @validates("email")
    def _normalize_email(self, key, value):
        return value.strip().lower() if value else value

    @property
    def display_name(self) -> str:
        return self.name or self.email
