"""
Restricted Good database model.

Catalog of item types that need screening at the origin warehouse.
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime
from sqlalchemy.sql import func
from freight_backend.app.db.session import Base


class RestrictedGood(Base):
    """Restricted item type, keyed by a lower-case code."""
    __tablename__ = "restricted_goods"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    code = Column(String(100), unique=True, nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    allow_with_override = Column(Boolean, default=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<RestrictedGood(code='{self.code}', active={self.is_active})>"
