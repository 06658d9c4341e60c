"""SQLAlchemy model for per-user subscription and usage state."""

from __future__ import annotations

from enum import Enum

from sqlalchemy import Column, Integer, String, Uuid
from sqlalchemy import Enum as SqlEnum

from autobrief.models.base import Base

UNLIMITED_BRIEFS = -1


class SubscriptionTier(str, Enum):
    """Enumeration of supported subscription tiers."""

    FREE = "free"
    PRO = "pro"
    BUSINESS = "business"


class UserProfile(Base):
    __tablename__ = "user_profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Uuid, unique=True, nullable=False, index=True)
    display_name = Column(String(255), nullable=True)
    subscription_tier = Column(
        SqlEnum(SubscriptionTier, name="subscription_tier"),
        nullable=False,
        default=SubscriptionTier.FREE,
    )
    briefs_count = Column(Integer, nullable=False, default=0)
    # -1 means unlimited.
    briefs_limit = Column(Integer, nullable=False, default=10)

    @property
    def is_unlimited(self) -> bool:
        return self.briefs_limit == UNLIMITED_BRIEFS


__all__ = ["UserProfile", "SubscriptionTier", "UNLIMITED_BRIEFS"]
