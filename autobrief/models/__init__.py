"""SQLAlchemy models for the AutoBrief backend."""

from .base import Base
from .brief import Brief  # noqa: F401
from .custom_template import CustomTemplate  # noqa: F401
from .transcript import Transcript  # noqa: F401
from .user_profile import SubscriptionTier, UserProfile  # noqa: F401

__all__ = [
    "Base",
    "Brief",
    "CustomTemplate",
    "SubscriptionTier",
    "Transcript",
    "UserProfile",
]
