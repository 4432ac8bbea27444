"""SQLAlchemy models."""

from identity_store.models.user import User

__all__ = [
    "User",
]
