"""Pydantic schemas for user record writes."""

from identity_store.schemas.user import UserCreate, UserUpdate

__all__ = [
    "UserCreate",
    "UserUpdate",
]
