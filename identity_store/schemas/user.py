"""User record schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    """Fields accepted when inserting a user record.

    Timestamps are optional; the database fills them when omitted.
    """

    email: str = Field(..., min_length=1)
    password_hash: str = Field(..., min_length=1)
    name: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class UserUpdate(BaseModel):
    """Mutable fields of a user record. Unset fields are left unchanged."""

    email: str | None = Field(None, min_length=1)
    password_hash: str | None = Field(None, min_length=1)
    name: str | None = None
