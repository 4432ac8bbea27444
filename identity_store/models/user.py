"""User model."""

from sqlalchemy import BigInteger, Column, Index, Integer, Text, func

from identity_store.database import Base
from identity_store.models.mixins import TimestampMixin

USERS_TABLE = "users"
EMAIL_UNIQUE_INDEX = "user_email_unique_index"

# SQLite only auto-increments INTEGER PRIMARY KEY columns
ID_TYPE = BigInteger().with_variant(Integer(), "sqlite")


class User(Base, TimestampMixin):
    """User identity record."""

    __tablename__ = USERS_TABLE

    id = Column(ID_TYPE, primary_key=True, autoincrement=True, nullable=False)
    email = Column(Text, nullable=False)
    password_hash = Column(Text, nullable=False)  # opaque, hashed by the caller
    name = Column(Text, nullable=False)

    # Matches the expression strategy only; alembic/env.py keeps this index out
    # of autogenerate comparisons
    __table_args__ = (
        Index(EMAIL_UNIQUE_INDEX, func.lower(email), unique=True),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r}>"
