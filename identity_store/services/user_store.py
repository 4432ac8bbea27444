"""User record store."""

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from identity_store.errors import ConstraintViolation, UserNotFound
from identity_store.models.user import User
from identity_store.schemas.user import UserCreate, UserUpdate

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(UTC)


class UserStore:
    """Inserts, reads and updates user records.

    Email uniqueness is left to the database index; nothing here checks for
    an existing email before writing. Every update rewrites updated_at using
    the store's clock.
    """

    def __init__(self, db: Session, clock: Callable[[], datetime] | None = None):
        self.db = db
        self.clock = clock or utc_now

    def create_user(self, data: UserCreate) -> User:
        """Insert a user record and return it with its generated id."""
        user = User(**data.model_dump(exclude_none=True))
        self.db.add(user)
        self._commit("insert of new user")
        self.db.refresh(user)
        logger.info(f"Created user {user.id}")
        return user

    def get_user(self, user_id: int) -> User | None:
        """Get a user by id."""
        return self.db.query(User).filter(User.id == user_id).first()

    def get_user_by_email(self, email: str) -> User | None:
        """Get a user by email, ignoring case the same way the unique index does."""
        return self.db.query(User).filter(func.lower(User.email) == func.lower(email)).first()

    def update_user(self, user_id: int, changes: UserUpdate) -> User:
        """Apply changes to a user record and refresh its updated_at."""
        user = self.get_user(user_id)
        if user is None:
            raise UserNotFound(user_id)

        for field, value in changes.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(user, field, value)
        user.updated_at = self.clock()

        self._commit(f"update of user {user_id}")
        self.db.refresh(user)
        return user

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.info(f"Rejected {action}: {e.orig}")
            raise ConstraintViolation(f"Rejected {action}: {e.orig}") from e
