"""Exceptions raised by the identity store."""


class IdentityStoreError(Exception):
    """Base exception for the identity store"""


class SchemaConflict(IdentityStoreError):
    """Raised when a schema object already exists, or is missing, for the requested migration"""


class ConstraintViolation(IdentityStoreError):
    """Raised when a write is rejected by a storage-level constraint"""


class ConstraintViolationUnsupported(IdentityStoreError):
    """Raised when the engine cannot express case-insensitive email uniqueness"""


class UserNotFound(IdentityStoreError):
    """Raised when a user record does not exist"""

    def __init__(self, user_id: int):
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id
