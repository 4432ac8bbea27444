"""Schema migration operations for the identity store."""

from identity_store.ddl.users import VERSION, apply, create_users_schema, drop_users_schema, rollback

__all__ = [
    "VERSION",
    "apply",
    "rollback",
    "create_users_schema",
    "drop_users_schema",
]
