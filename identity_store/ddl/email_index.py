"""Strategies for enforcing case-insensitive email uniqueness.

Every strategy folds with SQL ``lower()`` so lookups and the index agree.
The index is always named ``user_email_unique_index`` and is created as a
separate statement after the table.
"""

import logging

import sqlalchemy as sa
from alembic.operations import Operations
from sqlalchemy.engine import Dialect

from identity_store.errors import ConstraintViolationUnsupported
from identity_store.models.user import EMAIL_UNIQUE_INDEX, USERS_TABLE

logger = logging.getLogger(__name__)

SHADOW_COLUMN = "email_normalized"
MYSQL_DIALECTS = ("mysql", "mariadb")


def _server_version(dialect: Dialect) -> tuple:
    return tuple(dialect.server_version_info or ())


def _is_mariadb(dialect: Dialect) -> bool:
    return dialect.name == "mariadb" or bool(getattr(dialect, "is_mariadb", False))


class EmailUniquenessStrategy:
    """Capability for making ``users.email`` unique regardless of case."""

    name = ""

    def is_supported(self, dialect: Dialect) -> bool:
        raise NotImplementedError

    def extra_columns(self, dialect: Dialect) -> list[sa.Column]:
        """Columns the strategy adds to the users table."""
        return []

    def create_index(self, op: Operations) -> None:
        raise NotImplementedError

    def drop_index(self, op: Operations) -> None:
        op.drop_index(EMAIL_UNIQUE_INDEX, table_name=USERS_TABLE)


class ExpressionIndexStrategy(EmailUniquenessStrategy):
    """Unique functional index over ``lower(email)``."""

    name = "expression"

    def is_supported(self, dialect: Dialect) -> bool:
        version = _server_version(dialect)
        if dialect.name == "postgresql":
            return True
        if dialect.name == "sqlite":
            return version >= (3, 9, 0)
        if dialect.name in MYSQL_DIALECTS:
            return not _is_mariadb(dialect) and version >= (8, 0, 13)
        return False

    def create_index(self, op: Operations) -> None:
        # MySQL requires functional key parts to be parenthesized
        if op.get_context().dialect.name in MYSQL_DIALECTS:
            expression = sa.text("(lower(email))")
        else:
            expression = sa.text("lower(email)")
        op.create_index(EMAIL_UNIQUE_INDEX, USERS_TABLE, [expression], unique=True)


class ShadowColumnStrategy(EmailUniquenessStrategy):
    """Stored generated ``lower(email)`` column with a plain unique index."""

    name = "shadow_column"

    def is_supported(self, dialect: Dialect) -> bool:
        version = _server_version(dialect)
        if dialect.name == "postgresql":
            return version >= (12,)
        if dialect.name == "sqlite":
            return version >= (3, 31, 0)
        if dialect.name in MYSQL_DIALECTS:
            if _is_mariadb(dialect):
                return version >= (10, 2)
            return version >= (5, 7)
        return False

    def extra_columns(self, dialect: Dialect) -> list[sa.Column]:
        # MySQL cannot index TEXT without a prefix length
        column_type = sa.Text().with_variant(sa.String(320), "mysql", "mariadb")
        return [
            sa.Column(
                SHADOW_COLUMN,
                column_type,
                sa.Computed("lower(email)", persisted=True),
                nullable=False,
            )
        ]

    def create_index(self, op: Operations) -> None:
        op.create_index(EMAIL_UNIQUE_INDEX, USERS_TABLE, [SHADOW_COLUMN], unique=True)


# Ordered by preference for "auto"
STRATEGIES: dict[str, EmailUniquenessStrategy] = {
    ExpressionIndexStrategy.name: ExpressionIndexStrategy(),
    ShadowColumnStrategy.name: ShadowColumnStrategy(),
}


def select_strategy(dialect: Dialect, preference: str = "auto") -> EmailUniquenessStrategy:
    """Pick the uniqueness strategy for a dialect.

    ``auto`` prefers the expression index and falls back to the shadow
    column. A named preference is used as-is or rejected.

    Raises:
        ConstraintViolationUnsupported: if the engine cannot express the
            requested (or any) strategy.
        ValueError: if the preference is not a known strategy name.
    """
    if preference == "auto":
        for strategy in STRATEGIES.values():
            if strategy.is_supported(dialect):
                logger.info(f"Using {strategy.name} email uniqueness on {dialect.name}")
                return strategy
        raise ConstraintViolationUnsupported(
            f"{dialect.name} {_server_version(dialect)} supports neither expression indexes "
            "nor generated columns"
        )

    strategy = STRATEGIES.get(preference)
    if strategy is None:
        raise ValueError(f"Unknown email index strategy: {preference!r}")
    if not strategy.is_supported(dialect):
        raise ConstraintViolationUnsupported(
            f"{dialect.name} {_server_version(dialect)} does not support "
            f"the {strategy.name} email uniqueness strategy"
        )
    return strategy


def detect_strategy(column_names: list[str]) -> EmailUniquenessStrategy:
    """Infer which strategy built an existing users table from its columns."""
    if SHADOW_COLUMN in column_names:
        return STRATEGIES[ShadowColumnStrategy.name]
    return STRATEGIES[ExpressionIndexStrategy.name]


def include_object(obj, name, type_, reflected, compare_to) -> bool:
    """Alembic autogenerate filter for objects that depend on the strategy.

    The ORM model declares the expression index; tables built with the
    shadow column carry a different index definition and an extra column.
    """
    if type_ == "index" and name == EMAIL_UNIQUE_INDEX:
        return False
    if type_ == "column" and name == SHADOW_COLUMN:
        return False
    return True
