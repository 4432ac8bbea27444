"""Forward and reverse migration for the users table.

Both directions take an Alembic ``Operations`` object, so the same code runs
from the Alembic revision module and, through :func:`apply` and
:func:`rollback`, against any SQLAlchemy connection.
"""

import logging

import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy.engine import Connection

from identity_store.config import get_settings
from identity_store.ddl.email_index import detect_strategy, select_strategy
from identity_store.errors import SchemaConflict
from identity_store.models.user import EMAIL_UNIQUE_INDEX, ID_TYPE, USERS_TABLE

logger = logging.getLogger(__name__)

# Revision id of the migration that creates the users table
VERSION = "20160812102806"


def _users_columns() -> list[sa.Column]:
    return [
        sa.Column("id", ID_TYPE, primary_key=True, autoincrement=True, nullable=False),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def index_exists(bind: Connection, name: str) -> bool:
    """Check the catalog for an index of this name on any table.

    Reflection skips expression indexes on some backends, so the catalog is
    queried directly where possible.
    """
    dialect = bind.dialect.name
    if dialect == "sqlite":
        query = "SELECT 1 FROM sqlite_master WHERE type = 'index' AND name = :name"
    elif dialect == "postgresql":
        query = (
            "SELECT 1 FROM pg_class c JOIN pg_namespace n ON n.oid = c.relnamespace "
            "WHERE c.relkind = 'i' AND c.relname = :name AND n.nspname = current_schema()"
        )
    elif dialect in ("mysql", "mariadb"):
        query = (
            "SELECT 1 FROM information_schema.statistics "
            "WHERE table_schema = DATABASE() AND index_name = :name"
        )
    else:
        inspector = sa.inspect(bind)
        return any(
            index["name"] == name
            for table in inspector.get_table_names()
            for index in inspector.get_indexes(table)
        )
    return bind.execute(sa.text(query), {"name": name}).first() is not None


def create_users_schema(op: Operations, preference: str | None = None) -> None:
    """Create the users table, then its case-insensitive email index.

    Raises:
        SchemaConflict: if the users table or the email index already exists.
        ConstraintViolationUnsupported: if the engine cannot enforce
            case-insensitive uniqueness with the chosen strategy.
    """
    context = op.get_context()
    # Offline (--sql) runs have no database to inspect
    if not context.as_sql:
        bind = op.get_bind()
        if sa.inspect(bind).has_table(USERS_TABLE):
            raise SchemaConflict(f"Table {USERS_TABLE} already exists")
        if index_exists(bind, EMAIL_UNIQUE_INDEX):
            raise SchemaConflict(f"Index {EMAIL_UNIQUE_INDEX} already exists")

    strategy = select_strategy(context.dialect, preference or get_settings().email_index_strategy)

    op.create_table(
        USERS_TABLE,
        *_users_columns(),
        *strategy.extra_columns(context.dialect),
        sqlite_autoincrement=True,
    )
    logger.info(f"Created table {USERS_TABLE}")

    try:
        strategy.create_index(op)
    except sa.exc.DBAPIError:
        # Without transactional DDL the table would outlive the failed migration
        if not context.impl.transactional_ddl:
            logger.warning(f"Creating {EMAIL_UNIQUE_INDEX} failed, dropping {USERS_TABLE}")
            op.drop_table(USERS_TABLE)
        raise
    logger.info(f"Created {strategy.name} index {EMAIL_UNIQUE_INDEX} on {USERS_TABLE}")


def drop_users_schema(op: Operations) -> None:
    """Drop the email index and the users table, along with its id sequence.

    Raises:
        SchemaConflict: if there is no users table to drop.
    """
    context = op.get_context()
    if context.as_sql:
        strategy = select_strategy(context.dialect, get_settings().email_index_strategy)
    else:
        inspector = sa.inspect(op.get_bind())
        if not inspector.has_table(USERS_TABLE):
            raise SchemaConflict(f"Table {USERS_TABLE} does not exist")
        column_names = [column["name"] for column in inspector.get_columns(USERS_TABLE)]
        strategy = detect_strategy(column_names)

    strategy.drop_index(op)
    logger.info(f"Dropped index {EMAIL_UNIQUE_INDEX}")
    op.drop_table(USERS_TABLE)
    logger.info(f"Dropped table {USERS_TABLE}")


def apply(connection: Connection, preference: str | None = None) -> None:
    """Run the forward migration on a connection.

    The caller owns the transaction, e.g. ``with engine.begin() as conn``.
    """
    create_users_schema(Operations(MigrationContext.configure(connection)), preference)


def rollback(connection: Connection) -> None:
    """Run the reverse migration on a connection."""
    drop_users_schema(Operations(MigrationContext.configure(connection)))
