"""create users table

Revision ID: 20160812102806
Revises:
Create Date: 2016-08-12 10:28:06

"""

from collections.abc import Sequence

from alembic import op
from identity_store.ddl.users import create_users_schema, drop_users_schema

# revision identifiers, used by Alembic.
revision: str = "20160812102806"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # users table first, then the case-insensitive index on lower(email)
    create_users_schema(op)


def downgrade() -> None:
    drop_users_schema(op)
