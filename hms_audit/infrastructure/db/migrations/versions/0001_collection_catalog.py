"""Collection validator catalog"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import context, op

# revision identifiers, used by Alembic.
revision = "0001_collection_catalog"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # CollectionDdlManager.ensure_collection may already have created it on an unmigrated store.
    if not context.is_offline_mode() and sa.inspect(op.get_bind()).has_table("collection_validators"):
        return
    op.create_table(
        "collection_validators",
        sa.Column("collection_name", sa.String(), primary_key=True),
        sa.Column("json_schema", sa.Text(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
    )


def downgrade() -> None:
    op.drop_table("collection_validators")
