"""user voucher usage count

Moves user_vouchers from one row per redemption (is_used) to one row per
(user_id, voucher_id) with a usage_count, merging existing duplicates.

Revision ID: b001
Revises: b000
Create Date: 2026-09-15 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

from app.db.user_voucher_dedup import UNIQUE_INDEX_NAME, merge_duplicate_user_vouchers

# revision identifiers, used by Alembic.
revision = "b001"
down_revision = "b000"
branch_labels = None
depends_on = None


def upgrade() -> None:
    merge_duplicate_user_vouchers(op.get_bind())

    with op.batch_alter_table("user_vouchers") as batch_op:
        batch_op.drop_column("is_used")


def downgrade() -> None:
    with op.batch_alter_table("user_vouchers") as batch_op:
        batch_op.add_column(
            sa.Column("is_used", sa.Boolean(), nullable=False, server_default=sa.false())
        )

    # Rows that reached a limit were the "used" ones
    op.execute(
        "UPDATE user_vouchers SET is_used = true WHERE usage_count > 0"
    )
    op.drop_index(UNIQUE_INDEX_NAME, table_name="user_vouchers")

    with op.batch_alter_table("user_vouchers") as batch_op:
        batch_op.drop_column("usage_count")
