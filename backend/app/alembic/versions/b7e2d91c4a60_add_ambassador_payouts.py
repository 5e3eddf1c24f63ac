"""Add ambassador payouts

Revision ID: b7e2d91c4a60
Revises: a1c0f3e2b7d4
Create Date: 2026-10-19

"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "b7e2d91c4a60"
down_revision = "a1c0f3e2b7d4"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "ambassador_payouts",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("ambassador_id", sa.String(length=36), nullable=False),
        sa.Column("reference_period", sa.String(length=7), nullable=False),
        sa.Column("total_sales", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("gross_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("net_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("payment_method", sa.String(length=32), nullable=True),
        sa.Column("notes", sa.String(length=1024), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["ambassador_id"], ["ambassadors.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "ix_ambassador_payouts_ambassador_id", "ambassador_payouts", ["ambassador_id"]
    )
    op.create_index(
        "ix_ambassador_payouts_reference_period", "ambassador_payouts", ["reference_period"]
    )

    op.add_column("commissions", sa.Column("payout_id", sa.String(length=36), nullable=True))
    op.create_foreign_key(
        "fk_commissions_payout_id",
        "commissions",
        "ambassador_payouts",
        ["payout_id"],
        ["id"],
        ondelete="SET NULL",
    )
    op.create_index("ix_commissions_payout_id", "commissions", ["payout_id"])


def downgrade() -> None:
    op.drop_index("ix_commissions_payout_id", table_name="commissions")
    op.drop_constraint("fk_commissions_payout_id", "commissions", type_="foreignkey")
    op.drop_column("commissions", "payout_id")
    op.drop_table("ambassador_payouts")
