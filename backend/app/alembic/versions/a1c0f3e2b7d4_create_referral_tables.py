"""Create referral, subscription and commission tables

Revision ID: a1c0f3e2b7d4
Revises:
Create Date: 2026-10-19

"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "a1c0f3e2b7d4"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(updated: bool = True) -> list[sa.Column]:
    columns = [sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)]
    if updated:
        columns.append(sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False))
    return columns


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=128), nullable=True),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "subscriptions",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("external_payment_id", sa.String(length=128), nullable=False),
        sa.Column("plan_name", sa.String(length=128), nullable=False, server_default=""),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_subscriptions_user_id", "subscriptions", ["user_id"])
    op.create_index(
        "ix_subscriptions_external_payment_id",
        "subscriptions",
        ["external_payment_id"],
        unique=True,
    )
    op.create_index("ix_subscriptions_status", "subscriptions", ["status"])

    op.create_table(
        "businesses",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("owner_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column(
            "subscription_active", sa.Boolean(), nullable=False, server_default=sa.text("false")
        ),
        sa.Column("subscription_expires_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_businesses_owner_id", "businesses", ["owner_id"])

    op.create_table(
        "ambassadors",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("referral_code", sa.String(length=32), nullable=False),
        sa.Column(
            "commission_rate", sa.Numeric(5, 2), nullable=False, server_default=sa.text("15.00")
        ),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("link_clicks", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_sales", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "total_earnings", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")
        ),
        sa.Column(
            "pending_commission", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")
        ),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", name="uq_ambassadors_user_id"),
        sa.CheckConstraint(
            "commission_rate >= 0 AND commission_rate <= 100",
            name="ck_ambassadors_commission_rate_range",
        ),
    )
    op.create_index("ix_ambassadors_referral_code", "ambassadors", ["referral_code"], unique=True)

    op.create_table(
        "referral_clicks",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("ambassador_id", sa.String(length=36), nullable=True),
        sa.Column("referral_code", sa.String(length=32), nullable=False),
        sa.Column("utm_source", sa.String(length=128), nullable=True),
        sa.Column("utm_medium", sa.String(length=128), nullable=True),
        sa.Column("utm_campaign", sa.String(length=128), nullable=True),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(["ambassador_id"], ["ambassadors.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_referral_clicks_ambassador_id", "referral_clicks", ["ambassador_id"])
    op.create_index("ix_referral_clicks_referral_code", "referral_clicks", ["referral_code"])

    op.create_table(
        "ambassador_referrals",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("ambassador_id", sa.String(length=36), nullable=False),
        sa.Column("referred_user_id", sa.String(length=36), nullable=False),
        sa.Column("subscription_id", sa.String(length=36), nullable=False),
        sa.Column("referral_code", sa.String(length=32), nullable=False),
        sa.Column("plan_name", sa.String(length=128), nullable=False, server_default=""),
        sa.Column("sale_amount", sa.Numeric(12, 2), nullable=False),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(["ambassador_id"], ["ambassadors.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["referred_user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["subscription_id"], ["subscriptions.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("subscription_id", name="uq_ambassador_referrals_subscription_id"),
    )
    op.create_index(
        "ix_ambassador_referrals_ambassador_id", "ambassador_referrals", ["ambassador_id"]
    )

    op.create_table(
        "commissions",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("ambassador_id", sa.String(length=36), nullable=False),
        sa.Column("referral_id", sa.String(length=36), nullable=False),
        sa.Column("subscription_id", sa.String(length=36), nullable=False),
        sa.Column("sale_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("commission_rate", sa.Numeric(5, 2), nullable=False),
        sa.Column("commission_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["ambassador_id"], ["ambassadors.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["referral_id"], ["ambassador_referrals.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("referral_id", name="uq_commissions_referral_id"),
    )
    op.create_index("ix_commissions_ambassador_id", "commissions", ["ambassador_id"])
    op.create_index("ix_commissions_subscription_id", "commissions", ["subscription_id"])
    op.create_index("ix_commissions_status", "commissions", ["status"])

    op.create_table(
        "ambassador_notifications",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("ambassador_id", sa.String(length=36), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.String(length=1024), nullable=False, server_default=""),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(["ambassador_id"], ["ambassadors.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "ix_ambassador_notifications_ambassador_id", "ambassador_notifications", ["ambassador_id"]
    )
    op.create_index("ix_ambassador_notifications_read", "ambassador_notifications", ["read"])

    op.create_table(
        "payment_events",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("payment_id", sa.String(length=128), nullable=False),
        sa.Column("subscription_id", sa.String(length=36), nullable=True),
        sa.Column("transitioned", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column(
            "resources_synced", sa.Boolean(), nullable=False, server_default=sa.text("true")
        ),
        sa.Column("payload", sa.JSON(), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_payment_events_payment_id", "payment_events", ["payment_id"])


def downgrade() -> None:
    op.drop_table("payment_events")
    op.drop_table("ambassador_notifications")
    op.drop_table("commissions")
    op.drop_table("ambassador_referrals")
    op.drop_table("referral_clicks")
    op.drop_table("ambassadors")
    op.drop_table("businesses")
    op.drop_table("subscriptions")
    op.drop_table("users")
