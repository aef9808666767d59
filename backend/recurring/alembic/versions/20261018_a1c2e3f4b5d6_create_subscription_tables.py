"""create subscription tables

Revision ID: a1c2e3f4b5d6
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "a1c2e3f4b5d6"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=True,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=True,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "subscribables",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("sku", sa.String(length=255), nullable=True),
        sa.Column("price", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="USD"),
        sa.Column("subscribable", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("sku"),
    )
    op.create_index(op.f("ix_subscribables_sku"), "subscribables", ["sku"], unique=True)

    op.create_table(
        "subscriptions",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("state", sa.String(length=30), nullable=False, server_default="pending"),
        sa.Column("actionable_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("skip_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("successive_skip_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("interval_length", sa.Integer(), nullable=True),
        sa.Column("interval_units", sa.String(length=10), nullable=True),
        sa.Column("payment_method_id", sa.String(length=255), nullable=True),
        sa.Column("payment_source_type", sa.String(length=255), nullable=True),
        sa.Column("payment_source_id", sa.String(length=255), nullable=True),
        sa.Column("shipping_address_id", sa.String(length=255), nullable=True),
        sa.Column("billing_address_id", sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("skip_count >= 0", name="ck_subscriptions_skip_count"),
        sa.CheckConstraint(
            "successive_skip_count >= 0", name="ck_subscriptions_successive_skip_count"
        ),
    )
    op.create_index(op.f("ix_subscriptions_user_id"), "subscriptions", ["user_id"], unique=False)
    op.create_index(op.f("ix_subscriptions_state"), "subscriptions", ["state"], unique=False)
    op.create_index(
        op.f("ix_subscriptions_actionable_date"), "subscriptions", ["actionable_date"], unique=False
    )

    op.create_table(
        "subscription_line_items",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("subscription_id", sa.String(length=36), nullable=False),
        sa.Column("subscribable_id", sa.String(length=36), nullable=False),
        sa.Column("spree_line_item_id", sa.String(length=255), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("interval_length", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("interval_units", sa.String(length=10), nullable=False, server_default="month"),
        sa.Column("max_installments", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["subscription_id"], ["subscriptions.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["subscribable_id"], ["subscribables.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_subscription_line_items_subscription_id"),
        "subscription_line_items",
        ["subscription_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_subscription_line_items_subscribable_id"),
        "subscription_line_items",
        ["subscribable_id"],
        unique=False,
    )

    op.create_table(
        "installments",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("subscription_id", sa.String(length=36), nullable=False),
        sa.Column("state", sa.String(length=20), nullable=False, server_default="pending"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["subscription_id"], ["subscriptions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_installments_subscription_id"), "installments", ["subscription_id"], unique=False
    )
    op.create_index(op.f("ix_installments_state"), "installments", ["state"], unique=False)
    op.create_index(op.f("ix_installments_created_at"), "installments", ["created_at"], unique=False)

    op.create_table(
        "installment_line_items",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("installment_id", sa.String(length=36), nullable=False),
        sa.Column("subscription_line_item_id", sa.String(length=36), nullable=True),
        sa.Column("subscribable_id", sa.String(length=36), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["installment_id"], ["installments.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["subscription_line_item_id"], ["subscription_line_items.id"], ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_installment_line_items_installment_id"),
        "installment_line_items",
        ["installment_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_installment_line_items_subscription_line_item_id"),
        "installment_line_items",
        ["subscription_line_item_id"],
        unique=False,
    )

    op.create_table(
        "installment_details",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("installment_id", sa.String(length=36), nullable=False),
        sa.Column("success", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("order_reference", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["installment_id"], ["installments.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_installment_details_installment_id"),
        "installment_details",
        ["installment_id"],
        unique=False,
    )

    op.create_table(
        "subscription_events",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("subscription_id", sa.String(length=36), nullable=False),
        sa.Column("event_type", sa.String(length=50), nullable=False),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["subscription_id"], ["subscriptions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_subscription_events_subscription_id"),
        "subscription_events",
        ["subscription_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_subscription_events_event_type"),
        "subscription_events",
        ["event_type"],
        unique=False,
    )
    op.create_index(
        op.f("ix_subscription_events_created_at"),
        "subscription_events",
        ["created_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_table("subscription_events")
    op.drop_table("installment_details")
    op.drop_table("installment_line_items")
    op.drop_table("installments")
    op.drop_table("subscription_line_items")
    op.drop_table("subscriptions")
    op.drop_table("subscribables")
