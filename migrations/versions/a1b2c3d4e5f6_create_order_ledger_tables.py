"""create customers, riders, orders and daily closings

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "a1b2c3d4e5f6"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

order_type = sa.Enum("DELIVERY", "WALKIN", "CLEARBILL", name="ordertype")
order_status = sa.Enum("CREATED", "ASSIGNED", "IN_PROGRESS", "DELIVERED", "CANCELLED", name="orderstatus")
order_priority = sa.Enum("LOW", "NORMAL", "HIGH", name="orderpriority")
payment_status = sa.Enum("NOT_PAID", "PARTIAL", "PAID", "OVERPAID", "REFUND", name="paymentstatus")
payment_method = sa.Enum(
    "CASH", "CARD", "BANK_TRANSFER", "JAZZCASH", "EASYPAISA", "NAYA_PAY", "SADAPAY",
    name="paymentmethod",
)


def upgrade() -> None:
    op.create_table(
        "customers",
        sa.Column("id", sa.String(length=20), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=False),
        sa.Column("whatsapp", sa.String(length=20), nullable=True),
        sa.Column("house_no", sa.String(length=50), nullable=True),
        sa.Column("street_no", sa.String(length=50), nullable=True),
        sa.Column("area", sa.String(length=100), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=True),
        sa.Column("address", sa.String(length=500), nullable=True),
        sa.Column("bottle_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("avg_days_to_refill", sa.Integer(), nullable=True),
        sa.Column("current_balance", sa.Numeric(precision=15, scale=2), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_customers_name", "customers", ["name"])
    op.create_index("ix_customers_phone", "customers", ["phone"])

    op.create_table(
        "riders",
        sa.Column("id", sa.String(length=20), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("phone"),
    )

    op.create_table(
        "orders",
        sa.Column("id", sa.String(length=20), nullable=False),
        sa.Column("order_type", order_type, nullable=False),
        sa.Column("status", order_status, nullable=False),
        sa.Column("priority", order_priority, nullable=False, server_default="NORMAL"),
        sa.Column("customer_id", sa.String(length=20), nullable=True),
        sa.Column("rider_id", sa.String(length=20), nullable=True),
        sa.Column("number_of_bottles", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("unit_price", sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column("current_order_amount", sa.Numeric(precision=15, scale=2), nullable=False, server_default="0"),
        sa.Column("customer_balance_at_creation", sa.Numeric(precision=15, scale=2), nullable=False, server_default="0"),
        sa.Column("total_amount", sa.Numeric(precision=15, scale=2), nullable=False, server_default="0"),
        sa.Column("paid_amount", sa.Numeric(precision=15, scale=2), nullable=False, server_default="0"),
        sa.Column("payment_status", payment_status, nullable=False),
        sa.Column("payment_method", payment_method, nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("delivery_notes", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.ForeignKeyConstraint(["rider_id"], ["riders.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_orders_status", "orders", ["status"])
    op.create_index("ix_orders_customer_id", "orders", ["customer_id"])
    op.create_index("ix_orders_rider_id", "orders", ["rider_id"])
    op.create_index("ix_orders_created_at", "orders", ["created_at"])

    op.create_table(
        "daily_closings",
        sa.Column("id", sa.String(length=20), nullable=False),
        sa.Column("closing_date", sa.Date(), nullable=False),
        sa.Column("customer_receivable", sa.Numeric(precision=15, scale=2), nullable=False, server_default="0"),
        sa.Column("customer_payable", sa.Numeric(precision=15, scale=2), nullable=False, server_default="0"),
        sa.Column("total_orders", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("cancelled_orders", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_bottles", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_current_order_amount", sa.Numeric(precision=15, scale=2), nullable=False, server_default="0"),
        sa.Column("total_paid_amount", sa.Numeric(precision=15, scale=2), nullable=False, server_default="0"),
        sa.Column("balance_cleared_today", sa.Numeric(precision=15, scale=2), nullable=False, server_default="0"),
        sa.Column("walk_in_amount", sa.Numeric(precision=15, scale=2), nullable=False, server_default="0"),
        sa.Column("clear_bill_amount", sa.Numeric(precision=15, scale=2), nullable=False, server_default="0"),
        sa.Column("rider_collections", sa.JSON(), nullable=False),
        sa.Column("payment_methods", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("closing_date", name="uq_daily_closings_closing_date"),
    )
    op.create_index("ix_daily_closings_closing_date", "daily_closings", ["closing_date"])


def downgrade() -> None:
    op.drop_index("ix_daily_closings_closing_date", table_name="daily_closings")
    op.drop_table("daily_closings")
    op.drop_index("ix_orders_created_at", table_name="orders")
    op.drop_index("ix_orders_rider_id", table_name="orders")
    op.drop_index("ix_orders_customer_id", table_name="orders")
    op.drop_index("ix_orders_status", table_name="orders")
    op.drop_table("orders")
    op.drop_table("riders")
    op.drop_index("ix_customers_phone", table_name="customers")
    op.drop_index("ix_customers_name", table_name="customers")
    op.drop_table("customers")

    bind = op.get_bind()
    for enum_type in (payment_method, payment_status, order_priority, order_status, order_type):
        enum_type.drop(bind, checkfirst=True)
