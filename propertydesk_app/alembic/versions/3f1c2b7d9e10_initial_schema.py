"""initial schema

Revision ID: 3f1c2b7d9e10
Revises:
Create Date: 2026-10-18 09:12:44.318207

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c2b7d9e10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


MONEY = sa.Numeric(10, 3)


def _timestamps(with_updated=False):
    cols = [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=True,
        )
    ]
    if with_updated:
        cols.append(
            sa.Column(
                "updated_at",
                sa.DateTime(timezone=True),
                server_default=sa.text("now()"),
                nullable=True,
            )
        )
    return cols


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column(
            "role",
            sa.Enum("ADMIN", "OWNER", "TENANT", name="userrole", native_enum=False),
            nullable=False,
        ),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "buildings",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("address", sa.String(length=255), nullable=False),
        sa.Column("city", sa.String(length=100), nullable=False),
        sa.Column("country", sa.String(length=100), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_buildings_owner_id", "buildings", ["owner_id"])

    op.create_table(
        "units",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("building_id", sa.Integer(), nullable=False),
        sa.Column("unit_number", sa.String(length=20), nullable=False),
        sa.Column("floor", sa.Integer(), nullable=True),
        sa.Column("rent_amount", MONEY, nullable=False),
        sa.Column(
            "status",
            sa.Enum("AVAILABLE", "RENTED", name="unitstatus", native_enum=False),
            nullable=False,
        ),
        *_timestamps(with_updated=True),
        sa.ForeignKeyConstraint(["building_id"], ["buildings.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "building_id", "unit_number", name="uq_unit_number_per_building"
        ),
    )
    op.create_index("ix_units_building_id", "units", ["building_id"])
    op.create_index("ix_units_status", "units", ["status"])

    op.create_table(
        "tenancies",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("unit_id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("monthly_rent", MONEY, nullable=False),
        sa.Column("deposit_amount", MONEY, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(with_updated=True),
        sa.ForeignKeyConstraint(["tenant_id"], ["users.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["unit_id"], ["units.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tenancies_unit_id", "tenancies", ["unit_id"])
    op.create_index("ix_tenancies_tenant_id", "tenancies", ["tenant_id"])
    op.create_index(
        "uq_active_tenancy_per_unit",
        "tenancies",
        ["unit_id"],
        unique=True,
        postgresql_where=sa.text("is_active"),
    )

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("tenancy_id", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column(
            "status",
            sa.Enum(
                "PENDING",
                "PAID",
                "OVERDUE",
                "PARTIALLY_PAID",
                name="paymentstatus",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column(
            "payment_method",
            sa.Enum(
                "CASH",
                "BANK_TRANSFER",
                "TAHSEEEL",
                "OTHER",
                name="paymentmethod",
                native_enum=False,
            ),
            nullable=True,
        ),
        sa.Column("tahseeel_order_no", sa.String(length=255), nullable=True),
        sa.Column("tahseeel_hash", sa.String(length=255), nullable=True),
        sa.Column("tahseeel_inv_id", sa.String(length=255), nullable=True),
        sa.Column("tahseeel_payment_link", sa.Text(), nullable=True),
        sa.Column("tahseeel_tx_id", sa.String(length=255), nullable=True),
        sa.Column("tahseeel_payment_id", sa.String(length=255), nullable=True),
        sa.Column("tahseeel_result", sa.String(length=50), nullable=True),
        sa.Column("tahseeel_tx_status", sa.String(length=50), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        *_timestamps(with_updated=True),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["tenancy_id"], ["tenancies.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tahseeel_hash"),
        sa.UniqueConstraint("tenancy_id", "month", "year", name="unique_payment"),
    )
    op.create_index("ix_payments_tenancy_id", "payments", ["tenancy_id"])
    op.create_index("ix_payments_status", "payments", ["status"])

    op.create_table(
        "payment_links",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("order_no", sa.String(length=100), nullable=False),
        sa.Column("cust_name", sa.String(length=255), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("payment_url", sa.Text(), nullable=True),
        sa.Column(
            "status",
            sa.Enum(
                "PENDING",
                "PAID",
                "CANCELLED",
                name="paymentlinkstatus",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column("created_by", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("order_no"),
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column(
            "type",
            sa.Enum(
                "PAYMENT",
                "PAYMENT_REMINDER",
                "PAYMENT_LINK",
                "MAINTENANCE",
                "GENERAL",
                name="notificationtype",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column("is_read", sa.Boolean(), nullable=False),
        sa.Column("link", sa.String(length=500), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])


def downgrade():
    op.drop_index("ix_notifications_user_id", table_name="notifications")
    op.drop_table("notifications")
    op.drop_table("payment_links")
    op.drop_index("ix_payments_status", table_name="payments")
    op.drop_index("ix_payments_tenancy_id", table_name="payments")
    op.drop_table("payments")
    op.drop_index("uq_active_tenancy_per_unit", table_name="tenancies")
    op.drop_index("ix_tenancies_tenant_id", table_name="tenancies")
    op.drop_index("ix_tenancies_unit_id", table_name="tenancies")
    op.drop_table("tenancies")
    op.drop_index("ix_units_status", table_name="units")
    op.drop_index("ix_units_building_id", table_name="units")
    op.drop_table("units")
    op.drop_index("ix_buildings_owner_id", table_name="buildings")
    op.drop_table("buildings")
    op.drop_index("ix_users_role", table_name="users")
    op.drop_table("users")
