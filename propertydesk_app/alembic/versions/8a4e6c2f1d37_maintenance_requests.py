"""maintenance requests

Revision ID: 8a4e6c2f1d37
Revises: 3f1c2b7d9e10
Create Date: 2026-10-18 16:40:02.551930

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8a4e6c2f1d37'
down_revision: Union[str, Sequence[str], None] = '3f1c2b7d9e10'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade():
    op.create_table(
        "maintenance_requests",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("unit_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column(
            "category",
            sa.Enum(
                "PLUMBING",
                "ELECTRICAL",
                "HVAC",
                "APPLIANCE",
                "STRUCTURAL",
                "OTHER",
                name="maintenancecategory",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column(
            "priority",
            sa.Enum(
                "LOW", "MEDIUM", "HIGH", "URGENT",
                name="maintenancepriority",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column(
            "status",
            sa.Enum(
                "PENDING", "IN_PROGRESS", "COMPLETED", "CANCELLED",
                name="maintenancestatus",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column("resolution_notes", sa.Text(), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_by", sa.Integer(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=True,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=True,
        ),
        sa.ForeignKeyConstraint(["tenant_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["unit_id"], ["units.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["resolved_by"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_maintenance_requests_tenant_id", "maintenance_requests", ["tenant_id"]
    )
    op.create_index(
        "ix_maintenance_requests_unit_id", "maintenance_requests", ["unit_id"]
    )
    op.create_index(
        "ix_maintenance_requests_status", "maintenance_requests", ["status"]
    )


def downgrade():
    op.drop_index("ix_maintenance_requests_status", table_name="maintenance_requests")
    op.drop_index("ix_maintenance_requests_unit_id", table_name="maintenance_requests")
    op.drop_index("ix_maintenance_requests_tenant_id", table_name="maintenance_requests")
    op.drop_table("maintenance_requests")
