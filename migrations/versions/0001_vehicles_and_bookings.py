"""vehicles and bookings

Revision ID: 0001
Revises:
Create Date: 2025-03-01 10:00:00

"""
from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "vehicles",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("registration_number", sa.String(32), nullable=True),
        sa.Column("make", sa.String(64), nullable=True),
        sa.Column("model", sa.String(64), nullable=True),
        sa.Column("daily_rate", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("status", sa.String(16), nullable=False, server_default="available"),
        sa.Column("ownership_type", sa.String(16), nullable=True),
        sa.Column("commission_percentage", sa.Numeric(5, 2), nullable=True),
        sa.Column("monthly_fixed_costs", sa.Numeric(10, 2), nullable=True),
        sa.Column("owner_user_id", sa.String(64), nullable=True),
        sa.Column("depositor_user_id", sa.String(64), nullable=True),
        sa.Column("owner_name", sa.String(128), nullable=True),
        sa.CheckConstraint(
            "status IN ('available', 'unavailable', 'archived')",
            name="ck_vehicles_status",
        ),
        sa.CheckConstraint(
            "ownership_type IS NULL OR "
            "ownership_type IN ('owned', 'renting', 'commission')",
            name="ck_vehicles_ownership_type",
        ),
        sa.CheckConstraint(
            "commission_percentage IS NULL OR "
            "(commission_percentage >= 0 AND commission_percentage <= 100)",
            name="ck_vehicles_commission_percentage",
        ),
        sa.CheckConstraint(
            "monthly_fixed_costs IS NULL OR monthly_fixed_costs >= 0",
            name="ck_vehicles_fixed_costs",
        ),
    )
    op.create_index("ix_vehicles_owner_user_id", "vehicles", ["owner_user_id"])
    op.create_index("ix_vehicles_depositor_user_id", "vehicles", ["depositor_user_id"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column(
            "vehicle_id", sa.String(64), sa.ForeignKey("vehicles.id"), nullable=False
        ),
        sa.Column("booking_number", sa.String(32), nullable=False, unique=True),
        sa.Column("pickup_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("return_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("total_price", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("deposit", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("return_at > pickup_at", name="ck_bookings_range"),
        sa.CheckConstraint("total_price >= 0", name="ck_bookings_total_price"),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'in_progress', "
            "'completed', 'cancelled')",
            name="ck_bookings_status",
        ),
    )
    op.create_index("ix_bookings_vehicle_id", "bookings", ["vehicle_id"])
    op.create_index(
        "ix_bookings_vehicle_status_pickup",
        "bookings",
        ["vehicle_id", "status", "pickup_at"],
    )

    if op.get_bind().dialect.name == "postgresql":
        # Two holding bookings of one vehicle may not share any instant
        op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
        op.execute(
            """
            ALTER TABLE bookings
            ADD CONSTRAINT ex_bookings_no_overlap
            EXCLUDE USING gist (
                vehicle_id WITH =,
                tstzrange(pickup_at, return_at, '[)') WITH &&
            )
            WHERE (status IN ('pending', 'confirmed', 'in_progress'))
            """
        )


def downgrade() -> None:
    if op.get_bind().dialect.name == "postgresql":
        op.execute(
            "ALTER TABLE bookings DROP CONSTRAINT IF EXISTS ex_bookings_no_overlap"
        )
    op.drop_index("ix_bookings_vehicle_status_pickup", table_name="bookings")
    op.drop_index("ix_bookings_vehicle_id", table_name="bookings")
    op.drop_table("bookings")
    op.drop_index("ix_vehicles_depositor_user_id", table_name="vehicles")
    op.drop_index("ix_vehicles_owner_user_id", table_name="vehicles")
    op.drop_table("vehicles")
