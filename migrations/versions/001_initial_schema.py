"""Initial schema: users, rides, ride_passengers.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── users ─────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(120), unique=True, nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(120), nullable=True),
        sa.Column("whatsapp_number", sa.String(40), nullable=True),
        sa.Column("phone_number", sa.String(40), nullable=True),
        sa.Column("payment_handle", sa.String(120), nullable=True),
        sa.Column("is_vendor", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("company_name", sa.String(255), nullable=True),
        sa.Column("vendor_details", sa.JSON, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    # ── rides ─────────────────────────────────────────────────────────
    op.create_table(
        "rides",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "creator_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column(
            "direction",
            sa.Enum("OUTBOUND", "RETURN", name="direction"),
            nullable=False,
        ),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("max_passengers", sa.Integer, nullable=False),
        sa.Column(
            "current_passengers", sa.Integer, nullable=False, server_default="0"
        ),
        sa.Column("pickup_location", sa.Text, nullable=False),
        sa.Column("dropoff_locations", sa.JSON, nullable=False),
        sa.Column(
            "status",
            sa.Enum("OPEN", "ASSIGNED", "COMPLETED", name="ridestatus"),
            nullable=False,
            server_default="OPEN",
        ),
        sa.Column(
            "vendor_id", sa.Integer, sa.ForeignKey("users.id"), nullable=True
        ),
        sa.Column("cost", sa.Integer, nullable=False, server_default="80"),
        sa.Column(
            "additional_stops", sa.Integer, nullable=False, server_default="0"
        ),
        sa.Column(
            "sequence_locked", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            "current_passengers <= max_passengers", name="ck_rides_capacity"
        ),
    )
    op.create_index("idx_rides_status", "rides", ["status"])
    op.create_index("idx_rides_creator", "rides", ["creator_id"])
    op.create_index("idx_rides_vendor", "rides", ["vendor_id"])

    # ── ride_passengers ───────────────────────────────────────────────
    op.create_table(
        "ride_passengers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "ride_id", sa.Integer, sa.ForeignKey("rides.id"), nullable=False
        ),
        sa.Column(
            "user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column("dropoff_location", sa.Text, nullable=False),
        sa.Column("dropoff_sequence", sa.Integer, nullable=True),
        sa.Column(
            "passenger_count", sa.Integer, nullable=False, server_default="1"
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_ride_passengers_ride", "ride_passengers", ["ride_id"])
    op.create_index("idx_ride_passengers_user", "ride_passengers", ["user_id"])


def downgrade() -> None:
    op.drop_table("ride_passengers")
    op.drop_table("rides")
    op.drop_table("users")
    op.execute("DROP TYPE IF EXISTS ridestatus")
    op.execute("DROP TYPE IF EXISTS direction")
