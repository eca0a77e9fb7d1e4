"""scheduling core: organizations, users, locations, services, working hours,
blocks, recurring series, bookings

Revision ID: 0001_scheduling_core
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_scheduling_core"
down_revision = None
branch_labels = None
depends_on = None

ACTIVE_BOOKING_FILTER = "status != 'cancelled'"


def upgrade() -> None:
    op.create_table(
        "organizations",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("settings", sa.Text, nullable=False, server_default=sa.text("'{}'")),
        sa.Column("created_at", sa.DateTime, server_default=sa.text("CURRENT_TIMESTAMP")),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("organization_id", sa.Integer, sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("first_name", sa.Text, nullable=False),
        sa.Column("last_name", sa.Text),
        sa.Column("email", sa.Text),
        sa.Column(
            "role",
            sa.Enum("customer", "walker", "admin", name="user_role"),
            nullable=False,
            server_default=sa.text("'customer'"),
        ),
        sa.Column("timezone", sa.Text, nullable=False, server_default=sa.text("'America/Denver'")),
        sa.Column("is_active", sa.Integer, nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime, server_default=sa.text("CURRENT_TIMESTAMP")),
    )

    op.create_table(
        "locations",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("organization_id", sa.Integer, sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("address", sa.Text, nullable=False),
        sa.Column("city", sa.Text, nullable=False),
        sa.Column("latitude", sa.Float, nullable=False),
        sa.Column("longitude", sa.Float, nullable=False),
        sa.Column("notes", sa.Text),
    )

    op.create_table(
        "services",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("organization_id", sa.Integer, sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("duration_minutes", sa.Integer, nullable=False),
        sa.Column("base_price_cents", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Integer, nullable=False, server_default=sa.text("1")),
        sa.Column("description", sa.Text),
    )

    op.create_table(
        "working_hours",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("walker_id", sa.Integer, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("day_of_week", sa.Integer, nullable=False),
        sa.Column("start_time", sa.Text, nullable=False),
        sa.Column("end_time", sa.Text, nullable=False),
        sa.Column("is_active", sa.Integer, nullable=False, server_default=sa.text("1")),
        sa.Column("updated_at", sa.DateTime, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.UniqueConstraint("walker_id", "day_of_week"),
        sa.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="valid_day_of_week"),
        sa.CheckConstraint("end_time > start_time", name="valid_working_hours"),
    )

    op.create_table(
        "blocks",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("walker_id", sa.Integer, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("reason", sa.Text, nullable=False),
        sa.Column("start_time", sa.DateTime, nullable=False),
        sa.Column("end_time", sa.DateTime, nullable=False),
        sa.Column("is_blocking", sa.Integer, nullable=False, server_default=sa.text("1")),
        sa.Column("recurrence_rule", sa.Text),
        sa.Column("series_key", sa.Text),
        sa.Column("created_at", sa.DateTime, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.CheckConstraint("end_time > start_time", name="valid_block_times"),
    )
    op.create_index("idx_blocks_time_range", "blocks", ["walker_id", "start_time", "end_time"])

    op.create_table(
        "recurring_booking_series",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("organization_id", sa.Integer, sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("customer_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("walker_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("service_id", sa.Integer, sa.ForeignKey("services.id"), nullable=False),
        sa.Column("location_id", sa.Integer, sa.ForeignKey("locations.id"), nullable=False),
        sa.Column(
            "frequency",
            sa.Enum("weekly", "bi_weekly", "monthly", name="recurrence_frequency"),
            nullable=False,
        ),
        sa.Column("day_of_week", sa.Integer, nullable=False),
        sa.Column("time_of_day", sa.Text, nullable=False),
        sa.Column("timezone", sa.Text, nullable=False, server_default=sa.text("'America/Denver'")),
        sa.Column("start_date", sa.Date, nullable=False),
        sa.Column("end_date", sa.Date),
        sa.Column("total_occurrences", sa.Integer),
        sa.Column("is_active", sa.Integer, nullable=False, server_default=sa.text("1")),
        sa.Column("status", sa.Text, nullable=False, server_default=sa.text("'requested'")),
        sa.Column("price_cents_per_booking", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("default_notes", sa.Text),
        sa.Column("idempotency_key", sa.Text, unique=True),
        sa.Column("report", sa.Text),
        sa.Column("created_at", sa.DateTime, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.CheckConstraint(
            "(end_date IS NOT NULL AND total_occurrences IS NULL) OR "
            "(end_date IS NULL AND total_occurrences IS NOT NULL)",
            name="valid_end_condition",
        ),
        sa.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="valid_series_day_of_week"),
    )

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("organization_id", sa.Integer, sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("customer_id", sa.Integer, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("walker_id", sa.Integer, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("service_id", sa.Integer, sa.ForeignKey("services.id"), nullable=False),
        sa.Column("location_id", sa.Integer, sa.ForeignKey("locations.id"), nullable=False),
        sa.Column(
            "status",
            sa.Enum(
                "pending", "confirmed", "in_progress", "completed", "cancelled", "no_show",
                name="booking_status",
            ),
            nullable=False,
            server_default=sa.text("'pending'"),
        ),
        sa.Column("scheduled_start", sa.DateTime, nullable=False),
        sa.Column("scheduled_end", sa.DateTime, nullable=False),
        sa.Column("price_cents", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("notes", sa.Text),
        sa.Column("cancel_reason", sa.Text),
        sa.Column(
            "recurring_series_id",
            sa.Integer,
            sa.ForeignKey("recurring_booking_series.id", ondelete="SET NULL"),
        ),
        sa.Column("occurrence_number", sa.Integer),
        sa.Column("created_at", sa.DateTime, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.CheckConstraint("scheduled_end > scheduled_start", name="valid_booking_times"),
    )
    op.create_index(
        "idx_booking_uniqueness",
        "bookings",
        ["customer_id", "service_id", "scheduled_start"],
        unique=True,
        sqlite_where=sa.text(ACTIVE_BOOKING_FILTER),
        postgresql_where=sa.text(ACTIVE_BOOKING_FILTER),
    )
    op.create_index("idx_bookings_walker_range", "bookings", ["walker_id", "scheduled_start", "scheduled_end"])


def downgrade() -> None:
    op.drop_index("idx_bookings_walker_range", table_name="bookings")
    op.drop_index("idx_booking_uniqueness", table_name="bookings")
    op.drop_table("bookings")
    op.drop_table("recurring_booking_series")
    op.drop_index("idx_blocks_time_range", table_name="blocks")
    op.drop_table("blocks")
    op.drop_table("working_hours")
    op.drop_table("services")
    op.drop_table("locations")
    op.drop_table("users")
    op.drop_table("organizations")
    sa.Enum(name="booking_status").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="recurrence_frequency").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="user_role").drop(op.get_bind(), checkfirst=True)
