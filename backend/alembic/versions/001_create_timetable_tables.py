"""Create bus_schedules, bus_schedule_entries, routes and buses tables.

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "bus_schedules",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("halt_key", sa.String(255), nullable=False, unique=True),
        sa.Column("display_name", sa.String(255), nullable=False, server_default=""),
    )
    op.create_table(
        "bus_schedule_entries",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("schedule_id", sa.Integer, sa.ForeignKey("bus_schedules.id"), nullable=False),
        sa.Column("bus_number", sa.String(20), nullable=False),
        sa.Column("expected_time", sa.String(16), nullable=False),
        sa.Column("position", sa.Integer, nullable=False, server_default="0"),
        sa.UniqueConstraint("schedule_id", "position", name="uq_schedule_entry_position"),
    )
    op.create_table(
        "routes",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("route_no", sa.String(20), nullable=False, unique=True),
        sa.Column("route_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("starting_halt", sa.String(255), nullable=False),
        sa.Column("ending_halt", sa.String(255), nullable=False),
    )
    op.create_table(
        "buses",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("bus_number", sa.String(20), nullable=False, unique=True),
        sa.Column("route_no", sa.String(20), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("buses")
    op.drop_table("routes")
    op.drop_table("bus_schedule_entries")
    op.drop_table("bus_schedules")
