"""Week and task tables."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20260301_planner_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "week",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("numweek", sa.Integer(), nullable=False),
        sa.Column("color", sa.String(length=64), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False),
        sa.Column("link", sa.String(length=2048), nullable=False),
    )
    op.create_index("ix_week_year_numweek", "week", ["year", "numweek"])

    op.create_table(
        "task",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("yearweek", sa.String(length=16), nullable=False),
        sa.Column("dayofweek", sa.String(length=16), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("color", sa.String(length=64), nullable=False),
        sa.Column("time_start", sa.String(length=16), nullable=False),
        sa.Column("time_end", sa.String(length=16), nullable=False),
        sa.Column("finished", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("priority", sa.Integer(), nullable=False),
        sa.Column("file", sa.String(length=255), nullable=True),
    )
    op.create_index("ix_task_yearweek_dayofweek", "task", ["yearweek", "dayofweek"])


def downgrade():
    op.drop_index("ix_task_yearweek_dayofweek", table_name="task")
    op.drop_table("task")
    op.drop_index("ix_week_year_numweek", table_name="week")
    op.drop_table("week")
