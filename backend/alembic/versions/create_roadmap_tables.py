"""Create users, preferences and roadmap tables

Revision ID: create_roadmap_tables
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "create_roadmap_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _child_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "roadmap_id",
            sa.String(36),
            sa.ForeignKey("user_roadmaps.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    ]


def _trailing_columns() -> list[sa.Column]:
    return [
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(), unique=True),
        sa.Column("full_name", sa.String()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("last_active_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "user_preferences",
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), primary_key=True),
        sa.Column("has_visited_before", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("onboarding_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "user_roadmaps",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("category", sa.String()),
        sa.Column("template_id", sa.String()),
        sa.Column("provenance", sa.String(), nullable=False, server_default="user_authored"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "user_roadmap_steps",
        *_child_columns(),
        sa.Column("label", sa.Text(), nullable=False),
        sa.Column("order_number", sa.Integer(), nullable=False),
        sa.Column("est_time", sa.String()),
        sa.Column("section", sa.String()),
        sa.Column("link", sa.String()),
        sa.Column("tooltip", sa.Text()),
        *_trailing_columns(),
    )

    for table in ("roadmap_skills", "roadmap_tools"):
        op.create_table(
            table,
            *_child_columns(),
            sa.Column("label", sa.String(), nullable=False),
            *_trailing_columns(),
        )

    op.create_table(
        "roadmap_resources",
        *_child_columns(),
        sa.Column("label", sa.String(), nullable=False),
        sa.Column("url", sa.String()),
        *_trailing_columns(),
    )

    op.create_table(
        "roadmap_timeline",
        *_child_columns(),
        sa.Column("step", sa.Text(), nullable=False),
        sa.Column("order_number", sa.Integer(), nullable=False),
        *_trailing_columns(),
    )


def downgrade() -> None:
    for table in (
        "roadmap_timeline",
        "roadmap_resources",
        "roadmap_tools",
        "roadmap_skills",
        "user_roadmap_steps",
        "user_roadmaps",
        "user_preferences",
        "users",
    ):
        op.drop_table(table)
