"""create widgets

Revision ID: 5f2c1d7a9e40
Revises:
Create Date: 2026-10-18 09:12:03.118204
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "5f2c1d7a9e40"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "widgets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="draft"),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("status IN ('draft','published','archived')", name="ck_widgets_status"),
        sa.CheckConstraint("quantity >= 0", name="ck_widgets_quantity"),
    )


def downgrade() -> None:
    op.drop_table("widgets")
