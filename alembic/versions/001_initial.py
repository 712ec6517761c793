"""Initial schema: users, cars and car tags

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "cars",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("images", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_cars_owner_id", "cars", ["owner_id"], unique=False)
    op.create_index("ix_cars_title", "cars", ["title"], unique=False)
    op.create_index("ix_cars_created_at", "cars", ["created_at"], unique=False)

    op.create_table(
        "car_tags",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("car_id", sa.Uuid(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("tag", sa.String(100), nullable=False),
        sa.ForeignKeyConstraint(["car_id"], ["cars.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_car_tags_car_id", "car_tags", ["car_id"], unique=False)
    op.create_index("ix_car_tags_tag", "car_tags", ["tag"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_car_tags_tag", "car_tags")
    op.drop_index("ix_car_tags_car_id", "car_tags")
    op.drop_table("car_tags")
    op.drop_index("ix_cars_created_at", "cars")
    op.drop_index("ix_cars_title", "cars")
    op.drop_index("ix_cars_owner_id", "cars")
    op.drop_table("cars")
    op.drop_index("ix_users_email", "users")
    op.drop_table("users")
