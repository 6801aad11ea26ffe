"""Create temporary_users and users tables.

Revision ID: 001
Revises:
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None


def upgrade() -> None:
    op.create_table(
        "temporary_users",
        sa.Column("temp_user_id", sa.Uuid(), primary_key=True),
        sa.Column("identity", sa.String(320), unique=True, nullable=False),
        sa.Column("token", sa.String(256), unique=True, nullable=False),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    # Expiry sweeps filter on created_at
    op.create_index("ix_temporary_users_created_at", "temporary_users", ["created_at"])

    op.create_table(
        "users",
        sa.Column("user_id", sa.Uuid(), primary_key=True),
        sa.Column("identity", sa.String(320), unique=True, nullable=False),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )


def downgrade() -> None:
    op.drop_table("users")
    op.drop_table("temporary_users")
