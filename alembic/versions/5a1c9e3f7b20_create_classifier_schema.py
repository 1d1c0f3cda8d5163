"""create classifier schema

Revision ID: 5a1c9e3f7b20
Revises:
Create Date: 2026-10-16 09:12:40.318552

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "5a1c9e3f7b20"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

USER_ROLE_ENUM = sa.Enum("user", "admin", name="user_role")


def _timestamps() -> list[sa.Column]:
    return [sa.Column("created_at", sa.TIMESTAMP(), server_default=sa.text("CURRENT_TIMESTAMP"))]


def upgrade() -> None:
    conn = op.get_bind()
    USER_ROLE_ENUM.create(conn, checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("email_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("role", USER_ROLE_ENUM, nullable=False, server_default="user"),
        *_timestamps(),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            server_onupdate=sa.text("CURRENT_TIMESTAMP"),
        ),
    )

    op.create_table(
        "workspaces",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "api_keys",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column(
            "workspace_id",
            sa.BigInteger(),
            sa.ForeignKey("workspaces.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("key_hash", sa.String(length=128), nullable=False, unique=True),
        sa.Column("key_last4", sa.String(length=4), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.Column("expires_at", sa.TIMESTAMP(), nullable=True),
    )

    op.create_table(
        "collections",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            "workspace_id",
            sa.BigInteger(),
            sa.ForeignKey("workspaces.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("workspace_id", "name", name="uq_collections_workspace_name"),
    )
    op.create_index("ix_collections_name", "collections", ["name"])

    op.create_table(
        "collection_categories",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            "collection_id",
            sa.BigInteger(),
            sa.ForeignKey("collections.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "parent_id",
            sa.BigInteger(),
            sa.ForeignKey("collection_categories.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("order_index", sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_collection_categories_lookup",
        "collection_categories",
        ["collection_id", "parent_id", "name"],
    )

    op.create_table(
        "inputs",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            "workspace_id",
            sa.BigInteger(),
            sa.ForeignKey("workspaces.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("api_key_id", sa.BigInteger(), sa.ForeignKey("api_keys.id", ondelete="SET NULL"), nullable=True),
        sa.Column("source", sa.String(length=32), nullable=True),
        sa.Column("raw_text", sa.Text(), nullable=False),
        sa.Column("raw_metadata", sa.JSON(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "classification_jobs",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("input_id", sa.BigInteger(), sa.ForeignKey("inputs.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "collection_id",
            sa.BigInteger(),
            sa.ForeignKey("collections.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("attempt_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("max_attempts", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("provider", sa.String(length=32), nullable=True),
        sa.Column("model", sa.String(length=128), nullable=True),
        sa.Column("response_status", sa.Integer(), nullable=True),
        sa.Column("latency_ms", sa.Integer(), nullable=True),
        sa.Column("prompt_tokens", sa.Integer(), nullable=True),
        sa.Column("completion_tokens", sa.Integer(), nullable=True),
        sa.Column("total_tokens", sa.Integer(), nullable=True),
        sa.Column("cost_usd", sa.Float(), nullable=True),
        sa.Column("scheduled_at", sa.TIMESTAMP(), server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("started_at", sa.TIMESTAMP(), nullable=True),
        sa.Column("completed_at", sa.TIMESTAMP(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_classification_jobs_status_started", "classification_jobs", ["status", "started_at"])
    op.create_index("ix_classification_jobs_input", "classification_jobs", ["input_id"])

    op.create_table(
        "classifications",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            "job_id",
            sa.BigInteger(),
            sa.ForeignKey("classification_jobs.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("input_id", sa.BigInteger(), sa.ForeignKey("inputs.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "category_id",
            sa.BigInteger(),
            sa.ForeignKey("collection_categories.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("confidence", sa.Float(), nullable=True),
        sa.Column("explanation", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_classifications_input", "classifications", ["input_id"])
    op.create_index("ix_classifications_job", "classifications", ["job_id"])


def downgrade() -> None:
    op.drop_index("ix_classifications_job", table_name="classifications")
    op.drop_index("ix_classifications_input", table_name="classifications")
    op.drop_table("classifications")
    op.drop_index("ix_classification_jobs_input", table_name="classification_jobs")
    op.drop_index("ix_classification_jobs_status_started", table_name="classification_jobs")
    op.drop_table("classification_jobs")
    op.drop_table("inputs")
    op.drop_index("ix_collection_categories_lookup", table_name="collection_categories")
    op.drop_table("collection_categories")
    op.drop_index("ix_collections_name", table_name="collections")
    op.drop_table("collections")
    op.drop_table("api_keys")
    op.drop_table("workspaces")
    op.drop_table("users")

    conn = op.get_bind()
    USER_ROLE_ENUM.drop(conn, checkfirst=True)
