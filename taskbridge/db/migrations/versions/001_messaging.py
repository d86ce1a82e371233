"""Chat integrations, groups, messages, and user links.

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    ]


def _id() -> sa.Column:
    return sa.Column(
        "id", sa.Uuid(), primary_key=True, server_default=sa.text("gen_random_uuid()")
    )


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    # =========================================================================
    # ENUM TYPES
    # =========================================================================
    op.execute("CREATE TYPE integration_status AS ENUM ('pending', 'active', 'error')")
    op.execute(
        "CREATE TYPE message_intent AS ENUM ("
        "'task_creation', 'task_completion', 'task_assignment', 'status_inquiry', 'unknown')"
    )

    # =========================================================================
    # TABLE: chat_integration
    # =========================================================================
    op.create_table(
        "chat_integration",
        _id(),
        sa.Column("name", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("context_id", sa.Uuid(), nullable=True),
        sa.Column("external_channel_id", sa.Text(), nullable=False),
        sa.Column("credentials", postgresql.JSONB(), nullable=False),
        sa.Column("webhook_url", sa.Text(), nullable=True),
        sa.Column(
            "status",
            postgresql.ENUM(
                "pending", "active", "error", name="integration_status", create_type=False
            ),
            nullable=False,
            server_default=sa.text("'pending'"),
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column(
            "notification_preferences",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("last_webhook_received_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_activity_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_send_failed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("external_channel_id", name="uq_integration_channel"),
    )
    op.create_index("idx_integration_active", "chat_integration", ["is_active", "status"])

    # =========================================================================
    # TABLE: chat_group
    # =========================================================================
    op.create_table(
        "chat_group",
        _id(),
        sa.Column(
            "integration_id",
            sa.Uuid(),
            sa.ForeignKey("chat_integration.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("external_group_id", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("member_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column(
            "auto_parse_enabled", sa.Boolean(), nullable=False, server_default=sa.text("true")
        ),
        sa.Column(
            "notifications_enabled", sa.Boolean(), nullable=False, server_default=sa.text("true")
        ),
        sa.Column("last_activity_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "integration_id", "external_group_id", name="uq_group_per_integration"
        ),
    )
    op.create_index("idx_group_external", "chat_group", ["external_group_id"])

    # =========================================================================
    # TABLE: chat_message
    # =========================================================================
    op.create_table(
        "chat_message",
        _id(),
        sa.Column(
            "group_id",
            sa.Uuid(),
            sa.ForeignKey("chat_group.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("external_message_id", sa.Text(), nullable=False),
        sa.Column("message_text", sa.Text(), nullable=False),
        sa.Column("message_kind", sa.Text(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=True),
        sa.Column("sender_external_user_id", sa.Text(), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_processed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column(
            "intent_type",
            postgresql.ENUM(
                "task_creation",
                "task_completion",
                "task_assignment",
                "status_inquiry",
                "unknown",
                name="message_intent",
                create_type=False,
            ),
            nullable=False,
            server_default=sa.text("'unknown'"),
        ),
        sa.Column("confidence_score", sa.Float(), nullable=True),
        sa.Column(
            "parsed_content",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("task_id", sa.Uuid(), nullable=True),
        sa.Column(
            "processing_errors",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        *_timestamps(),
        sa.UniqueConstraint("external_message_id", name="uq_message_external_id"),
        sa.CheckConstraint("task_id IS NULL OR is_processed", name="ck_message_task_processed"),
    )
    op.create_index("idx_message_group_sent", "chat_message", ["group_id", "sent_at"])
    op.create_index(
        "idx_message_unprocessed",
        "chat_message",
        ["group_id"],
        postgresql_where=sa.text("is_processed = false"),
    )

    # =========================================================================
    # TABLE: chat_user_link
    # =========================================================================
    op.create_table(
        "chat_user_link",
        _id(),
        sa.Column(
            "integration_id",
            sa.Uuid(),
            sa.ForeignKey("chat_integration.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("external_user_id", sa.Text(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("integration_id", "external_user_id", name="uq_user_link"),
    )

    # =========================================================================
    # updated_at TRIGGERS
    # =========================================================================
    op.execute("""
        CREATE OR REPLACE FUNCTION trigger_set_updated_at()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql
    """)
    for table in ("chat_integration", "chat_group", "chat_message", "chat_user_link"):
        op.execute(f"""
            CREATE TRIGGER set_updated_at_{table}
                BEFORE UPDATE ON {table}
                FOR EACH ROW EXECUTE FUNCTION trigger_set_updated_at()
        """)


def downgrade() -> None:
    op.drop_table("chat_user_link")
    op.drop_table("chat_message")
    op.drop_table("chat_group")
    op.drop_table("chat_integration")
    op.execute("DROP FUNCTION IF EXISTS trigger_set_updated_at()")

    op.execute("DROP TYPE message_intent")
    op.execute("DROP TYPE integration_status")
