"""create chat tables

Revision ID: 20250301_01
Revises:
Create Date: 2025-03-01 00:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20250301_01"
down_revision = None
branch_labels = None
depends_on = None


def _identifier() -> sa.Column:
    return sa.Column("id", sa.String(length=36), primary_key=True, nullable=False)


def _created_date() -> sa.Column:
    return sa.Column("created_date", sa.DateTime(timezone=True), nullable=False)


def upgrade() -> None:
    op.create_table(
        "users",
        _identifier(),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("username", sa.String(length=64), nullable=True, unique=True),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("display_name", sa.String(length=128), nullable=True),
        sa.Column("bio", sa.String(length=200), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="online"),
        sa.Column("avatar_url", sa.String(length=512), nullable=True),
        sa.Column("banner_color", sa.String(length=16), nullable=True),
        _created_date(),
        mysql_charset="utf8mb4",
    )

    op.create_table(
        "servers",
        _identifier(),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("icon_url", sa.String(length=512), nullable=True),
        sa.Column(
            "owner_id",
            sa.String(length=36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_date(),
        mysql_charset="utf8mb4",
    )
    op.create_index("ix_servers_created_date", "servers", ["created_date"])

    op.create_table(
        "server_members",
        _identifier(),
        sa.Column(
            "server_id",
            sa.String(length=36),
            sa.ForeignKey("servers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.String(length=36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("username", sa.String(length=128), nullable=True),
        sa.Column("nickname", sa.String(length=128), nullable=True),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="member"),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
        _created_date(),
        sa.UniqueConstraint("server_id", "user_id", name="uq_server_member"),
        mysql_charset="utf8mb4",
    )

    op.create_table(
        "channels",
        _identifier(),
        sa.Column(
            "server_id",
            sa.String(length=36),
            sa.ForeignKey("servers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False, server_default="text"),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("description", sa.String(length=500), nullable=True),
        _created_date(),
        sa.UniqueConstraint("server_id", "position", name="uq_channel_server_position"),
        mysql_charset="utf8mb4",
    )

    op.create_table(
        "messages",
        _identifier(),
        sa.Column(
            "channel_id",
            sa.String(length=36),
            sa.ForeignKey("channels.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.String(length=36),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("username", sa.String(length=128), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        _created_date(),
        mysql_charset="utf8mb4",
    )
    op.create_index(
        "ix_messages_channel_created_date", "messages", ["channel_id", "created_date"]
    )

    op.create_table(
        "direct_messages",
        _identifier(),
        sa.Column(
            "sender_id",
            sa.String(length=36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "receiver_id",
            sa.String(length=36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("sender_username", sa.String(length=128), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        _created_date(),
        mysql_charset="utf8mb4",
    )
    op.create_index(
        "ix_direct_messages_pair",
        "direct_messages",
        ["sender_id", "receiver_id", "created_date"],
    )


def downgrade() -> None:
    op.drop_index("ix_direct_messages_pair", table_name="direct_messages")
    op.drop_table("direct_messages")
    op.drop_index("ix_messages_channel_created_date", table_name="messages")
    op.drop_table("messages")
    op.drop_table("channels")
    op.drop_table("server_members")
    op.drop_index("ix_servers_created_date", table_name="servers")
    op.drop_table("servers")
    op.drop_table("users")
