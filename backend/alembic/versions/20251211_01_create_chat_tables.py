"""Create users, chat rooms, messages, read receipts and presence tables."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20251211_01"
down_revision = None
branch_labels = None
depends_on = None


user_role = sa.Enum("admin", "manager", "contributor", "client", name="user_role")
room_type = sa.Enum("direct", "group", name="chat_room_type")
message_type = sa.Enum("text", "file", "image", name="chat_message_type")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("role", user_role, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("email"),
        mysql_charset="utf8mb4",
    )

    op.create_table(
        "chat_rooms",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("type", room_type, nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("direct_key", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_message_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("direct_key", name="uq_chat_room_direct_pair"),
        mysql_charset="utf8mb4",
    )
    op.create_index("ix_chat_rooms_last_message_at", "chat_rooms", ["last_message_at"])

    op.create_table(
        "chat_room_members",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("room_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["room_id"], ["chat_rooms.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("room_id", "user_id", name="uq_chat_room_member"),
        mysql_charset="utf8mb4",
    )
    op.create_index("ix_chat_room_members_user", "chat_room_members", ["user_id"])

    op.create_table(
        "chat_messages",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("room_id", sa.Integer(), nullable=False),
        sa.Column("sender_id", sa.Integer(), nullable=False),
        sa.Column("body", sa.Text(), nullable=True),
        sa.Column("type", message_type, nullable=False),
        sa.Column("file_path", sa.String(length=512), nullable=True),
        sa.Column("file_name", sa.String(length=255), nullable=True),
        sa.Column("content_type", sa.String(length=128), nullable=True),
        sa.Column("file_size", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["room_id"], ["chat_rooms.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["sender_id"], ["users.id"], ondelete="CASCADE"),
        mysql_charset="utf8mb4",
    )
    op.create_index(
        "ix_chat_messages_room_created", "chat_messages", ["room_id", "created_at", "id"]
    )
    op.create_index("ix_chat_messages_sender", "chat_messages", ["sender_id"])

    op.create_table(
        "chat_message_reads",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("message_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["message_id"], ["chat_messages.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("message_id", "user_id", name="uq_chat_message_read"),
        mysql_charset="utf8mb4",
    )
    op.create_index("ix_chat_message_reads_user", "chat_message_reads", ["user_id"])

    op.create_table(
        "chat_user_presence",
        sa.Column("user_id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("is_online", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        mysql_charset="utf8mb4",
    )


def downgrade() -> None:
    op.drop_table("chat_user_presence")

    op.drop_index("ix_chat_message_reads_user", table_name="chat_message_reads")
    op.drop_table("chat_message_reads")

    op.drop_index("ix_chat_messages_sender", table_name="chat_messages")
    op.drop_index("ix_chat_messages_room_created", table_name="chat_messages")
    op.drop_table("chat_messages")

    op.drop_index("ix_chat_room_members_user", table_name="chat_room_members")
    op.drop_table("chat_room_members")

    op.drop_index("ix_chat_rooms_last_message_at", table_name="chat_rooms")
    op.drop_table("chat_rooms")

    op.drop_table("users")

    bind = op.get_bind()
    message_type.drop(bind, checkfirst=True)
    room_type.drop(bind, checkfirst=True)
    user_role.drop(bind, checkfirst=True)
