"""initial SceneStack schema

- users: жизненный цикл аккаунта (is_deleted / is_deactivated / pending_group_actions)
- groups: soft-delete (deleted_at) + version_id для оптимистичной блокировки
- group_members (+ роль) и group_member_history
- movies, watches, watch_groups
- events (без FK, переживают удаление групп и пользователей)
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "2026_10_17_initial"
down_revision = None
branch_labels = None
depends_on = None


GROUP_ROLE = sa.Enum("member", "admin", "creator", name="group_role")
GROUP_MEMBER_ACTION = sa.Enum("added", "removed", "role_changed", "left", name="group_member_action")


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=50), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("password_hash", sa.String(length=255), nullable=True),
        sa.Column("bio", sa.String(length=300), nullable=True),
        sa.Column("is_premium", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("share_watches", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("share_ratings", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("share_notes", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_deactivated", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deactivated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("pending_group_actions", sa.JSON(), nullable=True),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_lifecycle", "users", ["is_deleted", "is_deactivated"])

    op.create_table(
        "groups",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("created_by_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
    )
    op.create_index("ix_groups_id", "groups", ["id"])
    op.create_index("ix_groups_name", "groups", ["name"])
    op.create_index("ix_groups_created_by_id", "groups", ["created_by_id"])
    op.create_index("ix_groups_deleted_at", "groups", ["deleted_at"])
    op.create_index("ix_groups_created_by_active", "groups", ["created_by_id", "deleted_at"])

    op.create_table(
        "group_members",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("group_id", sa.Integer(), sa.ForeignKey("groups.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("role", GROUP_ROLE, nullable=False, server_default=sa.text("'member'")),
        sa.Column("joined_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("group_id", "user_id", name="uq_group_members_group_user"),
    )
    op.create_index("ix_group_members_id", "group_members", ["id"])
    op.create_index("ix_group_members_group_id", "group_members", ["group_id"])
    op.create_index("ix_group_members_user_id", "group_members", ["user_id"])
    op.create_index("ix_group_members_group_role", "group_members", ["group_id", "role"])

    # тип group_role уже создан вместе с group_members
    if op.get_bind().dialect.name == "postgresql":
        role_ref = postgresql.ENUM("member", "admin", "creator", name="group_role", create_type=False)
    else:
        role_ref = GROUP_ROLE
    op.create_table(
        "group_member_history",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("group_id", sa.Integer(), sa.ForeignKey("groups.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("action", GROUP_MEMBER_ACTION, nullable=False),
        sa.Column("actor_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("previous_role", role_ref, nullable=True),
        sa.Column("new_role", role_ref, nullable=True),
        sa.Column("timestamp", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_group_member_history_id", "group_member_history", ["id"])
    op.create_index("ix_group_member_history_group_ts", "group_member_history", ["group_id", "timestamp"])

    op.create_table(
        "movies",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tmdb_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("year", sa.Integer(), nullable=True),
        sa.Column("poster_path", sa.String(length=255), nullable=True),
        sa.Column("synopsis", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_movies_id", "movies", ["id"])
    op.create_index("ix_movies_tmdb_id", "movies", ["tmdb_id"], unique=True)

    op.create_table(
        "watches",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("movie_id", sa.Integer(), sa.ForeignKey("movies.id"), nullable=False),
        sa.Column("watched_date", sa.Date(), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("watch_location", sa.String(length=50), nullable=True),
        sa.Column("watched_with", sa.String(length=255), nullable=True),
        sa.Column("is_rewatch", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_private", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("rating IS NULL OR (rating >= 1 AND rating <= 10)", name="ck_watches_rating_range"),
    )
    op.create_index("ix_watches_id", "watches", ["id"])
    op.create_index("ix_watches_user_id", "watches", ["user_id"])
    op.create_index("ix_watches_movie_id", "watches", ["movie_id"])
    op.create_index("ix_watches_watched_date", "watches", ["watched_date"])
    op.create_index("ix_watches_user_date", "watches", ["user_id", "watched_date"])
    op.create_index("ix_watches_user_movie", "watches", ["user_id", "movie_id"])

    op.create_table(
        "watch_groups",
        sa.Column("watch_id", sa.Integer(), sa.ForeignKey("watches.id", ondelete="CASCADE"), nullable=False),
        sa.Column("group_id", sa.Integer(), sa.ForeignKey("groups.id", ondelete="CASCADE"), nullable=False),
        sa.Column("shared_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("watch_id", "group_id", name="pk_watch_groups"),
    )
    op.create_index("ix_watch_groups_group_id", "watch_groups", ["group_id"])

    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("actor_id", sa.Integer(), nullable=True),
        sa.Column("group_id", sa.Integer(), nullable=True),
        sa.Column("target_user_id", sa.Integer(), nullable=True),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("data", sa.JSON().with_variant(postgresql.JSONB(), "postgresql"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_events_id", "events", ["id"])
    op.create_index("ix_events_group_created", "events", ["group_id", "created_at"])
    op.create_index("ix_events_type", "events", ["type"])


def downgrade():
    op.drop_table("events")
    op.drop_table("watch_groups")
    op.drop_table("watches")
    op.drop_table("movies")
    op.drop_table("group_member_history")
    op.drop_table("group_members")
    op.drop_table("groups")
    op.drop_table("users")

    bind = op.get_bind()
    GROUP_MEMBER_ACTION.drop(bind, checkfirst=True)
    GROUP_ROLE.drop(bind, checkfirst=True)
