"""add watchlist_items

Список «посмотреть позже»: приоритет 1..N, soft-delete, один фильм на пользователя.
"""

from alembic import op
import sqlalchemy as sa

revision = "2026_10_17_watchlist"
down_revision = "2026_10_17_initial"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "watchlist_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("movie_id", sa.Integer(), sa.ForeignKey("movies.id"), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("added_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("user_id", "movie_id", name="uq_watchlist_items_user_movie"),
    )
    op.create_index("ix_watchlist_items_id", "watchlist_items", ["id"])
    op.create_index("ix_watchlist_items_user_id", "watchlist_items", ["user_id"])
    op.create_index("ix_watchlist_items_movie_id", "watchlist_items", ["movie_id"])
    op.create_index("ix_watchlist_items_user_priority", "watchlist_items", ["user_id", "priority"])


def downgrade():
    op.drop_index("ix_watchlist_items_user_priority", table_name="watchlist_items")
    op.drop_index("ix_watchlist_items_movie_id", table_name="watchlist_items")
    op.drop_index("ix_watchlist_items_user_id", table_name="watchlist_items")
    op.drop_index("ix_watchlist_items_id", table_name="watchlist_items")
    op.drop_table("watchlist_items")
