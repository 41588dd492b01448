"""Create articles and job_locks tables"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op


revision = "20250401_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "articles",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("title", sa.String(length=512), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("link", sa.String(length=2048), nullable=False),
        sa.Column("image", sa.String(length=2048), nullable=True),
        sa.Column("source", sa.String(length=255), nullable=False),
        sa.Column("date", sa.String(length=64), nullable=False),
        sa.Column("query", sa.String(length=255), nullable=False),
        sa.Column("fetched_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.UniqueConstraint("link", name="uq_articles_link"),
    )
    op.create_index("ix_articles_query", "articles", ["query"], unique=False)
    op.create_index("ix_articles_fetched_at", "articles", ["fetched_at"], unique=False)
    op.create_index("ix_articles_query_fetched", "articles", ["query", "fetched_at"], unique=False)

    op.create_table(
        "job_locks",
        sa.Column("job_name", sa.String(length=120), primary_key=True, nullable=False),
        sa.Column("locked_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("locked_by", sa.String(length=255), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("job_locks")
    op.drop_index("ix_articles_query_fetched", table_name="articles")
    op.drop_index("ix_articles_fetched_at", table_name="articles")
    op.drop_index("ix_articles_query", table_name="articles")
    op.drop_table("articles")
