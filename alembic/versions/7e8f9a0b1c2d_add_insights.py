"""add insights table

Revision ID: 7e8f9a0b1c2d
Revises: 1a2b3c4d5e6f
Create Date: 2026-10-19 09:40:51.502117

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '7e8f9a0b1c2d'
down_revision = '1a2b3c4d5e6f'
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "insights",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("player_id", sa.Integer(), nullable=False),
        sa.Column("round_id", sa.Integer(), nullable=True),
        sa.Column("insights", sa.JSON().with_variant(postgresql.JSONB(), "postgresql"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["player_id"], ["players.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["round_id"], ["rounds.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_insights_player_id"), "insights", ["player_id"], unique=False)
    op.create_index(op.f("ix_insights_round_id"), "insights", ["round_id"], unique=False)
    op.create_index(op.f("ix_insights_created_at"), "insights", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_insights_created_at"), table_name="insights")
    op.drop_index(op.f("ix_insights_round_id"), table_name="insights")
    op.drop_index(op.f("ix_insights_player_id"), table_name="insights")
    op.drop_table("insights")
