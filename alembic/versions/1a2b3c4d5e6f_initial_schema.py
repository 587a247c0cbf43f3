"""initial schema: players, courses, rounds, round_holes

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-19 09:12:04.118230

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '1a2b3c4d5e6f'
down_revision = None
branch_labels = None
depends_on = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        "players",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("external_id", sa.String(length=128), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("name", sa.String(length=128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_players_external_id"), "players", ["external_id"], unique=True)
    op.create_index(op.f("ix_players_email"), "players", ["email"], unique=True)

    op.create_table(
        "courses",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("api_course_id", sa.String(length=64), nullable=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("club_name", sa.String(length=200), nullable=True),
        sa.Column("location", sa.String(length=200), nullable=True),
        sa.Column("country", sa.String(length=100), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("num_holes", sa.Integer(), nullable=True),
        sa.Column("par", sa.Integer(), nullable=True),
        sa.Column("tees", JSON_TYPE, nullable=True),
        sa.Column("holes", JSON_TYPE, nullable=True),
        sa.Column("poi", JSON_TYPE, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("poi_updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_courses_id"), "courses", ["id"], unique=False)
    op.create_index(op.f("ix_courses_api_course_id"), "courses", ["api_course_id"], unique=True)
    op.create_index(op.f("ix_courses_name"), "courses", ["name"], unique=False)

    op.create_table(
        "rounds",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_player_id", sa.Integer(), nullable=False),
        sa.Column("course_id", sa.Integer(), nullable=False),
        sa.Column("tee_id", sa.String(length=64), nullable=True),
        sa.Column("selected_tee_name", sa.String(length=64), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("gross_shots", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["owner_player_id"], ["players.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["course_id"], ["courses.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_rounds_owner_player_id"), "rounds", ["owner_player_id"], unique=False)
    op.create_index(op.f("ix_rounds_course_id"), "rounds", ["course_id"], unique=False)
    op.create_index(op.f("ix_rounds_completed_at"), "rounds", ["completed_at"], unique=False)

    op.create_table(
        "round_holes",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("round_id", sa.Integer(), nullable=False),
        sa.Column("hole_number", sa.Integer(), nullable=False),
        sa.Column("hole_data", JSON_TYPE, nullable=False),
        sa.Column("total_score", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["round_id"], ["rounds.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("round_id", "hole_number", name="uq_round_hole_number"),
    )
    op.create_index(op.f("ix_round_holes_round_id"), "round_holes", ["round_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_round_holes_round_id"), table_name="round_holes")
    op.drop_table("round_holes")
    op.drop_index(op.f("ix_rounds_completed_at"), table_name="rounds")
    op.drop_index(op.f("ix_rounds_course_id"), table_name="rounds")
    op.drop_index(op.f("ix_rounds_owner_player_id"), table_name="rounds")
    op.drop_table("rounds")
    op.drop_index(op.f("ix_courses_name"), table_name="courses")
    op.drop_index(op.f("ix_courses_api_course_id"), table_name="courses")
    op.drop_index(op.f("ix_courses_id"), table_name="courses")
    op.drop_table("courses")
    op.drop_index(op.f("ix_players_email"), table_name="players")
    op.drop_index(op.f("ix_players_external_id"), table_name="players")
    op.drop_table("players")
