"""Create user, log_entry and game tables and seed the shared game

Revision ID: 3f9c1b7a2d40
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import text


# revision identifiers, used by Alembic.
revision = "3f9c1b7a2d40"
down_revision = None
branch_labels = None
depends_on = None

EMPTY_BOARD = '["","","","","","","","",""]'


def upgrade():
    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=60), nullable=False),
        sa.Column("full_name", sa.String(length=100), nullable=False),
        sa.Column("short_name", sa.String(length=50), nullable=False),
        sa.Column("google_id", sa.String(length=100), nullable=True),
        sa.Column("google_email", sa.String(length=60), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
        sa.UniqueConstraint("google_id"),
    )
    op.create_table(
        "log_entry",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("actor_id", sa.Integer(), nullable=True),
        sa.Column("project", sa.String(length=50), nullable=True),
        sa.Column("category", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(["actor_id"], ["user.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "game",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("board", sa.Text(), nullable=False),
        sa.Column("isxnext", sa.Boolean(), nullable=False),
        sa.Column("winner", sa.String(length=1), nullable=True),
        sa.Column("player1", sa.Integer(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["player1"], ["user.id"]),
        sa.PrimaryKeyConstraint("id"),
    )

    # The shared game always has id 1
    op.execute(
        text(
            f"""
        INSERT INTO game (id, board, isxnext, winner, version)
        VALUES (1, '{EMPTY_BOARD}', true, NULL, 0)
    """
        )
    )

    # An explicit id does not advance the PostgreSQL sequence, so move it past
    # the seeded row or the first new game would collide with it
    if op.get_bind().dialect.name == "postgresql":
        op.execute(
            text("SELECT setval(pg_get_serial_sequence('game', 'id'), 1)")
        )


def downgrade():
    op.drop_table("game")
    op.drop_table("log_entry")
    op.drop_table("user")
