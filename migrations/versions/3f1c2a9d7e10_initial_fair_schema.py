"""initial fair schema

Revision ID: 3f1c2a9d7e10
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3f1c2a9d7e10"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "admins",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=80), nullable=False, unique=True),
        sa.Column("email", sa.String(length=200), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="admin"),
    )

    op.create_table(
        "polls",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("admins.id"), nullable=True),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=False),
        sa.Column("voting_mode", sa.String(length=20), nullable=False, server_default="single"),
        sa.Column(
            "voting_permissions",
            sa.String(length=30),
            nullable=False,
            server_default="voters_and_judges",
        ),
        sa.Column("voter_weight", sa.Float(), nullable=False, server_default="1"),
        sa.Column("judge_weight", sa.Float(), nullable=False, server_default="1"),
        sa.Column("rank_points_config", sa.JSON(), nullable=True),
        sa.Column("max_ranked_positions", sa.Integer(), nullable=True),
        sa.Column("min_voter_participation", sa.Integer(), nullable=True),
        sa.Column("min_judge_participation", sa.Integer(), nullable=True),
        sa.Column("allow_self_vote", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_public_results", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("parent_poll_id", sa.Integer(), sa.ForeignKey("polls.id"), nullable=True),
        sa.Column("is_tie_breaker", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "teams",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("poll_id", sa.Integer(), sa.ForeignKey("polls.id"), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("project_name", sa.String(length=200), nullable=True),
        sa.Column("project_description", sa.Text(), nullable=True),
    )

    op.create_table(
        "voter_tokens",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("poll_id", sa.Integer(), sa.ForeignKey("polls.id"), nullable=False),
        sa.Column("token_hash", sa.String(length=64), nullable=False, unique=True),
        sa.Column("team_id", sa.Integer(), sa.ForeignKey("teams.id"), nullable=True),
        sa.Column("email", sa.String(length=200), nullable=True),
        sa.Column("used", sa.Boolean(), nullable=False, server_default=sa.false()),
    )

    op.create_table(
        "judges",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("poll_id", sa.Integer(), sa.ForeignKey("polls.id"), nullable=False),
        sa.Column("email", sa.String(length=200), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=True),
        sa.UniqueConstraint("poll_id", "email", name="uq_judges_poll_email"),
    )

    op.create_table(
        "votes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("poll_id", sa.Integer(), sa.ForeignKey("polls.id"), nullable=False),
        sa.Column("vote_type", sa.String(length=10), nullable=False),
        sa.Column("token_hash", sa.String(length=64), nullable=True, unique=True),
        sa.Column("judge_email", sa.String(length=200), nullable=True),
        sa.Column("team_id_target", sa.Integer(), nullable=True),
        sa.Column("teams", sa.JSON(), nullable=True),
        sa.Column("rankings", sa.JSON(), nullable=True),
        sa.Column("vote_hash", sa.String(length=64), nullable=True),
        sa.Column("tx_hash", sa.String(length=100), nullable=True),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("poll_id", "judge_email", name="uq_votes_poll_judge"),
    )
    op.create_index("ix_votes_tx_hash", "votes", ["tx_hash"])

    op.create_table(
        "api_keys",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("admin_id", sa.Integer(), sa.ForeignKey("admins.id"), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("key_hash", sa.String(length=64), nullable=False, unique=True),
        sa.Column("revoked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )


def downgrade():
    op.drop_table("api_keys")
    op.drop_index("ix_votes_tx_hash", table_name="votes")
    op.drop_table("votes")
    op.drop_table("judges")
    op.drop_table("voter_tokens")
    op.drop_table("teams")
    op.drop_table("polls")
    op.drop_table("admins")
