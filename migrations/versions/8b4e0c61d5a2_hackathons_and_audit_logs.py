"""hackathons and audit logs

Revision ID: 8b4e0c61d5a2
Revises: 3f1c2a9d7e10
Create Date: 2026-10-18 14:30:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "8b4e0c61d5a2"
down_revision = "3f1c2a9d7e10"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "hackathons",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("start_date", sa.DateTime(), nullable=True),
        sa.Column("end_date", sa.DateTime(), nullable=True),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("admins.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    with op.batch_alter_table("polls") as batch_op:
        batch_op.add_column(sa.Column("hackathon_id", sa.Integer(), nullable=True))
        batch_op.create_foreign_key(
            "fk_polls_hackathon_id", "hackathons", ["hackathon_id"], ["id"]
        )
        batch_op.create_index("ix_polls_hackathon_id", ["hackathon_id"])

    with op.batch_alter_table("teams") as batch_op:
        batch_op.add_column(sa.Column("hackathon_id", sa.Integer(), nullable=True))
        batch_op.create_foreign_key(
            "fk_teams_hackathon_id", "hackathons", ["hackathon_id"], ["id"]
        )
        batch_op.create_index("ix_teams_hackathon_id", ["hackathon_id"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("admins.id"), nullable=True),
        sa.Column("poll_id", sa.Integer(), nullable=True),
        sa.Column("role", sa.String(length=20), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_audit_logs_poll_id", "audit_logs", ["poll_id"])


def downgrade():
    op.drop_index("ix_audit_logs_poll_id", table_name="audit_logs")
    op.drop_table("audit_logs")

    with op.batch_alter_table("teams") as batch_op:
        batch_op.drop_index("ix_teams_hackathon_id")
        batch_op.drop_constraint("fk_teams_hackathon_id", type_="foreignkey")
        batch_op.drop_column("hackathon_id")

    with op.batch_alter_table("polls") as batch_op:
        batch_op.drop_index("ix_polls_hackathon_id")
        batch_op.drop_constraint("fk_polls_hackathon_id", type_="foreignkey")
        batch_op.drop_column("hackathon_id")

    op.drop_table("hackathons")
