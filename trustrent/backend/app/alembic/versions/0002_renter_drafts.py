"""renter drafts

Revision ID: 0002_renter_drafts
Revises: 0001_init
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


revision = "0002_renter_drafts"
down_revision = "0001_init"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "renter_drafts",
        sa.Column(
            "renter_id",
            sa.String(length=64),
            sa.ForeignKey("renters.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("draft_json", sa.Text(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )


def downgrade():
    op.drop_table("renter_drafts")
