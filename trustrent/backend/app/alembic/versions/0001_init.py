"""init schema

Revision ID: 0001_init
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "admin_users",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("email", sa.String(length=200), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_admin_users_email", "admin_users", ["email"], unique=True)

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("company_id", sa.String(length=64), nullable=True),
        sa.Column("actor", sa.String(length=120), nullable=True),
        sa.Column("action", sa.String(length=80), nullable=False),
        sa.Column("entity_type", sa.String(length=80), nullable=False),
        sa.Column("entity_id", sa.String(length=80), nullable=False),
        sa.Column("before_json", sa.Text(), nullable=True),
        sa.Column("after_json", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_audit_events_company_id", "audit_events", ["company_id"])

    op.create_table(
        "rental_companies",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("contact_email", sa.String(length=200), nullable=True),
        sa.Column(
            "admin_id", sa.String(length=64), sa.ForeignKey("admin_users.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_rental_companies_admin_id", "rental_companies", ["admin_id"], unique=True)

    op.create_table(
        "apartment_buildings",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column(
            "company_id",
            sa.String(length=64),
            sa.ForeignKey("rental_companies.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("postal_code", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_apartment_buildings_company_id", "apartment_buildings", ["company_id"])

    op.create_table(
        "rental_units",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column(
            "building_id",
            sa.String(length=64),
            sa.ForeignKey("apartment_buildings.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("unit_number", sa.String(length=40), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_rental_units_building_id", "rental_units", ["building_id"])

    op.create_table(
        "renter_invitations",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column(
            "unit_id", sa.String(length=64), sa.ForeignKey("rental_units.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("renter_name", sa.String(length=200), nullable=False),
        sa.Column("renter_email", sa.String(length=200), nullable=False),
        sa.Column("access_token", sa.String(length=6), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("activated_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("unit_id", "renter_email", name="uq_renter_invitations_unit_email"),
    )
    op.create_index("ix_renter_invitations_unit_id", "renter_invitations", ["unit_id"])
    op.create_index("ix_renter_invitations_access_token", "renter_invitations", ["access_token"], unique=True)
    op.create_index("ix_renter_invitations_unit_status", "renter_invitations", ["unit_id", "status"])

    op.create_table(
        "renters",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("full_name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=200), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column("apartment_name", sa.String(length=200), nullable=False),
        sa.Column("unit_number", sa.String(length=40), nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=True),
        sa.Column("access_token", sa.String(length=6), nullable=True),
        sa.Column("move_in_date", sa.String(length=20), nullable=True),
        sa.Column("move_out_date", sa.String(length=20), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_renters_email", "renters", ["email"], unique=True)
    op.create_index("ix_renters_company_id", "renters", ["company_id"])

    op.create_table(
        "submissions",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("renter_id", sa.String(length=64), sa.ForeignKey("renters.id", ondelete="CASCADE"), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("mime_type", sa.String(length=100), nullable=False),
        sa.Column("pdf_data", sa.Text(), nullable=False),
        sa.Column("pdf_size", sa.Integer(), nullable=False),
        sa.Column("submitted_at", sa.DateTime(), nullable=False),
        sa.Column("move_in_date", sa.String(length=20), nullable=True),
        sa.Column("move_out_date", sa.String(length=20), nullable=True),
    )
    op.create_index("ix_submissions_renter_id", "submissions", ["renter_id"])


def downgrade():
    op.drop_index("ix_submissions_renter_id", table_name="submissions")
    op.drop_table("submissions")
    op.drop_index("ix_renters_company_id", table_name="renters")
    op.drop_index("ix_renters_email", table_name="renters")
    op.drop_table("renters")
    op.drop_index("ix_renter_invitations_unit_status", table_name="renter_invitations")
    op.drop_index("ix_renter_invitations_access_token", table_name="renter_invitations")
    op.drop_index("ix_renter_invitations_unit_id", table_name="renter_invitations")
    op.drop_table("renter_invitations")
    op.drop_index("ix_rental_units_building_id", table_name="rental_units")
    op.drop_table("rental_units")
    op.drop_index("ix_apartment_buildings_company_id", table_name="apartment_buildings")
    op.drop_table("apartment_buildings")
    op.drop_index("ix_rental_companies_admin_id", table_name="rental_companies")
    op.drop_table("rental_companies")
    op.drop_index("ix_audit_events_company_id", table_name="audit_events")
    op.drop_table("audit_events")
    op.drop_index("ix_admin_users_email", table_name="admin_users")
    op.drop_table("admin_users")
