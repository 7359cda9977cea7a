"""Create property catalog, contact ledger and contact import tables

Revision ID: 000_initial_tables
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '000_initial_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('property',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('suburb', sa.String(length=100), nullable=False),
        sa.Column('street_name', sa.String(length=200), nullable=False),
        sa.Column('street_number', sa.Text(), nullable=True),
        sa.Column('property_type', sa.String(length=50), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_property_location', 'property', ['suburb', 'street_name'], unique=False)

    # contact_import before contact, which references it
    op.create_table('contact_import',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('suburb', sa.String(length=100), nullable=False),
        sa.Column('filename', sa.String(length=255), nullable=True),
        sa.Column('imported_by', sa.String(length=100), nullable=True),
        sa.Column('imported_at', sa.DateTime(), nullable=False),
        sa.Column('total_rows', sa.Integer(), nullable=True),
        sa.Column('accepted_count', sa.Integer(), nullable=True),
        sa.Column('duplicate_count', sa.Integer(), nullable=True),
        sa.Column('unmatched_count', sa.Integer(), nullable=True),
        sa.Column('skipped_count', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('error_code', sa.String(length=50), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('import_metadata', sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('contact',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_1', sa.Text(), nullable=True),
        sa.Column('owner_2', sa.Text(), nullable=True),
        sa.Column('owner_1_email', sa.Text(), nullable=True),
        sa.Column('owner_2_email', sa.Text(), nullable=True),
        sa.Column('phone_number', sa.Text(), nullable=True),
        sa.Column('owner_1_mobile', sa.Text(), nullable=True),
        sa.Column('owner_2_mobile', sa.Text(), nullable=True),
        sa.Column('street_number', sa.Text(), nullable=True),
        sa.Column('street_name', sa.String(length=200), nullable=False),
        sa.Column('suburb', sa.String(length=100), nullable=False),
        sa.Column('outcome', sa.Text(), nullable=True),
        sa.Column('status', sa.Text(), nullable=True),
        sa.Column('last_sold_date', sa.Date(), nullable=True),
        sa.Column('price', sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column('marketing_plan', sa.Text(), nullable=True),
        sa.Column('activity_log', sa.Text(), nullable=True),
        sa.Column('identity_hash', sa.String(length=64), nullable=True),
        sa.Column('contact_import_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['contact_import_id'], ['contact_import.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('identity_hash')
    )
    op.create_index('idx_contact_location', 'contact', ['suburb', 'street_name'], unique=False)


def downgrade():
    op.drop_index('idx_contact_location', table_name='contact')
    op.drop_table('contact')
    op.drop_table('contact_import')
    op.drop_index('idx_property_location', table_name='property')
    op.drop_table('property')
