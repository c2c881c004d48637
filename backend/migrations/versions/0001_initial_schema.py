"""initial schema

Revision ID: 0001_initial_schema
Revises: 
Create Date: 2026-10-18
"""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa

revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade():
    op.create_table('guardians',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('last_name', sa.String(length=128), nullable=False),
        sa.Column('first_name', sa.String(length=128), nullable=False),
        sa.Column('id_number', sa.String(length=64), nullable=False, unique=True),
        sa.Column('relationship', sa.String(length=64), nullable=False),
        sa.Column('phone', sa.String(length=32)),
        sa.Column('address', sa.String(length=255)),
        *_timestamps(),
    )
    op.create_index('ix_guardians_id_number', 'guardians', ['id_number'])

    op.create_table('hunters',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('last_name', sa.String(length=128), nullable=False),
        sa.Column('first_name', sa.String(length=128), nullable=False),
        sa.Column('date_of_birth', sa.Date(), nullable=False),
        sa.Column('id_number', sa.String(length=64), nullable=False, unique=True),
        sa.Column('phone', sa.String(length=32)),
        sa.Column('address', sa.String(length=255), nullable=False),
        sa.Column('experience', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('profession', sa.String(length=128), nullable=False),
        sa.Column('category', sa.String(length=32), nullable=False),
        sa.Column('pays', sa.String(length=64)),
        sa.Column('nationality', sa.String(length=64)),
        sa.Column('region', sa.String(length=64)),
        sa.Column('zone', sa.String(length=64)),
        sa.Column('weapon_type', sa.String(length=32)),
        sa.Column('weapon_brand', sa.String(length=64)),
        sa.Column('weapon_reference', sa.String(length=64)),
        sa.Column('weapon_caliber', sa.String(length=32)),
        sa.Column('weapon_other_details', sa.String(length=255)),
        sa.Column('is_minor', sa.Boolean(), nullable=False, server_default=sa.text('0')),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        sa.Column('guardian_id', sa.Integer(), sa.ForeignKey('guardians.id', ondelete='SET NULL'), nullable=True),
        *_timestamps(),
    )
    for col in ('id_number', 'category', 'region', 'zone', 'guardian_id'):
        op.create_index(f'ix_hunters_{col}', 'hunters', [col])

    op.create_table('hunting_guides',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('last_name', sa.String(length=128), nullable=False),
        sa.Column('first_name', sa.String(length=128), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=False),
        sa.Column('zone', sa.String(length=64), nullable=False),
        sa.Column('region', sa.String(length=64), nullable=False),
        sa.Column('id_number', sa.String(length=64), nullable=False, unique=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        *_timestamps(),
    )
    for col in ('zone', 'region', 'id_number'):
        op.create_index(f'ix_hunting_guides_{col}', 'hunting_guides', [col])

    op.create_table('users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('username', sa.String(length=64), nullable=False, unique=True),
        sa.Column('email', sa.String(length=128), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=128)),
        sa.Column('last_name', sa.String(length=128)),
        sa.Column('phone', sa.String(length=32)),
        sa.Column('matricule', sa.String(length=64)),
        sa.Column('service_location', sa.String(length=255)),
        sa.Column('region', sa.String(length=64)),
        sa.Column('zone', sa.String(length=64)),
        sa.Column('role', sa.String(length=16), nullable=False, server_default='hunter'),
        sa.Column('type', sa.String(length=16)),
        sa.Column('hunter_id', sa.Integer(), sa.ForeignKey('hunters.id', ondelete='SET NULL'), nullable=True),
        sa.Column('guide_id', sa.Integer(), sa.ForeignKey('hunting_guides.id', ondelete='SET NULL'), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        sa.Column('is_suspended', sa.Boolean(), nullable=False, server_default=sa.text('0')),
        *_timestamps(),
    )
    for col in ('username', 'email', 'region', 'zone', 'role', 'hunter_id', 'guide_id'):
        op.create_index(f'ix_users_{col}', 'users', [col])

    op.create_table('permits',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('permit_number', sa.String(length=32), nullable=False, unique=True),
        sa.Column('hunter_id', sa.Integer(), sa.ForeignKey('hunters.id'), nullable=False),
        sa.Column('issue_date', sa.Date(), nullable=False),
        sa.Column('expiry_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        sa.Column('price', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('type', sa.String(length=64)),
        sa.Column('category_id', sa.String(length=64)),
        sa.Column('receipt_number', sa.String(length=64)),
        sa.Column('area', sa.String(length=128)),
        sa.Column('weapons', sa.String(length=255)),
        *_timestamps(),
    )
    for col in ('permit_number', 'hunter_id', 'expiry_date', 'status'):
        op.create_index(f'ix_permits_{col}', 'permits', [col])

    op.create_table('number_sequences',
        sa.Column('name', sa.String(length=32), primary_key=True),
        sa.Column('last_value', sa.Integer(), nullable=False, server_default='0'),
    )

    op.create_table('taxes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tax_number', sa.String(length=32), nullable=False, unique=True),
        sa.Column('hunter_id', sa.Integer(), sa.ForeignKey('hunters.id'), nullable=False),
        sa.Column('permit_id', sa.Integer(), sa.ForeignKey('permits.id'), nullable=True),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('issue_date', sa.Date(), nullable=False),
        sa.Column('animal_type', sa.String(length=64), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('location', sa.String(length=128), nullable=False),
        sa.Column('external_hunter_name', sa.String(length=128)),
        sa.Column('external_hunter_region', sa.String(length=64)),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    for col in ('tax_number', 'hunter_id', 'permit_id'):
        op.create_index(f'ix_taxes_{col}', 'taxes', [col])

    op.create_table('permit_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('hunter_id', sa.Integer(), sa.ForeignKey('hunters.id'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('permit_type', sa.String(length=32), nullable=False),
        sa.Column('request_type', sa.String(length=32), nullable=False, server_default='NOUVELLE'),
        sa.Column('statut', sa.String(length=32), nullable=False, server_default='NOUVELLE'),
        sa.Column('region', sa.String(length=64)),
        sa.Column('comments', sa.Text()),
        sa.Column('agent_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('previous_permit_id', sa.Integer(), sa.ForeignKey('permits.id'), nullable=True),
        sa.Column('rejection_reason', sa.Text()),
        sa.Column('validated_by', sa.Integer(), nullable=True),
        sa.Column('validated_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    for col in ('hunter_id', 'user_id', 'statut'):
        op.create_index(f'ix_permit_requests_{col}', 'permit_requests', [col])

    op.create_table('guide_hunter_associations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('guide_id', sa.Integer(), sa.ForeignKey('hunting_guides.id', ondelete='CASCADE'), nullable=False),
        sa.Column('hunter_id', sa.Integer(), sa.ForeignKey('hunters.id', ondelete='CASCADE'), nullable=False),
        sa.Column('associated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('guide_id', 'hunter_id', name='uq_guide_hunter'),
    )
    op.create_index('ix_guide_hunter_associations_guide_id', 'guide_hunter_associations', ['guide_id'])
    op.create_index('ix_guide_hunter_associations_hunter_id', 'guide_hunter_associations', ['hunter_id'])

    op.create_table('history',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('operation', sa.String(length=64), nullable=False),
        sa.Column('entity_type', sa.String(length=32), nullable=True),
        sa.Column('entity_id', sa.String(length=64), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('details', sa.Text(), nullable=False, server_default=''),
        sa.Column('meta', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    for col in ('operation', 'entity_type', 'user_id'):
        op.create_index(f'ix_history_{col}', 'history', [col])

    op.create_table('revoked_tokens',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('jti', sa.String(length=64), nullable=False, unique=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_revoked_tokens_jti', 'revoked_tokens', ['jti'])


def downgrade():
    for table in (
        'revoked_tokens', 'history', 'guide_hunter_associations', 'permit_requests', 'taxes',
        'number_sequences', 'permits', 'users', 'hunting_guides', 'hunters', 'guardians',
    ):
        op.drop_table(table)
