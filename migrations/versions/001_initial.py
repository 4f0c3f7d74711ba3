"""initial

Revision ID: 001_initial
Revises:
Create Date: 2026-01-10 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _common_columns():
    return [
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # Buildings
    op.create_table('buildings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.BigInteger(), nullable=False),
        sa.Column('code', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('address', sa.String(), nullable=True),
        sa.Column('total_rooms', sa.Integer(), nullable=False, server_default='0'),
        *_common_columns(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_buildings_owner_id'), 'buildings', ['owner_id'])
    op.create_index(op.f('ix_buildings_code'), 'buildings', ['code'])

    # Rooms
    op.create_table('rooms',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.BigInteger(), nullable=False),
        sa.Column('building_id', sa.Integer(), nullable=False),
        sa.Column('room_code', sa.String(), nullable=False),
        sa.Column('room_name', sa.String(), nullable=False),
        sa.Column('floor', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('area', sa.Float(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(), nullable=False, server_default='AVAILABLE'),
        sa.Column('current_electric_index', sa.Float(), nullable=False, server_default='0'),
        sa.Column('current_water_index', sa.Float(), nullable=False, server_default='0'),
        sa.Column('pricing', sa.JSON(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        *_common_columns(),
        sa.ForeignKeyConstraint(['building_id'], ['buildings.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_rooms_owner_id'), 'rooms', ['owner_id'])
    op.create_index(op.f('ix_rooms_room_code'), 'rooms', ['room_code'])
    op.create_index('ix_rooms_owner_status', 'rooms', ['owner_id', 'status', 'is_deleted'])

    # Tenants
    op.create_table('tenants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.BigInteger(), nullable=False),
        sa.Column('code', sa.String(), nullable=False),
        sa.Column('full_name', sa.String(), nullable=False),
        sa.Column('phone', sa.String(), nullable=False),
        sa.Column('id_card', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('permanent_address', sa.String(), nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='ACTIVE'),
        sa.Column('current_room_id', sa.Integer(), nullable=True),
        sa.Column('move_in_date', sa.DATE(), nullable=True),
        sa.Column('move_out_date', sa.DATE(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_common_columns(),
        sa.ForeignKeyConstraint(['current_room_id'], ['rooms.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_tenants_owner_id'), 'tenants', ['owner_id'])
    op.create_index(op.f('ix_tenants_code'), 'tenants', ['code'])
    op.create_index(op.f('ix_tenants_phone'), 'tenants', ['phone'])
    op.create_index(op.f('ix_tenants_id_card'), 'tenants', ['id_card'])

    # Service catalog
    op.create_table('services',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.BigInteger(), nullable=False),
        sa.Column('code', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('unit', sa.String(), nullable=False),
        sa.Column('price_type', sa.String(), nullable=False, server_default='FIXED'),
        sa.Column('fixed_price', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('price_tiers', sa.JSON(), nullable=False),
        sa.Column('building_scope', sa.String(), nullable=False, server_default='ALL'),
        sa.Column('building_ids', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_common_columns(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_services_owner_id'), 'services', ['owner_id'])
    op.create_index(op.f('ix_services_code'), 'services', ['code'])

    # Contracts
    op.create_table('contracts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.BigInteger(), nullable=False),
        sa.Column('code', sa.String(), nullable=False),
        sa.Column('room_id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='ACTIVE'),
        sa.Column('pricing', sa.JSON(), nullable=False),
        sa.Column('deposit_amount', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('service_charges', sa.JSON(), nullable=False),
        sa.Column('start_date', sa.DATE(), nullable=False),
        sa.Column('end_date', sa.DATE(), nullable=True),
        sa.Column('terms', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_common_columns(),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['room_id'], ['rooms.id']),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_contracts_owner_id'), 'contracts', ['owner_id'])
    op.create_index(op.f('ix_contracts_code'), 'contracts', ['code'])
    op.create_index('ix_contracts_room_status', 'contracts', ['room_id', 'status'])

    # Invoices
    op.create_table('invoices',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.BigInteger(), nullable=False),
        sa.Column('contract_id', sa.Integer(), nullable=False),
        sa.Column('room_id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('invoice_number', sa.String(), nullable=False),
        sa.Column('billing_month', sa.Integer(), nullable=False),
        sa.Column('billing_year', sa.Integer(), nullable=False),
        sa.Column('previous_electric_index', sa.Float(), nullable=False, server_default='0'),
        sa.Column('current_electric_index', sa.Float(), nullable=False, server_default='0'),
        sa.Column('electricity_used', sa.Float(), nullable=False, server_default='0'),
        sa.Column('electricity_price', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('electricity_amount', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('previous_water_index', sa.Float(), nullable=False, server_default='0'),
        sa.Column('current_water_index', sa.Float(), nullable=False, server_default='0'),
        sa.Column('water_used', sa.Float(), nullable=False, server_default='0'),
        sa.Column('water_price', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('water_amount', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('rent_amount', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('service_charges', sa.JSON(), nullable=False),
        sa.Column('total_amount', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('paid_amount', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('remaining_amount', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('status', sa.String(), nullable=False, server_default='PENDING'),
        sa.Column('due_date', sa.DATE(), nullable=False),
        sa.Column('paid_date', sa.DATE(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_common_columns(),
        sa.ForeignKeyConstraint(['contract_id'], ['contracts.id']),
        sa.ForeignKeyConstraint(['room_id'], ['rooms.id']),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_invoices_owner_id'), 'invoices', ['owner_id'])
    op.create_index(op.f('ix_invoices_invoice_number'), 'invoices', ['invoice_number'], unique=True)
    op.create_index('ix_invoices_period', 'invoices', ['contract_id', 'billing_year', 'billing_month'])
    op.create_index('ix_invoices_status_due', 'invoices', ['status', 'due_date'])

    # Payments
    op.create_table('payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.BigInteger(), nullable=False),
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column('contract_id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('payment_method', sa.String(), nullable=False, server_default='CASH'),
        sa.Column('payment_date', sa.DATE(), nullable=False),
        sa.Column('transaction_id', sa.String(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('received_by', sa.BigInteger(), nullable=True),
        *_common_columns(),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id']),
        sa.ForeignKeyConstraint(['contract_id'], ['contracts.id']),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_payments_owner_id'), 'payments', ['owner_id'])


def downgrade() -> None:
    op.drop_table('payments')
    op.drop_table('invoices')
    op.drop_table('contracts')
    op.drop_table('services')
    op.drop_table('tenants')
    op.drop_table('rooms')
    op.drop_table('buildings')
