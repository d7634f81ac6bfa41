"""Initial order hierarchy, audit and infrastructure tables

Revision ID: 001_initial_order_hierarchy
Revises:
Create Date: 2026-09-14

Five order levels (customer, warehouse, production, control, workstation)
sharing one line item table, plus order events, webhook subscriptions,
async operations and system configuration.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_initial_order_hierarchy'
down_revision = None
branch_labels = None
depends_on = None


def _order_columns():
    """Columns every order level carries."""
    return [
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_number', sa.String(30), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('secondary_failure', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('secondary_failure_notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def _order_indexes(table):
    op.create_index(f'ix_{table}_id', table, ['id'])
    op.create_index(f'ix_{table}_order_number', table, ['order_number'], unique=True)
    op.create_index(f'ix_{table}_status', table, ['status'])


def upgrade():
    """Create the order hierarchy."""

    op.create_table(
        'customer_orders',
        *_order_columns(),
        sa.Column('customer_name', sa.String(200), nullable=True),
        sa.Column('workstation_id', sa.Integer(), nullable=False, server_default='7'),
        sa.Column('trigger_scenario', sa.String(40), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    _order_indexes('customer_orders')

    op.create_table(
        'warehouse_orders',
        *_order_columns(),
        sa.Column('customer_order_id', sa.Integer(), nullable=True),
        sa.Column('workstation_id', sa.Integer(), nullable=False, server_default='8'),
        sa.Column('trigger_scenario', sa.String(40), nullable=True),
        sa.ForeignKeyConstraint(['customer_order_id'], ['customer_orders.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    _order_indexes('warehouse_orders')
    op.create_index('ix_warehouse_orders_customer_order_id', 'warehouse_orders', ['customer_order_id'])

    op.create_table(
        'production_orders',
        *_order_columns(),
        sa.Column('customer_order_id', sa.Integer(), nullable=True),
        sa.Column('warehouse_order_id', sa.Integer(), nullable=True),
        sa.Column('trigger_scenario', sa.String(40), nullable=True),
        sa.Column('priority', sa.String(20), nullable=False, server_default='NORMAL'),
        sa.Column('schedule_id', sa.String(100), nullable=True),
        sa.Column('scheduled_start', sa.DateTime(), nullable=True),
        sa.Column('scheduled_end', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['customer_order_id'], ['customer_orders.id']),
        sa.ForeignKeyConstraint(['warehouse_order_id'], ['warehouse_orders.id']),
        sa.CheckConstraint(
            '(customer_order_id IS NULL) <> (warehouse_order_id IS NULL)',
            name='ck_production_order_single_parent',
        ),
        sa.PrimaryKeyConstraint('id')
    )
    _order_indexes('production_orders')
    op.create_index('ix_production_orders_customer_order_id', 'production_orders', ['customer_order_id'])
    op.create_index('ix_production_orders_warehouse_order_id', 'production_orders', ['warehouse_order_id'])
    op.create_index('ix_production_orders_schedule_id', 'production_orders', ['schedule_id'])

    op.create_table(
        'control_orders',
        *_order_columns(),
        sa.Column('production_order_id', sa.Integer(), nullable=False),
        sa.Column('control_type', sa.String(20), nullable=False),
        sa.Column('assigned_workstation_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['production_order_id'], ['production_orders.id']),
        sa.PrimaryKeyConstraint('id')
    )
    _order_indexes('control_orders')
    op.create_index('ix_control_orders_production_order_id', 'control_orders', ['production_order_id'])
    op.create_index('ix_control_orders_control_type', 'control_orders', ['control_type'])

    op.create_table(
        'workstation_orders',
        *_order_columns(),
        sa.Column('control_order_id', sa.Integer(), nullable=True),
        sa.Column('warehouse_order_id', sa.Integer(), nullable=True),
        sa.Column('kind', sa.String(30), nullable=False),
        sa.Column('workstation_id', sa.Integer(), nullable=False),
        sa.Column('schedule_id', sa.String(100), nullable=True),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['control_order_id'], ['control_orders.id']),
        sa.ForeignKeyConstraint(['warehouse_order_id'], ['warehouse_orders.id']),
        sa.CheckConstraint(
            '(control_order_id IS NULL) <> (warehouse_order_id IS NULL)',
            name='ck_workstation_order_single_parent',
        ),
        sa.PrimaryKeyConstraint('id')
    )
    _order_indexes('workstation_orders')
    op.create_index('ix_workstation_orders_control_order_id', 'workstation_orders', ['control_order_id'])
    op.create_index('ix_workstation_orders_warehouse_order_id', 'workstation_orders', ['warehouse_order_id'])
    op.create_index('ix_workstation_orders_kind', 'workstation_orders', ['kind'])
    op.create_index('ix_workstation_orders_workstation_id', 'workstation_orders', ['workstation_id'])

    op.create_table(
        'order_line_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('customer_order_id', sa.Integer(), nullable=True),
        sa.Column('warehouse_order_id', sa.Integer(), nullable=True),
        sa.Column('production_order_id', sa.Integer(), nullable=True),
        sa.Column('workstation_order_id', sa.Integer(), nullable=True),
        sa.Column('item_type', sa.String(20), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('item_name', sa.String(255), nullable=True),
        sa.Column('requested_quantity', sa.Integer(), nullable=False),
        sa.Column('fulfilled_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('source_product_id', sa.Integer(), nullable=True),
        sa.Column('source_product_quantity', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['customer_order_id'], ['customer_orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['warehouse_order_id'], ['warehouse_orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['production_order_id'], ['production_orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['workstation_order_id'], ['workstation_orders.id'], ondelete='CASCADE'),
        sa.CheckConstraint('requested_quantity > 0', name='ck_line_requested_positive'),
        sa.CheckConstraint(
            'fulfilled_quantity >= 0 AND fulfilled_quantity <= requested_quantity',
            name='ck_line_fulfilled_within_requested',
        ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_order_line_items_id', 'order_line_items', ['id'])
    op.create_index('ix_order_line_items_item_id', 'order_line_items', ['item_id'])
    for parent in ('customer_order_id', 'warehouse_order_id', 'production_order_id', 'workstation_order_id'):
        op.create_index(f'ix_order_line_items_{parent}', 'order_line_items', [parent])

    op.create_table(
        'order_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_type', sa.String(30), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('event_type', sa.String(50), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_order_events_id', 'order_events', ['id'])
    op.create_index('ix_order_events_order_type', 'order_events', ['order_type'])
    op.create_index('ix_order_events_order_id', 'order_events', ['order_id'])
    op.create_index('ix_order_events_event_type', 'order_events', ['event_type'])
    op.create_index('ix_order_events_created_at', 'order_events', ['created_at'])

    op.create_table(
        'webhook_subscriptions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('event_type', sa.String(100), nullable=False, server_default='ANY'),
        sa.Column('target_url', sa.String(500), nullable=False),
        sa.Column('secret', sa.String(255), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_webhook_subscriptions_id', 'webhook_subscriptions', ['id'])
    op.create_index('ix_webhook_subscriptions_event_type', 'webhook_subscriptions', ['event_type'])

    op.create_table(
        'async_operations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('operation_id', sa.String(36), nullable=False),
        sa.Column('operation_type', sa.String(50), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('entity_type', sa.String(50), nullable=True),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('progress_percent', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('progress_message', sa.String(500), nullable=True),
        sa.Column('result_data', sa.Text(), nullable=True),
        sa.Column('error_message', sa.String(1000), nullable=True),
        sa.Column('initiated_by', sa.String(100), nullable=True),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_async_operations_id', 'async_operations', ['id'])
    op.create_index('ix_async_operations_operation_id', 'async_operations', ['operation_id'], unique=True)
    op.create_index('ix_async_operations_status', 'async_operations', ['status'])

    op.create_table(
        'system_configurations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('config_key', sa.String(100), nullable=False),
        sa.Column('config_value', sa.String(500), nullable=False),
        sa.Column('value_type', sa.String(20), nullable=False, server_default='STRING'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('editable', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('updated_by', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_system_configurations_id', 'system_configurations', ['id'])
    op.create_index('ix_system_configurations_config_key', 'system_configurations', ['config_key'], unique=True)


def downgrade():
    """Drop everything in reverse dependency order."""
    for table in (
        'system_configurations',
        'async_operations',
        'webhook_subscriptions',
        'order_events',
        'order_line_items',
        'workstation_orders',
        'control_orders',
        'production_orders',
        'warehouse_orders',
        'customer_orders',
    ):
        op.drop_table(table)
