"""0001 ledger schema

Revision ID: 0001_ledger_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_ledger_schema'
down_revision = None
branch_labels = None
depends_on = None


def _qty():
    return sa.Numeric(18, 6)


def _cost_value():
    return sa.Numeric(30, 12)


def _ts(name, nullable=True):
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade():
    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(128), nullable=False),
        sa.Column('email', sa.String(255), nullable=True, unique=True),
        sa.Column('role', sa.String(32), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        _ts('created_at', nullable=False),
    )
    op.create_table(
        'prep_station',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(128), nullable=False, unique=True),
    )
    op.create_table(
        'location',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(128), nullable=False),
        sa.Column('kind', sa.String(32), nullable=False),
        sa.Column('prep_station_id', sa.Integer(), sa.ForeignKey('prep_station.id'), nullable=True),
        _ts('created_at', nullable=False),
    )
    op.create_index('ix_location_prep_station_id', 'location', ['prep_station_id'])

    op.create_table(
        'ingredient',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(128), nullable=False, unique=True),
        sa.Column('unit', sa.String(32), nullable=False),
        sa.Column('is_prepared', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('cost_per_unit', _qty(), nullable=False, server_default='0'),
        _ts('created_at', nullable=False),
        sa.CheckConstraint('cost_per_unit >= 0', name='check_ingredient_cost_non_negative'),
    )
    op.create_table(
        'stock_holding',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('ingredient_id', sa.Integer(), sa.ForeignKey('ingredient.id'), nullable=False),
        sa.Column('location_id', sa.Integer(), sa.ForeignKey('location.id'), nullable=False),
        sa.Column('quantity', _qty(), nullable=False),
        sa.Column('cost_at_acquisition', _qty(), nullable=True),
        _ts('acquired_at'),
        _ts('expires_at'),
        _ts('created_at', nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint('quantity >= 0', name='check_holding_quantity_non_negative'),
    )
    op.create_index('ix_stock_holding_ingredient_location', 'stock_holding',
                    ['ingredient_id', 'location_id', 'created_at'])

    op.create_table(
        'product',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(128), nullable=False),
        sa.Column('price', sa.Numeric(14, 2), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('prep_station_id', sa.Integer(), sa.ForeignKey('prep_station.id'), nullable=True),
        _ts('created_at', nullable=False),
    )
    op.create_table(
        'product_recipe_item',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('product.id'), nullable=False),
        sa.Column('ingredient_id', sa.Integer(), sa.ForeignKey('ingredient.id'), nullable=False),
        sa.Column('quantity', _qty(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.CheckConstraint('quantity > 0', name='check_product_recipe_quantity_positive'),
        sa.UniqueConstraint('product_id', 'ingredient_id', name='uq_product_recipe_ingredient'),
    )
    op.create_index('ix_product_recipe_item_product_id', 'product_recipe_item', ['product_id'])
    op.create_index('ix_product_recipe_item_ingredient_id', 'product_recipe_item', ['ingredient_id'])

    op.create_table(
        'prep_recipe',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(128), nullable=False),
        sa.Column('output_ingredient_id', sa.Integer(), sa.ForeignKey('ingredient.id'), nullable=False),
        sa.Column('output_quantity', _qty(), nullable=False),
        sa.Column('estimated_labor_minutes', sa.Integer(), nullable=True),
        _ts('created_at', nullable=False),
        sa.CheckConstraint('output_quantity > 0', name='check_prep_recipe_output_positive'),
    )
    op.create_index('ix_prep_recipe_output_ingredient_id', 'prep_recipe', ['output_ingredient_id'])
    op.create_table(
        'prep_recipe_input',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('prep_recipe_id', sa.Integer(), sa.ForeignKey('prep_recipe.id'), nullable=False),
        sa.Column('ingredient_id', sa.Integer(), sa.ForeignKey('ingredient.id'), nullable=False),
        sa.Column('quantity', _qty(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.CheckConstraint('quantity > 0', name='check_prep_input_quantity_positive'),
    )
    op.create_index('ix_prep_recipe_input_prep_recipe_id', 'prep_recipe_input', ['prep_recipe_id'])
    op.create_index('ix_prep_recipe_input_ingredient_id', 'prep_recipe_input', ['ingredient_id'])

    op.create_table(
        'prep_task',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('prep_recipe_id', sa.Integer(), sa.ForeignKey('prep_recipe.id'), nullable=False),
        sa.Column('location_id', sa.Integer(), sa.ForeignKey('location.id'), nullable=False),
        sa.Column('target_quantity', _qty(), nullable=False),
        sa.Column('status', sa.String(32), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('assigned_to_user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
        sa.Column('executed_by_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
        sa.Column('quantity_run', _qty(), nullable=True),
        sa.Column('input_cost', _cost_value(), nullable=True),
        _ts('created_at', nullable=False),
        _ts('assigned_at'),
        _ts('started_at'),
        _ts('completed_at'),
        sa.CheckConstraint('target_quantity > 0', name='check_prep_task_target_positive'),
    )
    op.create_index('ix_prep_task_prep_recipe_id', 'prep_task', ['prep_recipe_id'])
    op.create_index('ix_prep_task_status', 'prep_task', ['status'])
    op.create_index('ix_prep_task_assigned_to_user_id', 'prep_task', ['assigned_to_user_id'])

    op.create_table(
        'visit',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('client_id', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(16), nullable=False),
        sa.Column('total_spent', sa.Numeric(14, 2), nullable=False, server_default='0'),
        _ts('created_at', nullable=False),
    )
    op.create_index('ix_visit_client_id', 'visit', ['client_id'])
    op.create_table(
        'order',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('visit_id', sa.Integer(), sa.ForeignKey('visit.id'), nullable=False),
        sa.Column('client_id', sa.Integer(), nullable=True),
        sa.Column('total', sa.Numeric(14, 2), nullable=False),
        sa.Column('status', sa.String(32), nullable=False),
        sa.Column('handled_by_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
        _ts('created_at', nullable=False),
    )
    op.create_index('ix_order_visit_id', 'order', ['visit_id'])
    op.create_table(
        'order_item',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('order.id'), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('product.id'), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Numeric(14, 2), nullable=False),
        sa.Column('total_price', sa.Numeric(14, 2), nullable=False),
        sa.Column('prep_station_id', sa.Integer(), sa.ForeignKey('prep_station.id'), nullable=True),
        sa.CheckConstraint('quantity > 0', name='check_order_item_quantity_positive'),
    )
    op.create_index('ix_order_item_order_id', 'order_item', ['order_id'])

    op.create_table(
        'pan_model',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(128), nullable=False),
        sa.Column('capacity_l', _qty(), nullable=True),
        sa.Column('tare_weight_g', _qty(), nullable=True),
    )
    op.create_table(
        'serving_pan',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('unique_identifier', sa.String(64), nullable=False, unique=True),
        sa.Column('pan_model_id', sa.Integer(), sa.ForeignKey('pan_model.id'), nullable=True),
        sa.Column('ingredient_id', sa.Integer(), sa.ForeignKey('ingredient.id'), nullable=True),
        sa.Column('location_id', sa.Integer(), sa.ForeignKey('location.id'), nullable=True),
        sa.Column('current_quantity', _qty(), nullable=False, server_default='0'),
        sa.Column('capacity', _qty(), nullable=True),
        sa.Column('content_cost_value', _cost_value(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(32), nullable=False),
    )
    op.create_table(
        'delivery',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('status', sa.String(32), nullable=False),
        _ts('created_at', nullable=False),
    )
    op.create_table(
        'pan_shipment',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('delivery_id', sa.Integer(), sa.ForeignKey('delivery.id'), nullable=False),
        sa.Column('serving_pan_id', sa.Integer(), sa.ForeignKey('serving_pan.id'), nullable=False),
        sa.Column('recipe_guess', sa.String(128), nullable=True),
        sa.Column('out_weight_grams', _qty(), nullable=False),
        sa.Column('in_weight_grams', _qty(), nullable=True),
        sa.Column('calculated_waste_grams', _qty(), nullable=True),
        sa.Column('net_returned_grams', _qty(), nullable=True),
        sa.Column('weight_anomaly', sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts('out_timestamp', nullable=False),
        _ts('in_timestamp'),
    )
    op.create_index('ix_pan_shipment_delivery_id', 'pan_shipment', ['delivery_id'])

    op.create_table(
        'waste_record',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('ingredient_id', sa.Integer(), sa.ForeignKey('ingredient.id'), nullable=True),
        sa.Column('location_id', sa.Integer(), sa.ForeignKey('location.id'), nullable=True),
        sa.Column('pan_shipment_id', sa.Integer(), sa.ForeignKey('pan_shipment.id'), nullable=True),
        sa.Column('quantity', _qty(), nullable=False),
        sa.Column('unit', sa.String(32), nullable=False),
        sa.Column('reason', sa.String(32), nullable=False),
        sa.Column('cost_value', _cost_value(), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('is_anomaly', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('recorded_by_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
        _ts('created_at', nullable=False),
        sa.CheckConstraint('quantity >= 0', name='check_waste_quantity_non_negative'),
    )
    op.create_index('ix_waste_record_ingredient_id', 'waste_record', ['ingredient_id'])


def downgrade():
    for table in (
        'waste_record', 'pan_shipment', 'delivery', 'serving_pan', 'pan_model',
        'order_item', 'order', 'visit', 'prep_task', 'prep_recipe_input', 'prep_recipe',
        'product_recipe_item', 'product', 'stock_holding', 'ingredient', 'location',
        'prep_station', 'user',
    ):
        op.drop_table(table)
