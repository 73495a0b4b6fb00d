"""Plain-dict views of ledger aggregates.

Decimals are rendered as exact strings, timestamps as ISO-8601.
"""
from ..utils.decimal_utils import to_str
from ..utils.timezone_utils import TimezoneUtils


def _dec(value):
    return to_str(value)


def _ts(value):
    return TimezoneUtils.isoformat(value)


def serialize_holding(holding):
    return {
        'id': holding.id,
        'ingredient_id': holding.ingredient_id,
        'location_id': holding.location_id,
        'quantity': _dec(holding.quantity),
        'cost_at_acquisition': _dec(holding.cost_at_acquisition),
        'acquired_at': _ts(holding.acquired_at),
        'expires_at': _ts(holding.expires_at),
        'created_at': _ts(holding.created_at),
    }


def serialize_prep_task(task):
    return {
        'id': task.id,
        'prep_recipe_id': task.prep_recipe_id,
        'location_id': task.location_id,
        'status': task.status,
        'target_quantity': _dec(task.target_quantity),
        'quantity_run': _dec(task.quantity_run),
        'input_cost': _dec(task.input_cost),
        'assigned_to_user_id': task.assigned_to_user_id,
        'executed_by_id': task.executed_by_id,
        'notes': task.notes,
        'created_at': _ts(task.created_at),
        'assigned_at': _ts(task.assigned_at),
        'started_at': _ts(task.started_at),
        'completed_at': _ts(task.completed_at),
    }


def serialize_order(order):
    return {
        'id': order.id,
        'visit_id': order.visit_id,
        'status': order.status,
        'total': _dec(order.total),
        'created_at': _ts(order.created_at),
        'items': [
            {
                'id': item.id,
                'product_id': item.product_id,
                'quantity': item.quantity,
                'unit_price': _dec(item.unit_price),
                'total_price': _dec(item.total_price),
            }
            for item in order.items
        ],
    }


def serialize_waste_record(record):
    return {
        'id': record.id,
        'ingredient_id': record.ingredient_id,
        'location_id': record.location_id,
        'quantity': _dec(record.quantity),
        'unit': record.unit,
        'reason': record.reason,
        'cost_value': _dec(record.cost_value),
        'notes': record.notes,
        'is_anomaly': record.is_anomaly,
        'pan_shipment_id': record.pan_shipment_id,
        'recorded_by_id': record.recorded_by_id,
        'created_at': _ts(record.created_at),
    }


def serialize_pan(pan):
    return {
        'id': pan.id,
        'unique_identifier': pan.unique_identifier,
        'ingredient_id': pan.ingredient_id,
        'status': pan.status,
        'current_quantity': _dec(pan.current_quantity),
        'content_cost_value': _dec(pan.content_cost_value),
        'capacity': _dec(pan.capacity),
    }


def serialize_pan_shipment(shipment):
    return {
        'id': shipment.id,
        'delivery_id': shipment.delivery_id,
        'serving_pan_id': shipment.serving_pan_id,
        'recipe_guess': shipment.recipe_guess,
        'out_weight_grams': _dec(shipment.out_weight_grams),
        'in_weight_grams': _dec(shipment.in_weight_grams),
        'calculated_waste_grams': _dec(shipment.calculated_waste_grams),
        'net_returned_grams': _dec(shipment.net_returned_grams),
        'weight_anomaly': shipment.weight_anomaly,
        'out_timestamp': _ts(shipment.out_timestamp),
        'in_timestamp': _ts(shipment.in_timestamp),
    }


def serialize_error(error):
    """Typed error payload; Decimal detail values become strings."""
    detail = {}
    for key, value in error.detail.items():
        if hasattr(value, 'as_tuple'):
            detail[key] = _dec(value)
        else:
            detail[key] = value
    return {
        'error': error.kind.value,
        'message': error.message,
        'retryable': error.retryable,
        'detail': detail,
    }
