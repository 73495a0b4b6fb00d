"""
Buffet pans and pan deliveries.

Refills move stock out of the ledger into a pan. Pans shipped with a delivery
are weighed on the way out and back; the difference is booked as client-return
waste, valued at the FIFO cost of what went into the pan.
"""
import logging
from decimal import Decimal

from ..models import (
    Delivery, DeliveryStatus, PanShipment, PanStatus, ServingPan, WasteReason, WasteRecord,
)
from ..utils.decimal_utils import ZERO, decimal_or_zero, quantize
from ..utils.timezone_utils import TimezoneUtils
from .base_service import BaseService
from .errors import LedgerError
from .result import Err, Ok, Result
from .stock_ledger import deduct_fifo, refresh_prepared_cost
from .unit_of_work import load_for_update
from .validation import parse_quantity

logger = logging.getLogger(__name__)

# Grams per ingredient unit for weight-based waste valuation
GRAMS_PER_UNIT = {
    'g': Decimal('1'),
    'gr': Decimal('1'),
    'kg': Decimal('1000'),
}


def pan_unit_cost(pan: ServingPan) -> Decimal:
    """Cost per ingredient unit of the pan's contents."""
    quantity = decimal_or_zero(pan.current_quantity)
    content_cost = decimal_or_zero(pan.content_cost_value)
    if quantity > ZERO and content_cost > ZERO:
        return content_cost / quantity
    if pan.ingredient is not None:
        return decimal_or_zero(pan.ingredient.cost_per_unit)
    return ZERO


def waste_cost_for_grams(pan: ServingPan, grams: Decimal, scale: int) -> Decimal:
    if grams <= ZERO or pan.ingredient is None:
        return quantize(ZERO, scale)
    grams_per_unit = GRAMS_PER_UNIT.get((pan.ingredient.unit or '').strip().lower())
    if grams_per_unit is None:
        logger.warning(f"BUFFET: cannot value {grams}g of {pan.ingredient.name} measured in "
                       f"'{pan.ingredient.unit}'; recording zero cost")
        return quantize(ZERO, scale)
    return quantize(grams / grams_per_unit * pan_unit_cost(pan), scale)


class BuffetService(BaseService):

    def refill_pan(self, pan_id, quantity, source_location_id) -> Result[ServingPan]:
        parsed = parse_quantity(quantity, scale=self.settings.quantity_scale)
        if not parsed.ok:
            return parsed

        def work():
            pan = load_for_update(self.session, self.settings, ServingPan, pan_id)
            if not pan:
                return Err(LedgerError.not_found('ServingPan', pan_id))
            if pan.ingredient_id is None:
                return Err(LedgerError.missing_configuration(
                    f'Pan {pan.unique_identifier} has no ingredient assigned', pan_id=pan.id))
            current = decimal_or_zero(pan.current_quantity)
            if pan.capacity and current + parsed.value > decimal_or_zero(pan.capacity):
                return Err(LedgerError.invalid_quantity(
                    f'Refill would exceed pan capacity of {pan.capacity}',
                    pan_id=pan.id, current=current, requested=parsed.value, capacity=pan.capacity,
                ))

            deducted = deduct_fifo(self.session, self.settings, pan.ingredient_id, source_location_id, parsed.value)
            if not deducted.ok:
                return deducted
            refresh_prepared_cost(self.session, self.settings, pan.ingredient_id)

            # Increment by what was actually deducted
            pan.current_quantity = current + deducted.value.quantity
            pan.content_cost_value = decimal_or_zero(pan.content_cost_value) + deducted.value.total_cost
            self.session.flush()
            return Ok(pan)

        result = self.uow.run(work, operation='buffet.refill_pan')
        if result.ok:
            self.log_operation('buffet.refill_pan', {
                'pan_id': pan_id, 'quantity': str(parsed.value), 'source_location_id': source_location_id,
            })
        else:
            self.log_failure('buffet.refill_pan', result.error)
        return result

    def ship_pan(self, delivery_id, pan_identifier, out_weight_grams, recipe_guess=None) -> Result[PanShipment]:
        parsed = parse_quantity(out_weight_grams, 'out_weight_grams', scale=self.settings.quantity_scale)
        if not parsed.ok:
            return parsed

        def work():
            delivery = load_for_update(self.session, self.settings, Delivery, delivery_id)
            if not delivery:
                return Err(LedgerError.not_found('Delivery', delivery_id))
            if delivery.status not in DeliveryStatus.DISPATCHABLE + (DeliveryStatus.OUT_FOR_DELIVERY,):
                return Err(LedgerError.invalid_state_transition(
                    'Delivery', delivery.status, DeliveryStatus.OUT_FOR_DELIVERY))
            query = self.session.query(ServingPan).filter_by(unique_identifier=pan_identifier).populate_existing()
            if self.settings.lock_holdings:
                query = query.with_for_update()
            pan = query.first()
            if not pan:
                return Err(LedgerError.not_found('ServingPan', pan_identifier))
            if pan.status != PanStatus.AVAILABLE:
                return Err(LedgerError.conflict(f'Pan {pan.unique_identifier} is {pan.status}',
                                                pan_id=pan.id, status=pan.status))

            shipment = PanShipment(
                delivery_id=delivery.id,
                serving_pan_id=pan.id,
                recipe_guess=recipe_guess or (pan.ingredient.name if pan.ingredient else None),
                out_weight_grams=parsed.value,
                out_timestamp=TimezoneUtils.utc_now(),
            )
            self.session.add(shipment)
            pan.status = PanStatus.IN_USE
            delivery.status = DeliveryStatus.OUT_FOR_DELIVERY
            self.session.flush()
            return Ok(shipment)

        result = self.uow.run(work, operation='buffet.ship_pan')
        if result.ok:
            self.log_operation('buffet.ship_pan', {
                'delivery_id': delivery_id, 'pan': pan_identifier, 'out_weight_grams': str(parsed.value),
            })
        else:
            self.log_failure('buffet.ship_pan', result.error)
        return result

    def return_pan_shipment(self, shipment_id, in_weight_grams, recorded_by_id=None) -> Result[PanShipment]:
        """
        Weigh a pan back in.

        waste = max(0, out - in). A pan heavier than it left is a scale or
        process anomaly: waste is clamped to zero and the shipment flagged.
        """
        parsed = parse_quantity(in_weight_grams, 'in_weight_grams', allow_zero=True,
                                scale=self.settings.quantity_scale)
        if not parsed.ok:
            return parsed

        def work():
            shipment = load_for_update(self.session, self.settings, PanShipment, shipment_id)
            if not shipment:
                return Err(LedgerError.not_found('PanShipment', shipment_id))
            if shipment.is_returned:
                return Err(LedgerError.conflict(f'Shipment {shipment.id} was already returned',
                                                shipment_id=shipment.id))
            pan = shipment.serving_pan
            tare = pan.pan_model.tare_weight_g if pan.pan_model is not None else None
            if tare is None:
                return Err(LedgerError.missing_configuration(
                    f'Pan {pan.unique_identifier} has no tare weight configured', pan_id=pan.id))

            in_weight = parsed.value
            difference = decimal_or_zero(shipment.out_weight_grams) - in_weight
            anomaly = difference < ZERO
            waste_grams = max(ZERO, difference)
            if anomaly:
                logger.warning(f"BUFFET: shipment {shipment.id} came back {-difference}g heavier; waste clamped to 0")

            shipment.in_weight_grams = in_weight
            shipment.in_timestamp = TimezoneUtils.utc_now()
            shipment.calculated_waste_grams = waste_grams
            shipment.net_returned_grams = max(ZERO, in_weight - decimal_or_zero(tare))
            shipment.weight_anomaly = anomaly

            self.session.add(WasteRecord(
                ingredient_id=pan.ingredient_id,
                location_id=pan.location_id,
                pan_shipment=shipment,
                quantity=waste_grams,
                unit='g',
                reason=WasteReason.CLIENT_RETURN,
                cost_value=waste_cost_for_grams(pan, waste_grams, self.settings.cost_value_scale),
                notes=f'Pan {pan.unique_identifier} returned from delivery {shipment.delivery_id}',
                is_anomaly=anomaly,
                recorded_by_id=recorded_by_id,
            ))

            pan.status = PanStatus.RETURNED_DIRTY
            pan.current_quantity = ZERO
            pan.content_cost_value = ZERO

            delivery = shipment.delivery
            if all(s.is_returned for s in delivery.shipments):
                delivery.status = DeliveryStatus.RETURNED
                logger.info(f"BUFFET: delivery {delivery.id} fully returned")
            self.session.flush()
            return Ok(shipment)

        result = self.uow.run(work, operation='buffet.return_pan_shipment')
        if result.ok:
            self.log_operation('buffet.return_pan_shipment', {
                'shipment_id': shipment_id, 'in_weight_grams': str(parsed.value),
                'waste_grams': str(result.value.calculated_waste_grams),
            }, recorded_by_id)
        else:
            self.log_failure('buffet.return_pan_shipment', result.error)
        return result

    def mark_pan_clean(self, pan_id) -> Result[ServingPan]:
        def work():
            pan = load_for_update(self.session, self.settings, ServingPan, pan_id)
            if not pan:
                return Err(LedgerError.not_found('ServingPan', pan_id))
            if pan.status != PanStatus.RETURNED_DIRTY:
                return Err(LedgerError.invalid_state_transition('ServingPan', pan.status, PanStatus.AVAILABLE))
            pan.status = PanStatus.AVAILABLE
            return Ok(pan)

        return self.uow.run(work, operation='buffet.mark_pan_clean')
