"""
Buffet pans: refills out of stock, shipments weighed out and back.
"""
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from kitchen_ledger.extensions import db
from kitchen_ledger.models import (
    Delivery, DeliveryStatus, PanShipment, PanStatus, ServingPan, StockHolding, WasteReason, WasteRecord,
)
from kitchen_ledger.services import BuffetService, ErrorKind, LedgerUnitOfWork


@pytest.fixture
def buffet(uow):
    return BuffetService(uow)


@pytest.fixture
def stew(make_ingredient, storage, make_holding):
    stew = make_ingredient('Beef stew', unit='g', is_prepared=True, cost='0.02')
    make_holding(stew, storage, 5000, cost='0.02')
    return stew


def _ship(buffet, make_delivery, make_pan, ingredient, identifier='PAN-1', out_weight='1000', tare='500'):
    delivery = make_delivery()
    pan = make_pan(identifier, ingredient=ingredient, tare=tare)
    shipment = buffet.ship_pan(delivery.id, identifier, out_weight).value
    return delivery, pan, shipment


class TestRefill:

    def test_refill_moves_stock_into_pan(self, buffet, stew, storage, make_pan):
        pan = make_pan(ingredient=stew)

        refilled = buffet.refill_pan(pan.id, '1500', storage.id).value

        assert refilled.current_quantity == Decimal('1500')
        assert refilled.content_cost_value == Decimal('30')
        assert StockHolding.query.filter_by(ingredient_id=stew.id).one().quantity == Decimal('3500')

    def test_refill_respects_capacity(self, buffet, stew, storage, make_pan):
        pan = make_pan(ingredient=stew, capacity='2000')
        buffet.refill_pan(pan.id, '1500', storage.id)

        result = buffet.refill_pan(pan.id, '600', storage.id)

        assert result.error.kind == ErrorKind.INVALID_QUANTITY
        assert db.session.get(ServingPan, pan.id).current_quantity == Decimal('1500')

    def test_refill_shortfall_leaves_pan_unchanged(self, buffet, stew, storage, make_pan):
        pan = make_pan(ingredient=stew)

        result = buffet.refill_pan(pan.id, '6000', storage.id)

        assert result.error.kind == ErrorKind.INSUFFICIENT_STOCK
        assert db.session.get(ServingPan, pan.id).current_quantity == Decimal('0')

    def test_pan_without_ingredient_is_misconfigured(self, buffet, storage, make_pan):
        pan = make_pan()
        assert buffet.refill_pan(pan.id, 1, storage.id).error.kind == ErrorKind.MISSING_CONFIGURATION


class TestShipments:

    def test_ship_pan_marks_pan_and_delivery(self, buffet, stew, make_delivery, make_pan):
        delivery, pan, shipment = _ship(buffet, make_delivery, make_pan, stew)

        assert shipment.out_weight_grams == Decimal('1000')
        assert shipment.recipe_guess == 'Beef stew'
        assert db.session.get(ServingPan, pan.id).status == PanStatus.IN_USE
        assert db.session.get(Delivery, delivery.id).status == DeliveryStatus.OUT_FOR_DELIVERY

    def test_pan_in_use_cannot_ship_again(self, buffet, stew, make_delivery, make_pan):
        _ship(buffet, make_delivery, make_pan, stew)
        other = make_delivery()
        assert buffet.ship_pan(other.id, 'PAN-1', '900').error.kind == ErrorKind.CONFLICT

    def test_return_records_client_return_waste(self, buffet, stew, storage, make_delivery, make_pan):
        delivery = make_delivery()
        pan = make_pan('PAN-7', ingredient=stew, tare='500')
        buffet.refill_pan(pan.id, '1000', storage.id)
        shipment = buffet.ship_pan(delivery.id, 'PAN-7', '1500').value

        returned = buffet.return_pan_shipment(shipment.id, '800').value

        assert returned.calculated_waste_grams == Decimal('700')
        assert returned.net_returned_grams == Decimal('300')
        assert returned.weight_anomaly is False
        record = WasteRecord.query.filter_by(pan_shipment_id=shipment.id).one()
        assert record.reason == WasteReason.CLIENT_RETURN
        assert record.quantity == Decimal('700')
        # valued at the FIFO cost of the refill: 0.02 per gram
        assert record.cost_value == Decimal('14')
        assert db.session.get(ServingPan, pan.id).status == PanStatus.RETURNED_DIRTY
        assert db.session.get(Delivery, delivery.id).status == DeliveryStatus.RETURNED

    def test_heavier_return_is_clamped_and_flagged(self, buffet, stew, make_delivery, make_pan):
        _, _, shipment = _ship(buffet, make_delivery, make_pan, stew, out_weight='1000')

        returned = buffet.return_pan_shipment(shipment.id, '1050').value

        assert returned.calculated_waste_grams == Decimal('0')
        assert returned.weight_anomaly is True
        record = WasteRecord.query.filter_by(pan_shipment_id=shipment.id).one()
        assert record.quantity == Decimal('0')
        assert record.cost_value == Decimal('0')
        assert record.is_anomaly is True

    def test_delivery_stays_out_until_every_pan_returns(self, buffet, stew, make_delivery, make_pan):
        delivery = make_delivery()
        make_pan('PAN-A', ingredient=stew)
        make_pan('PAN-B', ingredient=stew)
        first = buffet.ship_pan(delivery.id, 'PAN-A', '1000').value
        second = buffet.ship_pan(delivery.id, 'PAN-B', '1000').value

        buffet.return_pan_shipment(first.id, '900')
        assert db.session.get(Delivery, delivery.id).status == DeliveryStatus.OUT_FOR_DELIVERY

        buffet.return_pan_shipment(second.id, '950')
        assert db.session.get(Delivery, delivery.id).status == DeliveryStatus.RETURNED

    def test_returning_twice_conflicts(self, buffet, stew, make_delivery, make_pan):
        _, _, shipment = _ship(buffet, make_delivery, make_pan, stew)
        assert buffet.return_pan_shipment(shipment.id, '900').ok

        result = buffet.return_pan_shipment(shipment.id, '800')

        assert result.error.kind == ErrorKind.CONFLICT
        assert db.session.get(PanShipment, shipment.id).in_weight_grams == Decimal('900')

    def test_return_from_a_stale_session_conflicts(self, buffet, stew, make_delivery, make_pan):
        _, _, shipment = _ship(buffet, make_delivery, make_pan, stew)
        other_session = Session(db.engine)
        try:
            other = BuffetService(LedgerUnitOfWork(other_session, buffet.settings))
            assert not other_session.get(PanShipment, shipment.id).is_returned

            assert buffet.return_pan_shipment(shipment.id, '900').ok
            second = other.return_pan_shipment(shipment.id, '800')
        finally:
            other_session.close()

        assert second.error.kind == ErrorKind.CONFLICT
        assert WasteRecord.query.count() == 1

    def test_missing_tare_is_a_configuration_error(self, buffet, stew, make_delivery, make_pan):
        _, _, shipment = _ship(buffet, make_delivery, make_pan, stew, tare=None)

        result = buffet.return_pan_shipment(shipment.id, '900')

        assert result.error.kind == ErrorKind.MISSING_CONFIGURATION
        assert db.session.get(PanShipment, shipment.id).in_timestamp is None

    def test_dirty_pan_ships_again_after_cleaning(self, buffet, stew, make_delivery, make_pan):
        _, pan, shipment = _ship(buffet, make_delivery, make_pan, stew)
        buffet.return_pan_shipment(shipment.id, '900')
        next_delivery = make_delivery()

        assert buffet.ship_pan(next_delivery.id, 'PAN-1', '1000').error.kind == ErrorKind.CONFLICT
        assert buffet.mark_pan_clean(pan.id).ok
        assert buffet.ship_pan(next_delivery.id, 'PAN-1', '1000').ok
