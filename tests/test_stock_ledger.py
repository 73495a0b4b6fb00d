"""
Stock ledger: FIFO deduction, additions, costing and corrections.
"""
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from kitchen_ledger.extensions import db
from kitchen_ledger.models import Ingredient, LocationKind, StockHolding
from kitchen_ledger.services import ErrorKind, StockLedgerService

SAME_TIME = datetime(2026, 1, 5, 7, 0, tzinfo=timezone.utc)


def _quantities(*holdings):
    return [db.session.get(StockHolding, h.id).quantity for h in holdings]


@pytest.fixture
def ledger(uow):
    return StockLedgerService(uow)


class TestStockLedgerFIFO:

    def test_oldest_batch_is_consumed_first(self, ledger, make_ingredient, storage, make_holding):
        flour = make_ingredient()
        first = make_holding(flour, storage, 5, cost='1')
        second = make_holding(flour, storage, 5, cost='2')

        result = ledger.deduct(flour.id, storage.id, 7)

        assert result.ok
        assert _quantities(first, second) == [Decimal('0'), Decimal('3')]
        assert result.value.quantity == Decimal('7')
        # 5 @ 1 + 2 @ 2
        assert result.value.total_cost == Decimal('9')
        assert [b.holding_id for b in result.value.batches] == [first.id, second.id]

    def test_same_timestamp_falls_back_to_id_order(self, ledger, make_ingredient, storage, make_holding):
        flour = make_ingredient()
        first = make_holding(flour, storage, 4, cost='1', created_at=SAME_TIME)
        second = make_holding(flour, storage, 4, cost='1', created_at=SAME_TIME)

        assert ledger.deduct(flour.id, storage.id, 5).ok
        assert _quantities(first, second) == [Decimal('0'), Decimal('3')]

    def test_deduction_conserves_quantity(self, ledger, make_ingredient, storage, make_holding):
        flour = make_ingredient()
        holdings = [make_holding(flour, storage, q, cost='1') for q in ('2.5', '1.25', '10')]
        before = sum(_quantities(*holdings))

        assert ledger.deduct(flour.id, storage.id, '6.75').ok

        after = _quantities(*holdings)
        assert before - sum(after) == Decimal('6.75')
        assert all(q >= 0 for q in after)

    def test_other_locations_are_not_touched(self, ledger, make_ingredient, make_location, make_holding):
        flour = make_ingredient()
        storage = make_location('Storage')
        freezer = make_location('Freezer', kind=LocationKind.FREEZER)
        elsewhere = make_holding(flour, freezer, 10, cost='1')
        here = make_holding(flour, storage, 3, cost='1')

        assert ledger.deduct(flour.id, storage.id, 3).ok
        assert _quantities(elsewhere, here) == [Decimal('10'), Decimal('0')]

    def test_exhausted_holdings_are_kept(self, ledger, make_ingredient, storage, make_holding):
        flour = make_ingredient()
        holding = make_holding(flour, storage, 2, cost='1')

        assert ledger.deduct(flour.id, storage.id, 2).ok

        kept = db.session.get(StockHolding, holding.id)
        assert kept is not None
        assert kept.is_exhausted

    def test_holding_without_cost_uses_average(self, ledger, make_ingredient, storage, make_holding):
        salt = make_ingredient('Salt', cost='0.5')
        make_holding(salt, storage, 10)

        result = ledger.deduct(salt.id, storage.id, 4)

        assert result.value.total_cost == Decimal('2')


class TestStockLedgerAtomicity:

    def test_shortfall_leaves_every_holding_untouched(self, ledger, make_ingredient, storage, make_holding):
        flour = make_ingredient('Flour', unit='g')
        holdings = [make_holding(flour, storage, q, cost='1') for q in (2, 2, 1)]

        result = ledger.deduct(flour.id, storage.id, 10)

        assert not result.ok
        assert result.error.kind == ErrorKind.INSUFFICIENT_STOCK
        assert _quantities(*holdings) == [Decimal('2'), Decimal('2'), Decimal('1')]

    def test_shortfall_reports_required_and_available(self, ledger, make_ingredient, storage, make_holding):
        flour = make_ingredient('Flour', unit='g')
        make_holding(flour, storage, 3, cost='1')

        error = ledger.deduct(flour.id, storage.id, 8).error

        assert error.detail['ingredient_name'] == 'Flour'
        assert error.detail['unit'] == 'g'
        assert error.detail['required'] == Decimal('8')
        assert error.detail['available'] == Decimal('3')
        assert 'required 8 g' in error.message
        assert not error.retryable

    @pytest.mark.parametrize('quantity', [0, -1, 'abc', float('nan'), None, True])
    def test_rejects_non_positive_or_malformed_quantity(self, ledger, make_ingredient, storage, quantity):
        flour = make_ingredient()
        result = ledger.deduct(flour.id, storage.id, quantity)
        assert result.error.kind == ErrorKind.INVALID_QUANTITY

    def test_unknown_ingredient_and_location(self, ledger, make_ingredient, storage):
        flour = make_ingredient()
        assert ledger.deduct(999, storage.id, 1).error.kind == ErrorKind.NOT_FOUND
        assert ledger.deduct(flour.id, 999, 1).error.kind == ErrorKind.NOT_FOUND


class TestAverageCost:

    def test_weighted_average_follows_remaining_batches(self, ledger, make_ingredient, storage, make_holding):
        sauce = make_ingredient('Sauce', unit='ml')
        make_holding(sauce, storage, 10, cost='2')
        make_holding(sauce, storage, 5, cost='5')

        assert ledger.recalculate_average_cost(sauce.id).value == Decimal('3')

        assert ledger.deduct(sauce.id, storage.id, 10).ok
        assert ledger.recalculate_average_cost(sauce.id).value == Decimal('5')

    def test_no_remaining_stock_means_zero_cost(self, ledger, make_ingredient, storage, make_holding):
        sauce = make_ingredient('Sauce', is_prepared=True, cost='7')
        make_holding(sauce, storage, 1, cost='7')

        assert ledger.deduct(sauce.id, storage.id, 1).ok

        assert db.session.get(Ingredient, sauce.id).cost_per_unit == Decimal('0')

    def test_prepared_cost_refreshes_after_deduct(self, ledger, make_ingredient, storage, make_holding):
        dough = make_ingredient('Dough', is_prepared=True, cost='3')
        make_holding(dough, storage, 10, cost='2')
        make_holding(dough, storage, 5, cost='5')

        assert ledger.deduct(dough.id, storage.id, 10).ok

        assert db.session.get(Ingredient, dough.id).cost_per_unit == Decimal('5')


class TestAdditions:

    def test_add_creates_a_new_batch(self, ledger, make_ingredient, storage, make_holding):
        flour = make_ingredient()
        existing = make_holding(flour, storage, 1, cost='1')

        result = ledger.add(flour.id, storage.id, '2.5', '1.2')

        assert result.ok
        assert result.value.id != existing.id
        assert StockHolding.query.filter_by(ingredient_id=flour.id).count() == 2

    def test_merge_tops_up_latest_batch_and_blends_cost(self, ledger, make_ingredient, storage, make_holding):
        flour = make_ingredient()
        existing = make_holding(flour, storage, 10, cost='2')

        result = ledger.add(flour.id, storage.id, 10, '4', merge=True)

        holding = db.session.get(StockHolding, existing.id)
        assert result.value.id == existing.id
        assert holding.quantity == Decimal('20')
        assert holding.cost_at_acquisition == Decimal('3')

    def test_merge_without_existing_batch_creates_one(self, ledger, make_ingredient, storage):
        flour = make_ingredient()
        assert ledger.add(flour.id, storage.id, 4, '1', merge=True).ok
        assert StockHolding.query.filter_by(ingredient_id=flour.id).count() == 1

    def test_buffet_location_holds_no_stock(self, ledger, make_ingredient, make_location):
        flour = make_ingredient()
        buffet = make_location('Buffet line', kind=LocationKind.BUFFET)
        assert ledger.add(flour.id, buffet.id, 1).error.kind == ErrorKind.CONFLICT

    def test_receive_stock_defaults_to_current_cost(self, ledger, make_ingredient, storage):
        rice = make_ingredient('Rice', cost='0.004')

        holding = ledger.receive_stock(rice.id, storage.id, 5000).value

        assert holding.cost_at_acquisition == Decimal('0.004')
        assert ledger.available_quantity(rice.id, storage.id) == Decimal('5000')

    def test_receive_stock_refreshes_prepared_cost(self, ledger, make_ingredient, storage, make_holding):
        stock = make_ingredient('Stock', unit='ml', is_prepared=True)
        make_holding(stock, storage, 100, cost='1')

        assert ledger.receive_stock(stock.id, storage.id, 100, '3').ok

        assert db.session.get(Ingredient, stock.id).cost_per_unit == Decimal('2')


class TestAdjustHolding:

    def test_absolute_and_relative_corrections(self, ledger, make_ingredient, storage, make_holding):
        flour = make_ingredient()
        holding = make_holding(flour, storage, 10, cost='1')

        assert ledger.adjust_holding(holding.id, quantity=7).value.quantity == Decimal('7')
        assert ledger.adjust_holding(holding.id, adjustment='-2.5').value.quantity == Decimal('4.5')

    def test_rejects_results_below_zero(self, ledger, make_ingredient, storage, make_holding):
        flour = make_ingredient()
        holding = make_holding(flour, storage, 1, cost='1')

        assert ledger.adjust_holding(holding.id, adjustment=-2).error.kind == ErrorKind.INVALID_QUANTITY
        assert ledger.adjust_holding(holding.id, quantity=-1).error.kind == ErrorKind.INVALID_QUANTITY
        assert db.session.get(StockHolding, holding.id).quantity == Decimal('1')

    def test_requires_exactly_one_mode(self, ledger, make_ingredient, storage, make_holding):
        flour = make_ingredient()
        holding = make_holding(flour, storage, 1, cost='1')

        assert ledger.adjust_holding(holding.id).error.kind == ErrorKind.INVALID_ARGUMENT
        assert ledger.adjust_holding(holding.id, quantity=1, adjustment=1).error.kind == ErrorKind.INVALID_ARGUMENT
        assert ledger.adjust_holding(holding.id, adjustment=0).error.kind == ErrorKind.INVALID_QUANTITY

    def test_unknown_holding(self, ledger):
        assert ledger.adjust_holding(42, quantity=1).error.kind == ErrorKind.NOT_FOUND


def test_available_quantity_across_locations(ledger, make_ingredient, make_location, make_holding):
    flour = make_ingredient()
    a = make_location('A')
    b = make_location('B')
    make_holding(flour, a, '1.5')
    make_holding(flour, b, 2)

    assert ledger.available_quantity(flour.id) == Decimal('3.5')
    assert ledger.available_quantity(flour.id, b.id) == Decimal('2')


def test_integrity_scan_reports_cost_drift(ledger, make_ingredient, storage, make_holding):
    dough = make_ingredient('Dough', is_prepared=True, cost='9')
    make_holding(dough, storage, 2, cost='1')

    findings = ledger.validate_stock_integrity()

    assert findings == [{
        'check': 'average_cost_drift',
        'ingredient_id': dough.id,
        'ingredient_name': 'Dough',
        'stored': Decimal('9'),
        'expected': Decimal('1'),
    }]
