"""
Order fulfillment: stock and order rows change together or not at all.
"""
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from kitchen_ledger.extensions import db
from kitchen_ledger.models import LocationKind, Order, OrderItem, StockHolding, Visit
from kitchen_ledger.services import ErrorKind, LedgerUnitOfWork, OrderService


@pytest.fixture
def orders(uow):
    return OrderService(uow)


@pytest.fixture
def menu(make_station, make_location, make_ingredient, make_product, make_holding):
    kitchen = make_station('Kitchen')
    line = make_location('Line fridge', kind=LocationKind.WORKSTATION_STORAGE, prep_station=kitchen)
    rice = make_ingredient('Rice', cost='0.004')
    egg = make_ingredient('Egg', unit='unidade', cost='0.5')
    rice_batch = make_holding(rice, line, 1000, cost='0.004')
    egg_batch = make_holding(egg, line, 3, cost='0.5')
    fried_rice = make_product('Fried rice', '18.90', station=kitchen, recipe=[(rice, '200'), (egg, '1')])
    soda = make_product('Soda', '6.00')
    return {
        'line': line, 'rice': rice, 'egg': egg, 'rice_batch': rice_batch, 'egg_batch': egg_batch,
        'fried_rice': fried_rice, 'soda': soda, 'station': kitchen,
    }


def test_order_deducts_stock_and_captures_prices(orders, menu, make_visit):
    visit = make_visit()

    order = orders.place_order(visit.id, [
        {'product_id': menu['fried_rice'].id, 'quantity': 2},
        {'product_id': menu['soda'].id, 'quantity': 1},
    ]).value

    assert order.total == Decimal('43.80')
    assert [i.total_price for i in order.items] == [Decimal('37.80'), Decimal('6.00')]
    assert OrderService.order_total_matches_lines(order)
    assert db.session.get(Visit, visit.id).total_spent == Decimal('43.80')
    assert db.session.get(StockHolding, menu['rice_batch'].id).quantity == Decimal('600')
    assert db.session.get(StockHolding, menu['egg_batch'].id).quantity == Decimal('1')


def test_visit_total_is_not_lost_to_a_stale_session(orders, menu, make_visit):
    visit = make_visit()
    other_session = Session(db.engine)
    try:
        other = OrderService(LedgerUnitOfWork(other_session, orders.settings))
        assert other_session.get(Visit, visit.id).total_spent == Decimal('0')

        assert orders.place_order(visit.id, [{'product_id': menu['soda'].id, 'quantity': 1}]).ok
        assert other.place_order(visit.id, [{'product_id': menu['soda'].id, 'quantity': 1}]).ok
    finally:
        other_session.close()

    db.session.expire_all()
    assert db.session.get(Visit, visit.id).total_spent == Decimal('12.00')
    assert Order.query.count() == 2


def test_failed_deduction_leaves_no_order_and_no_stock_change(orders, menu, make_visit):
    visit = make_visit(total_spent='10.00')

    result = orders.place_order(visit.id, [{'product_id': menu['fried_rice'].id, 'quantity': 4}])

    assert result.error.kind == ErrorKind.INSUFFICIENT_STOCK
    assert result.error.detail['ingredient_name'] == 'Egg'
    assert Order.query.count() == 0
    assert OrderItem.query.count() == 0
    assert db.session.get(Visit, visit.id).total_spent == Decimal('10.00')
    assert db.session.get(StockHolding, menu['rice_batch'].id).quantity == Decimal('1000')


def test_price_changes_do_not_touch_existing_lines(orders, menu, make_visit):
    visit = make_visit()
    order = orders.place_order(visit.id, [{'product_id': menu['soda'].id, 'quantity': 1}]).value
    order_id = order.id

    menu['soda'].price = Decimal('9.00')
    db.session.commit()

    assert db.session.get(Order, order_id).items[0].unit_price == Decimal('6.00')


def test_closed_visit_is_rejected(orders, menu, make_visit):
    visit = make_visit(status='CLOSED')
    result = orders.place_order(visit.id, [{'product_id': menu['soda'].id, 'quantity': 1}])
    assert result.error.kind == ErrorKind.CONFLICT


def test_inactive_or_unknown_product_rejects_whole_order(orders, menu, make_visit, make_product):
    visit = make_visit()
    retired = make_product('Old special', '30', is_active=False)

    unknown = orders.place_order(visit.id, [
        {'product_id': menu['fried_rice'].id, 'quantity': 1},
        {'product_id': 999, 'quantity': 1},
    ])
    inactive = orders.place_order(visit.id, [{'product_id': retired.id, 'quantity': 1}])

    assert unknown.error.kind == ErrorKind.NOT_FOUND
    assert inactive.error.kind == ErrorKind.CONFLICT
    assert db.session.get(StockHolding, menu['rice_batch'].id).quantity == Decimal('1000')


def test_missing_station_location_is_configuration_error(orders, make_station, make_ingredient,
                                                         make_product, make_visit):
    bar = make_station('Bar')
    lime = make_ingredient('Lime')
    drink = make_product('Caipirinha', '9', station=bar, recipe=[(lime, '1')])

    result = orders.place_order(make_visit().id, [{'product_id': drink.id, 'quantity': 1}])

    assert result.error.kind == ErrorKind.MISSING_CONFIGURATION
    assert Order.query.count() == 0


@pytest.mark.parametrize('items', [
    [],
    [{'product_id': 1, 'quantity': 0}],
    [{'product_id': 1, 'quantity': '1.5'}],
])
def test_invalid_items(orders, make_visit, items):
    assert orders.place_order(make_visit().id, items).error.kind == ErrorKind.INVALID_QUANTITY
