"""
Pytest configuration and shared fixtures for ledger tests.
"""
import os
import tempfile
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from kitchen_ledger import create_app
from kitchen_ledger.extensions import db
from kitchen_ledger.models import (
    Delivery, DeliveryStatus, Ingredient, Location, LocationKind, PanModel, PrepRecipe,
    PrepRecipeInput, PrepStation, PrepTask, PrepTaskStatus, Product, ProductRecipeItem,
    ServingPan, StockHolding, User, Visit,
)
from kitchen_ledger.services import Actor, LedgerUnitOfWork

BASE_TIME = datetime(2026, 1, 5, 8, 0, tzinfo=timezone.utc)


@pytest.fixture(scope='function')
def app():
    """Create and configure a new app instance for each test."""
    db_fd, db_path = tempfile.mkstemp()

    app = create_app({
        'TESTING': True,
        'DATABASE_URL': f'sqlite:///{db_path}',
        'SECRET_KEY': 'test-secret-key',
        'LOG_LEVEL': 'WARNING',
    })

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()

    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture
def runner(app):
    """A test runner for the app's Click commands."""
    return app.test_cli_runner()


@pytest.fixture
def app_context(app):
    """Provide an application context for tests that need it."""
    with app.app_context():
        yield


@pytest.fixture
def db_session(app_context):
    yield db.session
    db.session.rollback()


@pytest.fixture
def uow(app, db_session):
    return LedgerUnitOfWork.from_app(app, db_session)


def _save(obj):
    db.session.add(obj)
    db.session.commit()
    return obj


@pytest.fixture
def make_user(db_session):
    def _make(name='Cook', role='COOK', email=None):
        return _save(User(name=name, role=role, email=email))
    return _make


@pytest.fixture
def make_location(db_session):
    def _make(name='Main storage', kind=LocationKind.STORAGE, prep_station=None):
        return _save(Location(name=name, kind=kind, prep_station=prep_station))
    return _make


@pytest.fixture
def make_station(db_session):
    def _make(name='Kitchen'):
        return _save(PrepStation(name=name))
    return _make


@pytest.fixture
def make_ingredient(db_session):
    def _make(name='Flour', unit='g', is_prepared=False, cost='0'):
        return _save(Ingredient(name=name, unit=unit, is_prepared=is_prepared, cost_per_unit=Decimal(cost)))
    return _make


@pytest.fixture
def make_holding(db_session):
    """Holdings get strictly increasing creation times in call order."""
    counter = {'n': 0}

    def _make(ingredient, location, quantity, cost=None, created_at=None):
        counter['n'] += 1
        holding = StockHolding(
            ingredient_id=ingredient.id,
            location_id=location.id,
            quantity=Decimal(str(quantity)),
            cost_at_acquisition=Decimal(str(cost)) if cost is not None else None,
            created_at=created_at or BASE_TIME + timedelta(minutes=counter['n']),
        )
        return _save(holding)
    return _make


@pytest.fixture
def make_prep_recipe(db_session):
    def _make(output, output_quantity, inputs, name=None):
        recipe = PrepRecipe(
            name=name or f'{output.name} prep',
            output_ingredient_id=output.id,
            output_quantity=Decimal(str(output_quantity)),
        )
        for position, (ingredient, quantity) in enumerate(inputs):
            recipe.inputs.append(PrepRecipeInput(
                ingredient_id=ingredient.id, quantity=Decimal(str(quantity)), position=position))
        return _save(recipe)
    return _make


@pytest.fixture
def make_task(db_session):
    def _make(recipe, location, target_quantity='1', status=PrepTaskStatus.PENDING, assignee=None):
        task = PrepTask(
            prep_recipe_id=recipe.id,
            location_id=location.id,
            target_quantity=Decimal(str(target_quantity)),
            status=status,
            assigned_to_user_id=assignee.id if assignee else None,
        )
        return _save(task)
    return _make


@pytest.fixture
def make_product(db_session):
    def _make(name, price, station=None, recipe=(), is_active=True):
        product = Product(name=name, price=Decimal(str(price)), is_active=is_active,
                          prep_station_id=station.id if station else None)
        for position, (ingredient, quantity) in enumerate(recipe):
            product.recipe_items.append(ProductRecipeItem(
                ingredient_id=ingredient.id, quantity=Decimal(str(quantity)), position=position))
        return _save(product)
    return _make


@pytest.fixture
def make_visit(db_session):
    def _make(status='ACTIVE', total_spent='0'):
        return _save(Visit(status=status, total_spent=Decimal(total_spent)))
    return _make


@pytest.fixture
def make_pan(db_session):
    def _make(identifier='PAN-1', ingredient=None, tare='500', capacity=None, location=None):
        model = _save(PanModel(name='GN 1/1', tare_weight_g=Decimal(tare) if tare is not None else None))
        pan = ServingPan(
            unique_identifier=identifier,
            pan_model_id=model.id,
            ingredient_id=ingredient.id if ingredient else None,
            location_id=location.id if location else None,
            capacity=Decimal(str(capacity)) if capacity is not None else None,
        )
        return _save(pan)
    return _make


@pytest.fixture
def make_delivery(db_session):
    def _make(status=DeliveryStatus.READY_FOR_DISPATCH):
        return _save(Delivery(status=status))
    return _make


@pytest.fixture
def manager(make_user):
    user = make_user(name='Manager', role='MANAGER')
    return Actor(user_id=user.id, role=user.role)


@pytest.fixture
def cook(make_user):
    user = make_user(name='Line cook', role='COOK')
    return Actor(user_id=user.id, role=user.role)


@pytest.fixture
def storage(make_location):
    return make_location()
