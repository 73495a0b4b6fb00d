"""
Management commands for ledger maintenance
"""
import sys

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Ingredient
from .services import LedgerUnitOfWork, StockLedgerService
from .utils.decimal_utils import to_str


@click.group('ledger')
def ledger_group():
    """Stock ledger maintenance."""


@ledger_group.command('recalculate-costs')
@click.option('--ingredient-id', type=int, default=None, help='Only recalculate this ingredient')
@with_appcontext
def recalculate_costs_command(ingredient_id):
    """Recompute the weighted-average cost of prepared ingredients"""
    service = StockLedgerService(LedgerUnitOfWork.from_app(current_app, db.session))

    query = Ingredient.query.filter(Ingredient.is_prepared.is_(True))
    if ingredient_id is not None:
        query = query.filter(Ingredient.id == ingredient_id)
    targets = [(i.id, i.name) for i in query.order_by(Ingredient.id).all()]

    if not targets:
        print("ℹ️  No prepared ingredients to recalculate.")
        return

    failures = 0
    for target_id, name in targets:
        result = service.recalculate_average_cost(target_id)
        if result.ok:
            print(f"✅ {name}: {to_str(result.value)}")
        else:
            failures += 1
            print(f"❌ {name}: {result.error}")

    print(f"📊 Recalculated {len(targets) - failures} of {len(targets)} ingredients")
    if failures:
        sys.exit(1)


@ledger_group.command('check-integrity')
@with_appcontext
def check_integrity_command():
    """Report negative holdings and drifted average costs"""
    service = StockLedgerService(LedgerUnitOfWork.from_app(current_app, db.session))
    findings = service.validate_stock_integrity()

    if not findings:
        print("✅ Stock ledger is consistent")
        return

    for finding in findings:
        if finding['check'] == 'negative_holding':
            print(f"❌ Holding {finding['holding_id']} (ingredient {finding['ingredient_id']}, "
                  f"location {finding['location_id']}) is negative: {to_str(finding['quantity'])}")
        else:
            print(f"⚠️  {finding['ingredient_name']}: stored cost {to_str(finding['stored'])}, "
                  f"batches say {to_str(finding['expected'])}")
    print(f"📊 {len(findings)} finding(s)")
    sys.exit(1)


def register_commands(app):
    """Register CLI commands"""
    app.cli.add_command(ledger_group)
