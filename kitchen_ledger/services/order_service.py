import logging
from decimal import Decimal

from ..models import Order, OrderItem, Product, Visit
from ..utils.decimal_utils import ZERO, decimal_or_zero, quantize
from .base_service import BaseService
from .errors import LedgerError
from .recipe_resolution import expand_product_cart
from .result import Err, Ok, Result
from .stock_ledger import deduct_fifo, refresh_prepared_cost
from .unit_of_work import load_for_update
from .validation import parse_count

logger = logging.getLogger(__name__)

MONEY_SCALE = 2


class OrderService(BaseService):
    """Order fulfillment: stock is deducted and the order written in one transaction."""

    def place_order(self, visit_id, items, handled_by_id=None) -> Result[Order]:
        """
        Place an order against an active visit.

        ``items`` is a list of ``{'product_id': ..., 'quantity': ...}`` dicts.
        Either every deduction succeeds and the order exists, or nothing changed.
        """
        if not items:
            return Err(LedgerError.invalid_quantity('An order needs at least one item'))

        lines = []
        for raw in items:
            product_id = raw.get('product_id')
            if product_id is None:
                return Err(LedgerError.invalid_argument('Each order item needs a product_id'))
            count = parse_count(raw.get('quantity'))
            if not count.ok:
                return count
            lines.append((product_id, count.value))

        def work():
            visit = load_for_update(self.session, self.settings, Visit, visit_id)
            if not visit:
                return Err(LedgerError.not_found('Visit', visit_id))
            if not visit.is_active:
                return Err(LedgerError.conflict(f'Visit {visit.id} is {visit.status}; orders are closed',
                                                visit_id=visit.id, status=visit.status))

            products = {}
            for product_id, _ in lines:
                product = self.session.get(Product, product_id)
                if not product:
                    return Err(LedgerError.not_found('Product', product_id))
                if not product.is_active:
                    return Err(LedgerError.conflict(f'Product {product.name} is not available',
                                                    product_id=product.id))
                products[product_id] = product

            expansion = expand_product_cart(self.session, lines, scale=self.settings.quantity_scale)
            if not expansion.ok:
                return expansion

            for (ingredient_id, location_id), required in expansion.value.requirements.items():
                deducted = deduct_fifo(self.session, self.settings, ingredient_id, location_id, required)
                if not deducted.ok:
                    return deducted
                refresh_prepared_cost(self.session, self.settings, ingredient_id)

            order = Order(visit_id=visit.id, status='PENDING', handled_by_id=handled_by_id)
            total = ZERO
            for product_id, quantity in lines:
                product = products[product_id]
                unit_price = quantize(decimal_or_zero(product.price), MONEY_SCALE)
                line_total = quantize(unit_price * quantity, MONEY_SCALE)
                order.items.append(OrderItem(
                    product_id=product.id,
                    quantity=quantity,
                    unit_price=unit_price,
                    total_price=line_total,
                    prep_station_id=product.prep_station_id,
                ))
                total += line_total
            order.total = total
            self.session.add(order)

            visit.total_spent = quantize(decimal_or_zero(visit.total_spent) + total, MONEY_SCALE)
            self.session.flush()
            return Ok(order)

        result = self.uow.run(work, operation='order.place')
        if result.ok:
            self.log_operation('order.place', {
                'order_id': result.value.id, 'visit_id': visit_id, 'total': str(result.value.total),
            }, handled_by_id)
        else:
            self.log_failure('order.place', result.error)
        return result

    @staticmethod
    def order_total_matches_lines(order: Order) -> bool:
        return decimal_or_zero(order.total) == sum((decimal_or_zero(i.total_price) for i in order.items), Decimal(0))
