import logging

from ..models import Ingredient, WasteReason, WasteRecord
from .base_service import BaseService
from .errors import LedgerError
from .result import Err, Ok, Result
from .stock_ledger import deduct_fifo, refresh_prepared_cost
from .validation import parse_quantity

logger = logging.getLogger(__name__)


def normalize_reason(reason):
    """Accept 'Expired', 'expired' or 'EXPIRED'; None for unknown reasons."""
    if not reason:
        return None
    candidate = str(reason).strip().upper().replace(' ', '_')
    return candidate if candidate in WasteReason.ALL else None


class WasteService(BaseService):

    def record_waste(self, ingredient_id, location_id, quantity, reason, note=None,
                     recorded_by_id=None) -> Result[WasteRecord]:
        """Write stock off, costed from the batches the deduction actually consumed."""
        parsed = parse_quantity(quantity, scale=self.settings.quantity_scale)
        if not parsed.ok:
            return parsed
        code = normalize_reason(reason)
        if code is None:
            return Err(LedgerError.invalid_argument(f'Unknown waste reason {reason!r}',
                                                    allowed=list(WasteReason.ALL)))

        def work():
            ingredient = self.session.get(Ingredient, ingredient_id)
            if not ingredient:
                return Err(LedgerError.not_found('Ingredient', ingredient_id))
            deducted = deduct_fifo(self.session, self.settings, ingredient_id, location_id, parsed.value)
            if not deducted.ok:
                return deducted
            refresh_prepared_cost(self.session, self.settings, ingredient_id)

            record = WasteRecord(
                ingredient_id=ingredient.id,
                location_id=location_id,
                quantity=deducted.value.quantity,
                unit=ingredient.unit,
                reason=code,
                cost_value=deducted.value.total_cost,
                notes=note,
                recorded_by_id=recorded_by_id,
            )
            self.session.add(record)
            self.session.flush()
            return Ok(record)

        result = self.uow.run(work, operation='waste.record')
        if result.ok:
            self.log_operation('waste.record', {
                'waste_id': result.value.id, 'ingredient_id': ingredient_id,
                'quantity': str(parsed.value), 'reason': code, 'cost': str(result.value.cost_value),
            }, recorded_by_id)
        else:
            self.log_failure('waste.record', result.error)
        return result
