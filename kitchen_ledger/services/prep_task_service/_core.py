import logging

from ...models import Location, PrepRecipe, PrepTask, PrepTaskStatus, User
from ...utils.timezone_utils import TimezoneUtils
from ..actor import Actor
from ..base_service import BaseService
from ..catalog_service import validate_prep_recipe
from ..errors import LedgerError
from ..result import Err, Ok, Result
from ..unit_of_work import load_for_update
from ..validation import parse_quantity
from ._completion import complete_prep_run
from ._generation import build_tasks_for_requirements

logger = logging.getLogger(__name__)


class PrepTaskService(BaseService):
    """
    Prep task state machine.

    PENDING -> ASSIGNED -> IN_PROGRESS -> COMPLETED, with CANCELLED reachable
    from PENDING or ASSIGNED and ASSIGNED -> PENDING on unassign. Claim,
    start and complete are self-service for the assignee; assign, unassign,
    cancel and delete need a privileged role.
    """

    def _is_privileged(self, actor: Actor) -> bool:
        return actor.is_privileged(self.settings.privileged_roles)

    def _load(self, task_id):
        task = load_for_update(self.session, self.settings, PrepTask, task_id)
        if not task:
            return Err(LedgerError.not_found('PrepTask', task_id))
        return Ok(task)

    def _require_privileged(self, actor: Actor, operation: str):
        if not self._is_privileged(actor):
            return Err(LedgerError.unauthorized(
                f'{operation} requires one of {", ".join(self.settings.privileged_roles)}',
                user_id=actor.user_id, role=actor.role,
            ))
        return None

    def _require_owner_or_privileged(self, task: PrepTask, actor: Actor, operation: str):
        if task.assigned_to_user_id == actor.user_id or self._is_privileged(actor):
            return None
        return Err(LedgerError.unauthorized(
            f'Only the assignee or a manager may {operation} task {task.id}',
            user_id=actor.user_id, task_id=task.id,
        ))

    def _transition(self, task_id, target: str, allowed_from, operation: str, mutate) -> Result[PrepTask]:
        def work():
            loaded = self._load(task_id)
            if not loaded.ok:
                return loaded
            task = loaded.value
            if task.status not in allowed_from:
                return Err(LedgerError.invalid_state_transition('PrepTask', task.status, target))
            return mutate(task)

        result = self.uow.run(work, operation=operation)
        if not result.ok:
            self.log_failure(operation, result.error)
        return result

    def create_task(self, prep_recipe_id, location_id, target_quantity, notes=None) -> Result[PrepTask]:
        parsed = parse_quantity(target_quantity, 'target_quantity', scale=self.settings.quantity_scale)
        if not parsed.ok:
            return parsed

        def work():
            recipe = self.session.get(PrepRecipe, prep_recipe_id)
            if not recipe:
                return Err(LedgerError.not_found('PrepRecipe', prep_recipe_id))
            checked = validate_prep_recipe(self.session, recipe)
            if not checked.ok:
                return checked
            if not self.session.get(Location, location_id):
                return Err(LedgerError.not_found('Location', location_id))
            task = PrepTask(
                prep_recipe_id=prep_recipe_id,
                location_id=location_id,
                target_quantity=parsed.value,
                status=PrepTaskStatus.PENDING,
                notes=notes,
            )
            self.session.add(task)
            self.session.flush()
            return Ok(task)

        result = self.uow.run(work, operation='prep_task.create')
        if result.ok:
            self.log_operation('prep_task.create', {'task_id': result.value.id, 'recipe_id': prep_recipe_id})
        return result

    def claim(self, task_id, actor: Actor) -> Result[PrepTask]:
        def mutate(task):
            user = self.session.get(User, actor.user_id)
            if not user or not user.is_active:
                return Err(LedgerError.unauthorized('Only active staff can claim tasks', user_id=actor.user_id))
            now = TimezoneUtils.utc_now()
            task.assigned_to_user_id = actor.user_id
            task.assigned_at = now
            task.started_at = now
            task.status = PrepTaskStatus.IN_PROGRESS
            return Ok(task)

        result = self._transition(task_id, PrepTaskStatus.IN_PROGRESS, (PrepTaskStatus.PENDING,),
                                  'prep_task.claim', mutate)
        if result.ok:
            self.log_operation('prep_task.claim', {'task_id': task_id}, actor.user_id)
        return result

    def assign(self, task_id, user_id, actor: Actor) -> Result[PrepTask]:
        denied = self._require_privileged(actor, 'Assigning tasks')
        if denied:
            return denied
        if user_id is None:
            return Err(LedgerError.invalid_argument('A user id is required to assign a task'))

        def mutate(task):
            user = self.session.get(User, user_id)
            if not user:
                return Err(LedgerError.not_found('User', user_id))
            task.assigned_to_user_id = user.id
            task.assigned_at = TimezoneUtils.utc_now()
            task.status = PrepTaskStatus.ASSIGNED
            return Ok(task)

        result = self._transition(task_id, PrepTaskStatus.ASSIGNED, (PrepTaskStatus.PENDING,),
                                  'prep_task.assign', mutate)
        if result.ok:
            self.log_operation('prep_task.assign', {'task_id': task_id, 'assignee': user_id}, actor.user_id)
        return result

    def unassign(self, task_id, actor: Actor) -> Result[PrepTask]:
        denied = self._require_privileged(actor, 'Unassigning tasks')
        if denied:
            return denied

        def mutate(task):
            task.assigned_to_user_id = None
            task.assigned_at = None
            task.status = PrepTaskStatus.PENDING
            return Ok(task)

        return self._transition(task_id, PrepTaskStatus.PENDING, (PrepTaskStatus.ASSIGNED,),
                                'prep_task.unassign', mutate)

    def start(self, task_id, actor: Actor) -> Result[PrepTask]:
        def mutate(task):
            denied = self._require_owner_or_privileged(task, actor, 'start')
            if denied:
                return denied
            task.started_at = TimezoneUtils.utc_now()
            task.status = PrepTaskStatus.IN_PROGRESS
            return Ok(task)

        return self._transition(task_id, PrepTaskStatus.IN_PROGRESS, (PrepTaskStatus.ASSIGNED,),
                                'prep_task.start', mutate)

    def complete(self, task_id, quantity_run, actor: Actor) -> Result[PrepTask]:
        """Finish a run: deduct inputs, book output, refresh the output's cost."""
        if quantity_run is None:
            return Err(LedgerError.invalid_quantity('quantity_run is required to complete a task'))
        parsed = parse_quantity(quantity_run, 'quantity_run', allow_zero=True, scale=self.settings.quantity_scale)
        if not parsed.ok:
            return parsed

        def mutate(task):
            denied = self._require_owner_or_privileged(task, actor, 'complete')
            if denied:
                return denied
            return complete_prep_run(self.session, self.settings, task, parsed.value, actor.user_id)

        result = self._transition(task_id, PrepTaskStatus.COMPLETED, (PrepTaskStatus.IN_PROGRESS,),
                                  'prep_task.complete', mutate)
        if result.ok:
            self.log_operation('prep_task.complete', {
                'task_id': task_id, 'quantity_run': str(parsed.value),
                'input_cost': str(result.value.input_cost),
            }, actor.user_id)
        return result

    def cancel(self, task_id, actor: Actor) -> Result[PrepTask]:
        denied = self._require_privileged(actor, 'Cancelling tasks')
        if denied:
            return denied

        def mutate(task):
            task.status = PrepTaskStatus.CANCELLED
            return Ok(task)

        return self._transition(task_id, PrepTaskStatus.CANCELLED,
                                (PrepTaskStatus.PENDING, PrepTaskStatus.ASSIGNED),
                                'prep_task.cancel', mutate)

    def delete_task(self, task_id, actor: Actor) -> Result[int]:
        denied = self._require_privileged(actor, 'Deleting tasks')
        if denied:
            return denied

        def work():
            loaded = self._load(task_id)
            if not loaded.ok:
                return loaded
            task = loaded.value
            if task.status not in (PrepTaskStatus.PENDING, PrepTaskStatus.CANCELLED):
                return Err(LedgerError.conflict(
                    f'Task {task.id} is {task.status} and can no longer be deleted',
                    task_id=task.id, status=task.status,
                ))
            self.session.delete(task)
            return Ok(task_id)

        result = self.uow.run(work, operation='prep_task.delete')
        if result.ok:
            self.log_operation('prep_task.delete', {'task_id': task_id}, actor.user_id)
        return result

    def generate_tasks(self, requirements, location_id, notes=None):
        """Create PENDING tasks for the prepared ingredients in ``requirements``."""
        parsed = {}
        for ingredient_id, quantity in requirements.items():
            amount = parse_quantity(quantity, 'quantity', allow_zero=True, scale=self.settings.quantity_scale)
            if not amount.ok:
                return amount
            parsed[ingredient_id] = amount.value

        def work():
            if not self.session.get(Location, location_id):
                return Err(LedgerError.not_found('Location', location_id))
            return build_tasks_for_requirements(self.session, self.settings, parsed, location_id, notes)

        result = self.uow.run(work, operation='prep_task.generate')
        if result.ok:
            self.log_operation('prep_task.generate', {'created': [t.id for t in result.value]})
        return result
