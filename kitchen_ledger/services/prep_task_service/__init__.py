from ._core import PrepTaskService
from ._completion import complete_prep_run
from ._generation import build_tasks_for_requirements, producing_recipe

__all__ = ['PrepTaskService', 'complete_prep_run', 'build_tasks_for_requirements', 'producing_recipe']
