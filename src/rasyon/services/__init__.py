from .state_service import StateService
from .ingredient_service import IngredientService
from .recipe_service import RecipeService
from .planning_service import PlanningService
from .accounting_service import AccountingService
from .backup_service import BackupService
from .reporting_service import ReportingService

__all__ = [
    "StateService",
    "IngredientService",
    "RecipeService",
    "PlanningService",
    "AccountingService",
    "BackupService",
    "ReportingService",
]
