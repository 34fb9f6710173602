from .models import (
    AppState,
    Category,
    CompanyInfo,
    CompanyType,
    DailySale,
    Expense,
    IngredientLine,
    IntermediateProduct,
    Invoice,
    MonthlyMonthData,
    RawIngredient,
    Recipe,
    SalesTarget,
    Unit,
)
from .errors import (
    AppError,
    CostCycleError,
    ImportFormatError,
    NotFoundError,
    PeriodClosedError,
    RemoteUnavailableError,
    ValidationError,
)

__all__ = [
    "AppState",
    "Category",
    "CompanyInfo",
    "CompanyType",
    "DailySale",
    "Expense",
    "IngredientLine",
    "IntermediateProduct",
    "Invoice",
    "MonthlyMonthData",
    "RawIngredient",
    "Recipe",
    "SalesTarget",
    "Unit",
    "AppError",
    "CostCycleError",
    "ImportFormatError",
    "NotFoundError",
    "PeriodClosedError",
    "RemoteUnavailableError",
    "ValidationError",
]
