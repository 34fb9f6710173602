from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Unit(str, Enum):
    KG = "kg"
    LT = "lt"
    ADET = "adet"
    GR = "gr"
    CL = "cl"


class CompanyType(str, Enum):
    SAHIS = "sahis"
    LIMITED = "limited"


class ExpenseKind(str, Enum):
    FIXED = "fixed"
    VARIABLE = "variable"


class ExpenseGroup(str, Enum):
    GENERAL = "general"
    PRODUCTION = "production"
    SALES = "sales"
    PERSONNEL = "personnel"


class AutoType(str, Enum):
    PERCENTAGE = "percentage"
    FOOD_COST = "food_cost"
    PACKAGING = "packaging"
    COURIER = "courier"
    MANUAL = "manual"


class TaxMethod(str, Enum):
    KDV = "kdv"
    STOPAJ = "stopaj"


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    color: str = "#71717a"


@dataclass(frozen=True)
class RawIngredient:
    id: str
    name: str
    category_id: str
    price: float
    unit: Unit = Unit.KG
    minimum_stock: Optional[float] = None
    package_quantity: Optional[float] = None
    package_unit: Optional[Unit] = None
    package_price: Optional[float] = None
    vat_rate: float = 0.01


@dataclass(frozen=True)
class IngredientLine:
    id: str
    name: str
    quantity: float
    unit: Unit
    price: float
    raw_ingredient_id: Optional[str] = None
    intermediate_product_id: Optional[str] = None

    @property
    def line_total(self) -> float:
        return self.quantity * self.price


@dataclass(frozen=True)
class IntermediateProduct:
    id: str
    name: str
    ingredients: tuple[IngredientLine, ...]
    production_quantity: float
    production_unit: Unit = Unit.KG
    total_cost: float = 0.0
    cost_per_unit: float = 0.0
    portion_weight: Optional[float] = None
    portion_unit: Optional[Unit] = None


@dataclass(frozen=True)
class Recipe:
    id: str
    name: str
    ingredients: tuple[IngredientLine, ...]
    total_cost: float = 0.0
    cost_multiplier: float = 2.5
    calculated_price: float = 0.0
    category_id: Optional[str] = None
    image: Optional[str] = None


@dataclass(frozen=True)
class MarketPriceEntry:
    id: str
    competitor_name: str
    product_name: str
    price: float
    includes_fries: bool = False
    includes_drink: bool = False
    includes_sauce: bool = False
    includes_other: Optional[str] = None
    matched_recipe_id: Optional[str] = None


@dataclass(frozen=True)
class Expense:
    id: str
    name: str
    amount: float
    kind: ExpenseKind = ExpenseKind.FIXED
    group: Optional[ExpenseGroup] = None
    is_automated: bool = False
    auto_type: Optional[AutoType] = None
    auto_value: Optional[float] = None
    vat_rate: Optional[float] = None
    tax_method: Optional[TaxMethod] = None


@dataclass(frozen=True)
class SalesTarget:
    id: str
    recipe_id: str
    daily_target: float
    package_daily_target: float = 0.0


@dataclass(frozen=True)
class VatEntry:
    rate: float
    amount: float
    category: str = "diger"


@dataclass(frozen=True)
class Invoice:
    id: str
    date: str
    supplier: str
    amount: float
    description: str = ""
    category: str = "diger"
    tax_rate: float = 20.0
    status: str = "paid"
    payment_date: Optional[str] = None
    tax_method: Optional[TaxMethod] = None
    vat_breakdown: tuple[VatEntry, ...] = ()


ONLINE_CHANNELS = ("yemeksepeti", "trendyol", "getir_yemek", "migros_yemek")
SALE_CHANNELS = ("cash", "credit_card", "meal_card") + ONLINE_CHANNELS


@dataclass(frozen=True)
class DailySale:
    id: str
    date: str
    cash: float = 0.0
    credit_card: float = 0.0
    meal_card: float = 0.0
    yemeksepeti: float = 0.0
    trendyol: float = 0.0
    getir_yemek: float = 0.0
    migros_yemek: float = 0.0
    online: float = 0.0
    total_amount: float = 0.0
    note: Optional[str] = None

    @property
    def online_total(self) -> float:
        return sum(getattr(self, ch) for ch in ONLINE_CHANNELS)


@dataclass(frozen=True)
class MonthlyMonthData:
    id: str
    month_str: str
    is_closed: bool = False
    closed_at: Optional[str] = None
    invoices: tuple[Invoice, ...] = ()
    daily_sales: tuple[DailySale, ...] = ()
    total_expenses: Optional[float] = None
    total_income: Optional[float] = None
    net_profit: Optional[float] = None


@dataclass(frozen=True)
class CompanyInfo:
    name: str
    official_name: str = ""
    owner_name: str = ""
    type: CompanyType = CompanyType.SAHIS


@dataclass(frozen=True)
class AppState:
    company: Optional[CompanyInfo] = None
    online_commission_rate: float = 10.0
    days_worked_in_month: int = 26
    recipes: tuple[Recipe, ...] = ()
    sales_targets: tuple[SalesTarget, ...] = ()
    expenses: tuple[Expense, ...] = ()
    packaging_costs: tuple[Expense, ...] = ()
    raw_ingredients: tuple[RawIngredient, ...] = ()
    ingredient_categories: tuple[Category, ...] = ()
    intermediate_products: tuple[IntermediateProduct, ...] = ()
    recipe_categories: tuple[Category, ...] = ()
    monthly_closings: tuple[MonthlyMonthData, ...] = ()
    market_prices: tuple[MarketPriceEntry, ...] = ()
    # supplier ledgers are kept as opaque documents
    suppliers: tuple[dict, ...] = ()
    supplier_order_slips: tuple[dict, ...] = ()
    supplier_invoices: tuple[dict, ...] = ()
    supplier_payments: tuple[dict, ...] = ()
