from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from rasyon.domain.models import AutoType, Expense, ExpenseGroup, Invoice


@dataclass(frozen=True)
class ExpenseCategory:
    value: str
    label: str
    group: ExpenseGroup


EXPENSE_CATEGORIES: tuple[ExpenseCategory, ...] = (
    ExpenseCategory("kira", "Kira", ExpenseGroup.GENERAL),
    ExpenseCategory("faturalar", "Faturalar (Elektrik/Su/İnternet)", ExpenseGroup.GENERAL),
    ExpenseCategory("muhasebe", "Muhasebe", ExpenseGroup.GENERAL),
    ExpenseCategory("vergi", "Vergi ve Harçlar", ExpenseGroup.GENERAL),
    ExpenseCategory("pos", "Pos/Yazılım", ExpenseGroup.GENERAL),
    ExpenseCategory("guvenlik", "İlaçlama ve Güvenlik", ExpenseGroup.GENERAL),
    ExpenseCategory("gida", "Gıda Hammadde", ExpenseGroup.PRODUCTION),
    ExpenseCategory("ambalaj", "Ambalaj", ExpenseGroup.PRODUCTION),
    ExpenseCategory("fire", "Fire/Zayii", ExpenseGroup.PRODUCTION),
    ExpenseCategory("bakim", "Bakım/Onarım", ExpenseGroup.PRODUCTION),
    ExpenseCategory("reklam", "Reklam Giderleri", ExpenseGroup.SALES),
    ExpenseCategory("kurye", "Kurye Masrafı", ExpenseGroup.SALES),
    ExpenseCategory("maas", "Net Maaş", ExpenseGroup.PERSONNEL),
    ExpenseCategory("sgk", "SGK", ExpenseGroup.PERSONNEL),
    ExpenseCategory("yan_haklar", "Yol, Yemek ve Yan Haklar", ExpenseGroup.PERSONNEL),
    ExpenseCategory("diger", "Diğer", ExpenseGroup.GENERAL),
)

_CATEGORIES_BY_VALUE = {c.value: c for c in EXPENSE_CATEGORIES}


def category_group(value: str) -> ExpenseGroup:
    c = _CATEGORIES_BY_VALUE.get(value)
    return c.group if c else ExpenseGroup.GENERAL


def category_label(value: str) -> str:
    c = _CATEGORIES_BY_VALUE.get(value)
    return c.label if c else value


# ---------- Automated expenses ----------
@dataclass(frozen=True)
class PlanFigures:
    """Monthly figures an automated expense can be derived from."""

    revenue: float = 0.0
    food_cost: float = 0.0
    takeaway_orders: float = 0.0
    takeaway_revenue: float = 0.0
    packaging_cost_per_order: float = 0.0


def _percentage(expense: Expense, plan: PlanFigures) -> float:
    return plan.revenue * ((expense.auto_value or 0.0) / 100)


def _food_cost(expense: Expense, plan: PlanFigures) -> float:
    ratio = expense.auto_value if expense.auto_value is not None else 1.0
    return plan.food_cost * ratio


def _packaging(expense: Expense, plan: PlanFigures) -> float:
    return plan.packaging_cost_per_order * plan.takeaway_orders


def _courier(expense: Expense, plan: PlanFigures) -> float:
    return plan.takeaway_revenue * ((expense.auto_value or 0.0) / 100)


def _manual(expense: Expense, plan: PlanFigures) -> float:
    return expense.amount


EXPENSE_EVALUATORS: dict[AutoType, Callable[[Expense, PlanFigures], float]] = {
    AutoType.PERCENTAGE: _percentage,
    AutoType.FOOD_COST: _food_cost,
    AutoType.PACKAGING: _packaging,
    AutoType.COURIER: _courier,
    AutoType.MANUAL: _manual,
}


def evaluate_expense(expense: Expense, plan: PlanFigures) -> float:
    if not expense.is_automated or expense.auto_type is None:
        return expense.amount
    return EXPENSE_EVALUATORS[AutoType(expense.auto_type)](expense, plan)


# ---------- Invoice classification ----------
@dataclass(frozen=True)
class BalanceBucket:
    key: str
    label: str
    group: ExpenseGroup
    keywords: tuple[str, ...]


# Priority order: first bucket with a matching keyword wins.
BALANCE_BUCKETS: tuple[BalanceBucket, ...] = (
    BalanceBucket("rent", "Kira", ExpenseGroup.GENERAL, ("kira", "stopaj")),
    BalanceBucket(
        "bills",
        "Faturalar (Elektrik/Su/İnternet)",
        ExpenseGroup.GENERAL,
        ("enerji", "elektrik", "su ", "su faturası", "internet", "doğalgaz", "fatura"),
    ),
    BalanceBucket("accounting", "Muhasebe", ExpenseGroup.GENERAL, ("muhasebe", "müşavir", "mali")),
    BalanceBucket("pos", "Pos Yazılım", ExpenseGroup.GENERAL, ("pos", "yazılım", "adisyon", "program")),
    BalanceBucket("security", "İlaçlama ve Güvenlik", ExpenseGroup.GENERAL, ("ilaç", "güvenlik", "alarm")),
    BalanceBucket(
        "food",
        "Gıda Hammadde",
        ExpenseGroup.PRODUCTION,
        ("gıda", "hammadde", "kasap", "manav", "market", "toptan"),
    ),
    BalanceBucket("packaging", "Ambalaj", ExpenseGroup.PRODUCTION, ("ambalaj", "kutu", "paket", "poşet")),
    BalanceBucket("waste", "Fire/Zayii", ExpenseGroup.PRODUCTION, ("fire", "zayi")),
    BalanceBucket("maintenance", "Bakım/Onarım", ExpenseGroup.PRODUCTION, ("bakım", "onarım", "tamir", "servis")),
    BalanceBucket(
        "marketing",
        "Reklam Giderleri",
        ExpenseGroup.SALES,
        ("reklam", "sosyal", "tanıtım", "medya", "ads"),
    ),
    BalanceBucket("courier", "Kurye Masrafı", ExpenseGroup.SALES, ("kurye", "lojistik", "dağıtım")),
    BalanceBucket("salary", "Net Maaş", ExpenseGroup.PERSONNEL, ("maaş", "huzur", "avans")),
    BalanceBucket("sgk", "SGK", ExpenseGroup.PERSONNEL, ("sgk", "bağkur", "sigorta")),
    BalanceBucket(
        "benefits",
        "Yol, Yemek ve Yan Haklar",
        ExpenseGroup.PERSONNEL,
        ("yol", "yemek", "ticket", "sodexo", "multinet", "yan hak"),
    ),
)
OTHER_BUCKET = BalanceBucket("other", "Diğer / Sınıflandırılmamış", ExpenseGroup.GENERAL, ())


def tr_lower(text: str) -> str:
    return text.replace("I", "ı").replace("İ", "i").lower()


def classify_invoice(invoice: Invoice) -> BalanceBucket:
    text = tr_lower(f"{invoice.category or ''} {invoice.description or ''} {invoice.supplier or ''}")
    for bucket in BALANCE_BUCKETS:
        if any(k in text for k in bucket.keywords):
            return bucket
    return OTHER_BUCKET
