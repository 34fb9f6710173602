import pytest

from rasyon.domain.expenses import (
    OTHER_BUCKET,
    PlanFigures,
    category_group,
    category_label,
    classify_invoice,
    evaluate_expense,
)
from rasyon.domain.models import AutoType, Expense, ExpenseGroup, Invoice

PLAN = PlanFigures(
    revenue=100_000,
    food_cost=40_000,
    takeaway_orders=100,
    takeaway_revenue=20_000,
    packaging_cost_per_order=3,
)


def _auto(auto_type, value=None, amount=0.0):
    return Expense(id="e", name="x", amount=amount, is_automated=True, auto_type=auto_type, auto_value=value)


def test_automated_expenses_follow_the_plan():
    assert evaluate_expense(_auto(AutoType.PERCENTAGE, 5), PLAN) == pytest.approx(5_000)
    assert evaluate_expense(_auto(AutoType.FOOD_COST), PLAN) == pytest.approx(40_000)
    assert evaluate_expense(_auto(AutoType.FOOD_COST, 0.5), PLAN) == pytest.approx(20_000)
    assert evaluate_expense(_auto(AutoType.PACKAGING), PLAN) == pytest.approx(300)
    assert evaluate_expense(_auto(AutoType.COURIER, 10), PLAN) == pytest.approx(2_000)
    assert evaluate_expense(_auto(AutoType.MANUAL, amount=750), PLAN) == 750


def test_plain_expense_uses_fixed_amount():
    rent = Expense(id="r", name="Kira", amount=15_000)
    assert evaluate_expense(rent, PLAN) == 15_000


@pytest.mark.parametrize(
    "category,description,supplier,expected",
    [
        ("Kira", "", "Ev sahibi", "rent"),
        ("Diğer", "Elektrik faturası", "Enerjisa", "bills"),
        ("Diğer", "", "İNTERNET HİZMETLERİ", "bills"),
        ("Diğer", "et alımı", "Ahmet Kasap", "food"),
        ("Diğer", "", "BİM Market", "food"),
        ("Diğer", "", "SGK Prim", "sgk"),
        ("Diğer", "", "Kurye Lojistik", "courier"),
    ],
)
def test_invoice_classification(category, description, supplier, expected):
    inv = Invoice(id="i", date="2025-01-01", supplier=supplier, amount=100, category=category, description=description)
    assert classify_invoice(inv).key == expected


def test_unmatched_invoice_goes_to_other():
    inv = Invoice(id="i", date="2025-01-01", supplier="XYZ Ltd", amount=100)
    assert classify_invoice(inv) is OTHER_BUCKET


def test_category_lookup():
    assert category_group("sgk") is ExpenseGroup.PERSONNEL
    assert category_group("unknown") is ExpenseGroup.GENERAL
    assert category_label("kurye") == "Kurye Masrafı"
    assert category_label("unknown") == "unknown"
