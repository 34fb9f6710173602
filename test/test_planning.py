from pathlib import Path

import pytest
from conftest import make_store

from rasyon.domain.errors import NotFoundError, ValidationError
from rasyon.services.ingredient_service import IngredientService
from rasyon.services.planning_service import PlanningService
from rasyon.services.recipe_service import RecipeService


def _plan(tmp_path: Path):
    store = make_store(tmp_path)
    IngredientService(store).add_raw_ingredient("Un", price=20)
    RecipeService(store).add_recipe("Pide", [{"raw_ingredient_id": store.state.raw_ingredients[0].id, "quantity": 0.5}])
    planning = PlanningService(store)
    planning.set_days_worked(20)
    planning.add_sales_target(store.state.recipes[0].id, daily_target=10, package_daily_target=2)
    planning.add_packaging_cost("Kutu", 1.5)
    planning.add_expense("Kira", 1_000)
    planning.add_expense("Reklam", auto_type="percentage", auto_value=5)
    return store, planning


def test_balance_projection(tmp_path: Path):
    store, planning = _plan(tmp_path)
    p = planning.balance()

    assert p.daily_revenue == pytest.approx(300)
    assert p.daily_items == 12
    assert p.monthly_revenue == pytest.approx(6_000)
    assert p.monthly_food_cost == pytest.approx(2_400)
    assert p.monthly_packaging_cost == pytest.approx(60)
    assert [line.amount for line in p.expense_lines] == pytest.approx([1_000, 300])
    assert p.net_profit == pytest.approx(2_240)
    assert p.profit_margin == pytest.approx(2_240 / 6_000 * 100)
    assert p.tax.annual_tax == pytest.approx(26_880 * 0.15)
    assert p.tax.monthly_tax == pytest.approx(336)
    assert p.tax.income_vat == pytest.approx(600)


def test_food_cost_expense_replaces_ingredient_line(tmp_path: Path):
    store, planning = _plan(tmp_path)
    planning.add_expense("Gıda", auto_type="food_cost")
    p = planning.balance()
    assert p.monthly_food_cost == 0
    assert p.expense_lines[-1].amount == pytest.approx(2_400)
    assert p.net_profit == pytest.approx(2_240)


def test_withholding_expense_is_grossed_up(tmp_path: Path):
    store, planning = _plan(tmp_path)
    rent = store.state.expenses[0]
    planning.update_expense(rent.id, tax_method="stopaj")
    line = planning.balance().expense_lines[0]
    assert line.amount == pytest.approx(1_250)
    assert line.deductible_vat == 0


def test_deleting_recipe_removes_its_targets(tmp_path: Path):
    store, planning = _plan(tmp_path)
    RecipeService(store).delete_recipe(store.state.recipes[0].id)
    assert store.state.sales_targets == ()
    assert planning.balance().monthly_revenue == 0


def test_target_validation(tmp_path: Path):
    store, planning = _plan(tmp_path)
    with pytest.raises(NotFoundError):
        planning.add_sales_target("missing", 5)
    with pytest.raises(ValidationError):
        planning.update_sales_target(store.state.sales_targets[0].id, daily_target=-1)
    with pytest.raises(ValidationError):
        planning.set_days_worked(40)
    with pytest.raises(ValidationError):
        planning.update_expense(store.state.expenses[0].id, colour="red")
