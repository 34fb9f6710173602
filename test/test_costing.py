from pathlib import Path

import pytest
from conftest import make_store

from rasyon.domain import costing
from rasyon.domain.errors import CostCycleError, ValidationError
from rasyon.domain.models import Unit
from rasyon.services.ingredient_service import IngredientService
from rasyon.services.recipe_service import RecipeService


def _raw_id(store, name):
    return next(r.id for r in store.state.raw_ingredients if r.name == name)


def _inter_id(store, name):
    return next(p.id for p in store.state.intermediate_products if p.name == name)


def test_unit_conversion():
    assert costing.convert_quantity(500, "gr", "kg") == pytest.approx(0.5)
    assert costing.convert_quantity(50, Unit.CL, Unit.LT) == pytest.approx(0.5)
    assert costing.convert_quantity(2, "kg", "gr") == pytest.approx(2000)
    assert costing.convert_quantity(1, "kg", "lt") == 1
    assert costing.convert_quantity(3, "adet", "kg") == 3


def test_package_price_derives_unit_price(tmp_path: Path):
    assert costing.package_unit_price(42, 350, "gr", "kg") == pytest.approx(120)
    with pytest.raises(ValidationError):
        costing.package_unit_price(42, 0, "gr", "kg")

    store = make_store(tmp_path)
    IngredientService(store).add_raw_ingredient("Kaşar", price=0, unit="kg", package_quantity=350, package_unit="gr", package_price=42)
    assert store.state.raw_ingredients[0].price == pytest.approx(120)


def test_zero_cost_keeps_previous_multiplier():
    assert costing.solve_multiplier(25, 0, 2.5) == 2.5
    assert costing.solve_multiplier(30, 10, 2.5) == pytest.approx(3)


def test_raw_price_change_holds_recipe_price(tmp_path: Path):
    store = make_store(tmp_path)
    ingredients = IngredientService(store)
    recipes = RecipeService(store)

    ingredients.add_raw_ingredient("Un", price=20, unit="kg")
    recipes.add_recipe("Pide", [{"raw_ingredient_id": _raw_id(store, "Un"), "quantity": 0.5}], cost_multiplier=2.5)
    recipe = store.state.recipes[0]
    assert recipe.total_cost == pytest.approx(10)
    assert recipe.calculated_price == pytest.approx(25)

    ingredients.update_raw_ingredient(_raw_id(store, "Un"), price=40)
    recipe = store.state.recipes[0]
    assert recipe.total_cost == pytest.approx(20)
    assert recipe.calculated_price == pytest.approx(25)
    assert recipe.cost_multiplier == pytest.approx(1.25)
    assert recipe.ingredients[0].price == pytest.approx(40)


def test_deleting_raw_ingredient_strips_lines(tmp_path: Path):
    store = make_store(tmp_path)
    ingredients = IngredientService(store)
    recipes = RecipeService(store)

    ingredients.add_raw_ingredient("Un", price=20)
    ingredients.add_raw_ingredient("Tuz", price=5)
    recipes.add_recipe(
        "Pide",
        [
            {"raw_ingredient_id": _raw_id(store, "Un"), "quantity": 0.5},
            {"raw_ingredient_id": _raw_id(store, "Tuz"), "quantity": 0.01},
        ],
    )
    ingredients.delete_raw_ingredient(_raw_id(store, "Un"))

    recipe = store.state.recipes[0]
    assert [line.name for line in recipe.ingredients] == ["Tuz"]
    assert recipe.total_cost == pytest.approx(0.05)
    assert recipe.calculated_price == pytest.approx(10.05 * 2.5)


def test_nested_intermediates_cascade(tmp_path: Path):
    store = make_store(tmp_path)
    ingredients = IngredientService(store)
    recipes = RecipeService(store)

    ingredients.add_raw_ingredient("Domates", price=30)
    ingredients.add_intermediate_product("Sos", [{"raw_ingredient_id": _raw_id(store, "Domates"), "quantity": 2}])
    sauce = store.state.intermediate_products[0]
    assert sauce.production_quantity == pytest.approx(2)
    assert sauce.cost_per_unit == pytest.approx(30)

    ingredients.add_intermediate_product("Pizza Sosu", [{"intermediate_product_id": sauce.id, "quantity": 1}])
    recipes.add_recipe("Pizza", [{"intermediate_product_id": _inter_id(store, "Pizza Sosu"), "quantity": 0.5}])
    assert store.state.recipes[0].total_cost == pytest.approx(15)

    ingredients.update_raw_ingredient(_raw_id(store, "Domates"), price=60)
    by_name = {p.name: p for p in store.state.intermediate_products}
    assert by_name["Sos"].cost_per_unit == pytest.approx(60)
    assert by_name["Pizza Sosu"].cost_per_unit == pytest.approx(60)
    assert store.state.recipes[0].total_cost == pytest.approx(30)


def test_intermediate_cycle_is_rejected(tmp_path: Path):
    store = make_store(tmp_path)
    ingredients = IngredientService(store)
    ingredients.add_raw_ingredient("Süt", price=40, unit="lt")
    ingredients.add_intermediate_product("Krema", [{"raw_ingredient_id": _raw_id(store, "Süt"), "quantity": 1}], production_unit="lt")
    ingredients.add_intermediate_product("Sos", [{"intermediate_product_id": _inter_id(store, "Krema"), "quantity": 1}], production_unit="lt")

    before = store.state
    with pytest.raises(CostCycleError, match="Krema"):
        ingredients.update_intermediate_product(
            _inter_id(store, "Krema"),
            items=[{"intermediate_product_id": _inter_id(store, "Sos"), "quantity": 1}],
        )
    assert store.state is before


def test_portion_cost():
    from rasyon.domain.models import IntermediateProduct

    product = IntermediateProduct(
        id="p",
        name="Köfte harcı",
        ingredients=(),
        production_quantity=1,
        production_unit=Unit.KG,
        cost_per_unit=400,
        portion_weight=150,
        portion_unit=Unit.GR,
    )
    assert costing.portion_cost(product) == pytest.approx(60)


def test_changing_production_unit_recomputes_quantity(tmp_path: Path):
    store = make_store(tmp_path)
    ingredients = IngredientService(store)
    ingredients.add_intermediate_product(
        "Köfte harcı",
        [{"name": "Kıyma", "quantity": 500, "unit": "gr", "price": 0.4}],
        production_unit="adet",
    )
    product = store.state.intermediate_products[0]
    assert product.production_quantity == pytest.approx(500)

    ingredients.update_intermediate_product(product.id, production_unit="kg")
    product = store.state.intermediate_products[0]
    assert product.production_unit == Unit.KG
    assert product.production_quantity == pytest.approx(0.5)
    assert product.cost_per_unit == pytest.approx(400)

    ingredients.update_intermediate_product(product.id, name="Köfte harcı (dana)")
    assert store.state.intermediate_products[0].production_quantity == pytest.approx(0.5)
