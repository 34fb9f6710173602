from pathlib import Path

import pytest
from conftest import make_store

from rasyon.domain.errors import NotFoundError, ValidationError
from rasyon.services.ingredient_service import IngredientService
from rasyon.services.recipe_service import RecipeService


def test_fixed_price_solves_multiplier(tmp_path: Path):
    store = make_store(tmp_path)
    recipes = RecipeService(store)
    recipes.add_recipe("Ayran", [{"name": "Ayran 200ml", "quantity": 1, "unit": "adet", "price": 8}], calculated_price=20)
    recipe = store.state.recipes[0]
    assert recipe.cost_multiplier == pytest.approx(2.5)

    recipes.update_recipe(recipe.id, cost_multiplier=3)
    assert store.state.recipes[0].calculated_price == pytest.approx(24)


def test_category_delete_clears_references(tmp_path: Path):
    store = make_store(tmp_path)
    recipes = RecipeService(store)
    ingredients = IngredientService(store)

    recipes.add_recipe_category("Pideler")
    cat = store.state.recipe_categories[0].id
    recipes.add_recipe("Kıymalı", [], category_id=cat)
    assert recipes.list_recipes(cat)[0].name == "Kıymalı"
    recipes.delete_recipe_category(cat)
    assert store.state.recipes[0].category_id is None

    ingredients.add_ingredient_category("Kuru gıda")
    icat = store.state.ingredient_categories[0].id
    ingredients.add_raw_ingredient("Un", category_id=icat, price=20)
    ingredients.delete_ingredient_category(icat)
    assert store.state.raw_ingredients[0].category_id == ""

    with pytest.raises(NotFoundError):
        recipes.add_recipe("Lahmacun", [], category_id="missing")


def test_reorder_requires_every_recipe(tmp_path: Path):
    store = make_store(tmp_path)
    recipes = RecipeService(store)
    recipes.add_recipe("A", [])
    recipes.add_recipe("B", [])
    a, b = (r.id for r in store.state.recipes)

    recipes.reorder_recipes([b, a])
    assert [r.name for r in store.state.recipes] == ["B", "A"]
    with pytest.raises(ValidationError):
        recipes.reorder_recipes([a])


def test_invalid_inputs_are_rejected(tmp_path: Path):
    store = make_store(tmp_path)
    with pytest.raises(ValidationError):
        RecipeService(store).add_recipe(" ", [])
    with pytest.raises(ValidationError):
        IngredientService(store).add_raw_ingredient("Un", unit="ton")
    with pytest.raises(NotFoundError):
        RecipeService(store).add_recipe("X", [{"raw_ingredient_id": "missing", "quantity": 1}])


def test_editing_ingredients_keeps_multiplier_and_reprices(tmp_path: Path):
    store = make_store(tmp_path)
    recipes = RecipeService(store)
    ingredients = IngredientService(store)
    ingredients.add_raw_ingredient("Un", price=20)
    un = store.state.raw_ingredients[0].id

    recipes.add_recipe("Pide", [])
    recipe = store.state.recipes[0]
    assert recipe.calculated_price == 0
    assert recipe.cost_multiplier == pytest.approx(2.5)

    recipes.update_recipe(recipe.id, items=[{"raw_ingredient_id": un, "quantity": 0.5}])
    recipe = store.state.recipes[0]
    assert recipe.total_cost == pytest.approx(10)
    assert recipe.cost_multiplier == pytest.approx(2.5)
    assert recipe.calculated_price == pytest.approx(25)

    line = recipe.ingredients[0]
    recipes.update_recipe(recipe.id, items=[{"id": line.id, "raw_ingredient_id": un, "quantity": 1.0}])
    recipe = store.state.recipes[0]
    assert recipe.cost_multiplier == pytest.approx(2.5)
    assert recipe.calculated_price == pytest.approx(50)

    recipes.update_recipe(recipe.id, name="Kaşarlı Pide")
    assert store.state.recipes[0].calculated_price == pytest.approx(50)
