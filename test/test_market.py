from pathlib import Path

import pytest
from conftest import make_store

from rasyon.domain.errors import NotFoundError, ValidationError
from rasyon.services.market_service import MarketService
from rasyon.services.recipe_service import RecipeService


def _setup(tmp_path: Path):
    store = make_store(tmp_path)
    recipes = RecipeService(store)
    recipes.add_recipe("Lahmacun", [], calculated_price=100)
    recipes.add_recipe("Ayran", [], calculated_price=0)
    return store, MarketService(store)


def test_analysis_averages_matched_competitors(tmp_path: Path):
    store, market = _setup(tmp_path)
    lahmacun, ayran = (r.id for r in store.state.recipes)
    market.add_market_price("Köşe Fırın", "Lahmacun", 120, matched_recipe_id=lahmacun)
    market.add_market_price("Usta Pide", "Lahmacun", 140, includes_drink=True, matched_recipe_id=lahmacun)
    market.add_market_price("Yeni Yer", "Lahmacun", 0, matched_recipe_id=lahmacun)
    market.add_market_price("Köşe Fırın", "Ayran", 25, matched_recipe_id=ayran)
    market.add_market_price("Köşe Fırın", "Künefe", 90)

    rows = {row.recipe.name: row for row in market.analysis()}
    assert set(rows) == {"Lahmacun", "Ayran"}

    row = rows["Lahmacun"]
    assert row.avg_price == pytest.approx(130)
    assert row.diff_percent == pytest.approx(30)
    assert row.our_price == pytest.approx(100)
    assert row.prices_by_competitor == {"Köşe Fırın": 120, "Usta Pide": 140, "Yeni Yer": 0}

    # no sale price of our own: no percentage
    assert rows["Ayran"].diff_percent == 0
    assert market.competitors() == ["Köşe Fırın", "Usta Pide", "Yeni Yer"]


def test_update_and_delete_market_price(tmp_path: Path):
    store, market = _setup(tmp_path)
    lahmacun = store.state.recipes[0].id
    market.add_market_price("Köşe Fırın", "Lahmacun", 120)
    entry = store.state.market_prices[0]
    assert market.analysis() == []

    market.update_market_price(entry.id, price=90, matched_recipe_id=lahmacun)
    row = market.analysis()[0]
    assert row.diff_percent == pytest.approx(-10)

    market.delete_market_price(entry.id)
    assert store.state.market_prices == ()
    with pytest.raises(NotFoundError):
        market.delete_market_price(entry.id)


def test_deleting_recipe_unmatches_market_prices(tmp_path: Path):
    store, market = _setup(tmp_path)
    lahmacun = store.state.recipes[0].id
    market.add_market_price("Köşe Fırın", "Lahmacun", 120, matched_recipe_id=lahmacun)

    RecipeService(store).delete_recipe(lahmacun)
    assert store.state.market_prices[0].matched_recipe_id is None
    assert market.analysis() == []


def test_market_price_validation(tmp_path: Path):
    store, market = _setup(tmp_path)
    with pytest.raises(ValidationError):
        market.add_market_price(" ", "Lahmacun", 100)
    with pytest.raises(ValidationError):
        market.add_market_price("Köşe Fırın", "Lahmacun", -1)
    with pytest.raises(NotFoundError):
        market.add_market_price("Köşe Fırın", "Lahmacun", 100, matched_recipe_id="missing")
    assert store.state.market_prices == ()


def test_market_prices_are_saved(tmp_path: Path):
    store, market = _setup(tmp_path)
    market.add_market_price("Köşe Fırın", "Lahmacun", 120, includes_fries=True, includes_other="turşu")
    store.save()

    reloaded = make_store(tmp_path)
    entry = reloaded.state.market_prices[0]
    assert entry.includes_fries is True
    assert entry.includes_other == "turşu"
    assert entry.price == pytest.approx(120)
