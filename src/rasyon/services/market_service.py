from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional

from rasyon.domain.errors import NotFoundError, ValidationError
from rasyon.domain.models import AppState, MarketPriceEntry, Recipe
from rasyon.services.state_service import StateService, new_id

log = logging.getLogger("rasyon.market")


@dataclass(frozen=True)
class MarketComparison:
    recipe: Recipe
    prices_by_competitor: dict[str, float]
    avg_price: float
    diff_percent: float

    @property
    def our_price(self) -> float:
        return self.recipe.calculated_price


class MarketService:
    """Competitor prices matched against our recipes."""

    def __init__(self, store: StateService):
        self.store = store

    def list_market_prices(self) -> list[MarketPriceEntry]:
        return list(self.store.state.market_prices)

    def get_market_price(self, entry_id: str) -> MarketPriceEntry:
        for m in self.store.state.market_prices:
            if m.id == entry_id:
                return m
        raise NotFoundError("Market price not found.")

    def _check(self, entry: MarketPriceEntry) -> MarketPriceEntry:
        if not entry.competitor_name.strip():
            raise ValidationError("Competitor name is required.")
        if not entry.product_name.strip():
            raise ValidationError("Product name is required.")
        if entry.price < 0:
            raise ValidationError("Price must be >= 0.")
        if entry.matched_recipe_id and not any(r.id == entry.matched_recipe_id for r in self.store.state.recipes):
            raise NotFoundError("Recipe not found.")
        return replace(
            entry,
            competitor_name=entry.competitor_name.strip(),
            product_name=entry.product_name.strip(),
        )

    def add_market_price(
        self,
        competitor_name: str,
        product_name: str,
        price: float,
        includes_fries: bool = False,
        includes_drink: bool = False,
        includes_sauce: bool = False,
        includes_other: Optional[str] = None,
        matched_recipe_id: Optional[str] = None,
    ) -> AppState:
        entry = self._check(
            MarketPriceEntry(
                id=new_id(),
                competitor_name=competitor_name or "",
                product_name=product_name or "",
                price=float(price),
                includes_fries=bool(includes_fries),
                includes_drink=bool(includes_drink),
                includes_sauce=bool(includes_sauce),
                includes_other=includes_other or None,
                matched_recipe_id=matched_recipe_id or None,
            )
        )
        state = self.store.state
        log.info("market_price_added competitor=%s product=%s", entry.competitor_name, entry.product_name)
        return self.store.commit(
            replace(state, market_prices=state.market_prices + (entry,)),
            fields=("market_prices",),
        )

    def update_market_price(self, entry_id: str, **changes) -> AppState:
        current = self.get_market_price(entry_id)
        if "price" in changes:
            changes["price"] = float(changes["price"])
        if "matched_recipe_id" in changes:
            changes["matched_recipe_id"] = changes["matched_recipe_id"] or None
        try:
            entry = self._check(replace(current, **changes))
        except TypeError as e:
            raise ValidationError(f"Unknown market price field: {e}") from e
        state = self.store.state
        entries = tuple(entry if m.id == entry_id else m for m in state.market_prices)
        return self.store.commit(replace(state, market_prices=entries), fields=("market_prices",))

    def delete_market_price(self, entry_id: str) -> AppState:
        self.get_market_price(entry_id)
        state = self.store.state
        return self.store.commit(
            replace(state, market_prices=tuple(m for m in state.market_prices if m.id != entry_id)),
            fields=("market_prices",),
        )

    def competitors(self) -> list[str]:
        return sorted({m.competitor_name for m in self.store.state.market_prices})

    def analysis(self) -> list[MarketComparison]:
        """
        One row per recipe with at least one matched competitor price.

        ``diff_percent`` is how far the competitor average sits above (+) or
        below (-) our sale price; 0 when either side has no price.
        """
        state = self.store.state
        rows: list[MarketComparison] = []
        for recipe in state.recipes:
            matched = [m for m in state.market_prices if m.matched_recipe_id == recipe.id]
            if not matched:
                continue
            prices = {}
            for m in matched:
                prices[m.competitor_name] = m.price
            positive = [m.price for m in matched if m.price > 0]
            avg = sum(positive) / len(positive) if positive else 0.0
            ours = recipe.calculated_price
            diff = (avg - ours) / ours * 100 if avg > 0 and ours > 0 else 0.0
            rows.append(MarketComparison(recipe=recipe, prices_by_competitor=prices, avg_price=avg, diff_percent=diff))
        return rows
