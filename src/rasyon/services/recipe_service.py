from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Optional

from rasyon.domain import costing
from rasyon.domain.errors import NotFoundError, ValidationError
from rasyon.domain.models import AppState, Category, Recipe
from rasyon.services.ingredient_service import build_lines
from rasyon.services.state_service import StateService, new_id

log = logging.getLogger("rasyon.costing")

DEFAULT_MULTIPLIER = 2.5


class RecipeService:
    def __init__(self, store: StateService):
        self.store = store

    def list_recipes(self, category_id: Optional[str] = None) -> list[Recipe]:
        recipes = self.store.state.recipes
        if category_id is not None:
            recipes = tuple(r for r in recipes if r.category_id == category_id)
        return list(recipes)

    def get_recipe(self, recipe_id: str) -> Recipe:
        for r in self.store.state.recipes:
            if r.id == recipe_id:
                return r
        raise NotFoundError("Recipe not found.")

    @staticmethod
    def _priced(recipe: Recipe, calculated_price: Optional[float]) -> Recipe:
        if recipe.cost_multiplier <= 0:
            raise ValidationError("Cost multiplier must be > 0.")
        if calculated_price is None:
            return costing.price_recipe(recipe, hold_price=False)
        if calculated_price < 0:
            raise ValidationError("Price must be >= 0.")
        return costing.price_recipe(replace(recipe, calculated_price=float(calculated_price)), hold_price=True)

    def add_recipe(
        self,
        name: str,
        items: Iterable[dict],
        cost_multiplier: float = DEFAULT_MULTIPLIER,
        calculated_price: Optional[float] = None,
        category_id: Optional[str] = None,
        image: Optional[str] = None,
    ) -> AppState:
        """
        Sale price defaults to cost x multiplier. Passing ``calculated_price``
        fixes the price and solves the multiplier instead.
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Recipe name is required.")
        state = self.store.state
        self._check_category(state, category_id)

        recipe = self._priced(
            Recipe(
                id=new_id(),
                name=name,
                ingredients=build_lines(items, state),
                cost_multiplier=float(cost_multiplier),
                category_id=category_id,
                image=image,
            ),
            calculated_price,
        )
        log.info("recipe_added id=%s cost=%.2f price=%.2f", recipe.id, recipe.total_cost, recipe.calculated_price)
        return self.store.commit(replace(state, recipes=state.recipes + (recipe,)), fields=("recipes",))

    def update_recipe(
        self,
        recipe_id: str,
        name: Optional[str] = None,
        items: Optional[Iterable[dict]] = None,
        cost_multiplier: Optional[float] = None,
        calculated_price: Optional[float] = None,
        category_id: Optional[str] = None,
        image: Optional[str] = None,
    ) -> AppState:
        current = self.get_recipe(recipe_id)
        state = self.store.state
        self._check_category(state, category_id)

        recipe = current
        if name is not None:
            name = name.strip()
            if not name:
                raise ValidationError("Recipe name is required.")
            recipe = replace(recipe, name=name)
        if items is not None:
            recipe = replace(recipe, ingredients=build_lines(items, state))
        if category_id is not None:
            recipe = replace(recipe, category_id=category_id or None)
        if image is not None:
            recipe = replace(recipe, image=image or None)

        if cost_multiplier is not None:
            recipe = self._priced(replace(recipe, cost_multiplier=float(cost_multiplier)), calculated_price)
        elif calculated_price is not None:
            recipe = self._priced(recipe, calculated_price)
        else:
            # same multiplier, price follows the new cost
            recipe = costing.price_recipe(recipe, hold_price=False)

        recipes = tuple(recipe if r.id == recipe_id else r for r in state.recipes)
        return self.store.commit(replace(state, recipes=recipes), fields=("recipes",))

    def delete_recipe(self, recipe_id: str) -> AppState:
        self.get_recipe(recipe_id)
        state = self.store.state
        state = replace(
            state,
            recipes=tuple(r for r in state.recipes if r.id != recipe_id),
            sales_targets=tuple(t for t in state.sales_targets if t.recipe_id != recipe_id),
            market_prices=tuple(
                replace(m, matched_recipe_id=None) if m.matched_recipe_id == recipe_id else m
                for m in state.market_prices
            ),
        )
        return self.store.commit(state, fields=("recipes", "sales_targets", "market_prices"))

    # ---------- Categories ----------
    @staticmethod
    def _check_category(state: AppState, category_id: Optional[str]) -> None:
        if category_id and not any(c.id == category_id for c in state.recipe_categories):
            raise NotFoundError("Recipe category not found.")

    def add_recipe_category(self, name: str, color: str = "#71717a") -> AppState:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Category name is required.")
        state = self.store.state
        category = Category(id=new_id(), name=name, color=color)
        return self.store.commit(
            replace(state, recipe_categories=state.recipe_categories + (category,)),
            fields=("recipe_categories",),
        )

    def update_recipe_category(self, category_id: str, **changes) -> AppState:
        state = self.store.state
        self._check_category(state, category_id)
        categories = tuple(replace(c, **changes) if c.id == category_id else c for c in state.recipe_categories)
        return self.store.commit(replace(state, recipe_categories=categories), fields=("recipe_categories",))

    def delete_recipe_category(self, category_id: str) -> AppState:
        state = self.store.state
        self._check_category(state, category_id)
        state = replace(
            state,
            recipe_categories=tuple(c for c in state.recipe_categories if c.id != category_id),
            recipes=tuple(
                replace(r, category_id=None) if r.category_id == category_id else r for r in state.recipes
            ),
        )
        return self.store.commit(state, fields=("recipe_categories", "recipes"))

    def reorder_recipes(self, ordered_ids: Iterable[str]) -> AppState:
        ordered_ids = list(ordered_ids)
        state = self.store.state
        by_id = {r.id: r for r in state.recipes}
        if sorted(ordered_ids) != sorted(by_id):
            raise ValidationError("Order must list every recipe exactly once.")
        return self.store.commit(
            replace(state, recipes=tuple(by_id[i] for i in ordered_ids)),
            fields=("recipes",),
        )
