from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Optional

from rasyon.domain import costing
from rasyon.domain.errors import NotFoundError, ValidationError
from rasyon.domain.models import (
    AppState,
    Category,
    IngredientLine,
    IntermediateProduct,
    RawIngredient,
    Unit,
)
from rasyon.services.state_service import StateService, new_id

log = logging.getLogger("rasyon.costing")

PRODUCTION_UNITS = (Unit.KG, Unit.LT, Unit.ADET)
PORTION_UNITS = (Unit.GR, Unit.CL)


def _unit(value, allowed: Iterable[Unit] | None = None) -> Unit:
    try:
        unit = Unit(value)
    except ValueError as e:
        raise ValidationError(f"Unknown unit: {value}") from e
    if allowed is not None and unit not in allowed:
        raise ValidationError(f"Unit {unit.value} is not allowed here.")
    return unit


def build_lines(items: Iterable[dict], state: AppState) -> tuple[IngredientLine, ...]:
    """
    items: [{raw_ingredient_id | intermediate_product_id, quantity}]
           or free lines [{name, quantity, unit, price}]

    Linked lines take name, unit and price from their source.
    """
    raw_by_id = {r.id: r for r in state.raw_ingredients}
    inter_by_id = {p.id: p for p in state.intermediate_products}

    lines: list[IngredientLine] = []
    for it in items:
        qty = float(it.get("quantity") or 0)
        if qty < 0:
            raise ValidationError("Quantity must be >= 0.")
        line_id = it.get("id") or new_id()

        raw_id = it.get("raw_ingredient_id")
        inter_id = it.get("intermediate_product_id")
        if raw_id:
            raw = raw_by_id.get(raw_id)
            if not raw:
                raise NotFoundError("Raw ingredient not found.")
            lines.append(costing.line_from_raw(line_id, raw, qty))
        elif inter_id:
            product = inter_by_id.get(inter_id)
            if not product:
                raise NotFoundError("Intermediate product not found.")
            lines.append(costing.line_from_intermediate(line_id, product, qty))
        else:
            name = (it.get("name") or "").strip()
            if not name:
                raise ValidationError("Ingredient name is required.")
            price = float(it.get("price") or 0)
            if price < 0:
                raise ValidationError("Price must be >= 0.")
            lines.append(IngredientLine(id=line_id, name=name, quantity=qty, unit=_unit(it.get("unit", "kg")), price=price))
    return tuple(lines)


class IngredientService:
    COST_FIELDS = ("raw_ingredients", "intermediate_products", "recipes")

    def __init__(self, store: StateService):
        self.store = store

    # ---------- Raw ingredients ----------
    def list_raw_ingredients(self) -> list[RawIngredient]:
        return sorted(self.store.state.raw_ingredients, key=lambda r: r.name.lower())

    def get_raw_ingredient(self, ingredient_id: str) -> RawIngredient:
        for r in self.store.state.raw_ingredients:
            if r.id == ingredient_id:
                return r
        raise NotFoundError("Raw ingredient not found.")

    def _priced(self, raw: RawIngredient) -> RawIngredient:
        if raw.package_quantity is not None and raw.package_price is not None:
            package_unit = raw.package_unit or raw.unit
            price = costing.package_unit_price(raw.package_price, raw.package_quantity, package_unit, raw.unit)
            raw = replace(raw, price=price, package_unit=package_unit)
        if raw.price < 0:
            raise ValidationError("Price must be >= 0.")
        if not 0 <= raw.vat_rate <= 1:
            raise ValidationError("VAT rate must be a fraction between 0 and 1.")
        return raw

    def add_raw_ingredient(
        self,
        name: str,
        category_id: str = "",
        price: float = 0.0,
        unit: str = "kg",
        package_quantity: Optional[float] = None,
        package_unit: Optional[str] = None,
        package_price: Optional[float] = None,
        vat_rate: float = 0.01,
        minimum_stock: Optional[float] = None,
    ) -> AppState:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Name is required.")
        raw = self._priced(
            RawIngredient(
                id=new_id(),
                name=name,
                category_id=category_id or "",
                price=float(price or 0),
                unit=_unit(unit),
                minimum_stock=minimum_stock,
                package_quantity=package_quantity,
                package_unit=_unit(package_unit) if package_unit else None,
                package_price=package_price,
                vat_rate=float(vat_rate),
            )
        )
        state = self.store.state
        return self.store.commit(
            replace(state, raw_ingredients=state.raw_ingredients + (raw,)),
            fields=("raw_ingredients",),
        )

    def update_raw_ingredient(self, ingredient_id: str, **changes) -> AppState:
        current = self.get_raw_ingredient(ingredient_id)
        if "name" in changes:
            changes["name"] = (changes["name"] or "").strip()
            if not changes["name"]:
                raise ValidationError("Name is required.")
        for key in ("unit", "package_unit"):
            if changes.get(key) is not None:
                changes[key] = _unit(changes[key])
        if "price" in changes and "package_price" not in changes:
            # a direct price edit drops package pricing
            changes.update(package_quantity=None, package_unit=None, package_price=None)
        try:
            updated = self._priced(replace(current, **changes))
        except TypeError as e:
            raise ValidationError(str(e)) from e

        state = self.store.state
        state = replace(
            state,
            raw_ingredients=tuple(updated if r.id == ingredient_id else r for r in state.raw_ingredients),
        )
        log.info("raw_ingredient_updated id=%s price=%.4f unit=%s", ingredient_id, updated.price, updated.unit.value)
        return self.store.commit(costing.propagate_costs(state), fields=self.COST_FIELDS)

    def delete_raw_ingredient(self, ingredient_id: str) -> AppState:
        self.get_raw_ingredient(ingredient_id)
        return self.bulk_delete_raw_ingredients([ingredient_id])

    def bulk_delete_raw_ingredients(self, ingredient_ids: Iterable[str]) -> AppState:
        ids = set(ingredient_ids)
        state = self.store.state
        remaining = tuple(r for r in state.raw_ingredients if r.id not in ids)
        if len(remaining) == len(state.raw_ingredients):
            return state
        state = costing.propagate_costs(replace(state, raw_ingredients=remaining))
        log.info("raw_ingredients_deleted count=%s", len(ids))
        return self.store.commit(state, fields=self.COST_FIELDS)

    # ---------- Categories ----------
    def add_ingredient_category(self, name: str, color: str = "#71717a") -> AppState:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Category name is required.")
        state = self.store.state
        category = Category(id=new_id(), name=name, color=color)
        return self.store.commit(
            replace(state, ingredient_categories=state.ingredient_categories + (category,)),
            fields=("ingredient_categories",),
        )

    def update_ingredient_category(self, category_id: str, **changes) -> AppState:
        state = self.store.state
        if not any(c.id == category_id for c in state.ingredient_categories):
            raise NotFoundError("Category not found.")
        categories = tuple(
            replace(c, **changes) if c.id == category_id else c for c in state.ingredient_categories
        )
        return self.store.commit(replace(state, ingredient_categories=categories), fields=("ingredient_categories",))

    def delete_ingredient_category(self, category_id: str) -> AppState:
        state = self.store.state
        categories = tuple(c for c in state.ingredient_categories if c.id != category_id)
        if len(categories) == len(state.ingredient_categories):
            raise NotFoundError("Category not found.")
        raws = tuple(
            replace(r, category_id="") if r.category_id == category_id else r for r in state.raw_ingredients
        )
        return self.store.commit(
            replace(state, ingredient_categories=categories, raw_ingredients=raws),
            fields=("ingredient_categories", "raw_ingredients"),
        )

    # ---------- Intermediate products ----------
    def list_intermediate_products(self) -> list[IntermediateProduct]:
        return list(self.store.state.intermediate_products)

    def get_intermediate_product(self, product_id: str) -> IntermediateProduct:
        for p in self.store.state.intermediate_products:
            if p.id == product_id:
                return p
        raise NotFoundError("Intermediate product not found.")

    def _build_product(
        self,
        product_id: str,
        name: str,
        items: Iterable[dict],
        production_unit,
        production_quantity: Optional[float],
        portion_weight: Optional[float],
        portion_unit,
    ) -> IntermediateProduct:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Name is required.")
        unit = _unit(production_unit, PRODUCTION_UNITS)
        lines = build_lines(items, self.store.state)
        qty = costing.production_quantity(lines, unit) if production_quantity is None else float(production_quantity)
        if qty < 0:
            raise ValidationError("Production quantity must be >= 0.")
        if portion_weight is not None and portion_weight <= 0:
            raise ValidationError("Portion weight must be > 0.")
        return costing.cost_intermediate(
            IntermediateProduct(
                id=product_id,
                name=name,
                ingredients=lines,
                production_quantity=qty,
                production_unit=unit,
                portion_weight=portion_weight,
                portion_unit=_unit(portion_unit, PORTION_UNITS) if portion_weight is not None else None,
            )
        )

    def add_intermediate_product(
        self,
        name: str,
        items: Iterable[dict],
        production_unit: str = "kg",
        production_quantity: Optional[float] = None,
        portion_weight: Optional[float] = None,
        portion_unit: Optional[str] = "gr",
    ) -> AppState:
        product = self._build_product(
            new_id(), name, items, production_unit, production_quantity, portion_weight, portion_unit
        )
        state = self.store.state
        products = state.intermediate_products + (product,)
        costing.ensure_acyclic(products)
        return self.store.commit(replace(state, intermediate_products=products), fields=("intermediate_products",))

    def update_intermediate_product(
        self,
        product_id: str,
        name: Optional[str] = None,
        items: Optional[Iterable[dict]] = None,
        production_unit: Optional[str] = None,
        production_quantity: Optional[float] = None,
        portion_weight: Optional[float] = None,
        portion_unit: Optional[str] = None,
    ) -> AppState:
        current = self.get_intermediate_product(product_id)
        if items is None:
            items = [
                {
                    "id": line.id,
                    "name": line.name,
                    "quantity": line.quantity,
                    "unit": line.unit,
                    "price": line.price,
                    "raw_ingredient_id": line.raw_ingredient_id,
                    "intermediate_product_id": line.intermediate_product_id,
                }
                for line in current.ingredients
            ]
            unit_changed = production_unit is not None and _unit(production_unit) != current.production_unit
            if production_quantity is None and not unit_changed:
                production_quantity = current.production_quantity
        product = self._build_product(
            product_id,
            current.name if name is None else name,
            items,
            production_unit or current.production_unit,
            production_quantity,
            current.portion_weight if portion_weight is None else portion_weight,
            portion_unit or current.portion_unit or "gr",
        )

        state = self.store.state
        products = tuple(product if p.id == product_id else p for p in state.intermediate_products)
        costing.ensure_acyclic(products)
        state = costing.propagate_costs(replace(state, intermediate_products=products))
        log.info("intermediate_updated id=%s cost_per_unit=%.4f", product_id, product.cost_per_unit)
        return self.store.commit(state, fields=("intermediate_products", "recipes"))

    def delete_intermediate_product(self, product_id: str) -> AppState:
        self.get_intermediate_product(product_id)
        state = self.store.state
        products = tuple(p for p in state.intermediate_products if p.id != product_id)
        state = costing.propagate_costs(replace(state, intermediate_products=products))
        log.info("intermediate_deleted id=%s", product_id)
        return self.store.commit(state, fields=("intermediate_products", "recipes"))
