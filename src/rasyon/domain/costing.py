from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Mapping, Optional

from rasyon.domain.errors import CostCycleError, ValidationError
from rasyon.domain.models import (
    AppState,
    IngredientLine,
    IntermediateProduct,
    RawIngredient,
    Recipe,
    Unit,
)

log = logging.getLogger("rasyon.costing")

# sub-unit -> (base unit, divisor)
SUB_UNITS: dict[Unit, tuple[Unit, float]] = {
    Unit.GR: (Unit.KG, 1000.0),
    Unit.CL: (Unit.LT, 100.0),
}


def convert_quantity(qty: float, from_unit: Unit | str, to_unit: Unit | str) -> float:
    """
    Convert a line quantity into a production unit using kitchen math:
    gr->kg and cl->lt scale down, kg and lt count 1:1, anything else is
    taken as-is.
    """
    src, dst = Unit(from_unit), Unit(to_unit)
    if src == dst:
        return qty
    sub = SUB_UNITS.get(src)
    if sub and sub[0] == dst:
        return qty / sub[1]
    sub = SUB_UNITS.get(dst)
    if sub and sub[0] == src:
        return qty * sub[1]
    return qty


def package_unit_price(
    package_price: float,
    package_quantity: float,
    package_unit: Unit | str,
    purchase_unit: Unit | str,
) -> float:
    """Unit price per purchase unit derived from a package (e.g. 350 gr for 42 TL -> TL/kg)."""
    if package_quantity is None or package_quantity <= 0:
        raise ValidationError("Package quantity must be > 0.")
    if package_price is None or package_price < 0:
        raise ValidationError("Package price must be >= 0.")
    qty_in_purchase_unit = convert_quantity(package_quantity, package_unit, purchase_unit)
    return package_price / qty_in_purchase_unit


def total_cost(lines: Iterable[IngredientLine]) -> float:
    return sum(line.quantity * line.price for line in lines)


def solve_multiplier(calculated_price: float, cost: float, previous: float) -> float:
    if cost == 0:
        return previous
    return calculated_price / cost


def production_quantity(lines: Iterable[IngredientLine], production_unit: Unit | str) -> float:
    return sum(convert_quantity(line.quantity or 0.0, line.unit, production_unit) for line in lines)


def cost_intermediate(product: IntermediateProduct) -> IntermediateProduct:
    cost = total_cost(product.ingredients)
    qty = product.production_quantity
    per_unit = cost / qty if qty > 0 else 0.0
    return replace(product, total_cost=cost, cost_per_unit=per_unit)


def price_recipe(recipe: Recipe, hold_price: bool = True) -> Recipe:
    """
    Recompute a recipe's cost.

    With ``hold_price`` the sale price stays fixed and the multiplier is
    solved; otherwise the price follows cost x multiplier.
    """
    cost = total_cost(recipe.ingredients)
    if hold_price:
        multiplier = solve_multiplier(recipe.calculated_price, cost, recipe.cost_multiplier)
        return replace(recipe, total_cost=cost, cost_multiplier=multiplier)
    return replace(recipe, total_cost=cost, calculated_price=cost * recipe.cost_multiplier)


def portion_cost(product: IntermediateProduct) -> Optional[float]:
    """Cost of one portion when the product is portioned by weight/volume."""
    if not product.portion_weight or product.portion_unit is None:
        return None
    if product.production_unit == Unit.ADET:
        return None
    divisor = SUB_UNITS[Unit(product.portion_unit)][1]
    return (product.cost_per_unit / divisor) * product.portion_weight


def line_from_raw(line_id: str, raw: RawIngredient, quantity: float) -> IngredientLine:
    return IngredientLine(
        id=line_id,
        name=raw.name,
        quantity=quantity,
        unit=raw.unit,
        price=raw.price,
        raw_ingredient_id=raw.id,
    )


def line_from_intermediate(line_id: str, product: IntermediateProduct, quantity: float) -> IngredientLine:
    return IngredientLine(
        id=line_id,
        name=product.name,
        quantity=quantity,
        unit=product.production_unit,
        price=product.cost_per_unit,
        intermediate_product_id=product.id,
    )


# ---------- Dependency graph ----------
def intermediate_edges(products: Iterable[IntermediateProduct]) -> dict[str, set[str]]:
    return {
        p.id: {line.intermediate_product_id for line in p.ingredients if line.intermediate_product_id}
        for p in products
    }


def topological_order(products: Iterable[IntermediateProduct]) -> list[IntermediateProduct]:
    """Order intermediates so every product comes after the intermediates it uses."""
    products = list(products)
    by_id = {p.id: p for p in products}
    edges = intermediate_edges(products)

    ordered: list[IntermediateProduct] = []
    state: dict[str, int] = {}  # 1 = visiting, 2 = done

    def visit(pid: str, path: list[str]) -> None:
        mark = state.get(pid)
        if mark == 2:
            return
        if mark == 1:
            cycle = path[path.index(pid):] + [pid]
            names = " -> ".join(by_id[c].name for c in cycle)
            raise CostCycleError(f"Intermediate products reference each other: {names}")
        state[pid] = 1
        for dep in sorted(edges.get(pid, ())):
            if dep in by_id:
                visit(dep, path + [pid])
        state[pid] = 2
        ordered.append(by_id[pid])

    for p in products:
        visit(p.id, [])
    return ordered


def ensure_acyclic(products: Iterable[IntermediateProduct]) -> None:
    topological_order(products)


# ---------- Propagation ----------
def refresh_lines(
    lines: Iterable[IngredientLine],
    raw_by_id: Mapping[str, RawIngredient],
    intermediate_by_id: Mapping[str, IntermediateProduct],
) -> tuple[tuple[IngredientLine, ...], bool]:
    """
    Re-read linked lines from their sources.

    Lines whose linked ingredient no longer exists are dropped. Returns the
    new lines and whether anything changed.
    """
    out: list[IngredientLine] = []
    changed = False
    for line in lines:
        if line.raw_ingredient_id:
            raw = raw_by_id.get(line.raw_ingredient_id)
            if raw is None:
                changed = True
                continue
            new = replace(line, name=raw.name, unit=raw.unit, price=raw.price)
        elif line.intermediate_product_id:
            product = intermediate_by_id.get(line.intermediate_product_id)
            if product is None:
                changed = True
                continue
            new = replace(
                line,
                name=product.name,
                unit=product.production_unit,
                price=product.cost_per_unit,
            )
        else:
            new = line
        changed = changed or new != line
        out.append(new)
    return tuple(out), changed


def propagate_costs(state: AppState) -> AppState:
    """
    Push current raw-ingredient and intermediate-product costs through the
    dependency graph: intermediates first (dependencies before dependents),
    then recipes. Recipes that changed keep their sale price.
    """
    raw_by_id = {r.id: r for r in state.raw_ingredients}
    updated: dict[str, IntermediateProduct] = {}
    touched_products = 0

    for product in topological_order(state.intermediate_products):
        lines, changed = refresh_lines(product.ingredients, raw_by_id, updated)
        if changed:
            product = cost_intermediate(replace(product, ingredients=lines))
            touched_products += 1
        updated[product.id] = product

    recipes: list[Recipe] = []
    touched_recipes = 0
    for recipe in state.recipes:
        lines, changed = refresh_lines(recipe.ingredients, raw_by_id, updated)
        if changed:
            recipe = price_recipe(replace(recipe, ingredients=lines), hold_price=True)
            touched_recipes += 1
        recipes.append(recipe)

    if touched_products or touched_recipes:
        log.info("costs_propagated intermediates=%s recipes=%s", touched_products, touched_recipes)

    return replace(
        state,
        intermediate_products=tuple(updated[p.id] for p in state.intermediate_products),
        recipes=tuple(recipes),
    )
