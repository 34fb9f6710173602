from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from rasyon.config import AppSettings
from rasyon.domain import tax
from rasyon.domain.errors import NotFoundError, ValidationError
from rasyon.domain.expenses import PlanFigures, evaluate_expense
from rasyon.domain.models import (
    AppState,
    AutoType,
    CompanyInfo,
    CompanyType,
    Expense,
    ExpenseGroup,
    ExpenseKind,
    SalesTarget,
    TaxMethod,
)
from rasyon.services.state_service import StateService, new_id


@dataclass(frozen=True)
class ExpenseLine:
    expense_id: str
    name: str
    amount: float
    deductible_vat: float
    automated: bool


@dataclass(frozen=True)
class TaxSummary:
    company_type: CompanyType
    monthly_profit: float
    annual_profit: float
    annual_tax: float
    monthly_tax: float
    income_vat: float
    deductible_vat: float
    vat_difference: float


@dataclass(frozen=True)
class BalanceProjection:
    daily_revenue: float
    daily_items: float
    daily_takeaway_items: float
    daily_ingredient_cost: float
    packaging_cost_per_order: float
    monthly_revenue: float
    monthly_food_cost: float
    monthly_packaging_cost: float
    expense_lines: tuple[ExpenseLine, ...]
    total_expenses: float
    total_monthly_costs: float
    net_profit: float
    profit_margin: float
    tax: TaxSummary


class PlanningService:
    """Sales targets, planned expenses and the monthly balance projection built from them."""

    def __init__(self, store: StateService, settings: AppSettings | None = None):
        self.store = store
        self.settings = settings or store.settings

    # ---------- Settings ----------
    def set_company(self, name: str, company_type: str = "sahis", official_name: str = "", owner_name: str = "") -> AppState:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Company name is required.")
        try:
            ctype = CompanyType(company_type)
        except ValueError as e:
            raise ValidationError(f"Unknown company type: {company_type}") from e
        company = CompanyInfo(name=name, official_name=official_name, owner_name=owner_name, type=ctype)
        return self.store.commit(replace(self.store.state, company=company), fields=("company",))

    def set_days_worked(self, days: int) -> AppState:
        days = int(days)
        if not 0 <= days <= 31:
            raise ValidationError("Days worked must be between 0 and 31.")
        return self.store.commit(replace(self.store.state, days_worked_in_month=days), fields=("days_worked_in_month",))

    def set_online_commission_rate(self, rate: float) -> AppState:
        rate = float(rate)
        if not 0 <= rate <= 100:
            raise ValidationError("Commission rate must be between 0 and 100.")
        return self.store.commit(
            replace(self.store.state, online_commission_rate=rate),
            fields=("online_commission_rate",),
        )

    # ---------- Sales targets ----------
    def add_sales_target(self, recipe_id: str, daily_target: float, package_daily_target: float = 0) -> AppState:
        state = self.store.state
        if not any(r.id == recipe_id for r in state.recipes):
            raise NotFoundError("Recipe not found.")
        if daily_target < 0 or package_daily_target < 0:
            raise ValidationError("Targets must be >= 0.")
        target = SalesTarget(
            id=new_id(),
            recipe_id=recipe_id,
            daily_target=float(daily_target),
            package_daily_target=float(package_daily_target),
        )
        return self.store.commit(replace(state, sales_targets=state.sales_targets + (target,)), fields=("sales_targets",))

    def update_sales_target(
        self,
        target_id: str,
        daily_target: Optional[float] = None,
        package_daily_target: Optional[float] = None,
    ) -> AppState:
        state = self.store.state
        current = next((t for t in state.sales_targets if t.id == target_id), None)
        if current is None:
            raise NotFoundError("Sales target not found.")
        updated = replace(
            current,
            daily_target=current.daily_target if daily_target is None else float(daily_target),
            package_daily_target=(
                current.package_daily_target if package_daily_target is None else float(package_daily_target)
            ),
        )
        if updated.daily_target < 0 or updated.package_daily_target < 0:
            raise ValidationError("Targets must be >= 0.")
        targets = tuple(updated if t.id == target_id else t for t in state.sales_targets)
        return self.store.commit(replace(state, sales_targets=targets), fields=("sales_targets",))

    def remove_sales_target(self, target_id: str) -> AppState:
        state = self.store.state
        targets = tuple(t for t in state.sales_targets if t.id != target_id)
        if len(targets) == len(state.sales_targets):
            raise NotFoundError("Sales target not found.")
        return self.store.commit(replace(state, sales_targets=targets), fields=("sales_targets",))

    # ---------- Expenses / packaging ----------
    @staticmethod
    def _make_expense(
        name: str,
        amount: float,
        kind: str = "fixed",
        group: Optional[str] = None,
        auto_type: Optional[str] = None,
        auto_value: Optional[float] = None,
        vat_rate: Optional[float] = None,
        tax_method: Optional[str] = None,
        expense_id: Optional[str] = None,
    ) -> Expense:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Expense name is required.")
        if amount < 0:
            raise ValidationError("Amount must be >= 0.")
        if vat_rate is not None and not 0 <= vat_rate <= 1:
            raise ValidationError("VAT rate must be a fraction between 0 and 1.")
        try:
            auto = AutoType(auto_type) if auto_type else None
            return Expense(
                id=expense_id or new_id(),
                name=name,
                amount=float(amount),
                kind=ExpenseKind(kind),
                group=ExpenseGroup(group) if group else None,
                is_automated=auto not in (None, AutoType.MANUAL),
                auto_type=auto,
                auto_value=auto_value,
                vat_rate=vat_rate,
                tax_method=TaxMethod(tax_method) if tax_method else None,
            )
        except ValueError as e:
            raise ValidationError(str(e)) from e

    def add_expense(self, name: str, amount: float = 0.0, **kwargs) -> AppState:
        expense = self._make_expense(name, amount, **kwargs)
        state = self.store.state
        return self.store.commit(replace(state, expenses=state.expenses + (expense,)), fields=("expenses",))

    def update_expense(self, expense_id: str, **changes) -> AppState:
        return self._update_in("expenses", expense_id, changes)

    def remove_expense(self, expense_id: str) -> AppState:
        return self._remove_from("expenses", expense_id)

    def add_packaging_cost(self, name: str, amount: float) -> AppState:
        cost = self._make_expense(name, amount, kind="variable", group="production")
        state = self.store.state
        return self.store.commit(
            replace(state, packaging_costs=state.packaging_costs + (cost,)),
            fields=("packaging_costs",),
        )

    def update_packaging_cost(self, cost_id: str, **changes) -> AppState:
        return self._update_in("packaging_costs", cost_id, changes)

    def remove_packaging_cost(self, cost_id: str) -> AppState:
        return self._remove_from("packaging_costs", cost_id)

    def _update_in(self, field_name: str, item_id: str, changes: dict) -> AppState:
        state = self.store.state
        items = getattr(state, field_name)
        current = next((e for e in items if e.id == item_id), None)
        if current is None:
            raise NotFoundError("Expense not found.")
        merged = {
            "name": current.name,
            "amount": current.amount,
            "kind": current.kind.value,
            "group": current.group.value if current.group else None,
            "auto_type": current.auto_type.value if current.auto_type else None,
            "auto_value": current.auto_value,
            "vat_rate": current.vat_rate,
            "tax_method": current.tax_method.value if current.tax_method else None,
        }
        unknown = set(changes) - set(merged)
        if unknown:
            raise ValidationError(f"Unknown expense fields: {sorted(unknown)}")
        merged.update(changes)
        updated = self._make_expense(expense_id=item_id, **merged)
        new_items = tuple(updated if e.id == item_id else e for e in items)
        return self.store.commit(replace(state, **{field_name: new_items}), fields=(field_name,))

    def _remove_from(self, field_name: str, item_id: str) -> AppState:
        state = self.store.state
        items = getattr(state, field_name)
        remaining = tuple(e for e in items if e.id != item_id)
        if len(remaining) == len(items):
            raise NotFoundError("Expense not found.")
        return self.store.commit(replace(state, **{field_name: remaining}), fields=(field_name,))

    # ---------- Projection ----------
    def _expense_line(self, expense: Expense, plan: PlanFigures) -> ExpenseLine:
        amount = evaluate_expense(expense, plan)
        if expense.tax_method == TaxMethod.STOPAJ:
            # net rent is paid to the landlord, the withheld part to the tax office
            return ExpenseLine(expense.id, expense.name, tax.rent_withholding(amount).gross, 0.0, expense.is_automated)
        if expense.tax_method == TaxMethod.KDV and expense.vat_rate is None:
            vat = amount * (self.settings.standard_vat_rate / 100)
        else:
            vat = amount * (expense.vat_rate or 0.0)
        return ExpenseLine(expense.id, expense.name, amount, vat, expense.is_automated)

    def balance(self) -> BalanceProjection:
        state = self.store.state
        recipes = {r.id: r for r in state.recipes}
        days = state.days_worked_in_month

        daily_revenue = daily_items = daily_takeaway = daily_takeaway_revenue = daily_food = 0.0
        for target in state.sales_targets:
            recipe = recipes.get(target.recipe_id)
            if recipe is None:
                continue
            units = target.daily_target + target.package_daily_target
            daily_items += units
            daily_takeaway += target.package_daily_target
            daily_revenue += recipe.calculated_price * units
            daily_takeaway_revenue += recipe.calculated_price * target.package_daily_target
            daily_food += recipe.total_cost * units

        per_order = sum(p.amount for p in state.packaging_costs)
        plan = PlanFigures(
            revenue=daily_revenue * days,
            food_cost=daily_food * days,
            takeaway_orders=daily_takeaway * days,
            takeaway_revenue=daily_takeaway_revenue * days,
            packaging_cost_per_order=per_order,
        )

        lines = tuple(self._expense_line(e, plan) for e in state.expenses)
        auto_types = {e.auto_type for e in state.expenses if e.is_automated}
        # pass-through expenses already carry these costs
        food_cost = 0.0 if AutoType.FOOD_COST in auto_types else plan.food_cost
        packaging_cost = 0.0 if AutoType.PACKAGING in auto_types else per_order * plan.takeaway_orders

        total_expenses = sum(line.amount for line in lines)
        total_costs = food_cost + packaging_cost + total_expenses
        net = plan.revenue - total_costs
        margin = (net / plan.revenue) * 100 if plan.revenue > 0 else 0.0

        return BalanceProjection(
            daily_revenue=daily_revenue,
            daily_items=daily_items,
            daily_takeaway_items=daily_takeaway,
            daily_ingredient_cost=daily_food,
            packaging_cost_per_order=per_order,
            monthly_revenue=plan.revenue,
            monthly_food_cost=food_cost,
            monthly_packaging_cost=packaging_cost,
            expense_lines=lines,
            total_expenses=total_expenses,
            total_monthly_costs=total_costs,
            net_profit=net,
            profit_margin=margin,
            tax=self.tax_summary(net, plan.revenue, sum(line.deductible_vat for line in lines)),
        )

    def tax_summary(self, monthly_profit: float, revenue: float, deductible_vat: float) -> TaxSummary:
        company = self.store.state.company
        ctype = company.type if company else CompanyType.SAHIS
        annual_profit = monthly_profit * 12
        annual_tax = tax.calculate_income_tax(annual_profit, ctype)
        income_vat = revenue * (self.settings.revenue_vat_rate / 100)
        return TaxSummary(
            company_type=ctype,
            monthly_profit=monthly_profit,
            annual_profit=annual_profit,
            annual_tax=annual_tax,
            monthly_tax=annual_tax / 12,
            income_vat=income_vat,
            deductible_vat=deductible_vat,
            vat_difference=income_vat - deductible_vat,
        )
