from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from rasyon.config import AppSettings
from rasyon.domain import tax
from rasyon.domain.errors import NotFoundError, PeriodClosedError, ValidationError
from rasyon.domain.expenses import BALANCE_BUCKETS, OTHER_BUCKET, classify_invoice
from rasyon.domain.models import (
    SALE_CHANNELS,
    AppState,
    CompanyType,
    DailySale,
    ExpenseGroup,
    Invoice,
    MonthlyMonthData,
    TaxMethod,
    VatEntry,
)
from rasyon.services.state_service import StateService, new_id

log = logging.getLogger("rasyon.accounting")

MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")
DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
COMMISSION_KEY = "commission"
COMMISSION_LABEL = "Online Platform Komisyonları"


@dataclass(frozen=True)
class BalanceLine:
    key: str
    label: str
    group: ExpenseGroup
    amount: float


@dataclass(frozen=True)
class MonthBalance:
    month_str: str
    is_closed: bool
    revenue: float
    online_sales: float
    lines: tuple[BalanceLine, ...]
    group_totals: dict[ExpenseGroup, float]
    total_expenses: float
    net_profit: float
    income_vat: float
    deductible_vat: float
    vat_carry_in: float
    vat: tax.VatStatus
    income_tax: float
    rent_withholding: float


def check_month_str(month_str: str) -> str:
    if not MONTH_RE.match(month_str or ""):
        raise ValidationError(f"Month must be YYYY-MM, got {month_str!r}.")
    return month_str


def _check_date(date: str, month_str: str) -> str:
    if not DATE_RE.match(date or ""):
        raise ValidationError(f"Date must be YYYY-MM-DD, got {date!r}.")
    if not date.startswith(month_str):
        raise ValidationError(f"Date {date} is outside {month_str}.")
    return date


class AccountingService:
    """Monthly ledgers: invoices, daily sales, month locking and the month balance."""

    def __init__(self, store: StateService, settings: AppSettings | None = None):
        self.store = store
        self.settings = settings or store.settings

    # ---------- Months ----------
    def list_months(self) -> list[MonthlyMonthData]:
        return sorted(self.store.state.monthly_closings, key=lambda m: m.month_str)

    def get_month(self, month_str: str) -> MonthlyMonthData:
        check_month_str(month_str)
        for m in self.store.state.monthly_closings:
            if m.month_str == month_str:
                return m
        return MonthlyMonthData(id=month_str, month_str=month_str)

    def _open_month(self, month_str: str) -> MonthlyMonthData:
        month = self.get_month(month_str)
        if month.is_closed:
            raise PeriodClosedError(f"{month_str} is closed. Reopen it before editing.")
        return month

    def _put_month(self, month: MonthlyMonthData) -> AppState:
        state = self.store.state
        others = tuple(m for m in state.monthly_closings if m.month_str != month.month_str)
        months = tuple(sorted(others + (month,), key=lambda m: m.month_str))
        return self.store.commit(replace(state, monthly_closings=months), months=(month.month_str,))

    def delete_month(self, month_str: str) -> AppState:
        state = self.store.state
        months = tuple(m for m in state.monthly_closings if m.month_str != month_str)
        if len(months) == len(state.monthly_closings):
            raise NotFoundError("Month not found.")
        log.info("month_deleted month=%s", month_str)
        return self.store.commit(replace(state, monthly_closings=months), deleted_months=(month_str,))

    # ---------- Invoices ----------
    @staticmethod
    def _make_invoice(
        month_str: str,
        date: str,
        supplier: str,
        amount: float,
        description: str = "",
        category: str = "diger",
        tax_rate: float = tax.DEFAULT_INVOICE_VAT_RATE,
        status: str = "paid",
        payment_date: Optional[str] = None,
        tax_method: Optional[str] = None,
        vat_breakdown=(),
        invoice_id: Optional[str] = None,
    ) -> Invoice:
        supplier = (supplier or "").strip()
        if not supplier:
            raise ValidationError("Supplier is required.")
        if amount < 0:
            raise ValidationError("Amount must be >= 0.")
        if not 0 <= tax_rate <= 100:
            raise ValidationError("Tax rate must be between 0 and 100.")
        if status not in ("paid", "pending"):
            raise ValidationError("Status must be 'paid' or 'pending'.")

        entries = tuple(
            e if isinstance(e, VatEntry) else VatEntry(
                rate=float(e["rate"]), amount=float(e["amount"]), category=e.get("category") or "diger"
            )
            for e in vat_breakdown or ()
        )
        invoice = Invoice(
            id=invoice_id or new_id(),
            date=_check_date(date, month_str),
            supplier=supplier,
            amount=float(amount),
            description=description or "",
            category=category or "diger",
            tax_rate=float(tax_rate),
            status=status,
            payment_date=payment_date,
            tax_method=TaxMethod(tax_method) if tax_method else None,
            vat_breakdown=entries,
        )
        if tax.is_rent(invoice) and invoice.tax_method is None:
            invoice = replace(invoice, tax_method=TaxMethod.STOPAJ)
        return invoice

    def add_invoice(self, month_str: str, date: str, supplier: str, amount: float, **kwargs) -> AppState:
        month = self._open_month(month_str)
        try:
            invoice = self._make_invoice(month_str, date, supplier, amount, **kwargs)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        log.info("invoice_added month=%s id=%s amount=%.2f", month_str, invoice.id, invoice.amount)
        return self._put_month(replace(month, invoices=month.invoices + (invoice,)))

    def update_invoice(self, month_str: str, invoice_id: str, **changes) -> AppState:
        month = self._open_month(month_str)
        current = next((i for i in month.invoices if i.id == invoice_id), None)
        if current is None:
            raise NotFoundError("Invoice not found.")
        merged = {
            "date": current.date,
            "supplier": current.supplier,
            "amount": current.amount,
            "description": current.description,
            "category": current.category,
            "tax_rate": current.tax_rate,
            "status": current.status,
            "payment_date": current.payment_date,
            "tax_method": current.tax_method.value if current.tax_method else None,
            "vat_breakdown": current.vat_breakdown,
        }
        unknown = set(changes) - set(merged)
        if unknown:
            raise ValidationError(f"Unknown invoice fields: {sorted(unknown)}")
        merged.update(changes)
        try:
            updated = self._make_invoice(month_str, invoice_id=invoice_id, **merged)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        invoices = tuple(updated if i.id == invoice_id else i for i in month.invoices)
        return self._put_month(replace(month, invoices=invoices))

    def remove_invoice(self, month_str: str, invoice_id: str) -> AppState:
        month = self._open_month(month_str)
        invoices = tuple(i for i in month.invoices if i.id != invoice_id)
        if len(invoices) == len(month.invoices):
            raise NotFoundError("Invoice not found.")
        return self._put_month(replace(month, invoices=invoices))

    # ---------- Daily sales ----------
    @staticmethod
    def _make_sale(month_str: str, date: str, channels: dict, note: Optional[str], sale_id: Optional[str]) -> DailySale:
        unknown = set(channels) - set(SALE_CHANNELS) - {"online", "total_amount"}
        if unknown:
            raise ValidationError(f"Unknown sales channels: {sorted(unknown)}")
        values = {k: float(v or 0) for k, v in channels.items()}
        if any(v < 0 for v in values.values()):
            raise ValidationError("Sales amounts must be >= 0.")
        if "total_amount" not in values:
            values["total_amount"] = sum(values.get(c, 0.0) for c in SALE_CHANNELS) + values.get("online", 0.0)
        return DailySale(id=sale_id or new_id(), date=_check_date(date, month_str), note=note, **values)

    def add_daily_sale(self, month_str: str, date: str, note: Optional[str] = None, **channels) -> AppState:
        """Channel amounts as keyword arguments; total_amount defaults to their sum."""
        month = self._open_month(month_str)
        sale = self._make_sale(month_str, date, channels, note, None)
        log.info("daily_sale_added month=%s date=%s total=%.2f", month_str, sale.date, sale.total_amount)
        return self._put_month(replace(month, daily_sales=month.daily_sales + (sale,)))

    def update_daily_sale(self, month_str: str, sale_id: str, date: Optional[str] = None, note: Optional[str] = None, **channels) -> AppState:
        month = self._open_month(month_str)
        current = next((s for s in month.daily_sales if s.id == sale_id), None)
        if current is None:
            raise NotFoundError("Daily sale not found.")
        merged = {c: getattr(current, c) for c in SALE_CHANNELS + ("online",)}
        merged.update(channels)
        updated = self._make_sale(
            month_str,
            date or current.date,
            merged,
            current.note if note is None else note,
            sale_id,
        )
        sales = tuple(updated if s.id == sale_id else s for s in month.daily_sales)
        return self._put_month(replace(month, daily_sales=sales))

    def remove_daily_sale(self, month_str: str, sale_id: str) -> AppState:
        month = self._open_month(month_str)
        sales = tuple(s for s in month.daily_sales if s.id != sale_id)
        if len(sales) == len(month.daily_sales):
            raise NotFoundError("Daily sale not found.")
        return self._put_month(replace(month, daily_sales=sales))

    # ---------- Locking ----------
    def close_month(self, month_str: str) -> AppState:
        month = self._open_month(month_str)
        balance = self.month_balance(month_str)
        closed = replace(
            month,
            is_closed=True,
            closed_at=datetime.now().isoformat(timespec="seconds"),
            total_expenses=balance.total_expenses,
            total_income=balance.revenue,
            net_profit=balance.net_profit,
        )
        log.info("month_closed month=%s net=%.2f", month_str, balance.net_profit)
        return self._put_month(closed)

    def reopen_month(self, month_str: str) -> AppState:
        month = self.get_month(month_str)
        if not month.is_closed:
            return self.store.state
        log.info("month_reopened month=%s", month_str)
        return self._put_month(replace(month, is_closed=False, closed_at=None))

    # ---------- Balance ----------
    def vat_carry_in(self, month_str: str) -> float:
        state = self.store.state
        return tax.available_vat_carry_over(
            check_month_str(month_str),
            state.monthly_closings,
            state.online_commission_rate,
            self.settings.revenue_vat_rate,
            self.settings.commission_vat_rate,
        )

    def month_balance(self, month_str: str) -> MonthBalance:
        state = self.store.state
        month = self.get_month(month_str)

        amounts: dict[str, float] = {}
        rent_withheld = 0.0
        for invoice in month.invoices:
            bucket = classify_invoice(invoice)
            amount = invoice.amount
            if tax.is_withholding_rent(invoice):
                rw = tax.rent_withholding(amount)
                amount = rw.gross
                rent_withheld += rw.withholding
            amounts[bucket.key] = amounts.get(bucket.key, 0.0) + amount

        lines = [
            BalanceLine(b.key, b.label, b.group, amounts.get(b.key, 0.0))
            for b in BALANCE_BUCKETS + (OTHER_BUCKET,)
            if b.key in amounts
        ]
        commission = tax.month_commission_cost(month, state.online_commission_rate)
        if commission:
            lines.append(BalanceLine(COMMISSION_KEY, COMMISSION_LABEL, ExpenseGroup.SALES, commission))

        group_totals = {g: 0.0 for g in ExpenseGroup}
        for line in lines:
            group_totals[line.group] += line.amount

        revenue = tax.month_revenue(month)
        total_expenses = sum(line.amount for line in lines)
        net = revenue - total_expenses

        income_vat = tax.month_income_vat(month, self.settings.revenue_vat_rate)
        deductible = tax.month_deductible_vat(month, state.online_commission_rate, self.settings.commission_vat_rate)
        carry_in = self.vat_carry_in(month_str)
        company_type = state.company.type if state.company else CompanyType.SAHIS

        return MonthBalance(
            month_str=month_str,
            is_closed=month.is_closed,
            revenue=revenue,
            online_sales=tax.month_online_sales(month),
            lines=tuple(lines),
            group_totals=group_totals,
            total_expenses=total_expenses,
            net_profit=net,
            income_vat=income_vat,
            deductible_vat=deductible,
            vat_carry_in=carry_in,
            vat=tax.calculate_vat_status(income_vat, deductible, carry_in),
            income_tax=tax.calculate_monthly_income_tax(net, company_type),
            rent_withholding=rent_withheld,
        )
