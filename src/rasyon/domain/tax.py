from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from rasyon.domain.models import CompanyType, Invoice, MonthlyMonthData, TaxMethod

CORPORATE_TAX_RATE = 0.25

# 2025 income tax brackets for sole proprietorships:
# (upper bound, base tax at lower bound, lower bound, marginal rate)
INCOME_TAX_BRACKETS: tuple[tuple[float, float, float, float], ...] = (
    (158_000, 0, 0, 0.15),
    (330_000, 23_700, 158_000, 0.20),
    (800_000, 58_100, 330_000, 0.27),
    (4_300_000, 185_000, 800_000, 0.35),
    (float("inf"), 1_410_000, 4_300_000, 0.40),
)

STOPAJ_RATE = 0.20
DEFAULT_INVOICE_VAT_RATE = 20.0
RENT_CATEGORY = "kira"


@dataclass(frozen=True)
class VatStatus:
    payable_vat: float
    carry_over_to_next: float


@dataclass(frozen=True)
class RentWithholding:
    net: float
    gross: float
    withholding: float


def calculate_income_tax(annual_profit: float, company_type: CompanyType | str = CompanyType.SAHIS) -> float:
    """Annual income tax for the given annual profit. Losses are not taxed."""
    if annual_profit <= 0:
        return 0.0

    if CompanyType(company_type) is CompanyType.LIMITED:
        return annual_profit * CORPORATE_TAX_RATE

    for upper, base, lower, rate in INCOME_TAX_BRACKETS:
        if annual_profit <= upper:
            return base + (annual_profit - lower) * rate
    raise AssertionError("unreachable: last bracket is unbounded")


def calculate_monthly_income_tax(monthly_profit: float, company_type: CompanyType | str = CompanyType.SAHIS) -> float:
    """Monthly share of the tax on the annualized (x12) monthly profit."""
    return calculate_income_tax(monthly_profit * 12, company_type) / 12


def calculate_vat_status(income_vat: float, deductible_vat: float, carry_in_vat: float = 0.0) -> VatStatus:
    balance = income_vat - (deductible_vat + carry_in_vat)
    if balance > 0:
        return VatStatus(payable_vat=balance, carry_over_to_next=0.0)
    return VatStatus(payable_vat=0.0, carry_over_to_next=-balance)


def previous_month_str(month_str: str) -> str:
    year, month = (int(p) for p in month_str.split("-"))
    if month == 1:
        return f"{year - 1}-12"
    return f"{year}-{month - 1:02d}"


def rent_withholding(net_amount: float) -> RentWithholding:
    """Gross up a net rent payment to its 80% base and withhold 20% of the gross."""
    gross = net_amount / (1 - STOPAJ_RATE)
    return RentWithholding(net=net_amount, gross=gross, withholding=gross * STOPAJ_RATE)


def is_rent(invoice: Invoice) -> bool:
    return (invoice.category or "").strip().lower() == RENT_CATEGORY


def is_withholding_rent(invoice: Invoice) -> bool:
    return is_rent(invoice) and invoice.tax_method == TaxMethod.STOPAJ


def invoice_deductible_vat(invoice: Invoice) -> float:
    if is_withholding_rent(invoice):
        return 0.0
    if invoice.vat_breakdown:
        return sum(e.amount * (e.rate / 100) for e in invoice.vat_breakdown)
    rate = invoice.tax_rate if invoice.tax_rate is not None else DEFAULT_INVOICE_VAT_RATE
    return (invoice.amount or 0.0) * (rate / 100)


def month_revenue(month: MonthlyMonthData) -> float:
    return sum(s.total_amount or 0.0 for s in month.daily_sales)


def month_online_sales(month: MonthlyMonthData) -> float:
    return sum(s.online_total for s in month.daily_sales)


def month_commission_cost(month: MonthlyMonthData, online_commission_rate: float) -> float:
    return month_online_sales(month) * (online_commission_rate / 100)


def month_income_vat(month: MonthlyMonthData, revenue_vat_rate: float) -> float:
    return month_revenue(month) * (revenue_vat_rate / 100)


def month_deductible_vat(
    month: MonthlyMonthData,
    online_commission_rate: float,
    commission_vat_rate: float,
) -> float:
    commission_vat = month_commission_cost(month, online_commission_rate) * (commission_vat_rate / 100)
    return commission_vat + sum(invoice_deductible_vat(inv) for inv in month.invoices)


def available_vat_carry_over(
    target_month_str: str,
    monthly_closings: Iterable[MonthlyMonthData],
    online_commission_rate: float,
    revenue_vat_rate: float,
    commission_vat_rate: float,
) -> float:
    """
    VAT credit carried into ``target_month_str``.

    Folds over the closed months in chronological order, stopping at the
    target month, and threads each month's carry-over into the next.
    """
    closed = sorted((m for m in monthly_closings if m.is_closed), key=lambda m: m.month_str)

    carry = 0.0
    for month in closed:
        if month.month_str >= target_month_str:
            break
        status = calculate_vat_status(
            month_income_vat(month, revenue_vat_rate),
            month_deductible_vat(month, online_commission_rate, commission_vat_rate),
            carry,
        )
        carry = status.carry_over_to_next
    return carry
