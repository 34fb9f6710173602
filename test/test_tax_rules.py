import pytest

from rasyon.domain import tax
from rasyon.domain.models import (
    CompanyType,
    DailySale,
    Invoice,
    MonthlyMonthData,
    TaxMethod,
    VatEntry,
)


def test_income_tax_second_bracket():
    assert tax.calculate_income_tax(200_000, CompanyType.SAHIS) == pytest.approx(32_100)


def test_income_tax_brackets_are_continuous():
    for upper, _base, _lower, _rate in tax.INCOME_TAX_BRACKETS[:-1]:
        below = tax.calculate_income_tax(upper - 0.01)
        at = tax.calculate_income_tax(upper)
        above = tax.calculate_income_tax(upper + 0.01)
        assert below <= at <= above
        assert above - below < 1


def test_income_tax_is_monotonic_and_zero_for_losses():
    values = [tax.calculate_income_tax(p) for p in range(0, 5_000_000, 50_000)]
    assert values == sorted(values)
    assert tax.calculate_income_tax(0) == 0
    assert tax.calculate_income_tax(-10_000, "limited") == 0


def test_limited_company_pays_flat_corporate_rate():
    assert tax.calculate_income_tax(100_000, "limited") == pytest.approx(25_000)
    assert tax.calculate_monthly_income_tax(10_000, CompanyType.LIMITED) == pytest.approx(2_500)


def test_monthly_tax_is_annualized():
    # 120k a year -> 15% -> 18k -> 1.5k a month
    assert tax.calculate_monthly_income_tax(10_000) == pytest.approx(1_500)


def test_vat_status_payable_and_carry_over():
    status = tax.calculate_vat_status(5_000, 3_000)
    assert status.payable_vat == pytest.approx(2_000)
    assert status.carry_over_to_next == 0

    status = tax.calculate_vat_status(1_000, 800, carry_in_vat=500)
    assert status.payable_vat == 0
    assert status.carry_over_to_next == pytest.approx(300)


@pytest.mark.parametrize("income,deductible,carry", [(0, 0, 0), (100, 100, 0), (50, 10, 60), (900, 10, 1)])
def test_vat_status_never_both_positive(income, deductible, carry):
    status = tax.calculate_vat_status(income, deductible, carry)
    assert status.payable_vat >= 0 and status.carry_over_to_next >= 0
    assert status.payable_vat == 0 or status.carry_over_to_next == 0
    assert status.payable_vat - status.carry_over_to_next == pytest.approx(income - deductible - carry)


def test_previous_month_wraps_year():
    assert tax.previous_month_str("2025-01") == "2024-12"
    assert tax.previous_month_str("2025-10") == "2025-09"


def test_rent_withholding_grosses_up_net_payment():
    rw = tax.rent_withholding(8_000)
    assert rw.gross == pytest.approx(10_000)
    assert rw.withholding == pytest.approx(2_000)


def test_withholding_rent_has_no_deductible_vat():
    rent = Invoice(id="r", date="2025-01-05", supplier="Ev sahibi", amount=8_000, category="Kira", tax_method=TaxMethod.STOPAJ)
    kdv_rent = Invoice(id="k", date="2025-01-05", supplier="AVM", amount=8_000, category="Kira", tax_method=TaxMethod.KDV)
    assert tax.invoice_deductible_vat(rent) == 0
    assert tax.invoice_deductible_vat(kdv_rent) == pytest.approx(1_600)


def test_vat_breakdown_overrides_single_rate():
    inv = Invoice(
        id="i",
        date="2025-01-05",
        supplier="Metro",
        amount=300,
        vat_breakdown=(VatEntry(rate=1, amount=200), VatEntry(rate=20, amount=100)),
    )
    assert tax.invoice_deductible_vat(inv) == pytest.approx(22)


def _month(month_str, closed, cash=0.0, invoices=()):
    return MonthlyMonthData(
        id=month_str,
        month_str=month_str,
        is_closed=closed,
        daily_sales=(DailySale(id="s", date=f"{month_str}-01", cash=cash, total_amount=cash),),
        invoices=tuple(invoices),
    )


def test_carry_over_chain_uses_closed_months_before_target():
    big_invoice = Invoice(id="i1", date="2025-01-10", supplier="Metro", amount=1_000, tax_rate=20)
    closings = [
        # 100 income VAT vs 200 deductible -> 100 carried
        _month("2025-01", True, cash=1_000, invoices=[big_invoice]),
        # open: ignored even though it would add credit
        _month("2025-02", False, cash=0, invoices=[big_invoice]),
        _month("2025-03", True, cash=50_000),
    ]
    carry = tax.available_vat_carry_over("2025-03", closings, 10, 10, 20)
    assert carry == pytest.approx(100)

    assert tax.available_vat_carry_over("2025-01", closings, 10, 10, 20) == 0
    # March pays 5000 - 100, nothing left to carry
    assert tax.available_vat_carry_over("2025-04", closings, 10, 10, 20) == 0


def test_commission_vat_counts_as_deductible():
    month = MonthlyMonthData(
        id="2025-05",
        month_str="2025-05",
        daily_sales=(DailySale(id="s", date="2025-05-01", yemeksepeti=1_000, trendyol=1_000, total_amount=2_000),),
    )
    assert tax.month_commission_cost(month, 10) == pytest.approx(200)
    assert tax.month_deductible_vat(month, 10, 20) == pytest.approx(40)
