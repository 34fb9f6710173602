from __future__ import annotations

import logging
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo

from rasyon.domain.models import SALE_CHANNELS
from rasyon.services.accounting_service import AccountingService
from rasyon.services.planning_service import PlanningService

log = logging.getLogger("rasyon.reporting")

GROUP_LABELS = {
    "general": "Genel Giderler",
    "production": "Üretim Giderleri",
    "sales": "Satış Giderleri",
    "personnel": "Personel Giderleri",
}


def _money(cell):
    cell.number_format = "#,##0.00"


def _pct(cell):
    cell.number_format = "0.00%"


def _bold_row(ws, r):
    for c in ws[r]:
        c.font = Font(bold=True)


def _set_widths(ws, widths: dict[str, int]):
    for col, w in widths.items():
        ws.column_dimensions[col].width = w


def _add_table(ws, name: str, start_row: int, start_col: int, end_row: int, end_col: int):
    ref = f"{get_column_letter(start_col)}{start_row}:{get_column_letter(end_col)}{end_row}"
    tab = Table(displayName=name, ref=ref)
    tab.tableStyleInfo = TableStyleInfo(
        name="TableStyleMedium9",
        showRowStripes=True,
        showColumnStripes=False,
    )
    ws.add_table(tab)


class ReportingService:
    def __init__(self, accounting: AccountingService, planning: PlanningService):
        self.accounting = accounting
        self.planning = planning

    def export_month_report_excel(self, path: Path | str, month_str: str) -> None:
        month = self.accounting.get_month(month_str)
        balance = self.accounting.month_balance(month_str)
        wb = Workbook()

        # -------- 1) Summary --------
        ws = wb.active
        ws.title = "Summary"
        ws["A1"] = f"Aylık Özet {month_str}"
        ws["A1"].font = Font(bold=True, size=14)
        ws["A3"] = "Durum"
        ws["B3"] = "Kapalı" if month.is_closed else "Açık"

        rows = [
            ("Ciro", balance.revenue, "money"),
            ("Online Satış", balance.online_sales, "money"),
            ("Toplam Gider", balance.total_expenses, "money"),
            ("Net Kar", balance.net_profit, "money"),
            ("Kar Marjı", (balance.net_profit / balance.revenue) if balance.revenue else 0.0, "pct"),
            ("Hesaplanan KDV", balance.income_vat, "money"),
            ("İndirilecek KDV", balance.deductible_vat, "money"),
            ("Devreden KDV (Giriş)", balance.vat_carry_in, "money"),
            ("Ödenecek KDV", balance.vat.payable_vat, "money"),
            ("Sonraki Aya Devreden KDV", balance.vat.carry_over_to_next, "money"),
            ("Gelir/Kurumlar Vergisi", balance.income_tax, "money"),
            ("Kira Stopajı", balance.rent_withholding, "money"),
        ]
        for i, (label, val, kind) in enumerate(rows):
            r = 5 + i
            ws[f"A{r}"] = label
            ws[f"B{r}"] = float(val)
            if kind == "money":
                _money(ws[f"B{r}"])
            else:
                _pct(ws[f"B{r}"])
        _set_widths(ws, {"A": 28, "B": 20})

        # -------- 2) Invoices --------
        ws2 = wb.create_sheet("Invoices")
        ws2.append(["Tarih", "Tedarikçi", "Açıklama", "Kategori", "Tutar", "KDV %", "Vergi Yöntemi", "Durum"])
        _bold_row(ws2, 1)
        for out_row, inv in enumerate(sorted(month.invoices, key=lambda i: i.date), start=2):
            ws2.append([
                inv.date, inv.supplier, inv.description, inv.category,
                float(inv.amount), float(inv.tax_rate),
                inv.tax_method.value if inv.tax_method else "", inv.status,
            ])
            _money(ws2[f"E{out_row}"])
        ws2.freeze_panes = "A2"
        _set_widths(ws2, {"A": 12, "B": 24, "C": 30, "D": 16, "E": 14, "F": 8, "G": 14, "H": 10})
        if ws2.max_row >= 2:
            _add_table(ws2, "InvoiceList", 1, 1, ws2.max_row, 8)

        # -------- 3) Daily Sales --------
        ws3 = wb.create_sheet("Daily Sales")
        ws3.append(["Tarih", *SALE_CHANNELS, "Toplam", "Not"])
        _bold_row(ws3, 1)
        total_col = get_column_letter(len(SALE_CHANNELS) + 2)
        for out_row, sale in enumerate(sorted(month.daily_sales, key=lambda s: s.date), start=2):
            ws3.append([sale.date, *(float(getattr(sale, c)) for c in SALE_CHANNELS), float(sale.total_amount), sale.note or ""])
            for col in range(2, len(SALE_CHANNELS) + 3):
                _money(ws3.cell(row=out_row, column=col))
        ws3.freeze_panes = "A2"
        _set_widths(ws3, {"A": 12, total_col: 16})
        if ws3.max_row >= 2:
            _add_table(ws3, "DailySalesList", 1, 1, ws3.max_row, len(SALE_CHANNELS) + 3)

        # -------- 4) Balance --------
        ws4 = wb.create_sheet("Balance")
        ws4.append(["Grup", "Kalem", "Tutar"])
        _bold_row(ws4, 1)
        for line in balance.lines:
            ws4.append([GROUP_LABELS[line.group.value], line.label, float(line.amount)])
            _money(ws4[f"C{ws4.max_row}"])
        ws4.append([])
        for group, total in balance.group_totals.items():
            ws4.append([GROUP_LABELS[group.value], "Toplam", float(total)])
            _money(ws4[f"C{ws4.max_row}"])
        _set_widths(ws4, {"A": 20, "B": 34, "C": 16})

        wb.save(path)
        log.info("month_report_written month=%s path=%s", month_str, path)

    def export_recipe_costs_excel(self, path: Path | str) -> None:
        state = self.planning.store.state
        wb = Workbook()
        ws = wb.active
        ws.title = "Recipes"
        ws.append(["Reçete", "Maliyet", "Çarpan", "Satış Fiyatı", "Gıda Maliyeti %"])
        _bold_row(ws, 1)
        for r, recipe in enumerate(state.recipes, start=2):
            ratio = (recipe.total_cost / recipe.calculated_price) if recipe.calculated_price else 0.0
            ws.append([recipe.name, recipe.total_cost, recipe.cost_multiplier, recipe.calculated_price, ratio])
            _money(ws[f"B{r}"])
            _money(ws[f"D{r}"])
            _pct(ws[f"E{r}"])
        ws.freeze_panes = "A2"
        _set_widths(ws, {"A": 30, "B": 14, "C": 10, "D": 14, "E": 16})
        if ws.max_row >= 2:
            _add_table(ws, "RecipeCosts", 1, 1, ws.max_row, 5)

        ws2 = wb.create_sheet("Plan")
        projection = self.planning.balance()
        for label, val in (
            ("Aylık Ciro", projection.monthly_revenue),
            ("Gıda Maliyeti", projection.monthly_food_cost),
            ("Ambalaj", projection.monthly_packaging_cost),
            ("Giderler", projection.total_expenses),
            ("Net Kar", projection.net_profit),
            ("Aylık Vergi", projection.tax.monthly_tax),
            ("KDV Farkı", projection.tax.vat_difference),
        ):
            ws2.append([label, float(val)])
            _money(ws2[f"B{ws2.max_row}"])
        _set_widths(ws2, {"A": 22, "B": 16})

        wb.save(path)
        log.info("recipe_report_written recipes=%s path=%s", len(state.recipes), path)
