from __future__ import annotations

import argparse
import logging
import sys

from rasyon import __version__
from rasyon.application.container import AppContainer, build_container
from rasyon.config import get_app_paths, load_settings, paths_for_db
from rasyon.domain.errors import AppError
from rasyon.domain.formatting import format_currency, format_percent
from rasyon.logging_config import setup_logging

log = logging.getLogger("rasyon.main")


def _cmd_summary(c: AppContainer, args) -> None:
    state = c.store.state
    p = c.planning.balance()
    company = state.company.name if state.company else "-"
    print(f"Firma: {company}")
    print(f"Reçete: {len(state.recipes)}  Hammadde: {len(state.raw_ingredients)}  Ara ürün: {len(state.intermediate_products)}")
    print(f"Aylık ciro:     {format_currency(p.monthly_revenue)}")
    print(f"Toplam maliyet: {format_currency(p.total_monthly_costs)}")
    print(f"Net kar:        {format_currency(p.net_profit)} ({format_percent(p.profit_margin)})")
    print(f"Aylık vergi:    {format_currency(p.tax.monthly_tax)}")
    print(f"KDV farkı:      {format_currency(p.tax.vat_difference)}")


def _cmd_month(c: AppContainer, args) -> None:
    b = c.accounting.month_balance(args.month)
    print(f"{b.month_str} ({'kapalı' if b.is_closed else 'açık'})")
    for line in b.lines:
        print(f"  {line.label:<36} {format_currency(line.amount)}")
    print(f"Ciro:            {format_currency(b.revenue)}")
    print(f"Toplam gider:    {format_currency(b.total_expenses)}")
    print(f"Net kar:         {format_currency(b.net_profit)}")
    print(f"Ödenecek KDV:    {format_currency(b.vat.payable_vat)}")
    print(f"Devreden KDV:    {format_currency(b.vat.carry_over_to_next)}")
    print(f"Vergi:           {format_currency(b.income_tax)}")


def _cmd_market(c: AppContainer, args) -> None:
    rows = c.market.analysis()
    if not rows:
        print("Eşleşmiş rakip fiyatı yok.")
        return
    for row in rows:
        print(f"{row.recipe.name}: bizim {format_currency(row.our_price)}, ortalama {format_currency(row.avg_price)} ({row.diff_percent:+.1f}%)")
        for competitor, price in sorted(row.prices_by_competitor.items()):
            print(f"  {competitor:<24} {format_currency(price)}")


def _cmd_close(c: AppContainer, args) -> None:
    c.accounting.close_month(args.month)
    c.store.save()
    print(f"{args.month} kapatıldı.")


def _cmd_reopen(c: AppContainer, args) -> None:
    c.accounting.reopen_month(args.month)
    c.store.save()
    print(f"{args.month} yeniden açıldı.")


def _cmd_export(c: AppContainer, args) -> None:
    path = c.backup.export_json(args.path)
    print(f"Yedek yazıldı: {path}")


def _cmd_import(c: AppContainer, args) -> None:
    state = c.backup.import_json(args.path)
    c.store.save()
    print(f"İçe aktarıldı: {len(state.recipes)} reçete, {len(state.monthly_closings)} ay.")


def _cmd_report(c: AppContainer, args) -> None:
    c.reporting.export_month_report_excel(args.path, args.month)
    print(f"Rapor yazıldı: {args.path}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rasyon", description="Restaurant cost accounting and tax bookkeeping")
    parser.add_argument("--version", action="version", version=f"rasyon {__version__}")
    parser.add_argument("--db", default=None, help="Database file path")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("summary", help="Planned monthly balance").set_defaults(func=_cmd_summary)
    sub.add_parser("market", help="Competitor price comparison").set_defaults(func=_cmd_market)

    for name, func, help_text in (
        ("month", _cmd_month, "Balance of one month"),
        ("close", _cmd_close, "Close a month"),
        ("reopen", _cmd_reopen, "Reopen a closed month"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("month", help="YYYY-MM")
        p.set_defaults(func=func)

    p = sub.add_parser("export", help="Write a JSON backup")
    p.add_argument("path", nargs="?", default=None)
    p.set_defaults(func=_cmd_export)

    p = sub.add_parser("import", help="Restore a JSON backup")
    p.add_argument("path")
    p.set_defaults(func=_cmd_import)

    p = sub.add_parser("report", help="Monthly xlsx report")
    p.add_argument("month", help="YYYY-MM")
    p.add_argument("path")
    p.set_defaults(func=_cmd_report)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    paths = paths_for_db(args.db) if args.db else get_app_paths()
    setup_logging(paths.logs_dir, level=logging.INFO)

    try:
        container = build_container(paths.db_path, load_settings(), exports_dir=paths.exports_dir)
        args.func(container, args)
    except AppError as e:
        log.warning("command_failed command=%s error=%s", args.command, e)
        print(f"Hata: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        log.error("command_io_failed command=%s error=%s", args.command, e)
        print(f"Hata: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
