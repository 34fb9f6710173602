from __future__ import annotations

import math

from babel.numbers import format_currency as _babel_currency
from babel.numbers import format_decimal


LOCALE = "tr_TR"
CURRENCY = "TRY"
ZERO_CURRENCY = "0,00 ₺"


def _is_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value)


def format_currency(amount: object) -> str:
    if not _is_number(amount):
        return ZERO_CURRENCY
    return _babel_currency(amount, CURRENCY, locale=LOCALE)


def format_number(amount: object) -> str:
    if not _is_number(amount):
        return "0"
    return format_decimal(amount, format="#,##0.###", locale=LOCALE)


def format_percent(value: float, digits: int = 1) -> str:
    return f"%{value:.{digits}f}"
