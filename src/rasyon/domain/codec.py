"""
Document mapping between domain dataclasses and the camelCase JSON shape used
by the remote document store and by backup files.
"""
from __future__ import annotations

import dataclasses
import types
import typing
from enum import Enum
from functools import lru_cache
from typing import Any, Iterable, Optional, Union

from rasyon.domain.errors import ImportFormatError
from rasyon.domain.models import AppState, Expense, MonthlyMonthData

# Dataclass field -> document key, where it is not the plain camelCase name.
KEY_OVERRIDES: dict[tuple[type, str], str] = {
    (Expense, "kind"): "category",
}

# AppState fields mirrored into the per-user document. Monthly ledgers live
# in their own per-month documents.
PERSISTED_FIELDS: tuple[str, ...] = (
    "company",
    "online_commission_rate",
    "days_worked_in_month",
    "recipes",
    "sales_targets",
    "expenses",
    "packaging_costs",
    "raw_ingredients",
    "ingredient_categories",
    "intermediate_products",
    "recipe_categories",
    "market_prices",
    "suppliers",
    "supplier_order_slips",
    "supplier_invoices",
    "supplier_payments",
)


def camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(p.capitalize() for p in rest)


def doc_key(cls: type, field_name: str) -> str:
    return KEY_OVERRIDES.get((cls, field_name), camel(field_name))


# ---------- encode ----------
def encode(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        out = {}
        for f in dataclasses.fields(value):
            v = getattr(value, f.name)
            if v is None:
                continue
            out[doc_key(type(value), f.name)] = encode(v)
        return out
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (tuple, list)):
        return [encode(v) for v in value]
    return value


def encode_state(state: AppState, fields: Iterable[str] = PERSISTED_FIELDS) -> dict:
    return {camel(name): encode(getattr(state, name)) for name in fields}


def encode_month(month: MonthlyMonthData) -> dict:
    return encode(month)


# ---------- decode ----------
@lru_cache(maxsize=None)
def _hints(cls: type) -> dict[str, Any]:
    return typing.get_type_hints(cls)


def _unwrap_optional(tp: Any) -> tuple[Any, bool]:
    origin = typing.get_origin(tp)
    if origin in (Union, types.UnionType):
        args = [a for a in typing.get_args(tp) if a is not type(None)]
        if len(args) == 1:
            return args[0], True
    return tp, False


def _decode_value(tp: Any, raw: Any, where: str) -> Any:
    tp, optional = _unwrap_optional(tp)
    if raw is None:
        if optional:
            return None
        raise ImportFormatError(f"{where} must not be null.")

    origin = typing.get_origin(tp)
    if origin is tuple:
        if not isinstance(raw, list):
            raise ImportFormatError(f"{where} must be a list.")
        item_tp = typing.get_args(tp)[0]
        return tuple(_decode_value(item_tp, item, f"{where}[{i}]") for i, item in enumerate(raw))

    if dataclasses.is_dataclass(tp):
        return decode(tp, raw, where)

    try:
        if isinstance(tp, type) and issubclass(tp, Enum):
            return tp(raw)
        if tp is bool:
            return bool(raw)
        if tp is float:
            return float(raw)
        if tp is int:
            return int(raw)
        if tp is str:
            return str(raw)
    except (TypeError, ValueError) as e:
        raise ImportFormatError(f"{where}: invalid value {raw!r}") from e
    return raw


def decode(cls: type, doc: Any, where: Optional[str] = None) -> Any:
    where = where or cls.__name__
    if not isinstance(doc, dict):
        raise ImportFormatError(f"{where} must be an object.")

    hints = _hints(cls)
    kwargs = {}
    for f in dataclasses.fields(cls):
        key = doc_key(cls, f.name)
        has_default = f.default is not dataclasses.MISSING or f.default_factory is not dataclasses.MISSING
        if key not in doc or doc[key] is None:
            if has_default:
                continue
            if typing.get_origin(hints[f.name]) is tuple:
                kwargs[f.name] = ()
                continue
            raise ImportFormatError(f"{where} is missing '{key}'.")
        kwargs[f.name] = _decode_value(hints[f.name], doc[key], f"{where}.{key}")
    return cls(**kwargs)


def decode_state(doc: dict, base: Optional[AppState] = None) -> AppState:
    """Overlay the fields present in ``doc`` onto ``base`` (defaults when omitted)."""
    base = base or AppState()
    hints = _hints(AppState)
    changes = {}
    for f in dataclasses.fields(AppState):
        key = camel(f.name)
        if key in doc:
            changes[f.name] = _decode_value(hints[f.name], doc[key], key)
    return dataclasses.replace(base, **changes)


def decode_month(doc: dict) -> MonthlyMonthData:
    return decode(MonthlyMonthData, doc)
