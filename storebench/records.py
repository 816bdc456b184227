"""Records exchanged by the store's sales and reporting endpoints."""

from __future__ import annotations

import dataclasses
import json
import math
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

TAX_RATE = 0.08

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

_JSON_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


class _Record:
    """Base for records that encode as JSON objects with fields in declared order."""

    def _json_fields(self) -> Iterator[tuple[str, Any]]:
        for item in dataclasses.fields(self):  # type: ignore[arg-type]
            yield item.name, getattr(self, item.name)

    def _as_dict(self) -> dict[str, Any]:
        return {name: _plain(value) for name, value in self._json_fields()}

    def to_dict(self) -> dict[str, Any]:
        """Return the record as a plain dictionary keyed by JSON field names."""
        return self._as_dict()


def _plain(value: Any) -> Any:
    if isinstance(value, _Record):
        return value.to_dict()
    if isinstance(value, list):
        return [_plain(item) for item in value]
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    return value


@dataclass
class SaleItem(_Record):
    id: int = 0
    order_id: int = 0
    product_id: int = 0
    product_name: str = ""
    product_category: str = ""
    discount_id: int | None = None
    quantity: int = 0
    price: float = 0.0
    discount_amount: float = 0.0
    created_at: datetime = ZERO_TIME
    updated_at: datetime = ZERO_TIME

    def to_dict(self) -> dict[str, Any]:
        """Return the item as a plain dictionary keyed by JSON field names."""
        return self._as_dict()


@dataclass
class SalePayment(_Record):
    id: int = 0
    order_id: int = 0
    payment_type: str = ""
    amount: float = 0.0
    payment_info: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = ZERO_TIME
    updated_at: datetime = ZERO_TIME

    def to_dict(self) -> dict[str, Any]:
        """Return the payment as a plain dictionary keyed by JSON field names."""
        return self._as_dict()


@dataclass
class Sale(_Record):
    id: int = 0
    order_date: datetime = ZERO_TIME
    customer_id: int | None = None
    customer_name: str = ""
    discount_id: int | None = None
    order_type: str = ""
    subtotal: float = 0.0
    discount_amount: float = 0.0
    tax_amount: float = 0.0
    total: float = 0.0
    created_at: datetime = ZERO_TIME
    updated_at: datetime = ZERO_TIME
    items: list[SaleItem] = field(default_factory=list)
    payments: list[SalePayment] = field(default_factory=list)

    def _json_fields(self) -> Iterator[tuple[str, Any]]:
        # A sale without items or payments reports them as null, not as an empty list.
        for name, value in super()._json_fields():
            if name in ("items", "payments") and not value:
                value = None
            yield name, value

    def to_dict(self) -> dict[str, Any]:
        """Return the sale as a plain dictionary; empty item and payment lists become None."""
        return self._as_dict()


@dataclass
class OrderItem(_Record):
    product_id: int = 0
    quantity: int = 0
    discount_id: int | None = None


@dataclass
class OrderPayment(_Record):
    payment_type: str = ""
    amount: float = 0.0
    payment_info: dict[str, Any] | None = None


@dataclass
class Order(_Record):
    customer_id: int | None = None
    discount_id: int | None = None
    expected_total: float = 0.0
    items: list[OrderItem] = field(default_factory=list)
    payments: list[OrderPayment] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> Order:
        """Build an order from decoded JSON; missing fields take their zero values."""
        body = _mapping(data, "order")
        items = [
            OrderItem(
                product_id=_int(raw, "product_id"),
                quantity=_int(raw, "quantity"),
                discount_id=_optional_int(raw, "discount_id"),
            )
            for raw in (_mapping(entry, "items") for entry in _list(body, "items"))
        ]
        payments = [
            OrderPayment(
                payment_type=_str(raw, "payment_type"),
                amount=_float(raw, "amount"),
                payment_info=_optional_mapping(raw, "payment_info"),
            )
            for raw in (_mapping(entry, "payments") for entry in _list(body, "payments"))
        ]
        return cls(
            customer_id=_optional_int(body, "customer_id"),
            discount_id=_optional_int(body, "discount_id"),
            expected_total=_float(body, "expected_total"),
            items=items,
            payments=payments,
        )


@dataclass
class ItemSummary(_Record):
    name: str = ""
    category: str = ""
    total_quantity: int = 0
    total_sales: float = 0.0
    order_date: datetime = ZERO_TIME

    def to_dict(self) -> dict[str, Any]:
        """Return the summary as a plain dictionary keyed by JSON field names."""
        return self._as_dict()


@dataclass
class DailyRevenue(_Record):
    order_type: str = ""
    order_date: datetime = ZERO_TIME
    total_revenue: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Return the revenue line as a plain dictionary keyed by JSON field names."""
        return self._as_dict()


@dataclass
class CustomerTotals(_Record):
    id: int = 0
    name: str = ""
    total_sales: float = 0.0
    total_orders: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Return the totals as a plain dictionary keyed by JSON field names."""
        return self._as_dict()


@dataclass
class SaleReportLine(_Record):
    title: str = ""
    report_order: int = 0
    item_name: str = ""
    order_count: int = 0
    quantity: int = 0
    total_sales: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Return the report line as a plain dictionary keyed by JSON field names."""
        return self._as_dict()


@dataclass
class WeeklySaleReport(_Record):
    year: int = 0
    week_of_year: int = 0
    title: str = ""
    report_order: int = 0
    item_name: str = ""
    order_count: int = 0
    quantity: int = 0
    total_sales: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Return the weekly line as a plain dictionary keyed by JSON field names."""
        return self._as_dict()


def _mapping(value: Any, key: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise TypeError(f"{key}: expected an object, got {value!r}")
    return value


def _optional_mapping(data: Mapping[str, Any], key: str) -> dict[str, Any] | None:
    value = data.get(key)
    if value is None:
        return None
    return dict(_mapping(value, key))


def _list(data: Mapping[str, Any], key: str) -> list[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise TypeError(f"{key}: expected an array, got {value!r}")
    return value


def _number(value: Any, key: str) -> int | float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{key}: expected a number, got {value!r}")
    return value


def _int(data: Mapping[str, Any], key: str) -> int:
    value = data.get(key)
    return 0 if value is None else _as_int(value, key)


def _optional_int(data: Mapping[str, Any], key: str) -> int | None:
    value = data.get(key)
    return None if value is None else _as_int(value, key)


def _as_int(value: Any, key: str) -> int:
    number = _number(value, key)
    if isinstance(number, float) and not number.is_integer():
        raise TypeError(f"{key}: expected an integer, got {value!r}")
    return int(number)


def _float(data: Mapping[str, Any], key: str) -> float:
    value = data.get(key)
    return 0.0 if value is None else float(_number(value, key))


def _str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TypeError(f"{key}: expected a string, got {value!r}")
    return value


def _format_time(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
    )
    if moment.microsecond:
        text += "." + f"{moment.microsecond:06d}".rstrip("0")
    offset = moment.utcoffset() or timedelta(0)
    seconds = int(offset.total_seconds())
    if seconds == 0:
        return text + "Z"
    sign = "+" if seconds > 0 else "-"
    seconds = abs(seconds)
    return f"{text}{sign}{seconds // 3600:02d}:{seconds % 3600 // 60:02d}"


def _format_float(number: float) -> str:
    if math.isnan(number) or math.isinf(number):
        raise ValueError(f"unsupported value: {number!r}")
    magnitude = abs(number)
    if magnitude != 0 and (magnitude < 1e-6 or magnitude >= 1e21):
        mantissa, _, exponent = repr(number).partition("e")
        if exponent.startswith("-0"):
            exponent = "-" + exponent[2:]
        return f"{mantissa}e{exponent}"
    text = format(Decimal(repr(number)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _encode_string(text: str) -> str:
    encoded = json.dumps(text, ensure_ascii=False)
    for raw, escaped in _JSON_ESCAPES.items():
        encoded = encoded.replace(raw, escaped)
    return encoded


def _encode(value: Any, out: list[str]) -> None:
    if value is None:
        out.append("null")
    elif value is True:
        out.append("true")
    elif value is False:
        out.append("false")
    elif isinstance(value, _Record):
        out.append("{")
        for position, (name, item) in enumerate(value._json_fields()):
            if position:
                out.append(",")
            out.append(_encode_string(name))
            out.append(":")
            _encode(item, out)
        out.append("}")
    elif isinstance(value, Mapping):
        out.append("{")
        for position, key in enumerate(sorted(value)):
            if position:
                out.append(",")
            out.append(_encode_string(str(key)))
            out.append(":")
            _encode(value[key], out)
        out.append("}")
    elif isinstance(value, (list, tuple)):
        out.append("[")
        for position, item in enumerate(value):
            if position:
                out.append(",")
            _encode(item, out)
        out.append("]")
    elif isinstance(value, str):
        out.append(_encode_string(value))
    elif isinstance(value, datetime):
        out.append(_encode_string(_format_time(value)))
    elif isinstance(value, date):
        midnight = datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
        out.append(_encode_string(_format_time(midnight)))
    elif isinstance(value, int):
        out.append(str(value))
    elif isinstance(value, (float, Decimal)):
        out.append(_format_float(float(value)))
    else:
        raise TypeError(f"cannot encode {type(value).__name__} as JSON")


def to_json(value: Any) -> str:
    """Encode records, lists, mappings and scalars as compact JSON.

    Times are written in RFC 3339 form, map keys are sorted and record
    fields keep their declared order.
    """
    out: list[str] = []
    _encode(value, out)
    return "".join(out)