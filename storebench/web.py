"""HTTP-style handlers for the store's endpoints.

Each handler takes a DB-API connection and the request data and returns a
Response with the status code and body the endpoint sends.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime, timezone
from http import HTTPStatus
from typing import Any

from storebench.records import Order, to_json
from storebench.reports import (
    customer_sales,
    daily_revenue,
    daily_sold_items,
    date_range,
    general_sales,
    typed_sales,
)
from storebench.sales import SaleError, bulk_load_customers, create_sale, get_sale

logger = logging.getLogger(__name__)

JSON_TYPE = "application/json"
TEXT_TYPE = "text/plain; charset=utf-8"

_DAY = re.compile(r"\d{4}-\d{2}-\d{2}")


@dataclass(frozen=True)
class Response:
    """Status code, body text and content type of a handler's reply."""

    status: int
    body: str
    content_type: str = JSON_TYPE


def _json(status: int, value: Any) -> Response:
    return Response(int(status), to_json(value) + "\n", JSON_TYPE)


def _error(status: int, message: str) -> Response:
    return Response(int(status), message + "\n", TEXT_TYPE)


def _param(query: Mapping[str, Any], key: str) -> str:
    value = query.get(key)
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    return "" if value is None else str(value)


@contextmanager
def _query_logging(connection, query: Mapping[str, Any]) -> Iterator[None]:
    """Log every statement run on the connection while ``debug`` is requested."""
    trace = getattr(connection, "set_trace_callback", None)
    enabled = bool(_param(query, "debug")) and trace is not None
    if enabled:
        trace(logger.debug)
    try:
        yield
    finally:
        if enabled:
            trace(None)


def handle_bulk_customers(connection, body: str | bytes | None) -> Response:
    """Load customers from an uploaded CSV file of name, email and phone."""
    if body is None:
        return _error(HTTPStatus.BAD_REQUEST, "Invalid file")
    try:
        count = bulk_load_customers(connection, body)
    except SaleError:
        return _error(HTTPStatus.BAD_REQUEST, "Invalid file")
    return _json(HTTPStatus.CREATED, count)


def _decode_order(body: Any) -> Order:
    data = body
    if isinstance(body, (bytes, bytearray)):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError:
            return Order()
    if isinstance(body, str):
        try:
            data = json.loads(body)
        except ValueError:
            return Order()
    if not isinstance(data, Mapping):
        return Order()
    try:
        return Order.from_dict(data)
    except TypeError:
        return Order()


def handle_create_sale(connection, body: Any) -> Response:
    """Record a sale from a JSON order and reply with the new order's id."""
    order = _decode_order(body)
    try:
        order_id = create_sale(connection, order)
    except SaleError as exc:
        return _error(HTTPStatus.BAD_REQUEST, str(exc))
    return _json(HTTPStatus.CREATED, order_id)


def handle_get_sale(connection, sale_id: int | str) -> Response:
    """Reply with a recorded sale, its items and its payments."""
    try:
        sale = get_sale(connection, sale_id)
    except SaleError as exc:
        logger.info("sale %r: %s", sale_id, exc)
        return _error(HTTPStatus.BAD_REQUEST, "Invalid sale ID")
    return _json(HTTPStatus.OK, sale)


def _report(connection, query: Mapping[str, Any], run) -> Response:
    with _query_logging(connection, query):
        try:
            lines = run()
        except Exception as exc:  # any database failure is reported as a bad request
            logger.info("report failed: %s", exc)
            return _error(HTTPStatus.BAD_REQUEST, "Invalid date")
    return _json(HTTPStatus.OK, lines)


def handle_customer_sales(connection, query: Mapping[str, Any]) -> Response:
    """Reply with each customer's sales between ``start_date`` and ``end_date``."""
    start, end = date_range(query)
    return _report(connection, query, lambda: customer_sales(connection, start, end))


def handle_daily_revenue(connection, query: Mapping[str, Any]) -> Response:
    """Reply with revenue per order type and day between ``start_date`` and ``end_date``."""
    start, end = date_range(query)
    return _report(connection, query, lambda: daily_revenue(connection, start, end))


def _day(query: Mapping[str, Any]) -> date:
    text = _param(query, "date")
    if not text:
        return datetime.now(timezone.utc).date()
    if not _DAY.fullmatch(text):
        return date.min
    try:
        return date.fromisoformat(text)
    except ValueError:
        return date.min


def handle_daily_sold_items(connection, query: Mapping[str, Any]) -> Response:
    """Reply with quantities and sales per item on ``date``, today by default."""
    day = _day(query)
    return _report(connection, query, lambda: daily_sold_items(connection, day))


def handle_general_sales(connection, query: Mapping[str, Any]) -> Response:
    """Reply with the general sales report between ``start_date`` and ``end_date``."""
    start, end = date_range(query)
    return _report(connection, query, lambda: general_sales(connection, start, end))


def handle_typed_sales(connection, query: Mapping[str, Any]) -> Response:
    """Reply with the weekly sales report per order type between two days."""
    start, end = date_range(query)
    return _report(connection, query, lambda: typed_sales(connection, start, end))