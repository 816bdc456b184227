"""Sales reports over a date range: per customer, per day and per reporting line."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

from storebench.records import (
    ZERO_TIME,
    CustomerTotals,
    DailyRevenue,
    ItemSummary,
    SaleReportLine,
    WeeklySaleReport,
)

_DAY = re.compile(r"\d{4}-\d{2}-\d{2}")
_WEEK = timedelta(days=7)


def _param(params: Mapping[str, Any], key: str) -> str:
    value = params.get(key)
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    return "" if value is None else str(value)


def _parse_day(text: str) -> date:
    if not _DAY.fullmatch(text):
        return date.min
    try:
        return date.fromisoformat(text)
    except ValueError:
        return date.min


def date_range(params: Mapping[str, Any], today: date | None = None) -> tuple[date, date]:
    """Return the (start, end) days selected by ``start_date`` and ``end_date``.

    The end defaults to today (UTC) and the start to a week before the end.
    A value that is not a YYYY-MM-DD date becomes the earliest date.
    """
    if today is None:
        today = datetime.now(timezone.utc).date()
    elif isinstance(today, datetime):
        today = today.date()
    end = today
    text = _param(params, "end_date")
    if text:
        end = _parse_day(text)
    try:
        start = end - _WEEK
    except OverflowError:
        start = date.min
    text = _param(params, "start_date")
    if text:
        start = _parse_day(text)
    return start, end


def _day(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def _query(connection, sql: str, args: Iterable[Any]) -> list[tuple]:
    cursor = connection.cursor()
    try:
        cursor.execute(sql, list(args))
        return cursor.fetchall()
    finally:
        cursor.close()


def _float(value: Any) -> float:
    if value is None:
        return 0.0
    return float(Decimal(repr(value)) if isinstance(value, float) else Decimal(str(value)))


def _int(value: Any) -> int:
    if value is None:
        return 0
    return int(Decimal(repr(value)) if isinstance(value, float) else Decimal(str(value)))


def _midnight(value: Any) -> datetime:
    if value is None:
        return ZERO_TIME
    if isinstance(value, datetime):
        value = value.date()
    if not isinstance(value, date):
        try:
            value = date.fromisoformat(str(value).strip()[:10])
        except ValueError:
            return ZERO_TIME
    return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)


def _bounds(start_date: date, end_date: date) -> list[str]:
    return [_day(start_date).isoformat(), _day(end_date).isoformat()]


def customer_sales(connection, start_date: date, end_date: date) -> list[CustomerTotals]:
    """Sum each customer's order totals and count their orders between two days."""
    rows = _query(
        connection,
        "SELECT customers.id, customers.name, SUM(orders.total) AS total_sales, "
        "COUNT(orders.id) AS total_orders "
        "FROM customers INNER JOIN orders ON orders.customer_id = customers.id "
        "WHERE orders.order_date >= ? AND orders.order_date <= ? "
        "GROUP BY customers.id, customers.name ORDER BY customers.id",
        _bounds(start_date, end_date),
    )
    return [CustomerTotals(row[0], row[1], _float(row[2]), _int(row[3])) for row in rows]


def daily_revenue(connection, start_date: date, end_date: date) -> list[DailyRevenue]:
    """Sum order totals per order type and day between two days."""
    rows = _query(
        connection,
        "SELECT orders.order_type, orders.order_date, SUM(orders.total) AS total_revenue "
        "FROM orders WHERE orders.order_date >= ? AND orders.order_date <= ? "
        "GROUP BY orders.order_type, orders.order_date "
        "ORDER BY orders.order_type, orders.order_date",
        _bounds(start_date, end_date),
    )
    return [DailyRevenue(row[0], _midnight(row[1]), _float(row[2])) for row in rows]


def daily_sold_items(connection, day: date) -> list[ItemSummary]:
    """Sum quantities and sales per item for one day, over all order types."""
    day = _day(day)
    rows = _query(
        connection,
        "SELECT item_summaries.name, item_summaries.category, "
        "SUM(item_summaries.total_quantity) AS total_quantity, "
        "SUM(item_summaries.total_sales) AS total_sales "
        "FROM item_summaries WHERE item_summaries.order_date = ? "
        "GROUP BY item_summaries.name, item_summaries.category "
        "ORDER BY item_summaries.name, item_summaries.category",
        [day.isoformat()],
    )
    order_date = _midnight(day)
    return [ItemSummary(row[0], row[1], _int(row[2]), _float(row[3]), order_date) for row in rows]


def general_sales(connection, start_date: date, end_date: date) -> list[SaleReportLine]:
    """Report item sales under the general reporting lines, in report order."""
    rows = _query(
        connection,
        "SELECT reporting_order.title, reporting_order.report_order, "
        "item_summaries.name AS item_name, "
        "SUM(item_summaries.order_count) AS order_count, "
        "SUM(item_summaries.total_quantity) AS quantity, "
        "SUM(item_summaries.total_sales) AS total_sales "
        "FROM item_summaries INNER JOIN reporting_order "
        "ON reporting_order.order_type = 'general' "
        "AND reporting_order.category = item_summaries.category "
        "WHERE item_summaries.order_date >= ? AND item_summaries.order_date <= ? "
        "GROUP BY reporting_order.title, reporting_order.report_order, item_summaries.name "
        "ORDER BY reporting_order.report_order, item_summaries.name",
        _bounds(start_date, end_date),
    )
    return [
        SaleReportLine(row[0], _int(row[1]), row[2], _int(row[3]), _int(row[4]), _float(row[5]))
        for row in rows
    ]


def typed_sales(connection, start_date: date, end_date: date) -> list[WeeklySaleReport]:
    """Report item sales per week under the reporting lines of each order type."""
    rows = _query(
        connection,
        "SELECT dim_date.year, dim_date.week_of_year, reporting_order.title, "
        "reporting_order.report_order, item_summaries.name AS item_name, "
        "SUM(item_summaries.order_count) AS order_count, "
        "SUM(item_summaries.total_quantity) AS quantity, "
        "SUM(item_summaries.total_sales) AS total_sales "
        "FROM item_summaries "
        "INNER JOIN reporting_order ON reporting_order.order_type = item_summaries.order_type "
        "AND reporting_order.category = item_summaries.category "
        "INNER JOIN dim_date ON dim_date.date = item_summaries.order_date "
        "WHERE item_summaries.order_date >= ? AND item_summaries.order_date <= ? "
        "GROUP BY dim_date.year, dim_date.week_of_year, reporting_order.title, "
        "reporting_order.report_order, item_summaries.name "
        "ORDER BY dim_date.year, dim_date.week_of_year, reporting_order.report_order, "
        "item_summaries.name",
        _bounds(start_date, end_date),
    )
    return [
        WeeklySaleReport(
            _int(row[0]), _int(row[1]), row[2], _int(row[3]), row[4],
            _int(row[5]), _int(row[6]), _float(row[7]),
        )
        for row in rows
    ]