"""Recording sales, reading them back and loading customers in bulk."""

from __future__ import annotations

import csv
import io
import json
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from storebench.records import (
    TAX_RATE,
    ZERO_TIME,
    Order,
    Sale,
    SaleItem,
    SalePayment,
)

_CENTS = Decimal("0.01")
_SALE_ID = re.compile(r"[+-]?\d+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


class SaleError(Exception):
    """A request that cannot be carried out; the message says why."""


@dataclass
class Totals:
    """Amounts of an order and its priced line items, before anything is stored."""

    subtotal: Decimal = Decimal(0)
    discount_amount: Decimal = Decimal(0)
    tax_amount: Decimal = Decimal(0)
    total: Decimal = Decimal(0)
    items: list[dict[str, Any]] = field(default_factory=list)


def _decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(str(value))


def _discount(discounts: Mapping[int, Mapping[str, Any]], discount_id: int, base: Decimal) -> Decimal:
    discount = discounts.get(discount_id)
    if discount is None:
        raise SaleError("Invalid discount ID")
    amount = _decimal(discount["discount"])
    kind = discount["discount_type"]
    if kind == "percentage":
        return base * amount
    if kind == "fixed":
        return amount
    return Decimal(0)


def compute_totals(
    order: Order,
    products: Mapping[int, Mapping[str, Any]],
    discounts: Mapping[int, Mapping[str, Any]],
) -> Totals:
    """Price an order from product rows and discount rows keyed by id.

    Percentage discounts scale the line (or the subtotal for an order-wide
    discount); fixed discounts subtract their amount once. Tax is charged on
    the discounted total.
    """
    subtotal = Decimal(0)
    discount_amount = Decimal(0)
    items = []
    for entry in order.items:
        product = products.get(entry.product_id)
        if product is None:
            raise SaleError("Invalid product ID")
        price = _decimal(product["price"])
        line = price * Decimal(entry.quantity)
        subtotal += line
        line_discount = Decimal(0)
        if entry.discount_id is not None:
            line_discount = _discount(discounts, entry.discount_id, line)
        discount_amount += line_discount
        items.append(
            {
                "product_id": entry.product_id,
                "quantity": entry.quantity,
                "price": price,
                "discount_id": entry.discount_id,
                "discount_amount": line_discount,
            }
        )

    if order.discount_id is not None:
        discount_amount += _discount(discounts, order.discount_id, subtotal)

    total = subtotal - discount_amount
    tax_amount = total * Decimal(repr(TAX_RATE))
    total += tax_amount
    return Totals(subtotal, discount_amount, tax_amount, total, items)


def _query(connection, sql: str, args: Iterable[Any] = ()) -> list[tuple]:
    cursor = connection.cursor()
    try:
        cursor.execute(sql, list(args))
        return cursor.fetchall()
    finally:
        cursor.close()


def _rows_by_id(connection, table: str, columns: tuple[str, ...], ids: Iterable[int], error: str):
    unique = sorted(set(ids))
    marks = ", ".join("?" for _ in unique)
    sql = f"SELECT id, {', '.join(columns)} FROM {table} WHERE id IN ({marks})"
    try:
        rows = _query(connection, sql, unique)
    except Exception as exc:
        raise SaleError(error) from exc
    return {row[0]: dict(zip(columns, row[1:])) for row in rows}


def _customer_exists(connection, customer_id: int) -> bool:
    try:
        return bool(_query(connection, "SELECT 1 FROM customers WHERE id = ?", [customer_id]))
    except Exception:
        return False


def _stored(amount: Decimal) -> str:
    return str(amount.quantize(_CENTS, rounding=ROUND_HALF_UP))


def create_sale(connection, order: Order | Mapping[str, Any]) -> int:
    """Price and record an order, returning the new order's id.

    Raises SaleError when the order refers to unknown rows, when the
    expected total or the payments do not match the computed total, or
    when the rows cannot be stored.
    """
    if not isinstance(order, Order):
        order = Order.from_dict(order)

    discount_ids = [order.discount_id] if order.discount_id is not None else []
    discount_ids += [entry.discount_id for entry in order.items if entry.discount_id is not None]
    discounts = (
        _rows_by_id(connection, "discounts", ("discount_type", "discount"), discount_ids, "Invalid discount ID")
        if discount_ids
        else {}
    )

    if not order.items:
        raise SaleError("No products")
    products = _rows_by_id(
        connection, "products", ("price",), (entry.product_id for entry in order.items), "Invalid product ID"
    )

    totals = compute_totals(order, products, discounts)
    if totals.total != _decimal(order.expected_total):
        raise SaleError("Invalid total")

    paid = sum((_decimal(payment.amount) for payment in order.payments), Decimal(0))
    if totals.total != paid:
        raise SaleError("Invalid payment amount")

    order_type = "non-members"
    if order.customer_id is not None:
        if not _customer_exists(connection, order.customer_id):
            raise SaleError("Invalid customer ID")
        order_type = "members"

    cursor = connection.cursor()
    try:
        try:
            cursor.execute(
                "INSERT INTO orders (order_date, customer_id, discount_id, order_type, "
                "subtotal, discount_amount, tax_amount, total) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                [
                    datetime.now(timezone.utc).date().isoformat(),
                    order.customer_id,
                    order.discount_id,
                    order_type,
                    _stored(totals.subtotal),
                    _stored(totals.discount_amount),
                    _stored(totals.tax_amount),
                    _stored(totals.total),
                ],
            )
        except Exception as exc:
            raise SaleError("Invalid order") from exc
        order_id = cursor.lastrowid

        try:
            cursor.executemany(
                "INSERT INTO order_items (order_id, product_id, discount_id, quantity, price, "
                "discount_amount) VALUES (?, ?, ?, ?, ?, ?)",
                [
                    [
                        order_id,
                        item["product_id"],
                        item["discount_id"],
                        item["quantity"],
                        _stored(item["price"]),
                        _stored(item["discount_amount"]),
                    ]
                    for item in totals.items
                ],
            )
        except Exception as exc:
            raise SaleError("Invalid order items") from exc

        if order.payments:
            try:
                cursor.executemany(
                    "INSERT INTO order_payments (order_id, payment_type, amount, payment_info) "
                    "VALUES (?, ?, ?, ?)",
                    [
                        [
                            order_id,
                            payment.payment_type,
                            _stored(_decimal(payment.amount)),
                            json.dumps(payment.payment_info, sort_keys=True, separators=(",", ":")),
                        ]
                        for payment in order.payments
                    ],
                )
            except Exception as exc:
                raise SaleError("Invalid order payments") from exc
    except SaleError:
        connection.rollback()
        raise
    finally:
        cursor.close()

    connection.commit()
    return order_id


def _time(value: Any) -> datetime:
    if value is None:
        return ZERO_TIME
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return ZERO_TIME
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _float(value: Any) -> float:
    return 0.0 if value is None else float(_decimal(value))


def _optional_int(value: Any) -> int | None:
    return None if value is None else int(value)


def _payment_info(value: Any) -> dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8", errors="replace")
    try:
        decoded = json.loads(value)
    except (TypeError, ValueError):
        return {}
    return decoded if isinstance(decoded, dict) else {}


def _sale_id(sale_id: Any) -> int:
    if isinstance(sale_id, bool):
        raise SaleError("Invalid sale ID")
    if isinstance(sale_id, int):
        return sale_id
    text = str(sale_id)
    if not _SALE_ID.fullmatch(text):
        raise SaleError("Invalid sale ID")
    number = int(text)
    if not _INT64_MIN <= number <= _INT64_MAX:
        raise SaleError("Invalid sale ID")
    return number


def get_sale(connection, sale_id: int | str) -> Sale:
    """Read an order with its customer, items and payments.

    Raises SaleError when the id is malformed or no such order exists.
    """
    identifier = _sale_id(sale_id)
    try:
        rows = _query(
            connection,
            "SELECT orders.id, orders.order_date, orders.customer_id, orders.discount_id, "
            "orders.order_type, orders.subtotal, orders.discount_amount, orders.tax_amount, "
            "orders.total, orders.created_at, orders.updated_at, customers.name "
            "FROM orders LEFT JOIN customers ON customers.id = orders.customer_id "
            "WHERE orders.id = ?",
            [identifier],
        )
        item_rows = _query(
            connection,
            "SELECT order_items.id, order_items.order_id, order_items.product_id, products.name, "
            "products.category, order_items.discount_id, order_items.quantity, order_items.price, "
            "order_items.discount_amount, order_items.created_at, order_items.updated_at "
            "FROM order_items LEFT JOIN products ON products.id = order_items.product_id "
            "WHERE order_items.order_id = ? ORDER BY order_items.id",
            [identifier],
        )
        payment_rows = _query(
            connection,
            "SELECT id, order_id, payment_type, amount, payment_info, created_at, updated_at "
            "FROM order_payments WHERE order_id = ? ORDER BY id",
            [identifier],
        )
    except Exception as exc:
        raise SaleError("Invalid sale ID") from exc
    if not rows:
        raise SaleError("Invalid sale ID")

    (order_id, order_date, customer_id, discount_id, order_type, subtotal, discount_amount,
     tax_amount, total, created_at, updated_at, customer_name) = rows[0]
    sale = Sale(
        id=order_id,
        order_date=_time(order_date),
        customer_id=_optional_int(customer_id),
        customer_name=customer_name if customer_id is not None and customer_name is not None else "",
        discount_id=_optional_int(discount_id),
        order_type=order_type,
        subtotal=_float(subtotal),
        discount_amount=_float(discount_amount),
        tax_amount=_float(tax_amount),
        total=_float(total),
        created_at=_time(created_at),
        updated_at=_time(updated_at),
    )
    sale.items = [
        SaleItem(
            id=row[0],
            order_id=row[1],
            product_id=row[2],
            product_name=row[3] or "",
            product_category=row[4] or "",
            discount_id=_optional_int(row[5]),
            quantity=int(row[6]),
            price=_float(row[7]),
            discount_amount=_float(row[8]),
            created_at=_time(row[9]),
            updated_at=_time(row[10]),
        )
        for row in item_rows
    ]
    sale.payments = [
        SalePayment(
            id=row[0],
            order_id=row[1],
            payment_type=row[2],
            amount=_float(row[3]),
            payment_info=_payment_info(row[4]),
            created_at=_time(row[5]),
            updated_at=_time(row[6]),
        )
        for row in payment_rows
    ]
    return sale


def _read_csv(text: str) -> list[list[str]]:
    reader = csv.reader(io.StringIO(text, newline=""), strict=True)
    rows: list[list[str]] = []
    try:
        for row in reader:
            if not row:
                continue
            if rows and len(row) != len(rows[0]):
                raise SaleError("Invalid file")
            if len(row) < 3:
                raise SaleError("Invalid file")
            rows.append(row)
    except csv.Error as exc:
        raise SaleError("Invalid file") from exc
    return rows


def bulk_load_customers(connection, csv_text: str | bytes) -> int:
    """Insert customers from CSV rows of name, email and phone.

    Returns the number of rows inserted; raises SaleError for a malformed
    or empty file, in which case nothing is inserted.
    """
    if isinstance(csv_text, (bytes, bytearray)):
        try:
            csv_text = csv_text.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise SaleError("Invalid file") from exc
    rows = _read_csv(csv_text)
    if not rows:
        raise SaleError("Invalid file")

    cursor = connection.cursor()
    try:
        cursor.executemany(
            "INSERT INTO customers (name, email, phone) VALUES (?, ?, ?)",
            [row[:3] for row in rows],
        )
    except Exception as exc:
        connection.rollback()
        raise SaleError("Invalid file") from exc
    finally:
        cursor.close()
    connection.commit()
    return len(rows)