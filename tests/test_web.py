import json
import logging
import sqlite3

import pytest

from storebench.web import (
    Response,
    handle_bulk_customers,
    handle_create_sale,
    handle_customer_sales,
    handle_daily_revenue,
    handle_daily_sold_items,
    handle_general_sales,
    handle_get_sale,
    handle_typed_sales,
)

_STAMPS = "created_at TEXT DEFAULT CURRENT_TIMESTAMP, updated_at TEXT DEFAULT CURRENT_TIMESTAMP"

_DDL = f"""
CREATE TABLE customers (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL,
    phone TEXT, email TEXT, marketing_opt_in INTEGER DEFAULT 0, {_STAMPS});
CREATE TABLE products (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL,
    category TEXT NOT NULL, price NUMERIC NOT NULL, {_STAMPS});
CREATE TABLE discounts (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL,
    category TEXT NOT NULL, discount_type TEXT NOT NULL, discount NUMERIC NOT NULL, {_STAMPS});
CREATE TABLE orders (id INTEGER PRIMARY KEY AUTOINCREMENT, order_date TEXT NOT NULL,
    customer_id INTEGER, discount_id INTEGER, order_type TEXT NOT NULL,
    subtotal NUMERIC NOT NULL, discount_amount NUMERIC NOT NULL, tax_amount NUMERIC NOT NULL,
    total NUMERIC NOT NULL, {_STAMPS});
CREATE TABLE order_items (id INTEGER PRIMARY KEY AUTOINCREMENT, order_id INTEGER NOT NULL,
    product_id INTEGER NOT NULL, discount_id INTEGER, quantity INTEGER NOT NULL,
    price NUMERIC NOT NULL, discount_amount NUMERIC NOT NULL, {_STAMPS});
CREATE TABLE order_payments (id INTEGER PRIMARY KEY AUTOINCREMENT, order_id INTEGER NOT NULL,
    payment_type TEXT NOT NULL, amount NUMERIC NOT NULL, payment_info TEXT, {_STAMPS});
CREATE TABLE item_summaries (id INTEGER, name TEXT NOT NULL, category TEXT NOT NULL,
    order_type TEXT NOT NULL, order_date TEXT NOT NULL, total_quantity NUMERIC,
    total_sales NUMERIC, order_count INTEGER NOT NULL DEFAULT 0);
CREATE TABLE reporting_order (id INTEGER PRIMARY KEY AUTOINCREMENT, category TEXT NOT NULL,
    order_type TEXT NOT NULL, report_order INTEGER NOT NULL, title TEXT NOT NULL, {_STAMPS});
CREATE TABLE dim_date (date TEXT PRIMARY KEY, month INTEGER, year INTEGER, quarter INTEGER,
    day_of_week INTEGER, day_of_month INTEGER, day_of_year INTEGER, week_of_year INTEGER,
    week_of_month INTEGER);
"""

RANGE = {"start_date": "2024-01-01", "end_date": "2024-01-07"}


@pytest.fixture
def conn():
    connection = sqlite3.connect(":memory:")
    connection.executescript(_DDL)
    yield connection
    connection.close()


@pytest.fixture
def summaries(conn):
    conn.executemany(
        "INSERT INTO item_summaries (name, category, order_type, order_date, total_quantity, "
        "total_sales, order_count) VALUES (?, ?, ?, ?, ?, ?, ?)",
        [
            ("Latte", "drinks", "members", "2024-01-03", 3, 12.5, 2),
            ("Latte", "drinks", "members", "2024-02-20", 9, 40, 5),
        ],
    )
    conn.executemany(
        "INSERT INTO reporting_order (category, order_type, report_order, title) VALUES (?, ?, ?, ?)",
        [("drinks", "members", 1, "Coffee"), ("drinks", "general", 2, "All drinks")],
    )
    conn.execute(
        "INSERT INTO dim_date VALUES ('2024-01-03', 1, 2024, 1, 4, 3, 3, 1, 1)"
    )
    conn.commit()
    return conn


def _order_body(expected, paid):
    return json.dumps(
        {
            "items": [{"product_id": 1, "quantity": 2}],
            "expected_total": expected,
            "payments": [{"payment_type": "card", "amount": paid, "payment_info": {"brand": "visa"}}],
        }
    )


def _add_product(conn):
    conn.execute("INSERT INTO products (name, category, price) VALUES ('Mug', 'goods', '10.00')")
    conn.commit()


def test_bulk_customers_inserts_rows(conn):
    body = "Ann,ann@example.com,x1\nBob,bob@example.com,x2\n"
    response = handle_bulk_customers(conn, body)
    assert response.status == 201
    assert json.loads(response.body) == 2
    names = [row[0] for row in conn.execute("SELECT name FROM customers ORDER BY id")]
    assert names == ["Ann", "Bob"]


def test_bulk_customers_without_file(conn):
    response = handle_bulk_customers(conn, None)
    assert response == Response(400, "Invalid file\n", "text/plain; charset=utf-8")


def test_bulk_customers_malformed_file(conn):
    response = handle_bulk_customers(conn, "Ann,ann@example.com\n")
    assert response.status == 400
    assert response.body == "Invalid file\n"


def test_create_and_get_sale_round_trip(conn):
    _add_product(conn)
    created = handle_create_sale(conn, _order_body(21.6, 21.6))
    assert created.status == 201
    assert created.body.endswith("\n")
    sale_id = json.loads(created.body)

    fetched = handle_get_sale(conn, str(sale_id))
    assert fetched.status == 200
    sale = json.loads(fetched.body)
    assert sale["id"] == sale_id
    assert sale["total"] == 21.6
    assert sale["order_type"] == "non-members"
    assert sale["customer_id"] is None
    assert [item["product_name"] for item in sale["items"]] == ["Mug"]
    assert sale["payments"][0]["payment_info"] == {"brand": "visa"}


def test_create_sale_wrong_total(conn):
    _add_product(conn)
    response = handle_create_sale(conn, _order_body(99.0, 99.0))
    assert response.status == 400
    assert response.body == "Invalid total\n"


def test_create_sale_wrong_payment(conn):
    _add_product(conn)
    response = handle_create_sale(conn, _order_body(21.6, 5.0))
    assert response.body == "Invalid payment amount\n"


def test_create_sale_unreadable_body(conn):
    response = handle_create_sale(conn, b"not json")
    assert response.status == 400
    assert response.body == "No products\n"


def test_create_sale_unknown_customer(conn):
    _add_product(conn)
    body = json.loads(_order_body(21.6, 21.6))
    body["customer_id"] = 42
    response = handle_create_sale(conn, json.dumps(body))
    assert response.body == "Invalid customer ID\n"


@pytest.mark.parametrize("sale_id", ["abc", "999", ""])
def test_get_sale_invalid(conn, sale_id):
    response = handle_get_sale(conn, sale_id)
    assert response.status == 400
    assert response.body == "Invalid sale ID\n"


def test_customer_sales(conn):
    conn.execute("INSERT INTO customers (name) VALUES ('Ann')")
    conn.execute(
        "INSERT INTO orders (order_date, customer_id, order_type, subtotal, discount_amount, "
        "tax_amount, total) VALUES ('2024-01-03', 1, 'members', 30, 0, 0, 30)"
    )
    conn.commit()
    response = handle_customer_sales(conn, RANGE)
    assert response.status == 200
    assert json.loads(response.body) == [
        {"id": 1, "name": "Ann", "total_sales": 30, "total_orders": 1}
    ]


def test_daily_revenue_accepts_list_values(conn):
    conn.execute(
        "INSERT INTO orders (order_date, order_type, subtotal, discount_amount, tax_amount, total) "
        "VALUES ('2024-01-03', 'non-members', 30, 0, 0, 30)"
    )
    conn.commit()
    query = {key: [value] for key, value in RANGE.items()}
    response = handle_daily_revenue(conn, query)
    assert json.loads(response.body) == [
        {"order_type": "non-members", "order_date": "2024-01-03T00:00:00Z", "total_revenue": 30}
    ]


def test_daily_revenue_outside_range_is_empty(conn):
    conn.execute(
        "INSERT INTO orders (order_date, order_type, subtotal, discount_amount, tax_amount, total) "
        "VALUES ('2024-03-03', 'members', 30, 0, 0, 30)"
    )
    conn.commit()
    response = handle_daily_revenue(conn, RANGE)
    assert json.loads(response.body) == []


def test_daily_sold_items(summaries):
    response = handle_daily_sold_items(summaries, {"date": "2024-01-03"})
    assert json.loads(response.body) == [
        {
            "name": "Latte",
            "category": "drinks",
            "total_quantity": 3,
            "total_sales": 12.5,
            "order_date": "2024-01-03T00:00:00Z",
        }
    ]


def test_general_sales(summaries):
    response = handle_general_sales(summaries, RANGE)
    assert json.loads(response.body) == [
        {
            "title": "All drinks",
            "report_order": 2,
            "item_name": "Latte",
            "order_count": 2,
            "quantity": 3,
            "total_sales": 12.5,
        }
    ]


def test_typed_sales(summaries):
    response = handle_typed_sales(summaries, RANGE)
    assert json.loads(response.body) == [
        {
            "year": 2024,
            "week_of_year": 1,
            "title": "Coffee",
            "report_order": 1,
            "item_name": "Latte",
            "order_count": 2,
            "quantity": 3,
            "total_sales": 12.5,
        }
    ]


@pytest.mark.parametrize(
    "handler",
    [handle_customer_sales, handle_daily_revenue, handle_general_sales, handle_typed_sales],
)
def test_report_failure_is_bad_request(handler):
    empty = sqlite3.connect(":memory:")
    try:
        response = handler(empty, RANGE)
    finally:
        empty.close()
    assert response.status == 400
    assert response.body == "Invalid date\n"


def test_debug_logs_queries_only_when_asked(conn, caplog):
    caplog.set_level(logging.DEBUG, logger="storebench.web")
    handle_customer_sales(conn, {**RANGE, "debug": "1"})
    assert any("FROM customers" in record.getMessage() for record in caplog.records)

    caplog.clear()
    response = handle_customer_sales(conn, RANGE)
    assert response.status == 200
    assert not any("FROM customers" in record.getMessage() for record in caplog.records)