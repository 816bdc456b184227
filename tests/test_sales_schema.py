import sqlite3

import pytest

from storebench.sales_schema import all_tables, create_all, table


@pytest.fixture
def connection():
    conn = sqlite3.connect(":memory:")
    yield conn
    conn.close()


def _sqlite_objects(conn, kind):
    rows = conn.execute("SELECT name FROM sqlite_master WHERE type = ?", (kind,)).fetchall()
    return {row[0] for row in rows}


def test_all_tables_names_are_unique_and_sorted():
    names = [entry.name for entry in all_tables()]
    assert len(names) == 10
    assert names == sorted(names)
    assert len(set(names)) == len(names)


def test_table_lookup_returns_matching_table():
    for entry in all_tables():
        assert table(entry.name) is entry


def test_table_unknown_name_raises():
    with pytest.raises(KeyError):
        table("no_such_table")


def test_orders_columns_in_source_order():
    assert table("orders").column_names() == [
        "id",
        "order_date",
        "customer_id",
        "discount_id",
        "order_type",
        "subtotal",
        "discount_amount",
        "tax_amount",
        "total",
        "created_at",
        "updated_at",
    ]


def test_order_items_foreign_keys():
    keys = table("order_items").foreign_keys
    assert [key.name for key in keys] == [
        "order_items_ibfk_1",
        "order_items_ibfk_2",
        "order_items_ibfk_3",
    ]
    assert [key.foreign_table for key in keys] == ["orders", "products", "discounts"]
    assert all(key.foreign_columns == ("id",) for key in keys)


def test_order_payments_payment_info_is_nullable_json():
    column = table("order_payments").column("payment_info")
    assert column.db_type == "json"
    assert column.nullable is True


def test_reporting_order_column_types():
    entry = table("reporting_order")
    assert entry.column("report_order").db_type == "int"
    assert entry.column("title").db_type == "varchar(255)"
    assert entry.column("id").auto_incr is True


def test_foreign_keys_reference_known_tables_and_columns():
    for entry in all_tables():
        for key in entry.foreign_keys:
            target = table(key.foreign_table)
            for name in key.foreign_columns:
                assert target.column(name).name == name
            for name in key.columns:
                assert entry.column(name).name == name


def test_create_all_creates_every_table(connection):
    created = create_all(connection)
    assert sorted(created) == sorted(entry.name for entry in all_tables())
    assert {entry.name for entry in all_tables()} <= _sqlite_objects(connection, "table")


def test_create_all_orders_referenced_tables_first(connection):
    created = create_all(connection)
    position = {name: index for index, name in enumerate(created)}
    for entry in all_tables():
        for key in entry.foreign_keys:
            assert position[key.foreign_table] < position[entry.name]


def test_create_all_creates_secondary_indexes(connection):
    create_all(connection)
    indexes = _sqlite_objects(connection, "index")
    for entry in all_tables():
        for index in entry.indexes:
            if index.name != "PRIMARY":
                assert f"{entry.name}_{index.name}" in indexes


def test_create_all_is_idempotent(connection):
    first = create_all(connection)
    second = create_all(connection)
    assert first == second


def test_created_columns_match_descriptions(connection):
    create_all(connection)
    for entry in all_tables():
        info = connection.execute(f'PRAGMA table_info("{entry.name}")').fetchall()
        assert [row[1] for row in info] == entry.column_names()


def test_insert_and_auto_increment(connection):
    create_all(connection)
    connection.execute(
        "INSERT INTO products (name, category, price) VALUES (?, ?, ?)",
        ("Latte", "coffee", 4.5),
    )
    connection.execute(
        "INSERT INTO products (name, category, price) VALUES (?, ?, ?)",
        ("Mocha", "coffee", 5.0),
    )
    rows = connection.execute("SELECT id, name FROM products ORDER BY id").fetchall()
    assert rows == [(1, "Latte"), (2, "Mocha")]
    created = connection.execute("SELECT created_at FROM products WHERE id = 1").fetchone()[0]
    assert created is not None and len(created) > 0


def test_order_requires_non_null_columns(connection):
    create_all(connection)
    with pytest.raises(sqlite3.IntegrityError):
        connection.execute("INSERT INTO orders (order_type) VALUES ('members')")


def test_foreign_keys_enforced_when_enabled(connection):
    connection.execute("PRAGMA foreign_keys = ON")
    create_all(connection)
    with pytest.raises(sqlite3.IntegrityError):
        connection.execute(
            "INSERT INTO order_payments (order_id, payment_type, amount) VALUES (?, ?, ?)",
            (999, "cash", 1.0),
        )
    links = connection.execute('PRAGMA foreign_key_list("order_items")').fetchall()
    assert {row[2] for row in links} == {"orders", "products", "discounts"}