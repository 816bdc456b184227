"""Sales tables of the store database and the full table registry."""

from __future__ import annotations

from collections.abc import Iterable

from storebench.schema import (
    CUSTOMERS,
    DIM_DATES,
    DISCOUNTS,
    ITEM_SUMMARIES,
    Column,
    Constraint,
    ForeignKey,
    Index,
    IndexColumn,
    Table,
)


def _id() -> Column:
    return Column("id", "bigint", default="AUTO_INCREMENT", auto_incr=True)


def _timestamps() -> tuple[Column, Column]:
    return (
        Column("created_at", "timestamp", default="CURRENT_TIMESTAMP", nullable=True),
        Column("updated_at", "timestamp", default="CURRENT_TIMESTAMP", nullable=True),
    )


def _index(name: str, column: str, unique: bool = False) -> Index:
    return Index("BTREE", name, (IndexColumn(column, desc=False),), unique=unique)


def _primary_index() -> Index:
    return _index("PRIMARY", "id", unique=True)


def _primary_key() -> Constraint:
    return Constraint("PRIMARY", ("id",))


def _foreign_key(name: str, column: str, table: str) -> ForeignKey:
    return ForeignKey(name, (column,), foreign_table=table, foreign_columns=("id",))


ORDER_ITEMS = Table(
    name="order_items",
    columns=(
        _id(),
        Column("order_id", "bigint"),
        Column("product_id", "bigint"),
        Column("discount_id", "bigint", nullable=True),
        Column("quantity", "int"),
        Column("price", "decimal(10,2)"),
        Column("discount_amount", "decimal(10,2)"),
        *_timestamps(),
    ),
    indexes=(
        _index("discount_id", "discount_id"),
        _index("order_id", "order_id"),
        _primary_index(),
        _index("product_id", "product_id"),
    ),
    primary_key=_primary_key(),
    foreign_keys=(
        _foreign_key("order_items_ibfk_1", "order_id", "orders"),
        _foreign_key("order_items_ibfk_2", "product_id", "products"),
        _foreign_key("order_items_ibfk_3", "discount_id", "discounts"),
    ),
)

ORDER_PAYMENTS = Table(
    name="order_payments",
    columns=(
        _id(),
        Column("order_id", "bigint"),
        Column("payment_type", "varchar(12)"),
        Column("amount", "decimal(10,2)"),
        Column("payment_info", "json", nullable=True),
        *_timestamps(),
    ),
    indexes=(_index("order_id", "order_id"), _primary_index()),
    primary_key=_primary_key(),
    foreign_keys=(_foreign_key("order_payments_ibfk_1", "order_id", "orders"),),
)

ORDERS = Table(
    name="orders",
    columns=(
        _id(),
        Column("order_date", "date"),
        Column("customer_id", "bigint", nullable=True),
        Column("discount_id", "bigint", nullable=True),
        Column("order_type", "varchar(12)"),
        Column("subtotal", "decimal(10,2)"),
        Column("discount_amount", "decimal(10,2)"),
        Column("tax_amount", "decimal(10,2)"),
        Column("total", "decimal(10,2)"),
        *_timestamps(),
    ),
    indexes=(
        _index("customer_id", "customer_id"),
        _index("discount_id", "discount_id"),
        _primary_index(),
    ),
    primary_key=_primary_key(),
    foreign_keys=(
        _foreign_key("orders_ibfk_1", "customer_id", "customers"),
        _foreign_key("orders_ibfk_2", "discount_id", "discounts"),
    ),
)

PAYMENT_NAMES = Table(
    name="payment_names",
    columns=(
        _id(),
        Column("payment_type", "varchar(12)"),
        Column("name", "varchar(255)"),
        *_timestamps(),
    ),
    indexes=(_primary_index(),),
    primary_key=_primary_key(),
)

PRODUCTS = Table(
    name="products",
    columns=(
        _id(),
        Column("name", "varchar(255)"),
        Column("category", "varchar(32)"),
        Column("price", "decimal(10,2)"),
        *_timestamps(),
    ),
    indexes=(_primary_index(),),
    primary_key=_primary_key(),
)

REPORTING_ORDERS = Table(
    name="reporting_order",
    columns=(
        _id(),
        Column("category", "varchar(32)"),
        Column("order_type", "varchar(12)"),
        Column("report_order", "int"),
        Column("title", "varchar(255)"),
        *_timestamps(),
    ),
    indexes=(_primary_index(),),
    primary_key=_primary_key(),
)

_TABLES: tuple[Table, ...] = (
    CUSTOMERS,
    DIM_DATES,
    DISCOUNTS,
    ITEM_SUMMARIES,
    ORDER_ITEMS,
    ORDER_PAYMENTS,
    ORDERS,
    PAYMENT_NAMES,
    PRODUCTS,
    REPORTING_ORDERS,
)

_BY_NAME = {entry.name: entry for entry in _TABLES}


def all_tables() -> list[Table]:
    """Return every table of the store database, ordered by name."""
    return list(_TABLES)


def table(name: str) -> Table:
    """Return the table with the given name."""
    try:
        return _BY_NAME[name]
    except KeyError:
        raise KeyError(f"unknown table {name!r}") from None


def _creation_order(tables: Iterable[Table]) -> list[Table]:
    """Order tables so that every table follows the tables it references."""
    pending = list(tables)
    ordered: list[Table] = []
    placed: set[str] = set()
    while pending:
        remaining = []
        for entry in pending:
            needed = {
                key.foreign_table for key in entry.foreign_keys if key.foreign_table != entry.name
            }
            if needed <= placed:
                ordered.append(entry)
                placed.add(entry.name)
            else:
                remaining.append(entry)
        if len(remaining) == len(pending):
            # References outside the set or a cycle: keep the rest as they are.
            ordered.extend(remaining)
            break
        pending = remaining
    return ordered


def create_all(connection) -> list[str]:
    """Create every table and index on a DB-API connection.

    Tables are created after the tables they reference. Returns the table
    names in the order they were created.
    """
    ordered = _creation_order(_TABLES)
    executescript = getattr(connection, "executescript", None)
    for entry in ordered:
        script = entry.create_sql()
        if executescript is not None:
            executescript(script)
        else:
            cursor = connection.cursor()
            try:
                for statement in script.split(";\n"):
                    statement = statement.strip().rstrip(";")
                    if statement:
                        cursor.execute(statement)
            finally:
                cursor.close()
    connection.commit()
    return [entry.name for entry in ordered]