# storebench

`storebench` is a small point-of-sale store backend. Its data lives in a SQL
database reached through a DB-API connection: customers, products, discounts,
orders, order items, payments and the tables the reports read from. On top of
that data it prices and records sales, reads them back, loads customers in bulk
and produces sales reports.

The SQL it runs uses `?` placeholders. The DDL it generates uses
`INTEGER PRIMARY KEY AUTOINCREMENT` and `CREATE INDEX IF NOT EXISTS`. This
suits `sqlite3` from the standard library, and the tests and example below use
it.

## Modules

- **`storebench.schema`**: the table descriptions (`Table`, `Column`, `Index`,
  `IndexColumn`, `Constraint`, `ForeignKey`, `Check`) and the customers,
  `dim_date`, discounts and `item_summaries` tables.
  - `Table.column(name)` returns a column and raises `KeyError` for an unknown
    name.
  - `Table.column_names()` lists the columns in order.
  - `Table.create_sql()` returns the `CREATE TABLE` and `CREATE INDEX`
    statements for the table.
- **`storebench.sales_schema`**: the remaining tables (orders, order items,
  order payments, payment names, products, reporting order) and the registry
  of all tables.
  - `all_tables()` returns every table.
  - `table(name)` returns one table by name.
  - `create_all(connection)` creates every table, each after the tables it
    references. It commits and returns the table names in the order they were
    created.
- **`storebench.records`**: the dataclasses the operations exchange.
  - Records: `Order`, `OrderItem`, `OrderPayment`, `Sale`, `SaleItem`,
    `SalePayment`, `CustomerTotals`, `DailyRevenue`, `ItemSummary`,
    `SaleReportLine` and `WeeklySaleReport`.
  - `Order.from_dict(data)` builds an order from decoded JSON.
  - `to_dict()` on the result records returns a plain dictionary.
  - `to_json(value)` encodes records, lists, mappings and scalars as compact
    JSON. Times come out in RFC 3339 form and map keys are sorted.
  - A `Sale` with no items or no payments reports them as `null`.
  - `TAX_RATE` is 0.08.
- **`storebench.sales`**:
  - `compute_totals(order, products, discounts)` prices an order from product
    and discount rows keyed by id and returns `Totals`. Those are the
    subtotal, the discount amount, the tax amount, the total and the priced
    items. Percentage discounts scale the line, or the subtotal for an
    order-wide discount. Fixed discounts subtract their amount once. Tax is
    charged on the discounted total.
  - `create_sale(connection, order)` looks up the products and discounts,
    checks the order's `expected_total` and the sum of its payments against
    the computed total, and checks that the customer exists if one is given.
    It then stores the order, its items and its payments and returns the new
    order id. An order with a customer is typed `members`; one without is
    typed `non-members`.
  - `get_sale(connection, sale_id)` reads an order back with its customer
    name, its items (with product name and category) and its payments.
  - `bulk_load_customers(connection, csv_text)` inserts CSV rows of
    `name,email,phone` and returns how many it inserted.
  - Every refusal is raised as `SaleError` with a short message such as
    `"Invalid total"`, `"Invalid payment amount"` or `"Invalid sale ID"`.
- **`storebench.reports`**: every report returns a list of records.
  - `date_range(params, today)` turns `start_date` and `end_date` parameters
    (`YYYY-MM-DD`) into a `(start, end)` pair. The end defaults to today
    (UTC) and the start to seven days before the end.
  - `customer_sales(connection, start_date, end_date)`: totals and order
    counts per customer.
  - `daily_revenue(connection, start_date, end_date)`: revenue per order type
    and day.
  - `daily_sold_items(connection, day)`: quantities and sales per item for
    one day.
  - `general_sales(connection, start_date, end_date)`: item sales grouped
    under the `general` reporting lines, in report order.
  - `typed_sales(connection, start_date, end_date)`: item sales per year and
    week under each order type's reporting lines.
- **`storebench.web`**: request handlers that each return a
  `Response(status, body, content_type)`.
  - The handlers are `handle_create_sale`, `handle_get_sale`,
    `handle_bulk_customers`, `handle_customer_sales`, `handle_daily_revenue`,
    `handle_daily_sold_items`, `handle_general_sales` and
    `handle_typed_sales`.
  - A success carries a JSON body: status 201 for created sales and
    customers, 200 for reads.
  - A failure is a 400 with a plain-text message.
  - Passing `debug` in a report's query logs each SQL statement through the
    `storebench.web` logger, when the connection offers
    `set_trace_callback`.
- **`storebench.factory`**: builds and inserts test or seed rows.
  - `Factory().new(table, *mods)` returns a `Template`. A template offers
    `build()`, `build_many(n)`, `create(connection)` and
    `create_many(connection, n)`.
  - Mods are `set_value`, `set_func`, `unset`, `randomize` and
    `randomize_all`.
  - `Factory.add_base_mod` and `clear_base_mods` manage the mods applied to
    every new template of a table.
  - `Factory.from_existing` makes a template that reproduces a row.
  - On `create`, required columns that are left unset get random values.
    Required foreign keys get a newly created parent row.
- **`storebench.randomness`**: the random value generators the factory uses.
  - The generators are `random_bool`, `random_decimal`, `random_int32`,
    `random_int64`, `random_string`, `random_time` and `random_json`.
  - `random_for_column(column, rng)` picks a generator from the column's
    database type.
  - Each generator takes an optional `random.Random`.
- **`storebench.errors`**:
  - `DatabaseError` is a numbered server error.
  - `UniqueConstraintError.matches(error)` tells whether an error is a
    duplicate entry (number 1062) on that constraint.
  - `errors_for(table)` returns a table's primary-key constraint error.

## Example

```python
import sqlite3

from storebench.records import Order, to_json
from storebench.sales import SaleError, create_sale, get_sale
from storebench.sales_schema import create_all

connection = sqlite3.connect(":memory:")
create_all(connection)
connection.execute(
    "INSERT INTO products (name, category, price) VALUES ('Coffee', 'drinks', '5.00')"
)
connection.commit()

order = Order.from_dict({
    "expected_total": 10.8,
    "items": [{"product_id": 1, "quantity": 2}],
    "payments": [{"payment_type": "cash", "amount": 10.8, "payment_info": {}}],
})

try:
    sale_id = create_sale(connection, order)
    print(to_json(get_sale(connection, sale_id)))
except SaleError as error:
    print("rejected:", error)
```

## What it does not do

- **No HTTP server and no command.** The handlers in `storebench.web` take a
  connection and the request data and return a `Response`. Routing them and
  serving them is up to the caller's web framework.
- **No connection management.** You open the DB-API connection yourself.
- **No report tables are filled in.** `item_summaries`, `dim_date` and
  `reporting_order` are plain tables. The reports only read them, and nothing
  in the package computes or refreshes their contents from recorded sales.