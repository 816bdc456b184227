"""Table descriptions of the store database and the DDL that creates them."""

from __future__ import annotations

import re
from dataclasses import dataclass

_NUMERIC = re.compile(r"^-?\d+(\.\d+)?$")
_KEYWORD_DEFAULTS = {"CURRENT_TIMESTAMP", "NULL"}


@dataclass(frozen=True)
class Column:
    name: str
    db_type: str
    default: str = ""
    comment: str = ""
    nullable: bool = False
    generated: bool = False
    auto_incr: bool = False


@dataclass(frozen=True)
class IndexColumn:
    name: str
    desc: bool | None = None
    is_expression: bool = False


@dataclass(frozen=True)
class Index:
    type: str
    name: str
    columns: tuple[IndexColumn, ...] = ()
    unique: bool = False
    comment: str = ""


@dataclass(frozen=True)
class Constraint:
    name: str
    columns: tuple[str, ...] = ()
    comment: str = ""


@dataclass(frozen=True)
class ForeignKey(Constraint):
    foreign_table: str = ""
    foreign_columns: tuple[str, ...] = ()


@dataclass(frozen=True)
class Check(Constraint):
    expression: str = ""


@dataclass(frozen=True)
class Table:
    name: str
    columns: tuple[Column, ...]
    indexes: tuple[Index, ...] = ()
    primary_key: Constraint | None = None
    foreign_keys: tuple[ForeignKey, ...] = ()
    uniques: tuple[Constraint, ...] = ()
    checks: tuple[Check, ...] = ()
    schema: str = ""
    comment: str = ""

    def column(self, name: str) -> Column:
        """Return the column with the given name."""
        for column in self.columns:
            if column.name == name:
                return column
        raise KeyError(f"table {self.name!r} has no column {name!r}")

    def column_names(self) -> list[str]:
        """Return the column names in table order."""
        return [column.name for column in self.columns]

    def _inline_primary_key(self) -> str | None:
        if self.primary_key is None or len(self.primary_key.columns) != 1:
            return None
        name = self.primary_key.columns[0]
        return name if self.column(name).auto_incr else None

    def create_sql(self) -> str:
        """Return SQL statements that create the table and its secondary indexes."""
        inline_key = self._inline_primary_key()
        lines = [_column_sql(column, column.name == inline_key) for column in self.columns]
        if self.primary_key is not None and inline_key is None:
            lines.append(f"PRIMARY KEY ({_names(self.primary_key.columns)})")
        for unique in self.uniques:
            lines.append(f"CONSTRAINT {_quote(unique.name)} UNIQUE ({_names(unique.columns)})")
        for key in self.foreign_keys:
            lines.append(
                f"CONSTRAINT {_quote(key.name)} FOREIGN KEY ({_names(key.columns)}) "
                f"REFERENCES {_quote(key.foreign_table)} ({_names(key.foreign_columns)})"
            )
        for check in self.checks:
            lines.append(f"CONSTRAINT {_quote(check.name)} CHECK ({check.expression})")

        statements = [
            f"CREATE TABLE IF NOT EXISTS {_quote(self.name)} (\n    "
            + ",\n    ".join(lines)
            + "\n)"
        ]
        primary_name = self.primary_key.name if self.primary_key else None
        for index in self.indexes:
            if index.name == primary_name:
                continue
            unique = "UNIQUE " if index.unique else ""
            columns = ", ".join(_index_column_sql(part) for part in index.columns)
            statements.append(
                f"CREATE {unique}INDEX IF NOT EXISTS {_quote(f'{self.name}_{index.name}')} "
                f"ON {_quote(self.name)} ({columns})"
            )
        return ";\n".join(statements) + ";"


def _quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


def _names(names: tuple[str, ...]) -> str:
    return ", ".join(_quote(name) for name in names)


def _index_column_sql(part: IndexColumn) -> str:
    text = part.name if part.is_expression else _quote(part.name)
    return text + " DESC" if part.desc else text


def _default_sql(column: Column) -> str | None:
    default = column.default
    if not default or default == "AUTO_INCREMENT":
        return None
    if default.upper() in _KEYWORD_DEFAULTS or _NUMERIC.match(default):
        return default
    return "'" + default.replace("'", "''") + "'"


def _column_sql(column: Column, inline_primary_key: bool) -> str:
    if inline_primary_key:
        return f"{_quote(column.name)} INTEGER PRIMARY KEY AUTOINCREMENT"
    parts = [_quote(column.name), column.db_type]
    if not column.nullable:
        parts.append("NOT NULL")
    default = _default_sql(column)
    if default is not None:
        parts.append(f"DEFAULT {default}")
    return " ".join(parts)


def _id_column() -> Column:
    return Column("id", "bigint", default="AUTO_INCREMENT", auto_incr=True)


def _timestamps() -> tuple[Column, Column]:
    return (
        Column("created_at", "timestamp", default="CURRENT_TIMESTAMP", nullable=True),
        Column("updated_at", "timestamp", default="CURRENT_TIMESTAMP", nullable=True),
    )


def _primary_index(column: str) -> Index:
    return Index("BTREE", "PRIMARY", (IndexColumn(column, desc=False),), unique=True)


def _primary_key(column: str) -> Constraint:
    return Constraint("PRIMARY", (column,))


CUSTOMERS = Table(
    name="customers",
    columns=(
        _id_column(),
        Column("name", "varchar(255)"),
        Column("phone", "varchar(24)", nullable=True),
        Column("email", "varchar(255)", nullable=True),
        Column("marketing_opt_in", "tinyint(1)", default="0", nullable=True),
        *_timestamps(),
    ),
    indexes=(_primary_index("id"),),
    primary_key=_primary_key("id"),
)

DIM_DATES = Table(
    name="dim_date",
    columns=(
        Column("date", "date"),
        Column("month", "int"),
        Column("year", "int"),
        Column("quarter", "int"),
        Column("day_of_week", "int"),
        Column("day_of_month", "int"),
        Column("day_of_year", "int"),
        Column("week_of_year", "int"),
        Column("week_of_month", "int"),
    ),
    indexes=(_primary_index("date"),),
    primary_key=_primary_key("date"),
)

DISCOUNTS = Table(
    name="discounts",
    columns=(
        _id_column(),
        Column("name", "varchar(255)"),
        Column("category", "varchar(32)"),
        Column("discount_type", "varchar(12)"),
        Column("discount", "decimal(10,4)"),
        *_timestamps(),
    ),
    indexes=(_primary_index("id"),),
    primary_key=_primary_key("id"),
)

ITEM_SUMMARIES = Table(
    name="item_summaries",
    columns=(
        Column("id", "bigint", nullable=True),
        Column("name", "varchar(255)"),
        Column("category", "varchar(32)"),
        Column("order_type", "varchar(12)"),
        Column("order_date", "date", default="0000-00-00"),
        Column("total_quantity", "decimal(32,0)", nullable=True),
        Column("total_sales", "decimal(42,2)", nullable=True),
        Column("order_count", "bigint", default="0"),
    ),
)