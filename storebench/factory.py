"""Templates that build and insert rows of the store database for tests and seeding."""

from __future__ import annotations

import json
import random
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Union

from storebench.randomness import random_for_column
from storebench.sales_schema import table as lookup_table
from storebench.schema import Column, ForeignKey, Table

Mod = Callable[["Template"], None]
TableRef = Union[str, Table]


def _quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


def _adapt(value: Any) -> Any:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return value


def _required(column: Column) -> bool:
    return not (column.nullable or column.default or column.auto_incr or column.generated)


@dataclass(eq=False)
class Template:
    """A recipe for rows of one table: each set column has a function giving its value."""

    table: Table
    factory: Factory | None = None
    values: dict[str, Callable[[], Any]] = field(default_factory=dict)
    already_persisted: bool = False

    def apply(self, *mods: Mod) -> None:
        """Apply mods to the template in order."""
        for mod in mods:
            mod(self)

    def build(self) -> dict[str, Any]:
        """Return a row of every column; columns that are not set are None."""
        return {
            column.name: self.values[column.name]() if column.name in self.values else None
            for column in self.table.columns
        }

    def build_many(self, number: int) -> list[dict[str, Any]]:
        """Return ``number`` rows built independently."""
        return [self.build() for _ in range(number)]

    def _foreign_key(self, column: str) -> ForeignKey | None:
        for key in self.table.foreign_keys:
            if key.columns == (column,):
                return key
        return None

    def _factory(self) -> Factory:
        if self.factory is None:
            self.factory = Factory()
        return self.factory

    def _creatable_row(self, connection) -> dict[str, Any]:
        given = {name: func() for name, func in self.values.items()}
        row: dict[str, Any] = {}
        for column in self.table.columns:
            if column.name in given:
                row[column.name] = given[column.name]
            elif _required(column):
                key = self._foreign_key(column.name)
                if key is not None:
                    parent = self._factory().new(key.foreign_table).create(connection)
                    row[column.name] = parent[key.foreign_columns[0]]
                else:
                    row[column.name] = random_for_column(column)
        return row

    def create(self, connection) -> dict[str, Any]:
        """Insert a row on a DB-API connection and return it as stored.

        Required columns left unset get random values; required foreign keys
        get a newly created parent row. The transaction is left to the caller.
        """
        row = self._creatable_row(connection)
        name = _quote(self.table.name)
        cursor = connection.cursor()
        try:
            if row:
                columns = ", ".join(_quote(column) for column in row)
                marks = ", ".join("?" for _ in row)
                cursor.execute(
                    f"INSERT INTO {name} ({columns}) VALUES ({marks})",
                    [_adapt(value) for value in row.values()],
                )
            else:
                cursor.execute(f"INSERT INTO {name} DEFAULT VALUES")

            key = self.table.primary_key
            if key is None:
                return {column.name: row.get(column.name) for column in self.table.columns}

            key_values = []
            for column_name in key.columns:
                if column_name in row:
                    key_values.append(_adapt(row[column_name]))
                else:
                    key_values.append(cursor.lastrowid)
            condition = " AND ".join(f"{_quote(column)} = ?" for column in key.columns)
            cursor.execute(f"SELECT * FROM {name} WHERE {condition}", key_values)
            stored = cursor.fetchone()
            if stored is None:
                raise LookupError(f"inserted row not found in {self.table.name!r}")
            names = [description[0] for description in cursor.description]
            return dict(zip(names, stored))
        finally:
            cursor.close()

    def create_many(self, connection, number: int) -> list[dict[str, Any]]:
        """Insert ``number`` rows and return them as stored."""
        return [self.create(connection) for _ in range(number)]


class Factory:
    """Makes templates for the store's tables, with base mods applied per table."""

    def __init__(self) -> None:
        self._base_mods: dict[str, list[Mod]] = {}

    @staticmethod
    def _resolve(table: TableRef) -> Table:
        return table if isinstance(table, Table) else lookup_table(table)

    def new(self, table: TableRef, *mods: Mod) -> Template:
        """Return a template for the table with base mods, then the given mods, applied."""
        resolved = self._resolve(table)
        template = Template(resolved, factory=self)
        template.apply(*self._base_mods.get(resolved.name, ()))
        template.apply(*mods)
        return template

    def from_existing(self, table: TableRef, row: Mapping[str, Any]) -> Template:
        """Return a template that reproduces an existing row."""
        resolved = self._resolve(table)
        template = Template(resolved, factory=self, already_persisted=True)
        template.apply(*(set_value(name, value) for name, value in row.items()))
        return template

    def add_base_mod(self, table: TableRef, *mods: Mod) -> None:
        """Add mods applied to every new template of the table."""
        self._base_mods.setdefault(self._resolve(table).name, []).extend(mods)

    def clear_base_mods(self, table: TableRef) -> None:
        """Drop the base mods of the table."""
        self._base_mods.pop(self._resolve(table).name, None)


def set_value(column: str, value: Any) -> Mod:
    """Mod that sets a column to a fixed value."""

    def mod(template: Template) -> None:
        template.table.column(column)
        template.values[column] = lambda: value

    return mod


def set_func(column: str, func: Callable[[], Any]) -> Mod:
    """Mod that takes a column's value from a function, called per row."""

    def mod(template: Template) -> None:
        template.table.column(column)
        template.values[column] = func

    return mod


def unset(column: str) -> Mod:
    """Mod that clears any value set for a column."""

    def mod(template: Template) -> None:
        template.table.column(column)
        template.values.pop(column, None)

    return mod


def randomize(column: str, rng: random.Random | None = None) -> Mod:
    """Mod that gives a column a fresh random value for each row."""

    def mod(template: Template) -> None:
        described = template.table.column(column)
        template.values[column] = lambda: random_for_column(described, rng)

    return mod


def randomize_all(rng: random.Random | None = None) -> Mod:
    """Mod that gives every column of the table random values."""

    def mod(template: Template) -> None:
        template.apply(*(randomize(column.name, rng) for column in template.table.columns))

    return mod