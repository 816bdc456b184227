"""Database errors and the unique-constraint errors of the store's tables."""

from __future__ import annotations

from dataclasses import dataclass

DUPLICATE_ENTRY = 1062


class DatabaseError(Exception):
    """An error reported by the database server, identified by its error number."""

    def __init__(self, number: int, message: str, sql_state: str = "") -> None:
        super().__init__(number, message)
        self.number = number
        self.message = message
        self.sql_state = sql_state

    def __str__(self) -> str:
        if self.sql_state:
            return f"Error {self.number} ({self.sql_state}): {self.message}"
        return f"Error {self.number}: {self.message}"


class UniqueConstraintError(Exception):
    """A unique constraint, recognised in server errors by its name.

    An empty constraint name matches every duplicate-entry error.
    """

    def __init__(
        self,
        constraint: str = "",
        *,
        schema: str = "",
        table: str = "",
        columns: tuple[str, ...] = (),
    ) -> None:
        super().__init__(constraint)
        self.constraint = constraint
        self.schema = schema
        self.table = table
        self.columns = tuple(columns)

    def __str__(self) -> str:
        return self.constraint

    def matches(self, error: BaseException) -> bool:
        """Tell whether a server error is a duplicate entry on this constraint."""
        if not isinstance(error, DatabaseError):
            return False
        return error.number == DUPLICATE_ENTRY and self.constraint in error.message


ERR_UNIQUE_CONSTRAINT = UniqueConstraintError("")


@dataclass(frozen=True)
class TableErrors:
    """The constraint errors that belong to one table."""

    unique_primary: UniqueConstraintError


def _primary(table: str, column: str = "id") -> TableErrors:
    return TableErrors(UniqueConstraintError("PRIMARY", table=table, columns=(column,)))


_TABLE_ERRORS = {
    "customers": _primary("customers"),
    "dim_date": _primary("dim_date", "date"),
    "discounts": _primary("discounts"),
    "order_items": _primary("order_items"),
    "order_payments": _primary("order_payments"),
    "orders": _primary("orders"),
    "payment_names": _primary("payment_names"),
    "products": _primary("products"),
    "reporting_order": _primary("reporting_order"),
}


def errors_for(table: str) -> TableErrors:
    """Return the constraint errors of the named table."""
    try:
        return _TABLE_ERRORS[table]
    except KeyError:
        raise KeyError(f"no constraint errors for table {table!r}") from None