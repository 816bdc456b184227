"""Point-of-sale store backend: schema, sales, customers, reports, request handlers and test-data factory."""

__version__ = "0.1.0"

__all__ = [
    "errors",
    "factory",
    "randomness",
    "records",
    "reports",
    "sales",
    "sales_schema",
    "schema",
    "web",
]