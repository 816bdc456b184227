"""Random column values for filling in rows of the store database."""

from __future__ import annotations

import json
import random
import re
from datetime import datetime, timedelta, timezone
from decimal import ROUND_DOWN, Decimal, localcontext
from typing import Any

from storebench.schema import Column

INT32_MAX = 2**31 - 1
INT64_MAX = 2**63 - 1

_DEFAULT_RNG = random.Random()

_WORDS = (
    "alias", "consequatur", "aut", "perferendis", "sit", "voluptatem", "accusantium",
    "doloremque", "aperiam", "eaque", "ipsa", "quae", "ab", "illo", "inventore",
    "veritatis", "et", "quasi", "architecto", "beatae", "vitae", "dicta", "sunt",
    "explicabo", "aspernatur", "odit", "fugit", "sed", "quia", "consequuntur",
    "magni", "dolores", "eos", "qui", "ratione", "sequi", "nesciunt", "neque",
    "dolorem", "ipsum", "dolor", "amet", "consectetur", "adipisci", "velit",
    "numquam", "eius", "modi", "tempora", "incidunt", "ut", "labore", "dolore",
    "magnam", "aliquam", "quaerat", "enim", "ad", "minima", "veniam", "quis",
    "nostrum", "exercitationem", "ullam", "corporis", "nemo", "ipsam", "voluptas",
    "suscipit", "laboriosam", "nisi", "aliquid", "ex", "ea", "commodi", "autem",
    "vel", "eum", "iure", "reprehenderit", "in", "voluptate", "esse", "quam",
    "nihil", "molestiae", "iusto", "odio", "dignissimos", "ducimus", "blanditiis",
    "praesentium", "laudantium", "totam", "rem", "voluptatum", "deleniti",
    "atque", "corrupti", "quos", "quas", "molestias", "excepturi", "sint",
    "occaecati", "cupiditate", "non", "provident", "similique", "culpa", "officia",
    "deserunt", "mollitia", "animi", "id", "est", "laborum", "dolorum", "fuga",
    "harum", "quidem", "rerum", "facilis", "expedita", "distinctio", "nam",
    "libero", "tempore", "cum", "soluta", "nobis", "eligendi", "optio", "cumque",
    "impedit", "quo", "porro", "quisquam", "minus", "maxime", "placeat", "facere",
    "possimus", "omnis", "assumenda", "repellendus", "temporibus", "quibusdam",
    "officiis", "debitis", "necessitatibus", "saepe", "eveniet", "voluptates",
    "repudiandae", "recusandae", "itaque", "earum", "hic", "tenetur", "a",
    "sapiente", "delectus", "reiciendis", "voluptatibus", "maiores", "doloribus",
    "asperiores", "repellat",
)

_TYPE_PATTERN = re.compile(r"^\s*([a-zA-Z]+)\s*(?:\(([^)]*)\))?")


def _rng(rng: random.Random | None) -> random.Random:
    return _DEFAULT_RNG if rng is None else rng


def _parse_int(text: str) -> int:
    try:
        return int(str(text).strip())
    except ValueError:
        return 0


def random_bool(rng: random.Random | None = None, *args: str) -> bool:
    """Return a random boolean."""
    return _rng(rng).random() < 0.5


def random_decimal(rng: random.Random | None = None, *args: str) -> Decimal:
    """Return a random decimal for a column of the given precision and scale.

    The limits are given as strings; precision defaults to 7 and scale to 3.
    The result is truncated towards zero to ``scale`` decimal places.
    """
    source = _rng(rng)
    precision = _parse_int(args[0]) if len(args) > 0 else 7
    scale = _parse_int(args[1]) if len(args) > 1 else 3

    base = round(source.uniform(-1, 1), 10)
    while base in (-1.0, 0.0, 1.0):
        base = round(source.uniform(-1, 1), 10)

    with localcontext() as context:
        context.prec = max(abs(precision) + abs(scale) + 30, 60)
        value = Decimal(repr(base)) * (Decimal(10) ** precision)
        value = value.scaleb(-scale)
        return value.quantize(Decimal(1).scaleb(-scale), rounding=ROUND_DOWN)


def random_int32(rng: random.Random | None = None, *args: str) -> int:
    """Return a random non-negative 32-bit integer."""
    return _rng(rng).randint(0, INT32_MAX)


def random_int64(rng: random.Random | None = None, *args: str) -> int:
    """Return a random non-negative 64-bit integer."""
    return _rng(rng).randint(0, INT64_MAX)


def random_string(rng: random.Random | None = None, *args: str) -> str:
    """Return one to five random words, cut to the length limit if one is given."""
    source = _rng(rng)
    count = source.randint(1, 5)
    text = " ".join(source.choice(_WORDS) for _ in range(count))
    if not args:
        return text
    limit = _parse_int(args[0])
    if 0 < limit < len(text):
        text = text[:limit]
    return text


def random_time(rng: random.Random | None = None, *args: str) -> datetime:
    """Return a random moment within a year either side of now, in UTC."""
    source = _rng(rng)
    year = timedelta(days=365)
    now = datetime.now(timezone.utc)
    earliest = now - year
    span = (2 * year).total_seconds()
    return earliest + timedelta(seconds=source.uniform(0, span))


def random_json(rng: random.Random | None = None, *args: str) -> str:
    """Return a JSON object of one to five random word pairs, as text."""
    source = _rng(rng)
    pairs = (
        f"{json.dumps(source.choice(_WORDS))}:{json.dumps(source.choice(_WORDS))}"
        for _ in range(source.randint(1, 5))
    )
    return "{" + ", ".join(pairs) + "}"


def random_for_column(column: Column, rng: random.Random | None = None) -> Any:
    """Return a random value suited to a column's database type."""
    match = _TYPE_PATTERN.match(column.db_type)
    if match is None:
        raise ValueError(f"unsupported column type {column.db_type!r}")
    base = match.group(1).lower()
    limits = [part.strip() for part in (match.group(2) or "").split(",") if part.strip()]

    if base in ("bool", "boolean") or (base == "tinyint" and limits == ["1"]):
        return random_bool(rng, *limits)
    if base in ("tinyint", "smallint", "mediumint", "int", "integer"):
        return random_int32(rng, *limits)
    if base == "bigint":
        return random_int64(rng, *limits)
    if base in ("decimal", "numeric"):
        return random_decimal(rng, *limits)
    if base in ("char", "varchar"):
        return random_string(rng, *limits)
    if base in ("text", "tinytext", "mediumtext", "longtext"):
        return random_string(rng)
    if base == "date":
        return random_time(rng).date()
    if base in ("datetime", "timestamp"):
        return random_time(rng)
    if base == "json":
        return random_json(rng)
    raise ValueError(f"unsupported column type {column.db_type!r}")