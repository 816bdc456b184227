import json
import random
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from storebench.randomness import (
    INT32_MAX,
    INT64_MAX,
    random_bool,
    random_decimal,
    random_for_column,
    random_int32,
    random_int64,
    random_json,
    random_string,
    random_time,
)
from storebench.schema import Column


def test_random_decimal_differs_between_calls():
    values = [random_decimal(None) for _ in range(5)]
    assert len(set(values)) > 1
    assert all(value.as_tuple().exponent == -3 for value in values)


def test_random_int32_differs_between_calls():
    values = [random_int32(None) for _ in range(5)]
    assert len(set(values)) > 1
    assert all(0 <= value <= INT32_MAX for value in values)


def test_random_int64_differs_between_calls():
    values = [random_int64(None) for _ in range(5)]
    assert len(set(values)) > 1
    assert all(0 <= value <= INT64_MAX for value in values)


def test_random_string_differs_between_calls():
    values = [random_string(None) for _ in range(5)]
    assert len(set(values)) > 1
    assert all(1 <= len(value.split(" ")) <= 5 for value in values)


def test_random_time_differs_between_calls():
    values = [random_time(None) for _ in range(5)]
    assert len(set(values)) > 1
    assert all(value.tzinfo == timezone.utc for value in values)


def test_random_json_differs_between_calls():
    values = [random_json(None) for _ in range(5)]
    assert len(set(values)) > 1
    assert all(len(json.loads(value)) >= 1 for value in values)


def test_same_seed_gives_same_values():
    first = random.Random(42)
    second = random.Random(42)
    assert random_string(first, "255") == random_string(second, "255")
    assert random_decimal(first, "10", "2") == random_decimal(second, "10", "2")
    assert random_int64(first) == random_int64(second)


def test_random_decimal_default_scale_and_bound():
    rng = random.Random(3)
    for _ in range(50):
        value = random_decimal(rng)
        assert value.as_tuple().exponent == -3
        assert abs(value) < Decimal(10) ** 4


def test_random_decimal_with_limits():
    rng = random.Random(5)
    for _ in range(50):
        value = random_decimal(rng, "10", "4")
        assert value.as_tuple().exponent == -4
        assert abs(value) < Decimal(10) ** 6


def test_random_int_ranges():
    rng = random.Random(9)
    for _ in range(100):
        assert 0 <= random_int32(rng) <= INT32_MAX
        assert 0 <= random_int64(rng) <= INT64_MAX


def test_random_bool_gives_both_values():
    rng = random.Random(11)
    values = {random_bool(rng) for _ in range(100)}
    assert values == {True, False}


def test_random_string_word_count_and_limit():
    rng = random.Random(13)
    for _ in range(100):
        text = random_string(rng)
        assert 1 <= len(text.split(" ")) <= 5
        assert len(random_string(rng, "5")) <= 5


def test_random_string_ignores_bad_limit():
    rng = random.Random(17)
    text = random_string(rng, "many")
    assert 1 <= len(text.split(" ")) <= 5


def test_random_time_within_a_year():
    rng = random.Random(19)
    now = datetime.now(timezone.utc)
    for _ in range(50):
        moment = random_time(rng)
        assert now - timedelta(days=366) <= moment <= now + timedelta(days=366)


def test_random_json_is_object_of_words():
    rng = random.Random(23)
    for _ in range(50):
        decoded = json.loads(random_json(rng))
        assert 1 <= len(decoded) <= 5
        assert all(isinstance(value, str) and value for value in decoded.values())


def test_random_for_column_varchar_respects_length():
    rng = random.Random(29)
    column = Column("phone", "varchar(24)")
    for _ in range(50):
        assert len(random_for_column(column, rng)) <= 24


def test_random_for_column_tinyint_one_is_bool():
    value = random_for_column(Column("marketing_opt_in", "tinyint(1)"), random.Random(1))
    assert value in (True, False) and isinstance(value, bool)


def test_random_for_column_int_and_bigint():
    rng = random.Random(31)
    assert 0 <= random_for_column(Column("month", "int"), rng) <= INT32_MAX
    assert 0 <= random_for_column(Column("id", "bigint"), rng) <= INT64_MAX


def test_random_for_column_decimal_uses_scale():
    value = random_for_column(Column("price", "decimal(10,2)"), random.Random(37))
    assert value.as_tuple().exponent == -2


def test_random_for_column_date_and_timestamp():
    rng = random.Random(41)
    day = random_for_column(Column("date", "date"), rng)
    moment = random_for_column(Column("created_at", "timestamp"), rng)
    assert type(day) is date
    assert moment.tzinfo == timezone.utc


def test_random_for_column_json_parses():
    text = random_for_column(Column("payment_info", "json"), random.Random(43))
    assert len(json.loads(text)) >= 1


def test_random_for_column_unknown_type():
    with pytest.raises(ValueError):
        random_for_column(Column("blob", "geometry"), random.Random(1))