"""Unit tests for field parsing and plausibility ranges."""

from __future__ import annotations

import pytest

from models.readings import SensorKind
from services.parser import DEFAULT_RANGES, INGEST_RANGES, FieldParser, parse_number


@pytest.fixture()
def parser() -> FieldParser:
    return FieldParser()


@pytest.mark.parametrize("raw", [None, "", "   ", "null", "undefined", "NULL", "abc", "12abc", "nan", "NaN"])
def test_missing_and_non_numeric_values_parse_to_none(parser: FieldParser, raw) -> None:
    for kind in SensorKind:
        assert parser.parse(raw, kind) is None


@pytest.mark.parametrize(
    ("kind", "raw"),
    [
        (SensorKind.temperature, "-50.1"),
        (SensorKind.temperature, "100.5"),
        (SensorKind.temperature, "3650"),
        (SensorKind.humidity, "-1"),
        (SensorKind.humidity, "101"),
        (SensorKind.co2, "-0.5"),
        (SensorKind.co2, "10000.01"),
        (SensorKind.co, "101"),
        (SensorKind.h2, "150"),
        (SensorKind.co2, "inf"),
    ],
)
def test_out_of_range_values_are_null_not_clamped(parser: FieldParser, kind, raw) -> None:
    assert parser.parse(raw, kind) is None


@pytest.mark.parametrize(
    ("kind", "raw", "expected"),
    [
        (SensorKind.temperature, "30.80", 30.8),
        (SensorKind.temperature, "-50", -50.0),
        (SensorKind.temperature, "100", 100.0),
        (SensorKind.humidity, " 75.00 ", 75.0),
        (SensorKind.co2, "3691.00", 3691.0),
        (SensorKind.co, "72", 72.0),
        (SensorKind.h2, "0", 0.0),
    ],
)
def test_values_inside_range_pass_through(parser: FieldParser, kind, raw, expected) -> None:
    assert parser.parse(raw, kind) == pytest.approx(expected)


def test_ingest_profile_is_wider_than_display_profile() -> None:
    ingest = FieldParser(INGEST_RANGES)
    display = FieldParser(DEFAULT_RANGES)

    assert ingest.parse("120", SensorKind.temperature) == 120.0
    assert display.parse("120", SensorKind.temperature) is None
    assert ingest.parse("500", SensorKind.co) == 500.0
    assert display.parse("500", SensorKind.co) is None


def test_parse_number_ignores_range() -> None:
    assert parse_number("3650") == 3650.0
    assert parse_number("undefined") is None


def test_parser_rejects_incomplete_range_table() -> None:
    with pytest.raises(ValueError, match="h2"):
        FieldParser({kind: DEFAULT_RANGES[kind] for kind in SensorKind if kind is not SensorKind.h2})


@pytest.mark.parametrize("raw", ["1_0", "infinity", "-Infinity", "0x10", "1e400", "1.2.3", "٣"])
def test_only_plain_decimal_notation_is_numeric(raw: str) -> None:
    assert parse_number(raw) is None


@pytest.mark.parametrize(("raw", "expected"), [("+5", 5.0), (".5", 0.5), ("5.", 5.0), ("1e2", 100.0)])
def test_decimal_forms_are_accepted(raw: str, expected: float) -> None:
    assert parse_number(raw) == expected
