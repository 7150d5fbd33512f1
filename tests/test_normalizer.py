from __future__ import annotations

import pytest

from models.feed import RawFeedRecord
from models.readings import SensorReading
from services.channel_map import parse_mapping
from services.normalizer import ReadingNormalizer


def _record(**fields) -> RawFeedRecord:
    return RawFeedRecord(created_at="2024-05-01T10:00:00Z", entry_id=1, **fields)


def test_normalize_maps_and_parses_every_kind() -> None:
    record = _record(field1="650", field2="4.5", field3="1.2", field4="24.3", field5="55")

    reading = ReadingNormalizer().normalize(record)

    assert reading == SensorReading(
        temperature=24.3,
        humidity=55.0,
        co2=650.0,
        co=4.5,
        h2=1.2,
        timestamp="2024-05-01T10:00:00Z",
        entry_id=1,
    )


def test_temperature_with_dropped_decimal_is_rescaled() -> None:
    reading = ReadingNormalizer().normalize(_record(field4="3650"))

    assert reading.temperature == pytest.approx(36.5)


def test_rescaled_temperature_still_range_checked() -> None:
    reading = ReadingNormalizer().normalize(_record(field4="50000"))

    assert reading.temperature is None


def test_temperature_between_range_and_threshold_is_dropped() -> None:
    reading = ReadingNormalizer().normalize(_record(field4="250"))

    assert reading.temperature is None


def test_partial_record_propagates_nulls_per_kind() -> None:
    reading = ReadingNormalizer().normalize(_record(field1="700", field5="null"))

    assert reading.co2 == 700.0
    assert reading.humidity is None
    assert reading.temperature is None
    assert reading.co is None
    assert reading.h2 is None
    assert not reading.is_empty()


def test_normalize_is_idempotent() -> None:
    record = _record(field1="650", field2="4.5", field3="oops", field4="3436", field5="55")
    normalizer = ReadingNormalizer()

    assert normalizer.normalize(record) == normalizer.normalize(record)


def test_custom_mapping_changes_slot_lookup() -> None:
    mapping = parse_mapping("temperature=field1,humidity=field2,co2=field3,co=field4,h2=field5")
    record = _record(field1="22", field2="40", field3="800", field4="2", field5="1")

    reading = ReadingNormalizer(mapping=mapping).normalize(record)

    assert (reading.temperature, reading.humidity, reading.co2) == (22.0, 40.0, 800.0)


def test_numeric_json_fields_are_accepted() -> None:
    record = RawFeedRecord.model_validate(
        {"created_at": "2024-05-01T10:00:00Z", "field4": 21.5, "field5": 40}
    )

    reading = ReadingNormalizer().normalize(record)

    assert reading.temperature == 21.5
    assert reading.humidity == 40.0
