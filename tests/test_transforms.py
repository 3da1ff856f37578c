"""Tests for the row normalizer and its helpers."""

import math
import random

import pandas as pd
import pytest

from moisture_dashboard.errors import ConfigurationError
from moisture_dashboard.models import SensorSpec
from moisture_dashboard.simulator import generate_sensor_rows
from moisture_dashboard.transforms import (
    clean_sensor_series,
    detect_date_column,
    filter_by_range,
    get_available_columns,
    normalize_rows,
    points_to_frame,
    sensor_bounds,
    sensor_observations,
)

HOUR_MS = 3_600_000


# ── normalize_rows ───────────────────────────────────────────────────────────

def test_bad_date_row_is_dropped_and_bad_value_kept(sensors):
    rows = [
        {"ДатаЧас": "01.05.2024 10:00", "soil_1": "21.5", "soil_2": "19"},
        {"ДатаЧас": "not a date", "soil_1": "20.0", "soil_2": "18"},
        {"ДатаЧас": "01.05.2024 11:00", "soil_1": "not a number", "soil_2": "18.5"},
    ]

    points = normalize_rows(rows, "ДатаЧас", sensors)

    assert [p.raw_label for p in points] == ["01.05.2024 10:00", "01.05.2024 11:00"]
    assert points[1].values == {"soil_1": None, "soil_2": 18.5}


def test_point_with_all_null_values_is_kept(sensors):
    rows = [{"ДатаЧас": "01.05.2024 10:00", "soil_1": "", "soil_2": None}]

    points = normalize_rows(rows, "ДатаЧас", sensors)

    assert len(points) == 1
    assert points[0].values == {"soil_1": None, "soil_2": None}


def test_missing_sensor_key_is_recorded_as_none(sensors):
    rows = [{"ДатаЧас": "01.05.2024 10:00", "soil_1": "12"}]

    points = normalize_rows(rows, "ДатаЧас", sensors)

    assert "soil_2" in points[0].values
    assert points[0].values["soil_2"] is None


def test_hidden_sensor_is_not_requested():
    sensors = [
        SensorSpec(name="A", column="a"),
        SensorSpec(name="B", column="b", visible=False),
    ]
    rows = [{"t": "01.05.2024 10:00", "a": "1", "b": "2"}]

    points = normalize_rows(rows, "t", sensors)

    assert points[0].values == {"a": 1.0}


def test_sensor_config_dicts_are_accepted():
    sensors = [{"name": "A", "column": "a", "color": "#fff", "visible": True, "type": "bar"}]
    rows = [{"t": "Date(2024,4,1,10,0,0)", "a": "3,5"}]

    points = normalize_rows(rows, "t", sensors)

    assert points[0].values == {"a": 3.5}


def test_sensor_from_dict_requires_column():
    with pytest.raises(ConfigurationError) as exc_info:
        SensorSpec.from_dict({"name": "Bed 1"})

    assert exc_info.value.missing_fields == ["column"]


def test_mixed_date_encodings_sort_together(sensors):
    rows = [
        {"ДатаЧас": "01.05.2024 12:00:00", "soil_1": "3"},
        {"ДатаЧас": "Date(2024,4,1,10,0,0)", "soil_1": "1"},
        {"ДатаЧас": "2024-05-01T11:00:00", "soil_1": "2"},
    ]

    points = normalize_rows(rows, "ДатаЧас", sensors)

    assert [p.values["soil_1"] for p in points] == [1.0, 2.0, 3.0]
    assert points[1].timestamp - points[0].timestamp == HOUR_MS


def test_output_is_sorted(hourly_rows, sensors):
    shuffled = list(hourly_rows)
    random.Random(7).shuffle(shuffled)

    points = normalize_rows(shuffled, "ДатаЧас", sensors)
    timestamps = [p.timestamp for p in points]

    assert timestamps == sorted(timestamps)


@pytest.mark.parametrize("seed", [1, 2, 3])
def test_output_is_independent_of_input_order(seed):
    rows = generate_sensor_rows(hours=72, seed=11, bad_date_rate=0.05)
    sensors = [SensorSpec(name=c, column=c) for c in rows[0] if c != "ДатаЧас"]
    shuffled = list(rows)
    random.Random(seed).shuffle(shuffled)

    baseline = normalize_rows(rows, "ДатаЧас", sensors)
    reordered = normalize_rows(shuffled, "ДатаЧас", sensors)

    assert [(p.timestamp, p.values) for p in reordered] == [
        (p.timestamp, p.values) for p in baseline
    ]


def test_equal_timestamps_keep_input_order():
    sensors = [SensorSpec(name="A", column="a")]
    rows = [
        {"t": "01.05.2024 11:00", "a": "9"},
        {"t": "01.05.2024 10:00", "a": "first"},
        {"t": "Date(2024,4,1,10,0,0)", "a": "2"},
        {"t": "01.05.2024 10:00:00", "a": "3"},
    ]

    points = normalize_rows(rows, "t", sensors)

    assert [p.raw_label for p in points] == [
        "01.05.2024 10:00",
        "Date(2024,4,1,10,0,0)",
        "01.05.2024 10:00:00",
        "01.05.2024 11:00",
    ]


def test_non_mapping_rows_are_skipped(sensors):
    rows = [None, "junk", {"ДатаЧас": "01.05.2024 10:00", "soil_1": "1"}]

    assert len(normalize_rows(rows, "ДатаЧас", sensors)) == 1


def test_empty_rows_give_empty_output(sensors):
    assert normalize_rows([], "ДатаЧас", sensors) == []


def test_empty_sensor_list_still_yields_points():
    rows = [{"t": "01.05.2024 10:00", "a": "1"}]

    points = normalize_rows(rows, "t", [])

    assert len(points) == 1
    assert points[0].values == {}


@pytest.mark.parametrize(
    "rows, date_column, sensors, missing",
    [
        ([], None, [], ["date_column"]),
        ([], "", [], ["date_column"]),
        ([], "t", None, ["sensors"]),
        (None, "t", [], ["rows"]),
        (None, None, None, ["rows", "date_column", "sensors"]),
        ([{"t": "01.05.2024 10:00"}], "t", [{"name": "x"}], ["sensors[0].column"]),
        ([], "t", [SensorSpec("a", "a"), {"column": ""}], ["sensors[1].column"]),
        ([], "t", [{"name": "x"}, "soil_1"], ["sensors[0].column", "sensors[1].column"]),
    ],
)
def test_missing_configuration_raises(rows, date_column, sensors, missing):
    with pytest.raises(ConfigurationError) as exc_info:
        normalize_rows(rows, date_column, sensors)

    assert exc_info.value.missing_fields == missing
    assert isinstance(exc_info.value, ValueError)


# ── Range filtering ──────────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "time_range, expected",
    [
        ("all", 240),
        ("7d", 169),
        ("1d", 25),
        ("6h", 7),
        ("1h", 2),
        ("30d", 240),
        ("fortnight", 240),
        (None, 240),
    ],
)
def test_range_counts(hourly_rows, sensors, time_range, expected):
    assert len(normalize_rows(hourly_rows, "ДатаЧас", sensors, time_range)) == expected


@pytest.mark.parametrize("time_range", ["1h", "6h", "1d", "7d"])
def test_range_is_a_subset_of_all(hourly_rows, sensors, time_range):
    everything = {p.timestamp for p in normalize_rows(hourly_rows, "ДатаЧас", sensors, "all")}
    narrowed = {p.timestamp for p in normalize_rows(hourly_rows, "ДатаЧас", sensors, time_range)}

    assert narrowed <= everything


def test_range_is_anchored_to_latest_point_not_now(sensors):
    start = pd.Timestamp("2019-03-01 00:00")
    rows = [
        {"ДатаЧас": (start + pd.Timedelta(hours=i)).strftime("%d.%m.%Y %H:%M"), "soil_1": "1"}
        for i in range(72)
    ]

    points = normalize_rows(rows, "ДатаЧас", sensors, "1d")

    assert len(points) == 25
    assert points[-1].raw_label == "03.03.2019 23:00"


def test_filter_by_range_preserves_order(hourly_rows, sensors):
    points = normalize_rows(hourly_rows, "ДатаЧас", sensors)

    filtered = filter_by_range(points, "1d")

    assert filtered == points[-25:]


@pytest.mark.parametrize("time_range", [["7d"], {"7d": 1}, 7])
def test_non_string_range_keeps_all_points(hourly_rows, sensors, time_range):
    points = normalize_rows(hourly_rows, "ДатаЧас", sensors)

    assert filter_by_range(points, time_range) == points


# ── Column helpers ───────────────────────────────────────────────────────────

def test_get_available_columns_excludes_date_headers():
    rows = [{"ДатаЧас": "x", "Шпалера": "1", "Date": "y", "": "z", "Грядка": "2"}]

    assert get_available_columns(rows) == ["Шпалера", "Грядка"]


def test_get_available_columns_empty():
    assert get_available_columns([]) == []


def test_detect_date_column_prefers_known_header():
    rows = [{"level": "12", "Timestamp": "01.05.2024 10:00"}]

    assert detect_date_column(rows) == "Timestamp"


def test_detect_date_column_by_content():
    rows = [
        {"reading": "12.5", "when": f"0{i}.05.2024 10:00"}
        for i in range(1, 6)
    ]

    assert detect_date_column(rows) == "when"


def test_detect_date_column_none():
    assert detect_date_column([{"a": "1", "b": "x"}]) is None
    assert detect_date_column([]) is None


def test_clean_sensor_series():
    rows = [
        {"t": "01.05.2024 10:00", "a": "1.5"},
        {"t": "", "a": "2"},
        {"t": "01.05.2024 11:00", "a": "n/a"},
        {"t": "01.05.2024 12:00"},
        {"t": "01.05.2024 13:00", "a": 4},
    ]

    assert clean_sensor_series(rows, "t", "a") == [
        {"date": "01.05.2024 10:00", "value": 1.5, "sensor": "a"},
        {"date": "01.05.2024 13:00", "value": 4.0, "sensor": "a"},
    ]


def test_sensor_observations_drop_nulls(sensors):
    rows = [
        {"ДатаЧас": "01.05.2024 10:00", "soil_1": "20"},
        {"ДатаЧас": "01.05.2024 11:00", "soil_1": ""},
        {"ДатаЧас": "01.05.2024 12:00", "soil_1": "18"},
    ]
    points = normalize_rows(rows, "ДатаЧас", sensors)

    observations = sensor_observations(points, "soil_1")

    assert [o.value for o in observations] == [20.0, 18.0]
    assert observations[1].timestamp - observations[0].timestamp == 2 * HOUR_MS


# ── Frames and bounds ────────────────────────────────────────────────────────

def test_points_to_frame(sensors):
    rows = [
        {"ДатаЧас": "01.05.2024 10:00", "soil_1": "20", "soil_2": "x"},
        {"ДатаЧас": "01.05.2024 11:30", "soil_1": "19.5", "soil_2": "17"},
    ]
    points = normalize_rows(rows, "ДатаЧас", sensors)

    df = points_to_frame(points, sensors)

    assert list(df.columns) == ["timestamp", "label", "display_time", "soil_1", "soil_2"]
    assert pd.api.types.is_datetime64_any_dtype(df["timestamp"])
    assert df["timestamp"].iloc[1] == pd.Timestamp("2024-05-01 11:30")
    assert df["display_time"].tolist() == ["01.05 10:00", "01.05 11:30"]
    assert math.isnan(df["soil_2"].iloc[0])
    assert df["soil_1"].tolist() == [20.0, 19.5]


def test_points_to_frame_empty(sensors):
    df = points_to_frame([], sensors)

    assert df.empty
    assert list(df.columns) == ["timestamp", "label", "display_time", "soil_1", "soil_2"]


def test_sensor_bounds(sensors):
    rows = [
        {"ДатаЧас": "01.05.2024 10:00", "soil_1": "10", "soil_2": ""},
        {"ДатаЧас": "01.05.2024 11:00", "soil_1": "20", "soil_2": "15"},
    ]
    points = normalize_rows(rows, "ДатаЧас", sensors)

    low, high = sensor_bounds(points, ["soil_1", "soil_2"])

    assert low == pytest.approx(9.0)
    assert high == pytest.approx(21.0)


def test_sensor_bounds_clamps_at_zero_and_defaults():
    points = normalize_rows(
        [{"t": "01.05.2024 10:00", "a": "0.5"}, {"t": "01.05.2024 11:00", "a": "10.5"}],
        "t",
        [SensorSpec(name="A", column="a")],
    )

    assert sensor_bounds(points, ["a"])[0] == 0.0
    assert sensor_bounds([], ["a"]) == (0.0, 24.0)
