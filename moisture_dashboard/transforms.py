"""
Row normalization: turn loosely typed spreadsheet rows into a sorted,
range-filtered sequence of TimePoints, plus helpers that slice and reshape
that sequence for charts and the forecaster.

Data-quality problems never raise here. A row whose timestamp cannot be
parsed is dropped; a sensor cell that cannot be parsed becomes None.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence

import pandas as pd

from .config import DATE_COLUMN_CANDIDATES, TIME_RANGES
from .errors import ConfigurationError
from .loaders.utils import format_short_label, try_parse_date, try_parse_number
from .models import Observation, SensorSpec, TimePoint

logger = logging.getLogger(__name__)

RawRow = Mapping[str, object]


def resolve_sensors(sensors: Iterable[SensorSpec | Mapping]) -> list[SensorSpec]:
    """Turn sensor config entries into SensorSpecs, dropping hidden ones.

    Raises
    ------
    ConfigurationError
        If any entry has no source column. missing_fields names each bad
        entry by position, e.g. "sensors[1].column".
    """
    specs = []
    missing = []
    for i, sensor in enumerate(sensors):
        if isinstance(sensor, SensorSpec):
            spec = sensor
        elif isinstance(sensor, Mapping) and sensor.get("column"):
            spec = SensorSpec.from_dict(dict(sensor))
        else:
            spec = None
        if spec is None or not spec.column:
            missing.append(f"sensors[{i}].column")
            continue
        if spec.visible is not False:
            specs.append(spec)

    if missing:
        raise ConfigurationError(
            f"Missing required configuration: {', '.join(missing)}", missing
        )
    return specs


def _check_contract(rows, date_column, sensors) -> None:
    missing = []
    if rows is None:
        missing.append("rows")
    if not date_column:
        missing.append("date_column")
    if sensors is None:
        missing.append("sensors")
    if missing:
        raise ConfigurationError(
            f"Missing required configuration: {', '.join(missing)}", missing
        )


def normalize_rows(
    rows: Iterable[RawRow],
    date_column: str,
    sensors: Sequence[SensorSpec | Mapping],
    time_range: str | None = "all",
) -> list[TimePoint]:
    """Parse, sort and range-filter raw rows.

    Parameters
    ----------
    rows : Raw spreadsheet rows keyed by column header.
    date_column : Header of the timestamp column.
    sensors : Configured sensors. Hidden sensors are not read.
    time_range : Key of config.TIME_RANGES, measured back from the latest
                 timestamp in the data. Unknown keys keep everything.

    Returns
    -------
    TimePoints sorted by timestamp. Rows with equal timestamps keep their
    input order.

    Raises
    ------
    ConfigurationError
        If rows, date_column or sensors is missing, or a sensor entry has
        no column.
    """
    _check_contract(rows, date_column, sensors)

    active = resolve_sensors(sensors)

    points = []
    total = 0
    skipped = 0
    for row in rows:
        total += 1
        if not isinstance(row, Mapping):
            skipped += 1
            continue

        raw_date = row.get(date_column)
        timestamp = try_parse_date(raw_date)
        if timestamp is None:
            skipped += 1
            logger.debug("Skipping row with unparseable date %r", raw_date)
            continue

        points.append(TimePoint(
            timestamp=timestamp,
            raw_label="" if raw_date is None else str(raw_date),
            values={spec.column: try_parse_number(row.get(spec.column)) for spec in active},
        ))

    # list.sort is stable, so equal timestamps keep source order
    points.sort(key=lambda p: p.timestamp)

    if skipped:
        logger.info("Skipped %d of %d rows with unparseable dates", skipped, total)

    result = filter_by_range(points, time_range)
    logger.info(
        "Normalized %d points for %d sensors (range=%s)",
        len(result), len(active), time_range,
    )
    return result


def filter_by_range(points: Sequence[TimePoint], time_range: str | None) -> list[TimePoint]:
    """Keep points within the range window ending at the latest timestamp.

    The window is anchored to the data, not to the current time, so historic
    exports filter the same way as live ones. Order is preserved.
    """
    if time_range is not None and not (isinstance(time_range, str) and time_range in TIME_RANGES):
        logger.warning("Unknown time range %r, keeping all points", time_range)
        return list(points)

    duration = TIME_RANGES.get(time_range) if time_range is not None else None
    if duration is None or not points:
        return list(points)

    cutoff = max(p.timestamp for p in points) - duration
    return [p for p in points if p.timestamp >= cutoff]


def get_available_columns(rows: Sequence[RawRow]) -> list[str]:
    """Return sensor column candidates: the headers that are not date columns."""
    if not rows:
        return []

    return [
        col for col in rows[0].keys()
        if col and col not in DATE_COLUMN_CANDIDATES
    ]


def detect_date_column(rows: Sequence[RawRow], sample_size: int = 20) -> str | None:
    """Guess which column holds timestamps.

    Known date headers win. Otherwise the first column where most sampled
    non-numeric cells parse as dates is returned.
    """
    if not rows:
        return None

    first = rows[0]
    for name in DATE_COLUMN_CANDIDATES:
        if name in first:
            return name

    sample = rows[:sample_size]
    for col in first.keys():
        # Plain numbers would pass as serial dates, so only text cells vote
        cells = [r.get(col) for r in sample if try_parse_number(r.get(col)) is None]
        parsed = sum(1 for c in cells if try_parse_date(c) is not None)
        if parsed and parsed > len(sample) / 2:
            return col

    return None


def clean_sensor_series(
    rows: Iterable[RawRow],
    date_column: str,
    sensor_column: str,
) -> list[dict]:
    """Rows that have a date cell and a numeric reading for one sensor.

    Returns
    -------
    List of dicts: {"date": raw date cell, "value": float, "sensor": column}.
    """
    if rows is None:
        return []

    series = []
    for row in rows:
        raw_date = row.get(date_column)
        if raw_date is None or raw_date == "":
            continue
        value = try_parse_number(row.get(sensor_column))
        if value is None:
            continue
        series.append({"date": raw_date, "value": value, "sensor": sensor_column})
    return series


def sensor_observations(points: Iterable[TimePoint], column: str) -> list[Observation]:
    """Non-null readings of one sensor, in sequence order."""
    observations = []
    for point in points:
        value = point.values.get(column)
        if value is not None:
            observations.append(Observation(timestamp=point.timestamp, value=value))
    return observations


def sensor_bounds(
    points: Iterable[TimePoint],
    columns: Iterable[str],
    default: tuple[float, float] = (0.0, 24.0),
) -> tuple[float, float]:
    """Y-axis bounds over all non-null readings, padded by 10%.

    The lower bound never goes below zero.
    """
    columns = list(columns)
    values = [
        v for p in points for c in columns
        if (v := p.values.get(c)) is not None
    ]
    if not values:
        return default

    low, high = min(values), max(values)
    pad = (high - low) * 0.1
    return max(low - pad, 0.0), high + pad


def points_to_frame(
    points: Sequence[TimePoint],
    sensors: Sequence[SensorSpec | Mapping] | None = None,
) -> pd.DataFrame:
    """Flatten TimePoints into a chart-ready DataFrame.

    Returns
    -------
    DataFrame with columns:
        timestamp (datetime64, UTC wall time), label, display_time,
        then one float column per sensor (NaN where the reading is None)
    """
    if sensors is not None:
        columns = [spec.column for spec in resolve_sensors(sensors)]
    else:
        columns = list(dict.fromkeys(c for p in points for c in p.values))

    schema = ["timestamp", "label", "display_time", *columns]
    if not points:
        return pd.DataFrame(columns=schema)

    records = []
    for point in points:
        record = {
            "timestamp": point.timestamp,
            "label": point.raw_label,
            "display_time": format_short_label(point.timestamp),
        }
        for col in columns:
            record[col] = point.values.get(col)
        records.append(record)

    df = pd.DataFrame(records, columns=schema)
    df["timestamp"] = pd.to_datetime(df["timestamp"], unit="ms")
    for col in columns:
        df[col] = pd.to_numeric(df[col], errors="coerce")

    return df
