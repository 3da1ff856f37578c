"""
Dashboard-ready output functions.

These are the primary entry points for a Streamlit front end.
Each function returns plain dicts or DataFrames suitable for rendering
cards, charts, and the watering advisory.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence

from .config import DEFAULT_THRESHOLD, TIME_RANGES
from .forecast import WindowSelector, classify_moisture, forecast_depletion, select_latest_week
from .models import ForecastResult, SensorSpec, TimePoint
from .transforms import (
    normalize_rows,
    points_to_frame,
    resolve_sensors,
    sensor_bounds,
    sensor_observations,
)

logger = logging.getLogger(__name__)


def get_available_ranges() -> list[str]:
    """Return range keys for the period picker, narrowest first."""
    return list(TIME_RANGES.keys())


def get_latest_readings(
    points: Sequence[TimePoint],
    sensors: Sequence[SensorSpec | Mapping],
) -> dict[str, dict]:
    """Latest non-null reading per visible sensor.

    Returns
    -------
    Dict keyed by sensor column:
    {
        "soil_1": {"name": "Bed 1", "value": 21.4, "timestamp": 1705314600000, "zone": "ok"},
        ...
    }
    """
    latest = {}
    for spec in resolve_sensors(sensors):
        value = None
        timestamp = None
        for point in reversed(points):
            candidate = point.values.get(spec.column)
            if candidate is not None:
                value, timestamp = candidate, point.timestamp
                break
        latest[spec.column] = {
            "name": spec.name,
            "value": value,
            "timestamp": timestamp,
            "zone": classify_moisture(value),
        }
    return latest


def describe_forecast(result: ForecastResult | None) -> str:
    """Advisory text for the forecast card."""
    if result is None or not result.available:
        return "No forecast available"

    hours = result.projected_hours_to_threshold
    if hours is None:
        return "Moisture is stable or rising"
    if hours <= 0:
        return "Watering needed now"
    if hours < 48:
        return f"Threshold {result.threshold:g} reached in ~{round(hours)} h"
    return f"Threshold {result.threshold:g} reached in ~{hours / 24:.1f} days"


def forecast_sensor(
    points: Iterable[TimePoint],
    column: str,
    threshold: float = DEFAULT_THRESHOLD,
    select_window: WindowSelector | None = select_latest_week,
) -> ForecastResult:
    """Run the depletion forecast on one sensor of a normalized sequence."""
    return forecast_depletion(
        sensor_observations(points, column),
        threshold=threshold,
        select_window=select_window,
    )


def get_sensor_overview(
    rows: Iterable[Mapping],
    date_column: str,
    sensors: Sequence[SensorSpec | Mapping],
    time_range: str | None = "all",
    threshold: float = DEFAULT_THRESHOLD,
    forecast_column: str | None = None,
    select_window: WindowSelector | None = select_latest_week,
) -> dict:
    """Single entry point the Streamlit page calls on every config change.

    Parameters
    ----------
    rows : Raw spreadsheet rows.
    date_column : Header of the timestamp column.
    sensors : Configured sensors.
    time_range : Key of config.TIME_RANGES.
    threshold : Depletion threshold for the forecast.
    forecast_column : Sensor to forecast. Defaults to the first visible one.
    select_window : Forecast window policy.

    Returns
    -------
    Dict with structure:
    {
        "time_range": "7d",
        "points": [TimePoint, ...],
        "frame": DataFrame from points_to_frame(),
        "point_count": 168,
        "latest": {column: {...}},
        "bounds": (y_min, y_max),
        "forecast": ForecastResult | None,
        "advisory": "Threshold 18 reached in ~12 h",
    }
    """
    points = normalize_rows(rows, date_column, sensors, time_range)
    visible = resolve_sensors(sensors)
    columns = [s.column for s in visible]

    if forecast_column is None and visible:
        forecast_column = visible[0].column

    forecast = None
    if forecast_column is not None:
        forecast = forecast_sensor(points, forecast_column, threshold, select_window)
    else:
        logger.warning("No visible sensor to forecast")

    return {
        "time_range": time_range,
        "points": points,
        "frame": points_to_frame(points, visible),
        "point_count": len(points),
        "latest": get_latest_readings(points, visible),
        "bounds": sensor_bounds(points, columns),
        "forecast": forecast,
        "advisory": describe_forecast(forecast),
    }
