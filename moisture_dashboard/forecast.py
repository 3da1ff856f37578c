"""
Moisture depletion forecast: pure functions with no side effects.

Provides window selectors, the average-decline-rate forecast and
moisture zone classification.
"""

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence

import pandas as pd

from .config import CRITICAL_LEVEL, DEFAULT_THRESHOLD, MS_PER_HOUR, WARNING_LEVEL
from .loaders.utils import try_parse_number
from .models import ForecastResult, Observation

logger = logging.getLogger(__name__)

WindowSelector = Callable[[Sequence[Observation]], Sequence[Observation]]


# ---------------------------------------------------------------------------
# Window selectors
# ---------------------------------------------------------------------------

def _utc(ts_ms: int) -> pd.Timestamp:
    return pd.Timestamp(ts_ms, unit="ms")


def select_all(observations: Sequence[Observation]) -> list[Observation]:
    return list(observations)


def select_latest_week(observations: Sequence[Observation]) -> list[Observation]:
    """Observations in the ISO calendar week (UTC) of the latest observation."""
    if not observations:
        return []
    latest = _utc(max(o.timestamp for o in observations)).isocalendar()[:2]
    return [o for o in observations if _utc(o.timestamp).isocalendar()[:2] == latest]


def select_latest_day(observations: Sequence[Observation]) -> list[Observation]:
    """Observations on the UTC calendar day of the latest observation."""
    if not observations:
        return []
    latest = _utc(max(o.timestamp for o in observations)).date()
    return [o for o in observations if _utc(o.timestamp).date() == latest]


def trailing_window(hours: float) -> WindowSelector:
    """Build a selector keeping the last `hours` before the latest observation."""
    span_ms = hours * MS_PER_HOUR

    def select(observations: Sequence[Observation]) -> list[Observation]:
        if not observations:
            return []
        cutoff = max(o.timestamp for o in observations) - span_ms
        return [o for o in observations if o.timestamp >= cutoff]

    return select


WINDOW_SELECTORS: dict[str, WindowSelector] = {
    "all": select_all,
    "week": select_latest_week,
    "day": select_latest_day,
}


# ---------------------------------------------------------------------------
# Forecast
# ---------------------------------------------------------------------------

def _as_observation(item: Observation | Mapping) -> Observation | None:
    """Observation from a reading, or None if its timestamp or value is unusable."""
    if isinstance(item, Observation):
        return item
    if not isinstance(item, Mapping):
        return None
    timestamp = try_parse_number(item.get("timestamp"))
    value = try_parse_number(item.get("value"))
    if timestamp is None or value is None:
        return None
    return Observation(timestamp=int(timestamp), value=value)


def forecast_depletion(
    observations: Iterable[Observation | Mapping],
    threshold: float = DEFAULT_THRESHOLD,
    select_window: WindowSelector | None = None,
) -> ForecastResult:
    """Estimate how many hours remain until a declining value hits `threshold`.

    Logic
    -----
    - Restrict to the analysis window (`select_window`, default: everything).
    - For each consecutive pair, a rate sample is decline / elapsed hours,
      taken only when both the decline and the elapsed time are positive.
      Rises, flat stretches and duplicate timestamps contribute nothing.
    - average_rate_per_hour is the mean of the samples (positive = drying).
    - projected_hours_to_threshold = (latest - threshold) / rate, where
      latest is the last observation in the window. Negative means the
      value is already below the threshold.

    Parameters
    ----------
    observations : Readings of one sensor. Mapping entries whose timestamp
                   or value is not numeric are skipped.
    threshold : Value whose crossing is projected.
    select_window : Callable narrowing the observations before analysis.

    Returns
    -------
    ForecastResult. When fewer than two observations remain or no interval
    shows a decline, the rate and projection are None.
    """
    window = [obs for obs in map(_as_observation, observations or []) if obs is not None]
    if select_window is not None:
        window = list(select_window(window))

    count = len(window)
    latest = window[-1] if window else None
    no_forecast = ForecastResult(
        average_rate_per_hour=None,
        projected_hours_to_threshold=None,
        source_point_count=count,
        threshold=threshold,
        latest_value=latest.value if latest else None,
        latest_timestamp=latest.timestamp if latest else None,
    )

    if count < 2:
        logger.debug("Not enough observations for a forecast (%d)", count)
        return no_forecast

    rates = []
    for prev, curr in zip(window, window[1:]):
        delta_hours = (curr.timestamp - prev.timestamp) / MS_PER_HOUR
        delta_value = prev.value - curr.value
        if delta_value > 0 and delta_hours > 0:
            rates.append(delta_value / delta_hours)

    if not rates:
        logger.debug("No declining intervals among %d observations", count)
        return no_forecast

    avg_rate = sum(rates) / len(rates)
    hours_left = (latest.value - threshold) / avg_rate if avg_rate > 0 else None

    logger.info(
        "Forecast from %d points: %.3f/h decline, %s h to threshold %.1f",
        count, avg_rate,
        f"{hours_left:.1f}" if hours_left is not None else "n/a",
        threshold,
    )
    return ForecastResult(
        average_rate_per_hour=avg_rate,
        projected_hours_to_threshold=hours_left,
        source_point_count=count,
        threshold=threshold,
        latest_value=latest.value,
        latest_timestamp=latest.timestamp,
    )


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def classify_moisture(
    value: float | None,
    critical_level: float = CRITICAL_LEVEL,
    warning_level: float = WARNING_LEVEL,
) -> str:
    """Return 'critical', 'warning', 'ok' or 'unknown' for a reading.

    Logic
    -----
    - critical if value <  critical_level
    - warning  if value <  warning_level
    - ok       otherwise
    """
    if value is None or pd.isna(value):
        return "unknown"

    if value < critical_level:
        return "critical"
    if value < warning_level:
        return "warning"
    return "ok"
