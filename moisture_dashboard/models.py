"""
Plain data containers passed between the normalizer, the forecaster and the
dashboard layer.
"""

from dataclasses import dataclass, field

from .config import MS_PER_HOUR
from .errors import ConfigurationError


@dataclass
class SensorSpec:
    """One configured sensor: which source column to read and how to show it."""

    name: str
    column: str
    color: str | None = None
    visible: bool = True
    chart_type: str = "line"  # line, bar or area

    @classmethod
    def from_dict(cls, data: dict) -> "SensorSpec":
        """Build a spec from a saved sensor configuration entry.

        Raises ConfigurationError if the entry names no source column.
        """
        column = data.get("column")
        if not column:
            raise ConfigurationError("Sensor entry has no column", ["column"])
        return cls(
            name=data.get("name") or column,
            column=column,
            color=data.get("color"),
            visible=data.get("visible", True) is not False,
            chart_type=data.get("type", data.get("chart_type", "line")),
        )


@dataclass
class TimePoint:
    """A single normalized row.

    values holds every requested sensor column; None marks a reading that
    was missing or unparseable in the source cell.
    """

    timestamp: int  # epoch milliseconds, UTC
    raw_label: str
    values: dict[str, float | None] = field(default_factory=dict)


@dataclass
class Observation:
    timestamp: int
    value: float


@dataclass
class ForecastResult:
    """Outcome of a depletion forecast.

    average_rate_per_hour is positive when the value is declining.
    projected_hours_to_threshold is None unless the rate is positive.
    """

    average_rate_per_hour: float | None
    projected_hours_to_threshold: float | None
    source_point_count: int
    threshold: float
    latest_value: float | None = None
    latest_timestamp: int | None = None

    @property
    def available(self) -> bool:
        return self.average_rate_per_hour is not None

    def projected_crossing_timestamp(self) -> int | None:
        """Epoch ms at which the threshold is expected to be crossed."""
        if self.projected_hours_to_threshold is None or self.latest_timestamp is None:
            return None
        return self.latest_timestamp + int(self.projected_hours_to_threshold * MS_PER_HOUR)
