"""
Simulated sensor export generator for the soil-moisture dashboard.

Produces rows shaped like the field spreadsheet: a date column in one of
the export encodings and one text cell per sensor. Moisture dries out
slowly, jumps back up on watering, and the feed has the usual gaps and
junk cells. All values are synthetic.
"""

import numpy as np
import pandas as pd

from .config import DEFAULT_DATE_COLUMN

# ---------------------------------------------------------------------------
# Typical sensor parameters (% volumetric water content)
# ---------------------------------------------------------------------------
_SENSOR_PARAMS = {
    "Шпалера": {"start": 32.0, "decline": 0.18, "noise": 0.15},
    "Грядка 1": {"start": 28.0, "decline": 0.25, "noise": 0.2},
    "Грядка 2": {"start": 24.0, "decline": 0.12, "noise": 0.1},
}

DATE_FORMATS = ("literal", "dotted", "mixed")


def _format_date(ts: pd.Timestamp, fmt: str) -> str:
    if fmt == "literal":
        # Spreadsheet engine serialization uses a zero-based month
        return f"Date({ts.year},{ts.month - 1},{ts.day},{ts.hour},{ts.minute},{ts.second})"
    return ts.strftime("%d.%m.%Y %H:%M:%S")


def generate_sensor_rows(
    start: str = "2024-05-01 00:00",
    hours: int = 14 * 24,
    interval_minutes: int = 60,
    sensors: dict[str, dict] | None = None,
    seed: int = 42,
    date_format: str = "mixed",
    watering_every_hours: int = 72,
    gap_rate: float = 0.03,
    junk_rate: float = 0.01,
    bad_date_rate: float = 0.0,
    date_column: str = DEFAULT_DATE_COLUMN,
) -> list[dict]:
    """Generate synthetic export rows.

    Parameters
    ----------
    start : First timestamp.
    hours : Length of the simulated period.
    interval_minutes : Reporting interval.
    sensors : Mapping of column name to {"start", "decline", "noise"}.
    seed : Random seed, for reproducible fixtures.
    date_format : 'literal' (Date(...)), 'dotted' (dd.mm.yyyy hh:mm:ss) or
                  'mixed' (random per row).
    watering_every_hours : Interval between watering events (0 disables).
    gap_rate : Share of sensor cells left empty.
    junk_rate : Share of sensor cells holding non-numeric text.
    bad_date_rate : Share of rows whose date cell is garbage.
    """
    if date_format not in DATE_FORMATS:
        raise ValueError(f"date_format must be one of {DATE_FORMATS}, got {date_format!r}")

    rng = np.random.default_rng(seed)
    params = sensors or _SENSOR_PARAMS
    periods = int(hours * 60 / interval_minutes)
    times = pd.date_range(start, periods=periods, freq=f"{interval_minutes}min")
    step_hours = interval_minutes / 60

    levels = {col: p["start"] for col, p in params.items()}
    rows = []

    for i, ts in enumerate(times):
        elapsed = i * step_hours
        watering = (
            watering_every_hours > 0
            and i > 0
            and elapsed % watering_every_hours < step_hours
        )

        fmt = date_format
        if fmt == "mixed":
            fmt = "literal" if rng.random() < 0.5 else "dotted"
        date_cell = "not a date" if rng.random() < bad_date_rate else _format_date(ts, fmt)

        row = {date_column: date_cell}
        for col, p in params.items():
            if watering:
                level = p["start"]
            else:
                level = levels[col] - p["decline"] * step_hours + rng.normal(0, p["noise"])
            levels[col] = max(level, 0.0)

            roll = rng.random()
            if roll < gap_rate:
                row[col] = ""
            elif roll < gap_rate + junk_rate:
                row[col] = "ERR"
            else:
                row[col] = f"{levels[col]:.1f}"
        rows.append(row)

    return rows


def default_sensor_config() -> list[dict]:
    """Sensor configuration entries matching the simulated columns."""
    palette = ["#3b82f6", "#10b981", "#f59e0b", "#ef4444"]
    return [
        {"name": col, "column": col, "color": palette[i % len(palette)], "visible": True, "type": "line"}
        for i, col in enumerate(_SENSOR_PARAMS)
    ]
