"""
Configuration: time-range registry, moisture zones, column names, constants.

TIME_RANGES maps each range key offered in the period picker to its window
length in milliseconds. None means no filtering.
"""

from pathlib import Path

# ---------------------------------------------------------------------------
# File paths: adjust these if source files move
# ---------------------------------------------------------------------------
DATA_DIR = Path(__file__).resolve().parent.parent

SENSOR_EXPORT_FILE = DATA_DIR / "sensor_export.xlsx"

# ---------------------------------------------------------------------------
# Time ranges
# ---------------------------------------------------------------------------
MS_PER_HOUR = 3_600_000
MS_PER_DAY = 24 * MS_PER_HOUR

# Windows are measured back from the latest timestamp in the data,
# not from wall-clock now.
TIME_RANGES: dict[str, int | None] = {
    "1h": MS_PER_HOUR,
    "6h": 6 * MS_PER_HOUR,
    "1d": MS_PER_DAY,
    "7d": 7 * MS_PER_DAY,
    "30d": 30 * MS_PER_DAY,
    "all": None,
}

TIME_RANGE_LABELS: dict[str, str] = {
    "1h": "Last hour",
    "6h": "Last 6 hours",
    "1d": "Last day",
    "7d": "Last 7 days",
    "30d": "Last 30 days",
    "all": "All data",
}

# ---------------------------------------------------------------------------
# Column names
# ---------------------------------------------------------------------------
# Header names the field exports use for the timestamp column
DATE_COLUMN_CANDIDATES = ["ДатаЧас", "Date", "Timestamp", "date", "timestamp"]

DEFAULT_DATE_COLUMN = "ДатаЧас"

# ---------------------------------------------------------------------------
# Moisture zones
# ---------------------------------------------------------------------------
# Lower bound (inclusive) of each zone, in sensor units (% volumetric water)
MOISTURE_ZONES: dict[str, dict] = {
    "critical": {"lower": 0.0, "color": "#ff4444"},
    "warning": {"lower": 6.0, "color": "#ffcc00"},
    "ok": {"lower": 18.0, "color": "#44ff44"},
}

CRITICAL_LEVEL = MOISTURE_ZONES["warning"]["lower"]
WARNING_LEVEL = MOISTURE_ZONES["ok"]["lower"]

# Depletion threshold used by the forecast when none is configured
DEFAULT_THRESHOLD = 18.0

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
EXCEL_EPOCH = "1899-12-30"
CHART_TYPES = ("line", "bar", "area")
