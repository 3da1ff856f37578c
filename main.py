"""
Soil-Moisture Dashboard: End-to-end analytics pipeline.

Runs the pipeline from a sensor export (or simulated rows when no file is
available) to dashboard-ready outputs and prints smoke-test summaries.

Usage:
    python main.py [path/to/export.xlsx|.csv]
"""

import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent))

from moisture_dashboard.config import (
    DEFAULT_THRESHOLD,
    SENSOR_EXPORT_FILE,
)
from moisture_dashboard.loaders import load_rows_from_csv, load_rows_from_excel
from moisture_dashboard.transforms import (
    detect_date_column,
    get_available_columns,
    normalize_rows,
    sensor_observations,
)
from moisture_dashboard.forecast import forecast_depletion, select_latest_week
from moisture_dashboard.dashboard import get_available_ranges, get_sensor_overview
from moisture_dashboard.models import SensorSpec
from moisture_dashboard.simulator import generate_sensor_rows

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def load_rows(path: Path) -> list[dict]:
    """Load raw rows from a file, or simulate them if the file is missing."""
    if not path.exists():
        logger.warning("Export %s not found, using simulated rows", path)
        return generate_sensor_rows(bad_date_rate=0.01)
    if path.suffix.lower() == ".csv":
        return load_rows_from_csv(str(path))
    return load_rows_from_excel(str(path))


def main() -> None:
    """Run the full analytics pipeline and print smoke-test outputs."""
    path = Path(sys.argv[1]) if len(sys.argv) > 1 else SENSOR_EXPORT_FILE

    print("=" * 70)
    print("  SOIL-MOISTURE DASHBOARD")
    print("  Analytics Pipeline Smoke Test")
    print("=" * 70)
    print()

    # ------------------------------------------------------------------
    # 1. Load source data
    # ------------------------------------------------------------------
    print("[ 1 ] LOADING SOURCE DATA")
    print("-" * 40)

    rows = load_rows(path)
    date_column = detect_date_column(rows)
    columns = get_available_columns(rows)
    print(f"\nRaw rows: {len(rows)}")
    print(f"Date column: {date_column}")
    print(f"Sensor columns: {columns}")

    if date_column is None or not columns:
        logger.error("Could not identify date and sensor columns in %s", path)
        sys.exit(1)

    sensors = [SensorSpec(name=col, column=col) for col in columns]

    # ------------------------------------------------------------------
    # 2. Normalize
    # ------------------------------------------------------------------
    print("\n")
    print("[ 2 ] NORMALIZING")
    print("-" * 40)

    points = normalize_rows(rows, date_column, sensors)
    print(f"\nPoints: {len(points)} of {len(rows)} rows")
    for rng in get_available_ranges():
        print(f"  {rng:4s} -> {len(normalize_rows(rows, date_column, sensors, rng))} points")

    # ------------------------------------------------------------------
    # 3. Dashboard outputs
    # ------------------------------------------------------------------
    print("\n")
    print("[ 3 ] DASHBOARD OUTPUTS")
    print("-" * 40)

    overview = get_sensor_overview(rows, date_column, sensors, "7d", DEFAULT_THRESHOLD)
    print("\nChart frame (tail):")
    print(overview["frame"].tail(5).to_string(index=False))

    print("\nLatest readings:")
    for col, reading in overview["latest"].items():
        print(f"  {col:12s} | {reading['value']} ({reading['zone']})")

    forecast = overview["forecast"]
    print(f"\nForecast ({sensors[0].column}): {forecast}")
    print(f"Advisory: {overview['advisory']}")

    # ------------------------------------------------------------------
    # 4. Acceptance checks
    # ------------------------------------------------------------------
    print("\n")
    print("[ 4 ] ACCEPTANCE CHECKS")
    print("-" * 40)

    timestamps = [p.timestamp for p in points]
    check1 = timestamps == sorted(timestamps)
    print(f"\n  [{'PASS' if check1 else 'FAIL'}] Points sorted by timestamp")

    narrowed = {p.timestamp for p in normalize_rows(rows, date_column, sensors, "7d")}
    check2 = narrowed.issubset(set(timestamps))
    print(f"  [{'PASS' if check2 else 'FAIL'}] 7d range is a subset of all data")

    check3 = all(set(p.values) == set(columns) for p in points)
    print(f"  [{'PASS' if check3 else 'FAIL'}] Every point carries every sensor column")

    obs = sensor_observations(points, sensors[0].column)
    weekly = forecast_depletion(obs, DEFAULT_THRESHOLD, select_latest_week)
    check4 = weekly.source_point_count <= len(obs)
    print(f"  [{'PASS' if check4 else 'FAIL'}] Weekly window uses {weekly.source_point_count} of {len(obs)} readings")

    print("\n" + "=" * 70)
    print("  Pipeline complete.")
    print("=" * 70)


if __name__ == "__main__":
    main()
