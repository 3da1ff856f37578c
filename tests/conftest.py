"""Shared pytest fixtures for the moisture dashboard test suite."""

import pandas as pd
import pytest

from moisture_dashboard.models import SensorSpec

HOUR_MS = 3_600_000


def dotted(ts: pd.Timestamp) -> str:
    return ts.strftime("%d.%m.%Y %H:%M:%S")


@pytest.fixture
def sensors() -> list[SensorSpec]:
    return [
        SensorSpec(name="Trellis", column="soil_1", color="#3b82f6"),
        SensorSpec(name="Bed", column="soil_2", color="#10b981"),
    ]


@pytest.fixture
def hourly_rows() -> list[dict]:
    """240 hourly rows (10 days) in the dotted export format."""
    start = pd.Timestamp("2024-05-01 00:00")
    rows = []
    for i in range(240):
        ts = start + pd.Timedelta(hours=i)
        rows.append({
            "ДатаЧас": dotted(ts),
            "soil_1": f"{30 - i * 0.05:.2f}",
            "soil_2": str(20 + (i % 5)),
        })
    return rows
