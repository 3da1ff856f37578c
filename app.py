"""
Soil-Moisture Dashboard: Interactive page

Run with:  streamlit run app.py
"""

import io
import sys
from pathlib import Path

import streamlit as st
import plotly.graph_objects as go
import pandas as pd

sys.path.insert(0, str(Path(__file__).resolve().parent))

from moisture_dashboard.config import (
    CRITICAL_LEVEL,
    DEFAULT_THRESHOLD,
    MOISTURE_ZONES,
    SENSOR_EXPORT_FILE,
    TIME_RANGE_LABELS,
    WARNING_LEVEL,
)
from moisture_dashboard.loaders import load_rows_from_csv, load_rows_from_excel, parse_gviz_response
from moisture_dashboard.transforms import detect_date_column, get_available_columns
from moisture_dashboard.dashboard import get_available_ranges, get_sensor_overview
from moisture_dashboard.models import SensorSpec
from moisture_dashboard.simulator import generate_sensor_rows

# ---------------------------------------------------------------------------
# Page config
# ---------------------------------------------------------------------------
st.set_page_config(
    page_title="Soil-Moisture Dashboard",
    page_icon="🌱",
    layout="wide",
    initial_sidebar_state="expanded",
)

PALETTE = ["#3b82f6", "#10b981", "#f59e0b", "#ef4444", "#8b5cf6", "#14b8a6"]


# ---------------------------------------------------------------------------
# Data loading (cached)
# ---------------------------------------------------------------------------
@st.cache_data
def load_rows(upload_name: str | None, upload_bytes: bytes | None) -> list[dict]:
    if upload_bytes is not None:
        name = upload_name.lower()
        if name.endswith(".csv"):
            return load_rows_from_csv(io.BytesIO(upload_bytes))
        if name.endswith((".json", ".txt")):
            return parse_gviz_response(upload_bytes.decode("utf-8"))
        return load_rows_from_excel(io.BytesIO(upload_bytes))
    if SENSOR_EXPORT_FILE.exists():
        return load_rows_from_excel(str(SENSOR_EXPORT_FILE))
    return generate_sensor_rows()


# ---------------------------------------------------------------------------
# Sidebar
# ---------------------------------------------------------------------------
st.sidebar.title("Soil Moisture")
st.sidebar.markdown("Sensor monitoring and watering forecast")
st.sidebar.divider()

upload = st.sidebar.file_uploader("Sensor export", type=["xlsx", "csv", "json", "txt"])
rows = load_rows(upload.name if upload else None, upload.getvalue() if upload else None)

all_columns = list(rows[0].keys()) if rows else []
guessed_date = detect_date_column(rows)
date_column = st.sidebar.selectbox(
    "Date column",
    all_columns,
    index=all_columns.index(guessed_date) if guessed_date in all_columns else 0,
)

sensor_columns = [c for c in get_available_columns(rows) if c != date_column]
selected = st.sidebar.multiselect("Sensors", sensor_columns, default=sensor_columns)

ranges = get_available_ranges()
time_range = st.sidebar.radio(
    "Period",
    ranges,
    index=ranges.index("7d"),
    format_func=lambda key: TIME_RANGE_LABELS.get(key, key),
)

threshold = st.sidebar.number_input("Watering threshold", value=DEFAULT_THRESHOLD, step=1.0)

st.sidebar.divider()
st.sidebar.caption(f"{len(rows)} rows loaded")

sensors = [
    SensorSpec(name=col, column=col, color=PALETTE[i % len(PALETTE)])
    for i, col in enumerate(selected)
]

# ===========================================================================
# Main page
# ===========================================================================
st.title("Soil-Moisture Monitoring")

if not date_column or not sensors:
    st.info("Select a date column and at least one sensor.")
    st.stop()

overview = get_sensor_overview(rows, date_column, sensors, time_range, threshold)
frame: pd.DataFrame = overview["frame"]

if frame.empty:
    st.warning("No rows with a readable timestamp in this period.")
    st.stop()

# Latest reading cards
cols = st.columns(min(len(sensors), 4))
for i, (column, reading) in enumerate(overview["latest"].items()):
    with cols[i % len(cols)]:
        value = reading["value"]
        st.metric(reading["name"], f"{value:.1f}" if value is not None else "N/A", help=reading["zone"])

# Time-series chart
y_min, y_max = overview["bounds"]
fig = go.Figure()
fig.add_hrect(y0=0, y1=CRITICAL_LEVEL, fillcolor=MOISTURE_ZONES["critical"]["color"], opacity=0.2, line_width=0)
fig.add_hrect(y0=CRITICAL_LEVEL, y1=WARNING_LEVEL, fillcolor=MOISTURE_ZONES["warning"]["color"], opacity=0.3, line_width=0)
fig.add_hrect(y0=WARNING_LEVEL, y1=max(y_max, WARNING_LEVEL), fillcolor=MOISTURE_ZONES["ok"]["color"], opacity=0.2, line_width=0)

for spec in sensors:
    fig.add_trace(go.Scatter(
        x=frame["timestamp"],
        y=frame[spec.column],
        name=spec.name,
        mode="lines",
        line=dict(color=spec.color, width=2),
        connectgaps=True,
    ))

fig.update_layout(
    height=500,
    yaxis=dict(range=[y_min, y_max]),
    xaxis_title="Time (UTC)",
    plot_bgcolor="rgba(0,0,0,0)",
    margin=dict(l=10, r=10, t=10, b=40),
)
st.plotly_chart(fig, use_container_width=True)

# Forecast
st.subheader(f"Forecast for {sensors[0].name}")
forecast = overview["forecast"]
col1, col2, col3 = st.columns(3)
with col1:
    rate = forecast.average_rate_per_hour if forecast else None
    st.metric("Average drying rate", f"{rate:.3f} /h" if rate is not None else "N/A")
with col2:
    hours = forecast.projected_hours_to_threshold if forecast else None
    st.metric("Hours to threshold", f"{hours:.0f}" if hours is not None else "N/A")
with col3:
    st.metric("Readings used", forecast.source_point_count if forecast else 0)
st.info(overview["advisory"])

with st.expander("Data table"):
    st.dataframe(frame, use_container_width=True, hide_index=True)
