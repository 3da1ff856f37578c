"""
Soil-Moisture Dashboard

Analytics backend for turning spreadsheet sensor exports into clean
per-sensor time series and a watering forecast.

To swap the spreadsheet for another feed:
    Any source that yields a list of dicts keyed by column header works.
    Replace the loader call with your own (database query, MQTT buffer)
    and pass the rows to transforms.normalize_rows unchanged.

To connect to Streamlit/Dash:
    Call dashboard.get_sensor_overview(rows, date_column, sensors, time_range)
    to get a plain dict with a chart-ready DataFrame, latest readings and the
    depletion forecast.

To add a time range:
    Add an entry to config.TIME_RANGES mapping the key to its window in
    milliseconds, and a label to config.TIME_RANGE_LABELS.

To accept a new date encoding:
    Append a (name, predicate, extractor) entry to
    loaders.utils.DATE_PARSERS ahead of the generic fallback.
"""
