"""Data ingestion loaders for soil-moisture sensor exports."""

from .sheet import load_rows_from_excel, load_rows_from_csv, parse_gviz_response
from .utils import try_parse_date, try_parse_number, format_short_label

__all__ = [
    "load_rows_from_excel",
    "load_rows_from_csv",
    "parse_gviz_response",
    "try_parse_date",
    "try_parse_number",
    "format_short_label",
]
