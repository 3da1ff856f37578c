"""
Raw-row sources for sensor exports.

Each loader returns a list of plain dicts keyed by column header, with
cell values left exactly as the source delivered them. Parsing and typing
happen later in transforms.normalize_rows.

Supported sources:
    - Excel workbook saved from the sensor spreadsheet (openpyxl)
    - CSV export (pandas, every cell kept as text)
    - Google Visualization query response text, as returned by the
      spreadsheet's gviz endpoint (fetched elsewhere)
"""

import json
import logging
from collections.abc import Iterable

import openpyxl
import pandas as pd

from ..errors import SheetFormatError
from .utils import find_header_row

logger = logging.getLogger(__name__)


def _is_blank(val) -> bool:
    return val is None or (isinstance(val, str) and not val.strip())


def load_rows_from_excel(
    path: str,
    sheet_name: str | None = None,
    header_signature: Iterable[str] | None = None,
) -> list[dict]:
    """Load raw sensor rows from an Excel workbook.

    Assumptions
    -----------
    - One header row naming the columns; data follows directly below.
    - The header is row 1 unless `header_signature` is given, in which case
      the first row containing at least two of those names is used.
    - Columns with a blank header are ignored. Rows with no values are skipped.

    Parameters
    ----------
    path : Path to the Excel file, or a binary file-like object.
    sheet_name : Sheet to read. Defaults to the first sheet.
    header_signature : Column names expected in the header row.

    Returns
    -------
    List of dicts mapping header name to raw cell value.
    """
    try:
        wb = openpyxl.load_workbook(path, data_only=True)
    except Exception:
        logger.exception("Failed to open sensor export: %s", path)
        raise

    if sheet_name is None:
        sheet_name = wb.sheetnames[0]
    elif sheet_name not in wb.sheetnames:
        logger.warning("Sheet '%s' not found, using '%s'", sheet_name, wb.sheetnames[0])
        sheet_name = wb.sheetnames[0]

    ws = wb[sheet_name]

    header_row = 1
    if header_signature:
        found = find_header_row(ws, set(header_signature))
        if found is None:
            logger.warning(
                "Header signature %s not found in '%s', assuming row 1",
                sorted(header_signature), sheet_name,
            )
        else:
            header_row = found

    values_iter = ws.iter_rows(min_row=header_row, values_only=True)
    header = next(values_iter, None)
    if header is None:
        wb.close()
        logger.warning("Sheet '%s' in %s is empty", sheet_name, path)
        return []

    columns = [
        (idx, str(name).strip())
        for idx, name in enumerate(header)
        if not _is_blank(name)
    ]

    rows = []
    for values in values_iter:
        if all(_is_blank(v) for v in values):
            continue
        rows.append({
            name: values[idx] if idx < len(values) else None
            for idx, name in columns
        })

    wb.close()

    logger.info("Loaded %d sensor rows from %s [%s]", len(rows), path, sheet_name)
    return rows


def load_rows_from_csv(path: str, **read_csv_kwargs) -> list[dict]:
    """Load raw sensor rows from a CSV export.

    `path` may be a filename or a file-like object. Every cell is read as
    text and empty cells stay empty strings, so the normalizer sees the
    same shapes it gets from the spreadsheet feed.
    """
    read_csv_kwargs.setdefault("dtype", str)
    read_csv_kwargs.setdefault("keep_default_na", False)

    try:
        df = pd.read_csv(path, **read_csv_kwargs)
    except Exception:
        logger.exception("Failed to read CSV export: %s", path)
        raise

    df.columns = [str(c).strip() for c in df.columns]
    rows = df.to_dict(orient="records")

    logger.info("Loaded %d sensor rows from %s", len(rows), path)
    return rows


def _extract_json_body(text: str) -> dict:
    """Strip the JSONP wrapper from a gviz response and decode it."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        raise SheetFormatError("Response does not contain a JSON object")
    try:
        return json.loads(text[start:end + 1])
    except json.JSONDecodeError as exc:
        raise SheetFormatError(f"Malformed gviz response: {exc}") from exc


def parse_gviz_response(text: str) -> list[dict]:
    """Decode a Google Visualization query response into raw rows.

    The response may be bare JSON or wrapped as
    ``google.visualization.Query.setResponse({...});``. Column labels become
    row keys (the column id is used when the label is blank). Each cell
    contributes its raw ``v`` value, so datetime cells keep their
    ``Date(Y,M,D,h,m,s)`` serialization.

    Raises
    ------
    SheetFormatError
        If the payload is not valid JSON, reports an error status, or has
        no table.
    """
    payload = _extract_json_body(text)

    if payload.get("status") == "error":
        messages = [
            e.get("detailed_message") or e.get("message") or e.get("reason", "")
            for e in payload.get("errors", [])
        ]
        raise SheetFormatError("Spreadsheet query failed: " + "; ".join(messages))

    table = payload.get("table")
    if not isinstance(table, dict):
        raise SheetFormatError("Response has no table")

    columns = []
    for idx, col in enumerate(table.get("cols", [])):
        label = str(col.get("label") or "").strip()
        columns.append(label or col.get("id") or f"col_{idx}")

    rows = []
    for raw_row in table.get("rows", []):
        cells = raw_row.get("c") or []
        record = {}
        for idx, name in enumerate(columns):
            cell = cells[idx] if idx < len(cells) else None
            record[name] = cell.get("v") if isinstance(cell, dict) else None
        rows.append(record)

    logger.info("Decoded %d sensor rows from gviz response", len(rows))
    return rows
