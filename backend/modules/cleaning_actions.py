"""
Sheetflow Core - Cleaning Actions
Targeted cell, column and row edits. Every function returns a new row list and
leaves the input untouched; out-of-range indices and unknown columns are no-ops.
"""

from typing import Any

from .cell_classifier import as_text, parse_strict_date

Row = dict[str, Any]

DEFAULT_FILL = "N/A"


def _is_blank(value: Any) -> bool:
    return value is None or value == ""


def _normalized_date(value: Any) -> Any:
    parsed = parse_strict_date(value)
    return parsed.isoformat() if parsed else value


def _replace_row(rows: list[Row], row_index: int, updated: Row) -> list[Row]:
    return [updated if i == row_index else dict(row) for i, row in enumerate(rows)]


def _in_range(rows: list[Row], row_index: int) -> bool:
    return 0 <= row_index < len(rows)


# ---------------------------------------------------------------------------
# Cell level
# ---------------------------------------------------------------------------

def update_cell(rows: list[Row], row_index: int, column: str, new_value: Any) -> list[Row]:
    if not _in_range(rows, row_index):
        return [dict(row) for row in rows]
    return _replace_row(rows, row_index, {**rows[row_index], column: new_value})


def fill_empty_cell(rows: list[Row], row_index: int, column: str, fill_value: Any = DEFAULT_FILL) -> list[Row]:
    if not _in_range(rows, row_index) or not _is_blank(rows[row_index].get(column)):
        return [dict(row) for row in rows]
    return _replace_row(rows, row_index, {**rows[row_index], column: fill_value})


def normalize_cell_date(rows: list[Row], row_index: int, column: str) -> list[Row]:
    if not _in_range(rows, row_index):
        return [dict(row) for row in rows]
    row = rows[row_index]
    return _replace_row(rows, row_index, {**row, column: _normalized_date(row.get(column))})


def convert_cell_to_string(rows: list[Row], row_index: int, column: str) -> list[Row]:
    if not _in_range(rows, row_index):
        return [dict(row) for row in rows]
    row = rows[row_index]
    return _replace_row(rows, row_index, {**row, column: as_text(row.get(column))})


# ---------------------------------------------------------------------------
# Column level
# ---------------------------------------------------------------------------

def delete_column(rows: list[Row], column: str) -> list[Row]:
    return [{k: v for k, v in row.items() if k != column} for row in rows]


def fill_missing_in_column(rows: list[Row], column: str, fill_value: Any = DEFAULT_FILL) -> list[Row]:
    return [{**row, column: fill_value if _is_blank(row.get(column)) else row[column]} for row in rows]


def convert_column_to_string(rows: list[Row], column: str) -> list[Row]:
    return [{**row, column: as_text(row.get(column))} for row in rows]


def normalize_column_dates(rows: list[Row], column: str) -> list[Row]:
    return [{**row, column: _normalized_date(row.get(column))} for row in rows]


# ---------------------------------------------------------------------------
# Row level
# ---------------------------------------------------------------------------

def delete_row(rows: list[Row], row_index: int) -> list[Row]:
    return [dict(row) for i, row in enumerate(rows) if i != row_index]


def edit_row(rows: list[Row], row_index: int, new_row: Row) -> list[Row]:
    if not _in_range(rows, row_index):
        return [dict(row) for row in rows]
    return _replace_row(rows, row_index, dict(new_row))


def fill_missing_in_row(rows: list[Row], row_index: int, fill_value: Any = DEFAULT_FILL) -> list[Row]:
    if not _in_range(rows, row_index):
        return [dict(row) for row in rows]
    updated = {k: fill_value if _is_blank(v) else v for k, v in rows[row_index].items()}
    return _replace_row(rows, row_index, updated)


def fix_mixed_types_in_row(rows: list[Row], row_index: int) -> list[Row]:
    if not _in_range(rows, row_index):
        return [dict(row) for row in rows]
    updated = {k: as_text(v) for k, v in rows[row_index].items()}
    return _replace_row(rows, row_index, updated)


def normalize_dates_in_row(rows: list[Row], row_index: int) -> list[Row]:
    if not _in_range(rows, row_index):
        return [dict(row) for row in rows]
    updated = {
        k: _normalized_date(v) if isinstance(v, str) and ("/" in v or "-" in v) else v
        for k, v in rows[row_index].items()
    }
    return _replace_row(rows, row_index, updated)
