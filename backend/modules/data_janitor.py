"""
Sheetflow Core - Data Janitor Module
Safe, non-destructive cleaning and the separately-triggered quality auto-fix
"""

import logging
from typing import Any, Iterable

import pandas as pd

from .cell_classifier import as_text, classify_cell, parse_strict_date
from .quality import row_key

logger = logging.getLogger(__name__)

MISSING_FILL_VALUE = "N/A"
# Share of non-N/A cells that must parse as dates before a column is standardised.
DATE_FIX_RATIO = 0.3


def clean_cell(value: Any, serial_dates: bool = False) -> Any:
    """Rewrite one cell to its canonical form (number, ISO date or original text)."""
    return classify_cell(value, serial_dates=serial_dates).canonical


def clean_rows(
    rows: list[dict[str, Any]],
    columns: list[str],
    date_columns: Iterable[str] = (),
) -> list[dict[str, Any]]:
    """
    Map every cell through the classifier. Never adds or removes rows, and
    cleaning an already-cleaned table returns an identical table.
    Excel serial days are only converted inside date columns.
    """
    serial_columns = set(date_columns)
    return [
        {col: clean_cell(row.get(col), serial_dates=col in serial_columns) for col in columns}
        for row in rows
    ]


def _is_blank(value: Any) -> bool:
    return value is None or value == ""


def fix_data_quality(
    rows: list[dict[str, Any]], columns: list[str]
) -> tuple[list[dict[str, Any]], list[str], list[str]]:
    """
    Apply the auto-fix for reported quality issues.
    Returns: (fixed_rows, remaining_columns, fixes_applied)
    """
    fixes = []
    fixed = [{col: row.get(col) for col in columns} for row in rows]
    if not fixed:
        return fixed, list(columns), fixes

    # 1. Fully empty rows
    before = len(fixed)
    fixed = [row for row in fixed if any(not _is_blank(v) for v in row.values())]
    if len(fixed) < before:
        fixes.append(f"Removed {before - len(fixed)} empty rows")

    # 2. Exact duplicates (first occurrence kept)
    duplicated = pd.Series([row_key(row, columns) for row in fixed], dtype=object).duplicated()
    if duplicated.any():
        fixed = [row for row, dup in zip(fixed, duplicated.tolist()) if not dup]
        fixes.append(f"Removed {int(duplicated.sum())} duplicate rows")

    # 3. Columns with no values at all
    empty_columns = [col for col in columns if all(_is_blank(row[col]) for row in fixed)]
    if empty_columns:
        fixed = [{col: v for col, v in row.items() if col not in empty_columns} for row in fixed]
        fixes.append(f"Removed {len(empty_columns)} empty column(s): {', '.join(empty_columns)}")
    active_columns = [col for col in columns if col not in empty_columns]

    # 4. Missing values
    missing_count = 0
    for row in fixed:
        for col in active_columns:
            if _is_blank(row[col]):
                row[col] = MISSING_FILL_VALUE
                missing_count += 1
    if missing_count:
        fixes.append(f'Filled {missing_count} missing values with "{MISSING_FILL_VALUE}"')

    # 5. Date standardisation
    for col in active_columns:
        present = [row[col] for row in fixed if row[col] != MISSING_FILL_VALUE]
        if not present:
            continue
        parsed = [parse_strict_date(v) for v in present]
        if sum(1 for p in parsed if p) / len(present) <= DATE_FIX_RATIO:
            continue
        changed = 0
        for row in fixed:
            value = row[col]
            parsed_date = parse_strict_date(value) if value != MISSING_FILL_VALUE else None
            if parsed_date and parsed_date.isoformat() != value:
                row[col] = parsed_date.isoformat()
                changed += 1
        if changed:
            fixes.append(f"Standardized {changed} date formats in '{col}'")

    # 6. Mixed numbers and text become text
    for col in active_columns:
        has_number = any(
            isinstance(row[col], (int, float)) and not isinstance(row[col], bool) for row in fixed
        )
        has_text = any(isinstance(row[col], str) and row[col] != MISSING_FILL_VALUE for row in fixed)
        if has_number and has_text:
            for row in fixed:
                if row[col] != MISSING_FILL_VALUE:
                    row[col] = as_text(row[col])
            fixes.append(f"Converted mixed types to Text in column '{col}'")

    logger.info("Quality auto-fix applied %d fix(es) to %d rows", len(fixes), len(fixed))
    return fixed, active_columns, fixes

