"""
Sheetflow Core - Column Type Detector Module
Majority voting over cell classifications
"""

from typing import Any

from config import COLUMN_TYPE_THRESHOLD
from models import ColumnClassification, ColumnCount, ColumnMetadata, ColumnType

from .cell_classifier import CellKind, classify_cell, is_empty, is_number_pair


def classify_column(values: list[Any], column: str = "") -> ColumnClassification:
    """Vote a column into date, numeric, measurement or text."""
    date_votes = numeric_votes = measurement_votes = text_votes = 0
    has_number_pair = False

    for value in values:
        if is_empty(value):
            continue

        # Any number/number cell disqualifies the whole column from being a date.
        if isinstance(value, str) and is_number_pair(value):
            has_number_pair = True
            text_votes += 1
            continue

        # Serial-band digit strings vote numeric here; dates need an explicit shape.
        cell = classify_cell(value, serial_dates=False)
        if cell.kind == CellKind.DATE:
            date_votes += 1
        elif cell.kind == CellKind.NUMBER:
            numeric_votes += 1
        elif cell.kind == CellKind.MEASUREMENT:
            measurement_votes += 1
        else:
            text_votes += 1

    if has_number_pair:
        date_votes = 0

    non_empty = date_votes + numeric_votes + measurement_votes + text_votes
    column_type = ColumnType.TEXT
    if non_empty:
        if date_votes / non_empty > COLUMN_TYPE_THRESHOLD:
            column_type = ColumnType.DATE
        elif (numeric_votes + measurement_votes) / non_empty > COLUMN_TYPE_THRESHOLD:
            column_type = ColumnType.MEASUREMENT if measurement_votes > numeric_votes else ColumnType.NUMERIC

    return ColumnClassification(
        column=column,
        type=column_type,
        date_votes=date_votes,
        numeric_votes=numeric_votes,
        measurement_votes=measurement_votes,
        text_votes=text_votes,
        non_empty=non_empty,
        has_number_pair=has_number_pair,
    )


def classify_columns(rows: list[dict[str, Any]], columns: list[str]) -> dict[str, ColumnClassification]:
    return {col: classify_column([row.get(col) for row in rows], col) for col in columns}


def calculate_column_counts(rows: list[dict[str, Any]], columns: list[str]) -> dict[str, ColumnCount]:
    """Per-column total / empty / non-empty cell counts"""
    total = len(rows)
    counts = {}
    for col in columns:
        non_empty = sum(1 for row in rows if row.get(col) is not None and row.get(col) != "")
        counts[col] = ColumnCount(total=total, empty=total - non_empty, non_empty=non_empty)
    return counts


def detect_column_types(rows: list[dict[str, Any]], columns: list[str]) -> ColumnMetadata:
    """Classify every column and bucket the names by type."""
    metadata = ColumnMetadata(column_counts=calculate_column_counts(rows, columns))
    buckets = {
        ColumnType.NUMERIC: metadata.numeric_columns,
        ColumnType.DATE: metadata.date_columns,
        ColumnType.MEASUREMENT: metadata.measurement_columns,
        ColumnType.TEXT: metadata.text_columns,
    }
    for col, classification in classify_columns(rows, columns).items():
        buckets[classification.type].append(col)
    return metadata
