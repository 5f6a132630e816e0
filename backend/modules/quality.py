"""
Sheetflow Core - Quality Analyzer Module
Read-only scan for duplicates, missing values, invalid dates and mixed types
"""

import logging
from typing import Any, Optional

import pandas as pd

from config import (
    DUPLICATE_HIGH_RATIO,
    DUPLICATE_PENALTY,
    MISSING_HIGH_RATIO,
    MISSING_ISSUE_RATIO,
    MISSING_PENALTY_HIGH,
    MISSING_PENALTY_LOW,
    MIXED_TYPE_RATIO,
)
from models import (
    ColumnMetadata,
    ColumnStats,
    IssueKind,
    QualityIssue,
    QualityReport,
    Severity,
)

from .cell_classifier import CellKind, classify_cell

logger = logging.getLogger(__name__)


def _cell_key(value: Any) -> tuple:
    # bool before int: True must not collide with 1.
    if value is None:
        return ("null",)
    if isinstance(value, bool):
        return ("bool", value)
    if isinstance(value, (int, float)):
        return ("number", float(value))
    return ("text", str(value))


def row_key(row: dict[str, Any], columns: list[str]) -> tuple:
    """Hashable structural identity of a row across the given columns."""
    return tuple(_cell_key(row.get(col)) for col in columns)


def _is_missing(value: Any) -> bool:
    return value is None or value == "" or (isinstance(value, float) and pd.isna(value))


def _to_frame(rows: list[dict[str, Any]], columns: list[str]) -> pd.DataFrame:
    # object dtype keeps ints, bools and None exactly as given.
    return pd.DataFrame(
        {col: pd.Series([row.get(col) for row in rows], dtype=object) for col in columns},
        columns=columns,
    )


def count_duplicate_rows(rows: list[dict[str, Any]], columns: list[str]) -> int:
    """Every row beyond the first occurrence of an identical row"""
    if not rows:
        return 0
    keys = pd.Series([row_key(row, columns) for row in rows], dtype=object)
    return int(keys.duplicated().sum())


def analyze_quality(
    rows: list[dict[str, Any]],
    columns: list[str],
    metadata: Optional[ColumnMetadata] = None,
) -> QualityReport:
    """
    Score a cleaned table. Start at 100, subtract a fixed penalty for duplicates
    and for each column with a missing-value issue, clamp to [0, 100].
    Invalid-date and mixed-type findings are reported without a deduction.
    """
    metadata = metadata or ColumnMetadata()
    frame = _to_frame(rows, columns)
    total_rows = len(rows)
    issues: list[QualityIssue] = []
    column_stats: dict[str, ColumnStats] = {}
    deductions = 0

    # 1. Exact duplicate rows
    duplicate_count = count_duplicate_rows(rows, columns)
    if duplicate_count > 0:
        issues.append(QualityIssue(
            kind=IssueKind.DUPLICATE_ROW,
            affected_count=duplicate_count,
            severity=Severity.HIGH if duplicate_count > total_rows * DUPLICATE_HIGH_RATIO else Severity.MEDIUM,
            description=f"Found {duplicate_count} duplicate rows.",
            suggestion="Remove duplicate rows.",
        ))
        deductions += DUPLICATE_PENALTY

    # 2. Column-wise analysis
    for col in columns:
        series = frame[col]
        missing_mask = series.map(_is_missing).astype(bool)
        missing_count = int(missing_mask.sum())
        present = series[~missing_mask]
        unique_count = int(present.map(_cell_key).nunique())
        column_type = metadata.type_of(col)

        if total_rows and missing_count > 0:
            ratio = missing_count / total_rows
            if ratio > MISSING_ISSUE_RATIO:
                high = ratio > MISSING_HIGH_RATIO
                issues.append(QualityIssue(
                    kind=IssueKind.MISSING,
                    column=col,
                    affected_count=missing_count,
                    severity=Severity.HIGH if high else Severity.LOW,
                    description=f"Column '{col}' has {missing_count} missing values.",
                    suggestion="Fill missing values.",
                ))
                deductions += MISSING_PENALTY_HIGH if high else MISSING_PENALTY_LOW

        kinds = present.map(lambda v: classify_cell(v, serial_dates=False).kind)

        if col in metadata.date_columns:
            invalid_dates = int((kinds != CellKind.DATE).sum())
            if invalid_dates > 0:
                issues.append(QualityIssue(
                    kind=IssueKind.INVALID_DATE,
                    column=col,
                    affected_count=invalid_dates,
                    severity=Severity.MEDIUM if invalid_dates > len(present) * MIXED_TYPE_RATIO else Severity.LOW,
                    description=f"Invalid or mixed date formats in column '{col}'.",
                    suggestion="Standardize dates or correct invalid entries.",
                ))

        numeric_count = int((kinds == CellKind.NUMBER).sum())
        text_count = int(kinds.isin([CellKind.TEXT, CellKind.MEASUREMENT]).sum())
        if total_rows and numeric_count > total_rows * MIXED_TYPE_RATIO and text_count > total_rows * MIXED_TYPE_RATIO:
            issues.append(QualityIssue(
                kind=IssueKind.MIXED_TYPES,
                column=col,
                affected_count=min(numeric_count, text_count),
                severity=Severity.MEDIUM,
                description=f"Column '{col}' contains mixed numeric and text values.",
                suggestion="Convert the column to a single type.",
            ))

        column_stats[col] = ColumnStats(missing=missing_count, unique=unique_count, type=column_type)

    score = max(0, min(100, 100 - deductions))
    logger.debug("Quality score %d with %d issue(s) over %d rows", score, len(issues), total_rows)
    return QualityReport(
        score=score,
        total_rows=total_rows,
        total_issues=len(issues),
        issues=issues,
        column_stats=column_stats,
    )
