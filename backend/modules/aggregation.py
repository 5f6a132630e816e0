"""
Sheetflow Core - Aggregation Module
Grouped aggregation for chart series, plus sorting, downsampling and
reference-line helpers used by the chart consumer
"""

import logging
import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Optional

import numpy as np
import pandas as pd

from config import MAX_CHART_POINTS
from models import AggregationRequest, AggregationType

from .cell_classifier import as_text, is_empty, to_number

logger = logging.getLogger(__name__)

KEY_SEPARATOR = " - "

NUMERIC_AGGREGATIONS = {
    AggregationType.SUM,
    AggregationType.AVERAGE,
    AggregationType.MIN,
    AggregationType.MAX,
    AggregationType.MEDIAN,
    AggregationType.VARIANCE,
    AggregationType.STD_DEV,
    AggregationType.PERCENTAGE,
    AggregationType.NONE,
}
KNOWN_AGGREGATIONS = NUMERIC_AGGREGATIONS | {AggregationType.COUNT, AggregationType.DISTINCT_COUNT}


def round_half_up(value: float, digits: int = 2) -> float:
    """Round like a spreadsheet does (0.125 -> 0.13), not banker's rounding."""
    if not math.isfinite(value):
        return 0
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP))


def resolve_aggregation(column: str, default: Optional[str], overrides: Optional[dict[str, str]]) -> str:
    """Per-column override first, then the default, then SUM."""
    chosen = (overrides or {}).get(column) or default or AggregationType.SUM
    chosen = str(chosen).upper()
    if chosen not in KNOWN_AGGREGATIONS:
        logger.warning("Unknown aggregation '%s' for '%s', using SUM", chosen, column)
        return AggregationType.SUM
    return chosen


# Reductions that map straight onto a pandas groupby aggregation over the
# coerced numeric column; NONE inside a mixed request is summed.
PANDAS_REDUCTIONS = {
    AggregationType.SUM: "sum",
    AggregationType.AVERAGE: "mean",
    AggregationType.MIN: "min",
    AggregationType.MAX: "max",
    AggregationType.MEDIAN: "median",
    AggregationType.NONE: "sum",
}
COUNTING_AGGREGATIONS = {AggregationType.COUNT, AggregationType.DISTINCT_COUNT}


def _distinct_key(value: Any) -> str:
    # True and 1 must stay distinct; 1 and 1.0 must not.
    if isinstance(value, bool):
        return f"bool:{value}"
    if isinstance(value, (int, float)):
        return f"number:{float(value)!r}"
    return f"text:{value}"


def group_key(row: dict[str, Any], dimension_columns: list[str]) -> str:
    return KEY_SEPARATOR.join(as_text(row.get(col)) for col in dimension_columns)


def _measure_frame(
    selected: list[tuple[int, dict[str, Any]]],
    dimension_columns: list[str],
    kinds: dict[str, str],
    contributes: Callable[[str, int], bool],
) -> pd.DataFrame:
    """One row per selected input row: group key, position, and per measure the
    distinct key (for counting) and the lenient number (NaN when empty or not
    contributing)."""
    data: dict[str, Any] = {
        "__key": [group_key(row, dimension_columns) for _, row in selected],
        "__position": range(len(selected)),
    }
    for i, col in enumerate(kinds):
        keep = [contributes(col, idx) and not is_empty(row.get(col)) for idx, row in selected]
        data[f"__raw_{i}"] = pd.Series(
            [_distinct_key(row.get(col)) if k else None for (_, row), k in zip(selected, keep)],
            dtype=object,
        )
        data[f"__num_{i}"] = pd.Series(
            [to_number(row.get(col)) if k else np.nan for (_, row), k in zip(selected, keep)],
            dtype=float,
        )
    return pd.DataFrame(data)


def _reduce_column(grouped, i: int, kind: str, denominator: float) -> pd.Series:
    raw, numbers = grouped[f"__raw_{i}"], grouped[f"__num_{i}"]
    if kind == AggregationType.COUNT:
        return raw.count()
    if kind == AggregationType.DISTINCT_COUNT:
        return raw.nunique()
    if kind == AggregationType.VARIANCE:
        return numbers.var(ddof=1).fillna(0)
    if kind == AggregationType.STD_DEV:
        return numbers.std(ddof=1).fillna(0)
    if kind == AggregationType.PERCENTAGE:
        totals = numbers.sum()
        if not denominator:
            return pd.Series(0.0, index=totals.index)
        return totals / denominator * 100
    return numbers.agg(PANDAS_REDUCTIONS.get(kind, "sum")).fillna(0)


def aggregate(
    rows: list[dict[str, Any]],
    dimension_columns: list[str],
    measure_columns: list[str],
    aggregation: Optional[str] = AggregationType.SUM,
    column_aggregations: Optional[dict[str, str]] = None,
    row_selections: Optional[dict[str, list[int]]] = None,
) -> list[dict[str, Any]]:
    """
    Group rows by the composite dimension key (first-seen order) and reduce each
    measure. Row selections keyed by a dimension column drop rows entirely;
    selections keyed by a measure column restrict that measure's contributors.
    Never raises on dirty input: unparseable values count as 0.
    """
    selections = {col: set(indices) for col, indices in (row_selections or {}).items()}
    kinds = {col: resolve_aggregation(col, aggregation, column_aggregations) for col in measure_columns}

    overlap = [col for col in kinds if col in dimension_columns]
    if overlap:
        logger.warning("Measure column(s) %s are also dimensions; aggregated values replace the group labels", overlap)

    # 1. Row selection pass
    selected = [
        (idx, row) for idx, row in enumerate(rows)
        if not any(col in selections and idx not in selections[col] for col in dimension_columns)
    ]

    if measure_columns and all(kind == AggregationType.NONE for kind in kinds.values()):
        return [dict(row) for _, row in selected]

    if not selected:
        return []

    def contributes(col: str, idx: int) -> bool:
        return col not in selections or col in dimension_columns or idx in selections[col]

    # 2. Coerced measures, grouped in order of first appearance
    frame = _measure_frame(selected, dimension_columns, kinds, contributes)
    grouped = frame.groupby("__key", sort=False)
    first_positions = grouped["__position"].first()

    # 3. Per-measure reduction; percentages are shares of the whole selection
    reduced = {}
    for i, (col, kind) in enumerate(kinds.items()):
        denominator = float(frame[f"__num_{i}"].sum()) if kind == AggregationType.PERCENTAGE else 0
        reduced[col] = _reduce_column(grouped, i, kind, denominator)

    results = []
    for key, position in first_positions.items():
        first_row = selected[int(position)][1]
        out = {col: first_row.get(col) for col in dimension_columns}
        for col, kind in kinds.items():
            value = reduced[col].loc[key]
            out[col] = int(value) if kind in COUNTING_AGGREGATIONS else round_half_up(float(value))
        results.append(out)

    logger.debug(
        "Aggregated %d of %d rows into %d groups by %s",
        len(selected), len(rows), len(results), dimension_columns,
    )
    return results


def run_aggregation(rows: list[dict[str, Any]], request: AggregationRequest) -> list[dict[str, Any]]:
    return aggregate(
        rows,
        request.dimension_columns,
        request.measure_columns,
        request.aggregation,
        request.column_aggregations,
        request.row_selections,
    )


# ============================================================================
# Chart consumer helpers
# ============================================================================

def sort_series(rows: list[dict[str, Any]], column: str, direction: str = "asc") -> list[dict[str, Any]]:
    """Numbers compare numerically, everything else by case-insensitive text."""
    descending = direction == "desc"
    numeric = [r for r in rows if isinstance(r.get(column), (int, float)) and not isinstance(r.get(column), bool)]
    if len(numeric) == len(rows):
        return sorted(rows, key=lambda r: r[column], reverse=descending)
    return sorted(rows, key=lambda r: as_text(r.get(column)).lower(), reverse=descending)


def downsample(rows: list[dict[str, Any]], cap: int = MAX_CHART_POINTS) -> list[dict[str, Any]]:
    """Uniform-stride thinning above the point cap. Lossy: dropped rows are not merged."""
    if cap <= 0 or len(rows) <= cap:
        return list(rows)
    step = math.ceil(len(rows) / cap)
    logger.info("Downsampling %d rows with stride %d", len(rows), step)
    return [row for idx, row in enumerate(rows) if idx % step == 0]


def reference_line(
    rows: list[dict[str, Any]],
    column: str,
    kind: str,
    percentile: float = 50,
) -> Optional[float]:
    """Value for an analytics line (average, median, min, max, percentile)."""
    values = sorted(to_number(row.get(column)) for row in rows)
    if not values:
        return None
    if kind == "average":
        return sum(values) / len(values)
    if kind == "median":
        return values[len(values) // 2]
    if kind == "min":
        return values[0]
    if kind == "max":
        return values[-1]
    if kind == "percentile":
        idx = min(int(math.floor(percentile / 100 * len(values))), len(values) - 1)
        return values[max(idx, 0)]
    return None
