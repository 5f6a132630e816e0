"""
Sheetflow Core - Transformation Step Engine
Replayable, copy-on-write table edits (Power Query style)
"""

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from pydantic import BaseModel, ValidationError

from models import (
    ChangeTypeParams,
    ColumnParams,
    DerivedColumnParams,
    FindReplaceParams,
    MergeColumnsParams,
    RemoveRowsParams,
    RenameColumnParams,
    StepKind,
    TransformationStep,
)

from .cell_classifier import as_text, parse_strict_date
from .data_janitor import clean_cell
from .expressions import COLUMN_REFERENCE, ExpressionError, compile_expression

logger = logging.getLogger(__name__)

Row = dict[str, Any]


@dataclass(frozen=True)
class Table:
    rows: list[Row] = field(default_factory=list)
    columns: list[str] = field(default_factory=list)


def _copy_rows(rows: list[Row]) -> list[Row]:
    return [dict(row) for row in rows]


def _is_blank(value: Any) -> bool:
    return value is None or value == ""


# ============================================================================
# Step functions: (rows, columns, params) -> Table, never mutating inputs
# ============================================================================

def _remove_column(rows: list[Row], columns: list[str], params: ColumnParams) -> Table:
    if params.column not in columns:
        return Table(_copy_rows(rows), list(columns))
    new_rows = [{k: v for k, v in row.items() if k != params.column} for row in rows]
    return Table(new_rows, [c for c in columns if c != params.column])


def _rename_column(rows: list[Row], columns: list[str], params: RenameColumnParams) -> Table:
    old, new = params.old_name, params.new_name
    if old not in columns or (new in columns and new != old):
        return Table(_copy_rows(rows), list(columns))
    new_rows = [{(new if k == old else k): v for k, v in row.items()} for row in rows]
    return Table(new_rows, [new if c == old else c for c in columns])


def _remove_rows(rows: list[Row], columns: list[str], params: RemoveRowsParams) -> Table:
    # Indices refer to the table as it was when the step was created.
    drop = set(params.indices)
    return Table([dict(row) for idx, row in enumerate(rows) if idx not in drop], list(columns))


def _fill(rows: list[Row], column: str, reverse: bool) -> list[Row]:
    new_rows = _copy_rows(rows)
    order = reversed(new_rows) if reverse else new_rows
    last_value = None
    for row in order:
        if not _is_blank(row.get(column)):
            last_value = row[column]
        elif last_value is not None:
            row[column] = last_value
    return new_rows


def _fill_down(rows: list[Row], columns: list[str], params: ColumnParams) -> Table:
    if params.column not in columns:
        return Table(_copy_rows(rows), list(columns))
    return Table(_fill(rows, params.column, reverse=False), list(columns))


def _fill_up(rows: list[Row], columns: list[str], params: ColumnParams) -> Table:
    if params.column not in columns:
        return Table(_copy_rows(rows), list(columns))
    return Table(_fill(rows, params.column, reverse=True), list(columns))


def _find_replace(rows: list[Row], columns: list[str], params: FindReplaceParams) -> Table:
    new_rows = _copy_rows(rows)
    if params.column not in columns:
        return Table(new_rows, list(columns))
    target = as_text(params.find)
    for row in new_rows:
        if as_text(row.get(params.column)) == target:
            row[params.column] = params.replace
    return Table(new_rows, list(columns))


# ============================================================================
# Type coercion
# ============================================================================

_LEADING_INT = re.compile(r"^\s*[+-]?\d+")
_LEADING_FLOAT = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


def _to_whole(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)) and math.isfinite(value):
        return int(value)
    match = _LEADING_INT.match(as_text(value))
    return int(match.group(0)) if match else 0


def _to_decimal(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)) and math.isfinite(value):
        return float(value)
    match = _LEADING_FLOAT.match(as_text(value))
    return float(match.group(0)) if match else 0.0


def _to_date(value: Any) -> Any:
    parsed = parse_strict_date(value)
    return parsed.isoformat() if parsed else value


def _to_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return value == 1 or as_text(value).strip().lower() == "true"


def _auto(value: Any) -> Any:
    return clean_cell(value)


COERCIONS: dict[str, Callable[[Any], Any]] = {
    "auto": _auto,
    "default": _auto,
    "default (auto detect)": _auto,
    "whole": _to_whole,
    "whole number": _to_whole,
    "decimal": _to_decimal,
    "decimal number": _to_decimal,
    "text": as_text,
    "date": _to_date,
    "boolean": _to_boolean,
}


def _change_type(rows: list[Row], columns: list[str], params: ChangeTypeParams) -> Table:
    new_rows = _copy_rows(rows)
    coerce = COERCIONS.get(params.data_type.strip().lower())
    if params.column not in columns or coerce is None:
        if coerce is None:
            logger.warning("Unknown data type '%s' in change-type step", params.data_type)
        return Table(new_rows, list(columns))
    for row in new_rows:
        row[params.column] = coerce(row.get(params.column))
    return Table(new_rows, list(columns))


# ============================================================================
# Derived and merged columns
# ============================================================================

def _add_derived_column(rows: list[Row], columns: list[str], params: DerivedColumnParams) -> Table:
    new_rows = _copy_rows(rows)
    new_columns = list(columns)
    compiled = None
    static = not COLUMN_REFERENCE.search(params.expression)
    if not static:
        try:
            compiled = compile_expression(params.expression)
        except ExpressionError as e:
            logger.warning("Derived column '%s' failed to parse: %s", params.name, e)

    for row in new_rows:
        if static:
            # No column references: the expression text is a static value.
            row[params.name] = params.expression
        elif compiled is None:
            row[params.name] = None
        else:
            try:
                row[params.name] = compiled.evaluate(row)
            except ExpressionError:
                row[params.name] = None

    if params.name not in new_columns:
        new_columns.append(params.name)
    return Table(new_rows, new_columns)


def _merge_columns(rows: list[Row], columns: list[str], params: MergeColumnsParams) -> Table:
    new_rows = _copy_rows(rows)
    new_columns = list(columns)
    if not any(col in columns for col in params.columns):
        return Table(new_rows, new_columns)
    for row in new_rows:
        row[params.new_name] = params.separator.join(as_text(row.get(col)) for col in params.columns)
    if params.new_name not in new_columns:
        new_columns.append(params.new_name)
    return Table(new_rows, new_columns)


STEP_HANDLERS: dict[str, tuple[type[BaseModel], Callable[..., Table]]] = {
    StepKind.REMOVE_COLUMN: (ColumnParams, _remove_column),
    StepKind.RENAME_COLUMN: (RenameColumnParams, _rename_column),
    StepKind.REMOVE_ROWS: (RemoveRowsParams, _remove_rows),
    StepKind.FILL_DOWN: (ColumnParams, _fill_down),
    StepKind.FILL_UP: (ColumnParams, _fill_up),
    StepKind.FIND_REPLACE: (FindReplaceParams, _find_replace),
    StepKind.CHANGE_TYPE: (ChangeTypeParams, _change_type),
    StepKind.ADD_DERIVED_COLUMN: (DerivedColumnParams, _add_derived_column),
    StepKind.MERGE_COLUMNS: (MergeColumnsParams, _merge_columns),
}


def _describe(kind: str, params: dict[str, Any]) -> str:
    if kind == StepKind.RENAME_COLUMN:
        return f"Renamed '{params.get('old_name')}' to '{params.get('new_name')}'"
    if kind == StepKind.REMOVE_COLUMN:
        return f"Removed column '{params.get('column')}'"
    if kind == StepKind.REMOVE_ROWS:
        return f"Removed {len(params.get('indices') or [])} rows"
    if kind in (StepKind.FILL_DOWN, StepKind.FILL_UP):
        direction = "down" if kind == StepKind.FILL_DOWN else "up"
        return f"Filled {direction} '{params.get('column')}'"
    if kind == StepKind.FIND_REPLACE:
        return f"Replaced '{params.get('find')}' with '{params.get('replace')}' in '{params.get('column')}'"
    if kind == StepKind.CHANGE_TYPE:
        return f"Changed type of '{params.get('column')}' to {params.get('data_type')}"
    if kind == StepKind.ADD_DERIVED_COLUMN:
        return f"Added column '{params.get('name')}' = {params.get('expression')}"
    if kind == StepKind.MERGE_COLUMNS:
        return f"Merged {', '.join(params.get('columns') or [])} into '{params.get('new_name')}'"
    return kind


def make_step(kind: str, params: dict[str, Any], description: Optional[str] = None) -> TransformationStep:
    """Create an immutable step with a fresh id and timestamp."""
    return TransformationStep(kind=kind, params=dict(params), description=description or _describe(kind, params))


def apply_step(rows: list[Row], columns: list[str], step: TransformationStep) -> Table:
    """Apply one step. Unknown kinds and invalid parameters leave the table unchanged."""
    handler = STEP_HANDLERS.get(step.kind)
    if handler is None:
        logger.warning("Skipping unknown step kind '%s' (%s)", step.kind, step.id)
        return Table(_copy_rows(rows), list(columns))

    params_model, apply = handler
    try:
        params = params_model.model_validate(step.params)
    except ValidationError as e:
        logger.warning("Skipping step %s with invalid params: %s", step.id, e.errors())
        return Table(_copy_rows(rows), list(columns))
    return apply(rows, columns, params)


def apply_all(rows: list[Row], columns: list[str], steps: list[TransformationStep]) -> Table:
    """Fold the step log over the original table."""
    current = Table(_copy_rows(rows), list(columns))
    for step in steps:
        current = apply_step(current.rows, current.columns, step)
    return current
