"""
Sheetflow Core - Pydantic Models
Ingest, quality, transformation and aggregation contracts
"""

import time
import uuid
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Column metadata
# ============================================================================

class ColumnType:
    NUMERIC = "numeric"
    DATE = "date"
    MEASUREMENT = "measurement"
    TEXT = "text"


class ColumnClassification(BaseModel):
    column: str
    type: str
    date_votes: int = 0
    numeric_votes: int = 0
    measurement_votes: int = 0
    text_votes: int = 0
    non_empty: int = 0
    has_number_pair: bool = False


class ColumnCount(BaseModel):
    total: int
    empty: int
    non_empty: int


class ColumnMetadata(BaseModel):
    numeric_columns: list[str] = Field(default_factory=list)
    text_columns: list[str] = Field(default_factory=list)
    date_columns: list[str] = Field(default_factory=list)
    measurement_columns: list[str] = Field(default_factory=list)
    column_counts: dict[str, ColumnCount] = Field(default_factory=dict)

    def type_of(self, column: str) -> str:
        if column in self.date_columns:
            return ColumnType.DATE
        if column in self.measurement_columns:
            return ColumnType.MEASUREMENT
        if column in self.numeric_columns:
            return ColumnType.NUMERIC
        return ColumnType.TEXT


# ============================================================================
# Quality report
# ============================================================================

class IssueKind:
    MISSING = "missing"
    DUPLICATE_ROW = "duplicate-row"
    INVALID_DATE = "invalid-date"
    MIXED_TYPES = "mixed-types"


class Severity:
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class QualityIssue(BaseModel):
    kind: str
    column: Optional[str] = None
    affected_count: int
    severity: str
    description: str
    suggestion: Optional[str] = None


class ColumnStats(BaseModel):
    missing: int
    unique: int
    type: str


class QualityReport(BaseModel):
    score: int
    total_rows: int
    total_issues: int
    issues: list[QualityIssue]
    column_stats: dict[str, ColumnStats]


class IngestResult(BaseModel):
    rows: list[dict[str, Any]]
    columns: list[str]
    metadata: ColumnMetadata
    quality_report: QualityReport
    actions: list[str] = Field(default_factory=list)


# ============================================================================
# Transformation steps
# ============================================================================

class StepKind:
    RENAME_COLUMN = "rename-column"
    REMOVE_COLUMN = "remove-column"
    REMOVE_ROWS = "remove-rows"
    FILL_DOWN = "fill-down"
    FILL_UP = "fill-up"
    FIND_REPLACE = "find-replace"
    CHANGE_TYPE = "change-type"
    ADD_DERIVED_COLUMN = "add-derived-column"
    MERGE_COLUMNS = "merge-columns"


class TransformationStep(BaseModel):
    """One immutable entry of the edit log."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    kind: str
    description: str = ""
    params: dict[str, Any] = Field(default_factory=dict)
    timestamp: float = Field(default_factory=time.time)


class RenameColumnParams(BaseModel):
    old_name: str
    new_name: str


class ColumnParams(BaseModel):
    column: str


class RemoveRowsParams(BaseModel):
    indices: list[int]


class FindReplaceParams(BaseModel):
    column: str
    find: Any = None
    replace: Any = None


class ChangeTypeParams(BaseModel):
    column: str
    data_type: str


class DerivedColumnParams(BaseModel):
    name: str = Field(min_length=1)
    expression: str


class MergeColumnsParams(BaseModel):
    columns: list[str] = Field(min_length=1)
    separator: str = ""
    new_name: str = Field(min_length=1)


# ============================================================================
# Aggregation
# ============================================================================

class AggregationType:
    SUM = "SUM"
    AVERAGE = "AVERAGE"
    COUNT = "COUNT"
    DISTINCT_COUNT = "DISTINCT_COUNT"
    MIN = "MIN"
    MAX = "MAX"
    MEDIAN = "MEDIAN"
    VARIANCE = "VARIANCE"
    STD_DEV = "STD_DEV"
    PERCENTAGE = "PERCENTAGE"
    NONE = "NONE"


class AggregationRequest(BaseModel):
    dimension_columns: list[str]
    measure_columns: list[str]
    aggregation: str = AggregationType.SUM
    column_aggregations: dict[str, str] = Field(default_factory=dict)
    row_selections: dict[str, list[int]] = Field(default_factory=dict)
