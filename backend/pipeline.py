"""
Sheetflow Core - Ingestion Pipeline
Raw rows -> column types -> cleaning -> quality report
"""

import logging
from time import perf_counter
from typing import Any, Optional

from models import IngestResult
from modules import analyze_quality, clean_rows, detect_column_types

logger = logging.getLogger(__name__)


def normalize_table(
    rows: list[dict[str, Any]], columns: Optional[list[str]] = None
) -> tuple[list[dict[str, Any]], list[str]]:
    """Give every row exactly the declared columns; absent cells become None."""
    if not columns:
        columns = list(rows[0].keys()) if rows else []
    columns = list(dict.fromkeys(columns))
    return [{col: row.get(col) for col in columns} for row in rows], columns


def log_pipeline_timing(label: str, durations: dict[str, float]) -> None:
    """Report per-phase execution timings for an ingestion run."""
    logger.info(
        "%s pipeline timing: detection %.3fs, cleaning %.3fs, quality %.3fs, total %.3fs",
        label,
        durations["detection"],
        durations["cleaning"],
        durations["quality"],
        durations["total"],
    )


def ingest(
    rows: list[dict[str, Any]],
    columns: Optional[list[str]] = None,
    label: str = "sheet",
) -> IngestResult:
    """Classify, clean and score one in-memory table. Never raises on cell content."""
    start = perf_counter()
    actions = []
    rows, columns = normalize_table(rows, columns)

    t0 = perf_counter()
    metadata = detect_column_types(rows, columns)
    t1 = perf_counter()

    cleaned = clean_rows(rows, columns, date_columns=metadata.date_columns)
    actions.append("Cleaned data: Safe type conversion applied.")
    actions.append(
        f"Detected {len(metadata.numeric_columns)} numeric, {len(metadata.date_columns)} date, "
        f"{len(metadata.measurement_columns)} measurement, and {len(metadata.text_columns)} text columns."
    )
    t2 = perf_counter()

    report = analyze_quality(cleaned, columns, metadata)
    t3 = perf_counter()

    log_pipeline_timing(label, {
        "detection": t1 - t0,
        "cleaning": t2 - t1,
        "quality": t3 - t2,
        "total": t3 - start,
    })
    return IngestResult(
        rows=cleaned,
        columns=columns,
        metadata=metadata,
        quality_report=report,
        actions=actions,
    )


def ingest_sheets(sheets: dict[str, list[dict[str, Any]]]) -> dict[str, IngestResult]:
    """Run the pipeline independently for every sheet of a workbook."""
    return {name: ingest(rows, label=name) for name, rows in sheets.items()}
