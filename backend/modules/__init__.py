"""
Sheetflow Core Modules
"""

from .cell_classifier import (
    CellKind,
    CellValue,
    classify_cell,
    format_date,
    format_number,
    is_measurement,
    is_number_pair,
    parse_excel_serial,
    parse_strict_date,
    parse_strict_number,
    to_number,
)

from .column_types import (
    calculate_column_counts,
    classify_column,
    classify_columns,
    detect_column_types,
)

from .quality import (
    analyze_quality,
    count_duplicate_rows,
)

from .data_janitor import (
    clean_cell,
    clean_rows,
    fix_data_quality,
)

from .transformations import (
    Table,
    apply_all,
    apply_step,
    make_step,
)

from .aggregation import (
    aggregate,
    downsample,
    reference_line,
    run_aggregation,
    sort_series,
)

__all__ = [
    # Cell Classifier
    'CellKind',
    'CellValue',
    'classify_cell',
    'format_date',
    'format_number',
    'is_measurement',
    'is_number_pair',
    'parse_excel_serial',
    'parse_strict_date',
    'parse_strict_number',
    'to_number',
    # Column Types
    'calculate_column_counts',
    'classify_column',
    'classify_columns',
    'detect_column_types',
    # Quality
    'analyze_quality',
    'count_duplicate_rows',
    # Data Janitor
    'clean_cell',
    'clean_rows',
    'fix_data_quality',
    # Transformations
    'Table',
    'apply_all',
    'apply_step',
    'make_step',
    # Aggregation
    'aggregate',
    'downsample',
    'reference_line',
    'run_aggregation',
    'sort_series',
]
