import sys
import unittest
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from models import ColumnMetadata, IssueKind, Severity
from modules.quality import analyze_quality, count_duplicate_rows


def _rows(n):
    return [{"id": i, "name": f"item {i}"} for i in range(n)]


class QualityScoreTests(unittest.TestCase):
    def test_clean_table_scores_full_marks(self):
        report = analyze_quality(_rows(10), ["id", "name"])
        self.assertEqual(report.score, 100)
        self.assertEqual(report.total_issues, 0)
        self.assertEqual(report.issues, [])
        self.assertEqual(report.total_rows, 10)

    def test_single_duplicate_costs_ten_points(self):
        rows = _rows(10) + [{"id": 0, "name": "item 0"}]
        report = analyze_quality(rows, ["id", "name"])
        self.assertEqual(report.score, 90)
        self.assertEqual(len(report.issues), 1)
        issue = report.issues[0]
        self.assertEqual(issue.kind, IssueKind.DUPLICATE_ROW)
        self.assertEqual(issue.affected_count, 1)
        self.assertEqual(issue.severity, Severity.MEDIUM)

    def test_heavy_duplication_is_high_severity(self):
        rows = [{"id": 1, "name": "same"}] * 5
        report = analyze_quality(rows, ["id", "name"])
        self.assertEqual(report.issues[0].affected_count, 4)
        self.assertEqual(report.issues[0].severity, Severity.HIGH)

    def test_missing_value_penalties(self):
        rows = _rows(10)
        for row in rows[:2]:
            row["name"] = None
        report = analyze_quality(rows, ["id", "name"])
        self.assertEqual(report.score, 98)
        self.assertEqual(report.issues[0].severity, Severity.LOW)

        rows[2]["name"] = ""
        report = analyze_quality(rows, ["id", "name"])
        self.assertEqual(report.score, 95)
        self.assertEqual(report.issues[0].kind, IssueKind.MISSING)
        self.assertEqual(report.issues[0].column, "name")
        self.assertEqual(report.issues[0].affected_count, 3)
        self.assertEqual(report.issues[0].severity, Severity.HIGH)
        self.assertEqual(report.column_stats["name"].missing, 3)

    def test_sparse_missing_values_are_not_reported(self):
        rows = _rows(40)
        rows[0]["name"] = None
        report = analyze_quality(rows, ["id", "name"])
        self.assertEqual(report.score, 100)
        self.assertEqual(report.column_stats["name"].missing, 1)

    def test_score_is_clamped_at_zero(self):
        columns = [f"c{i}" for i in range(25)]
        rows = [{col: None for col in columns} for _ in range(2)]
        report = analyze_quality(rows, columns)
        self.assertEqual(report.score, 0)


class QualityFindingTests(unittest.TestCase):
    def test_mixed_types_reported_without_penalty(self):
        rows = [{"v": i if i < 5 else f"label {i}"} for i in range(10)]
        report = analyze_quality(rows, ["v"])
        kinds = [issue.kind for issue in report.issues]
        self.assertIn(IssueKind.MIXED_TYPES, kinds)
        self.assertEqual(report.score, 100)

    def test_invalid_dates_in_date_column(self):
        rows = [{"d": "2025-01-01"}, {"d": "2025-01-02"}, {"d": "oops"}]
        metadata = ColumnMetadata(date_columns=["d"])
        report = analyze_quality(rows, ["d"], metadata)
        issue = next(i for i in report.issues if i.kind == IssueKind.INVALID_DATE)
        self.assertEqual(issue.affected_count, 1)
        self.assertEqual(issue.severity, Severity.MEDIUM)
        self.assertEqual(report.column_stats["d"].type, "date")
        self.assertEqual(report.score, 100)

    def test_unique_counts_and_empty_table(self):
        rows = [{"a": "x"}, {"a": "x"}, {"a": "y"}, {"a": None}]
        report = analyze_quality(rows, ["a"])
        self.assertEqual(report.column_stats["a"].unique, 2)

        empty = analyze_quality([], ["a"])
        self.assertEqual(empty.score, 100)
        self.assertEqual(empty.total_rows, 0)

    def test_duplicates_distinguish_booleans_from_numbers(self):
        rows = [{"a": True}, {"a": 1}, {"a": 1.0}]
        self.assertEqual(count_duplicate_rows(rows, ["a"]), 1)


if __name__ == "__main__":
    unittest.main()
