import sys
import unittest
from pathlib import Path

from pydantic import ValidationError

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from models import StepKind, TransformationStep
from modules.transformations import apply_all, apply_step, make_step

COLUMNS = ["Region", "Price", "Qty"]


def _rows():
    return [
        {"Region": "North", "Price": 10, "Qty": 2},
        {"Region": None, "Price": 5, "Qty": ""},
        {"Region": "South", "Price": "n/a", "Qty": 4},
        {"Region": "", "Price": 7, "Qty": 1},
    ]


class StepKindTests(unittest.TestCase):
    def test_rename_column(self):
        step = make_step(StepKind.RENAME_COLUMN, {"old_name": "Price", "new_name": "Cost"})
        table = apply_step(_rows(), COLUMNS, step)
        self.assertEqual(table.columns, ["Region", "Cost", "Qty"])
        self.assertEqual(table.rows[0], {"Region": "North", "Cost": 10, "Qty": 2})
        self.assertEqual(step.description, "Renamed 'Price' to 'Cost'")

    def test_rename_onto_existing_column_is_a_no_op(self):
        step = make_step(StepKind.RENAME_COLUMN, {"old_name": "Price", "new_name": "Qty"})
        table = apply_step(_rows(), COLUMNS, step)
        self.assertEqual(table.columns, COLUMNS)
        self.assertEqual(table.rows, _rows())

    def test_remove_column(self):
        table = apply_step(_rows(), COLUMNS, make_step(StepKind.REMOVE_COLUMN, {"column": "Qty"}))
        self.assertEqual(table.columns, ["Region", "Price"])
        self.assertTrue(all("Qty" not in row for row in table.rows))

    def test_missing_column_is_a_no_op(self):
        for kind in (StepKind.REMOVE_COLUMN, StepKind.FILL_DOWN, StepKind.FILL_UP):
            with self.subTest(kind=kind):
                table = apply_step(_rows(), COLUMNS, make_step(kind, {"column": "Nope"}))
                self.assertEqual(table.rows, _rows())
                self.assertEqual(table.columns, COLUMNS)

    def test_remove_rows(self):
        table = apply_step(_rows(), COLUMNS, make_step(StepKind.REMOVE_ROWS, {"indices": [1, 3, 99]}))
        self.assertEqual([row["Price"] for row in table.rows], [10, "n/a"])

    def test_fill_down_and_up(self):
        down = apply_step(_rows(), COLUMNS, make_step(StepKind.FILL_DOWN, {"column": "Region"}))
        self.assertEqual([row["Region"] for row in down.rows], ["North", "North", "South", "South"])

        up = apply_step(_rows(), COLUMNS, make_step(StepKind.FILL_UP, {"column": "Region"}))
        self.assertEqual([row["Region"] for row in up.rows], ["North", "South", "South", ""])

    def test_find_replace_matches_whole_values(self):
        step = make_step(StepKind.FIND_REPLACE, {"column": "Price", "find": "10", "replace": 11})
        table = apply_step(_rows(), COLUMNS, step)
        self.assertEqual([row["Price"] for row in table.rows], [11, 5, "n/a", 7])

    def test_change_type(self):
        cases = {
            "text": ["10", "5", "n/a", "7"],
            "Whole Number": [10, 5, 0, 7],
            "decimal": [10.0, 5.0, 0.0, 7.0],
        }
        for data_type, expected in cases.items():
            with self.subTest(data_type=data_type):
                step = make_step(StepKind.CHANGE_TYPE, {"column": "Price", "data_type": data_type})
                table = apply_step(_rows(), COLUMNS, step)
                self.assertEqual([row["Price"] for row in table.rows], expected)

    def test_change_type_to_date_and_boolean(self):
        rows = [{"d": "30-06-2025", "b": "TRUE"}, {"d": "later", "b": 0}]
        table = apply_step(rows, ["d", "b"], make_step(StepKind.CHANGE_TYPE, {"column": "d", "data_type": "date"}))
        self.assertEqual([row["d"] for row in table.rows], ["2025-06-30", "later"])
        table = apply_step(rows, ["d", "b"], make_step(StepKind.CHANGE_TYPE, {"column": "b", "data_type": "boolean"}))
        self.assertEqual([row["b"] for row in table.rows], [True, False])

    def test_unknown_data_type_is_a_no_op(self):
        step = make_step(StepKind.CHANGE_TYPE, {"column": "Price", "data_type": "currency"})
        self.assertEqual(apply_step(_rows(), COLUMNS, step).rows, _rows())

    def test_add_derived_column(self):
        step = make_step(StepKind.ADD_DERIVED_COLUMN, {"name": "Total", "expression": "[Price] * [Qty]"})
        table = apply_step(_rows(), COLUMNS, step)
        self.assertEqual(table.columns, COLUMNS + ["Total"])
        self.assertEqual([row["Total"] for row in table.rows], [20, 0, None, 7])

    def test_derived_column_without_references_is_static(self):
        step = make_step(StepKind.ADD_DERIVED_COLUMN, {"name": "Source", "expression": "Manual entry"})
        table = apply_step(_rows(), COLUMNS, step)
        self.assertTrue(all(row["Source"] == "Manual entry" for row in table.rows))

    def test_unparseable_derived_expression_yields_empty_cells(self):
        step = make_step(StepKind.ADD_DERIVED_COLUMN, {"name": "Bad", "expression": "[Price] +"})
        table = apply_step(_rows(), COLUMNS, step)
        self.assertTrue(all(row["Bad"] is None for row in table.rows))

    def test_overly_long_derived_expression_yields_empty_cells(self):
        step = make_step(
            StepKind.ADD_DERIVED_COLUMN,
            {"name": "Total", "expression": "[Price]" + " + 1" * 20000},
        )
        table = apply_step(_rows(), COLUMNS, step)
        self.assertEqual(table.columns, COLUMNS + ["Total"])
        self.assertTrue(all(row["Total"] is None for row in table.rows))

        later = make_step(StepKind.REMOVE_COLUMN, {"column": "Qty"})
        replayed = apply_all(_rows(), COLUMNS, [step, later])
        self.assertEqual(replayed.columns, ["Region", "Price", "Total"])

    def test_merge_columns(self):
        step = make_step(
            StepKind.MERGE_COLUMNS,
            {"columns": ["Region", "Qty"], "separator": "/", "new_name": "Key"},
        )
        table = apply_step(_rows(), COLUMNS, step)
        self.assertEqual([row["Key"] for row in table.rows], ["North/2", "/", "South/4", "/1"])
        self.assertEqual(table.columns[-1], "Key")


class StepEngineTests(unittest.TestCase):
    def test_inputs_are_never_mutated(self):
        rows = _rows()
        steps = [
            make_step(StepKind.FILL_DOWN, {"column": "Region"}),
            make_step(StepKind.FIND_REPLACE, {"column": "Price", "find": 5, "replace": 6}),
            make_step(StepKind.RENAME_COLUMN, {"old_name": "Qty", "new_name": "Units"}),
        ]
        apply_all(rows, COLUMNS, steps)
        self.assertEqual(rows, _rows())

    def test_incremental_application_matches_replay(self):
        steps = [
            make_step(StepKind.FILL_DOWN, {"column": "Region"}),
            make_step(StepKind.ADD_DERIVED_COLUMN, {"name": "Total", "expression": "[Price] * [Qty]"}),
            make_step(StepKind.REMOVE_ROWS, {"indices": [2]}),
            make_step(StepKind.RENAME_COLUMN, {"old_name": "Region", "new_name": "Area"}),
            make_step(StepKind.MERGE_COLUMNS, {"columns": ["Area", "Total"], "separator": ":", "new_name": "Label"}),
        ]
        rows, columns = _rows(), list(COLUMNS)
        for step in steps:
            table = apply_step(rows, columns, step)
            rows, columns = table.rows, table.columns

        replayed = apply_all(_rows(), COLUMNS, steps)
        self.assertEqual(replayed.rows, rows)
        self.assertEqual(replayed.columns, columns)

    def test_unknown_kind_and_bad_params_are_skipped(self):
        unknown = TransformationStep(kind="pivot", params={})
        self.assertEqual(apply_step(_rows(), COLUMNS, unknown).rows, _rows())

        bad = TransformationStep(kind=StepKind.REMOVE_ROWS, params={"indices": "all"})
        self.assertEqual(apply_step(_rows(), COLUMNS, bad).rows, _rows())

    def test_steps_are_immutable_with_unique_ids(self):
        first = make_step(StepKind.FILL_UP, {"column": "Region"})
        second = make_step(StepKind.FILL_UP, {"column": "Region"})
        self.assertNotEqual(first.id, second.id)
        with self.assertRaises(ValidationError):
            first.kind = StepKind.FILL_DOWN


if __name__ == "__main__":
    unittest.main()
