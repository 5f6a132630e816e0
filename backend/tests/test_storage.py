import sys
import unittest
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from models import StepKind
from modules import Table, make_step
from storage import HistoryStack, TableSession

COLUMNS = ["Region", "Sales"]


def _rows():
    return [
        {"Region": "N", "Sales": 10},
        {"Region": "", "Sales": 20},
        {"Region": "S", "Sales": 5},
        {"Region": "S", "Sales": 5},
    ]


class HistoryStackTests(unittest.TestCase):
    def test_oldest_snapshot_is_dropped_at_capacity(self):
        history = HistoryStack(limit=2)
        for i in range(3):
            history.push(Table([{"i": i}], ["i"]))
        self.assertEqual(len(history), 2)
        self.assertEqual(history.pop().rows, [{"i": 2}])
        self.assertEqual(history.pop().rows, [{"i": 1}])
        self.assertIsNone(history.pop())

    def test_snapshots_are_isolated_from_later_edits(self):
        history = HistoryStack()
        rows = [{"a": 1}]
        history.push(Table(rows, ["a"]))
        rows[0]["a"] = 2
        self.assertEqual(history.pop().rows, [{"a": 1}])


class TableSessionTests(unittest.TestCase):
    def test_steps_apply_incrementally_and_replay_identically(self):
        session = TableSession(_rows(), COLUMNS)
        session.add_step(make_step(StepKind.FILL_DOWN, {"column": "Region"}))
        session.add_step(make_step(StepKind.RENAME_COLUMN, {"old_name": "Sales", "new_name": "Revenue"}))
        incremental = (session.rows, session.columns)

        session.replay()
        self.assertEqual((session.rows, session.columns), incremental)
        self.assertEqual(session.columns, ["Region", "Revenue"])
        self.assertEqual(session.rows[1]["Region"], "N")
        self.assertEqual(session.original.rows, _rows())

    def test_remove_step_replays_the_rest(self):
        session = TableSession(_rows(), COLUMNS)
        fill = make_step(StepKind.FILL_DOWN, {"column": "Region"})
        rename = make_step(StepKind.RENAME_COLUMN, {"old_name": "Sales", "new_name": "Revenue"})
        session.add_step(fill)
        session.add_step(rename)

        session.remove_step(fill.id)
        self.assertEqual([s.id for s in session.steps], [rename.id])
        self.assertEqual(session.rows[1]["Region"], "")
        self.assertEqual(session.columns, ["Region", "Revenue"])

        session.remove_step("missing")
        self.assertEqual(len(session.steps), 1)

    def test_undo_last_step(self):
        session = TableSession(_rows(), COLUMNS)
        session.add_step(make_step(StepKind.REMOVE_COLUMN, {"column": "Sales"}))
        session.undo_last_step()
        self.assertEqual(session.steps, [])
        self.assertEqual(session.columns, COLUMNS)
        session.undo_last_step()
        self.assertEqual(session.rows, _rows())

    def test_direct_edits_are_undoable(self):
        session = TableSession(_rows(), COLUMNS)
        session.record_edit(session.rows[:2])
        self.assertEqual(len(session.rows), 2)
        session.undo_edit()
        self.assertEqual(len(session.rows), 4)
        self.assertIsNone(session.undo_edit())

    def test_quality_report_tracks_current_table(self):
        session = TableSession(_rows(), COLUMNS)
        self.assertEqual(session.quality_report().score, 85)
        session.add_step(make_step(StepKind.FILL_DOWN, {"column": "Region"}))
        self.assertEqual(session.quality_report().score, 90)
        session.add_step(make_step(StepKind.REMOVE_ROWS, {"indices": [3]}))
        self.assertEqual(session.quality_report().score, 100)

    def test_session_seeded_with_steps(self):
        steps = [make_step(StepKind.REMOVE_COLUMN, {"column": "Region"})]
        session = TableSession(_rows(), COLUMNS, steps=steps)
        self.assertEqual(session.columns, ["Sales"])
        self.assertGreaterEqual(session.last_modified, session.created_at)


if __name__ == "__main__":
    unittest.main()
