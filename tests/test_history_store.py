import json
import os
import tempfile
import unittest

from ledger_audit.core.errors import MalformedEvent, NotFound, RecordConflict
from ledger_audit.core.history_store import HistoryStore


def record(index: int, cycles: int = 1) -> dict:
    return {"format": 1, "index": f"{index}n", "cycles": f"{cycles}n", "fee": "0n", "timestamp": "0n",
            "kind": {"Mint": {"to": "2vxsx-fae"}}}


class TestHistoryStore(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = os.path.join(self._tmp.name, "backup")
        self.store = HistoryStore(self.dir)

    def tearDown(self):
        self._tmp.cleanup()

    def test_empty_store(self):
        self.assertIsNone(self.store.highest_stored_index())
        self.assertEqual(self.store.next_index(), 0)
        self.assertEqual(list(self.store.iterate(0)), [])
        self.assertEqual(len(self.store), 0)

    def test_put_get(self):
        self.store.put(0, record(0))
        self.assertTrue(self.store.contains(0))
        self.assertFalse(self.store.contains(1))
        self.assertEqual(self.store.get(0), record(0))
        self.assertTrue(os.path.exists(os.path.join(self.dir, "0.json")))

    def test_get_missing(self):
        with self.assertRaises(NotFound) as ctx:
            self.store.get(7)
        self.assertEqual(ctx.exception.index, 7)

    def test_iteration_stops_at_first_gap(self):
        for index in (0, 1, 3):
            self.store.put(index, record(index))
        self.assertEqual([i for i, _ in self.store.iterate(0)], [0, 1])
        self.assertEqual(self.store.highest_stored_index(), 1)
        self.assertEqual(self.store.next_index(), 2)
        self.assertEqual([i for i, _ in self.store.iterate(3)], [3])

    def test_missing_zero_means_empty(self):
        self.store.put(1, record(1))
        self.assertIsNone(self.store.highest_stored_index())
        self.assertEqual(list(self.store.iterate(0)), [])

    def test_identical_rewrite_is_noop(self):
        self.store.put(0, record(0))
        self.store.put(0, record(0))
        self.assertEqual(self.store.get(0), record(0))

    def test_conflicting_rewrite_rejected(self):
        self.store.put(0, record(0, cycles=5))
        with self.assertRaises(RecordConflict):
            self.store.put(0, record(0, cycles=6))
        self.assertEqual(self.store.get(0), record(0, cycles=5))

    def test_no_temp_files_left_behind(self):
        for index in range(3):
            self.store.put(index, record(index))
        self.assertEqual(sorted(os.listdir(self.dir)), ["0.json", "1.json", "2.json"])

    def test_foreign_files_ignored(self):
        self.store.put(0, record(0))
        for name in ("notes.txt", ".1.abc.tmp", "x.json", "01.json", "².json", "1.json.bak"):
            with open(os.path.join(self.dir, name), "w", encoding="utf-8") as f:
                f.write("{}")
        self.assertEqual(self.store.highest_stored_index(), 0)
        self.assertEqual(self.store.next_index(), 1)
        self.assertFalse(self.store.contains(1))

    def test_corrupt_record(self):
        with open(os.path.join(self.dir, "0.json"), "w") as f:
            f.write("{not json")
        with self.assertRaises(MalformedEvent):
            self.store.get(0)

    def test_records_are_human_readable(self):
        self.store.put(0, record(0))
        with open(os.path.join(self.dir, "0.json")) as f:
            text = f.read()
        self.assertIn('"cycles": "1n"', text)
        self.assertEqual(json.loads(text), record(0))


if __name__ == '__main__':
    unittest.main()
