import unittest

from textmorph.base import Pos
from textmorph.ranges import TrackedRange, sort_innermost_first
from textmorph.surface import MemorySurface


class FailingQuerySurface(MemorySurface):
    def query_overlapping(self, start, stop):
        raise RuntimeError("host went away")


class TestTrackedRange(unittest.TestCase):
    def test_create_and_read(self):
        surface = MemorySurface(["hello world"])
        tracked = TrackedRange.create(surface, Pos(0, 6), Pos(0, 11), {"hl": "Title"})
        self.assertEqual(tracked.text(), "world")
        fetched = TrackedRange.by_id(surface, tracked.id)
        self.assertEqual((fetched.start, fetched.stop, fetched.details), (Pos(0, 6), Pos(0, 11), {"hl": "Title"}))

    def test_missing_id(self):
        self.assertIsNone(TrackedRange.by_id(MemorySurface(), 42))

    def test_inverted_range_reads_empty(self):
        surface = MemorySurface(["abcdef"])
        tracked = TrackedRange.from_host(surface, 1, Pos(0, 4), Pos(0, 2))
        self.assertTrue(tracked.is_empty)
        self.assertEqual(tracked.text(), "")

    def test_rows_past_the_end_are_clamped(self):
        surface = MemorySurface(["ab", "c"])
        tracked = TrackedRange.from_host(surface, 1, Pos(5, 0), Pos(7, 3))
        self.assertEqual(tracked.start, Pos(1, 1))
        self.assertEqual(tracked.stop, Pos(1, 1))
        self.assertEqual(tracked.text(), "")

    def test_columns_past_the_line_are_clamped(self):
        surface = MemorySurface(["ab"])
        tracked = TrackedRange.from_host(surface, 1, Pos(0, 0), Pos(0, 10))
        self.assertEqual(tracked.text(), "ab")

    def test_overlapping(self):
        surface = MemorySurface(["abcdef"])
        first = TrackedRange.create(surface, Pos(0, 0), Pos(0, 2))
        second = TrackedRange.create(surface, Pos(0, 3), Pos(0, 5))
        found = TrackedRange.overlapping(surface, Pos(0, 4), Pos(0, 4))
        self.assertEqual([r.id for r in found], [second.id])
        found = TrackedRange.overlapping(surface, Pos(0, 0), Pos(0, 6))
        self.assertEqual([r.id for r in found], [first.id, second.id])

    def test_failing_host_query_degrades_to_no_ranges(self):
        surface = FailingQuerySurface(["abc"])
        with self.assertLogs("textmorph.ranges", level="WARNING"):
            self.assertEqual(TrackedRange.overlapping(surface, Pos(0, 0), Pos(0, 1)), [])


class TestInnermostFirst(unittest.TestCase):
    def test_contained_ranges_come_first(self):
        outer = TrackedRange(id=1, start=Pos(0, 0), stop=Pos(0, 10))
        inner = TrackedRange(id=2, start=Pos(0, 2), stop=Pos(0, 4))
        twin = TrackedRange(id=3, start=Pos(0, 2), stop=Pos(0, 4))
        ordered = sort_innermost_first([outer, twin, inner])
        self.assertEqual([r.id for r in ordered], [2, 3, 1])

    def test_multiline_containment(self):
        outer = TrackedRange(id=1, start=Pos(0, 0), stop=Pos(3, 0))
        inner = TrackedRange(id=2, start=Pos(1, 0), stop=Pos(1, 5))
        self.assertEqual([r.id for r in sort_innermost_first([outer, inner])], [2, 1])


if __name__ == "__main__":
    unittest.main()
