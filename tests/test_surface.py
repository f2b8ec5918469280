import unittest

from textmorph.base import Pos
from textmorph.surface import MemorySurface


class TestMemorySurfaceText(unittest.TestCase):
    def test_starts_with_one_empty_line(self):
        self.assertEqual(MemorySurface().get_lines(), [""])

    def test_set_lines(self):
        surface = MemorySurface(["a", "b", "c"])
        surface.set_lines(0, 0, ["start"])
        self.assertEqual(surface.get_lines(), ["start", "a", "b", "c"])
        surface.set_lines(4, 4, ["end"])
        self.assertEqual(surface.get_lines(), ["start", "a", "b", "c", "end"])
        surface.set_lines(1, 3, ["x"])
        self.assertEqual(surface.get_lines(), ["start", "x", "c", "end"])
        surface.set_lines(3, 4, [])
        self.assertEqual(surface.get_lines(), ["start", "x", "c"])
        surface.set_lines(0, 3, [])
        self.assertEqual(surface.get_lines(), [""])

    def test_set_lines_out_of_range(self):
        surface = MemorySurface(["a"])
        with self.assertRaises(IndexError):
            surface.set_lines(0, 3, [])

    def test_set_text_and_get_text(self):
        surface = MemorySurface(["hello world"])
        surface.set_text(Pos(0, 5), Pos(0, 6), ["", ""])
        self.assertEqual(surface.get_lines(), ["hello", "world"])
        self.assertEqual(surface.get_text(Pos(0, 3), Pos(1, 2)), "lo\nwo")

    def test_change_tick_increases_on_edits(self):
        surface = MemorySurface(["a"])
        tick = surface.change_tick
        surface.insert(Pos(0, 1), "b")
        self.assertGreater(surface.change_tick, tick)


class TestMemorySurfaceRanges(unittest.TestCase):
    def setUp(self):
        self.surface = MemorySurface(["abcdef"])
        self.range_id = self.surface.create_range(Pos(0, 2), Pos(0, 4))

    def text(self):
        start, stop, _details = self.surface.get_range(self.range_id)
        return self.surface.get_text(start, stop)

    def test_text_typed_at_either_edge_joins_the_range(self):
        self.surface.insert(Pos(0, 2), "X")
        self.assertEqual(self.text(), "Xcd")
        self.surface.insert(Pos(0, 5), "Y")
        self.assertEqual(self.text(), "XcdY")

    def test_edits_before_the_range_shift_it(self):
        self.surface.insert(Pos(0, 0), "__")
        self.assertEqual(self.surface.get_range(self.range_id)[:2], (Pos(0, 4), Pos(0, 6)))
        self.assertEqual(self.text(), "cd")

    def test_deleting_the_region_collapses_the_range(self):
        self.surface.replace(Pos(0, 1), Pos(0, 5), "")
        start, stop, _details = self.surface.get_range(self.range_id)
        self.assertEqual(start, stop)

    def test_overlap_query_is_inclusive(self):
        ids = lambda start, stop: [r[0] for r in self.surface.query_overlapping(start, stop)]
        self.assertEqual(ids(Pos(0, 4), Pos(0, 4)), [self.range_id])
        self.assertEqual(ids(Pos(0, 2), Pos(0, 2)), [self.range_id])
        self.assertEqual(ids(Pos(0, 5), Pos(0, 6)), [])

    def test_details_are_kept(self):
        range_id = self.surface.create_range(Pos(0, 0), Pos(0, 1), {"hl": "Comment"})
        self.assertEqual(self.surface.get_range(range_id)[2], {"hl": "Comment"})

    def test_clear_ranges(self):
        self.surface.clear_ranges()
        self.assertIsNone(self.surface.get_range(self.range_id))


class TestMemorySurfaceHost(unittest.TestCase):
    def test_feed_key(self):
        surface = MemorySurface()
        self.assertEqual(surface.feed_key("x"), "x")
        surface.set_handler("n", "x", lambda: "")
        self.assertEqual(surface.feed_key("x"), "")
        surface.set_handler("n", "y", lambda: None)
        self.assertEqual(surface.feed_key("y"), "y")
        self.assertEqual(surface.feed_key("x", mode="i"), "x")
        surface.del_handler("n", "x")
        self.assertEqual(surface.get_handlers("n").keys(), {"y"})

    def test_deferred_work_waits_for_unlock(self):
        surface = MemorySurface()
        ran = []
        with surface.locked():
            self.assertTrue(surface.is_mutation_locked())
            surface.defer_until_unlocked(lambda: ran.append(1))
            surface.defer_until_unlocked(lambda: ran.append(2))
            self.assertEqual(ran, [])
        self.assertEqual(ran, [1, 2])
        surface.defer_until_unlocked(lambda: ran.append(3))
        self.assertEqual(ran, [1, 2, 3])

    def test_change_listeners(self):
        surface = MemorySurface(["abc"])
        seen = []
        unsubscribe = surface.on_external_change(lambda *args: seen.append(args))
        surface.insert(Pos(0, 1), "XY")
        self.assertEqual(seen, [(Pos(0, 1), Pos(0, 1), Pos(0, 3))])
        unsubscribe()
        surface.insert(Pos(0, 0), "Z")
        self.assertEqual(len(seen), 1)


if __name__ == "__main__":
    unittest.main()
