import os
import unittest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

# Qt needs a display plugin; skip cleanly where the platform cannot start.
try:
    from PySide6.QtCore import QCoreApplication
    from PySide6.QtGui import QGuiApplication, QTextCursor

    from textmorph.qt_surface import QtDocumentSurface
    MODULE_AVAILABLE = True
except Exception:
    MODULE_AVAILABLE = False

from textmorph import Config, Morph, Pos, TextEdit, h
from textmorph.examples import Counter


def spin():
    for _ in range(5):
        QCoreApplication.processEvents()


@unittest.skipUnless(MODULE_AVAILABLE, "PySide6 not available")
class TestQtDocumentSurface(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = QGuiApplication.instance() or QGuiApplication([])

    def test_lines(self):
        surface = QtDocumentSurface()
        self.assertEqual(surface.get_lines(), [""])
        surface.set_lines(0, 1, ["one", "two"])
        surface.set_lines(2, 2, ["three"])
        self.assertEqual(surface.get_lines(), ["one", "two", "three"])
        self.assertEqual(surface.line_count(), 3)
        surface.set_lines(0, 1, [])
        self.assertEqual(surface.get_lines(), ["two", "three"])
        self.assertEqual(surface.get_text(Pos(0, 1), Pos(1, 2)), "wo\nth")

    def test_range_gravity(self):
        surface = QtDocumentSurface()
        surface.set_lines(0, 1, ["abcdef"])
        range_id = surface.create_range(Pos(0, 2), Pos(0, 4), {"hl": "Title"})
        surface.set_text(Pos(0, 2), Pos(0, 2), ["X"])
        surface.set_text(Pos(0, 5), Pos(0, 5), ["Y"])
        start, stop, details = surface.get_range(range_id)
        self.assertEqual(surface.get_text(start, stop), "XcdY")
        self.assertEqual(details, {"hl": "Title"})
        self.assertEqual([r[0] for r in surface.query_overlapping(Pos(0, 3), Pos(0, 3))], [range_id])

    def test_change_tick(self):
        surface = QtDocumentSurface()
        tick = surface.change_tick
        surface.set_text(Pos(0, 0), Pos(0, 0), ["x"])
        self.assertGreater(surface.change_tick, tick)

    def test_morph_renders_into_the_document(self):
        surface = QtDocumentSurface()
        morph = Morph(surface, config=Config())
        tree = ["Title", "\n", h.Comment({"id": "c"}, "body")]
        morph.render(tree)
        self.assertEqual(surface.document.toPlainText(), "Title\nbody")
        self.assertEqual(morph.get_element_by_id("c").text, "body")
        self.assertEqual(morph.render(tree), [])

    def test_counter_single_edit(self):
        surface = QtDocumentSurface()
        morph = Morph(surface, config=Config())
        morph.mount(h(Counter))
        surface.set_cursor((0, 16))
        self.assertEqual(surface.feed_key("<CR>"), "")
        self.assertEqual(surface.get_lines(), ["Value: 2  -  /  + "])
        self.assertEqual(morph.last_edits, [TextEdit("text", Pos(0, 7), Pos(0, 8), ("2",))])

    def test_edits_in_the_document_reach_on_change(self):
        captured = {}

        def Input(ctx):
            if ctx.phase == "mount":
                ctx.state = "hi"
            captured["state"] = ctx.state
            return ["> ", h("text", {"id": "in", "on_change": lambda e: ctx.update(e.text)}, ctx.state)]

        surface = QtDocumentSurface()
        morph = Morph(surface, config=Config())
        morph.mount(h(Input))

        cursor = QTextCursor(surface.document)
        cursor.setPosition(4)
        cursor.insertText("!")
        # the re-render waits until Qt is done delivering the change
        self.assertEqual(captured["state"], "hi")
        spin()
        self.assertEqual(captured["state"], "hi!")
        self.assertEqual(surface.get_lines(), ["> hi!"])


if __name__ == "__main__":
    unittest.main()
