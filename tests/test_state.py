import unittest

from textmorph.errors import LifecycleError
from textmorph.state import Context


class FakeMorph:
    def __init__(self, locked):
        self.locked = locked
        self.scheduled = []

    def is_locked(self):
        return self.locked

    def schedule(self, fn):
        self.scheduled.append(fn)


class TestContextLifecycle(unittest.TestCase):
    def test_phases_move_forward(self):
        ctx = Context()
        self.assertEqual(ctx.phase, "mount")
        ctx._set_phase("update")
        ctx._set_phase("update")
        ctx._set_phase("unmount")
        self.assertEqual(ctx.phase, "unmount")

    def test_phases_never_move_backwards(self):
        ctx = Context()
        ctx._set_phase("update")
        with self.assertRaises(LifecycleError):
            ctx._set_phase("mount")

    def test_unmount_is_terminal(self):
        ctx = Context()
        ctx._set_phase("unmount")
        with self.assertRaises(LifecycleError):
            ctx._set_phase("update")
        with self.assertRaises(LifecycleError):
            ctx._set_phase("unmount")

    def test_defaults(self):
        ctx = Context()
        self.assertEqual(ctx.props, {})
        self.assertEqual(ctx.children, [])
        self.assertIsNone(ctx.state)
        self.assertIsNone(ctx.morph)


class TestContextUpdate(unittest.TestCase):
    def setUp(self):
        self.renders = []
        self.ctx = Context()
        self.ctx._on_change = lambda: self.renders.append(self.ctx.state)

    def test_update_during_mount_only_stores_state(self):
        self.ctx.update({"n": 1})
        self.assertEqual(self.ctx.state, {"n": 1})
        self.assertEqual(self.renders, [])

    def test_update_rerenders_synchronously(self):
        self.ctx._set_phase("update")
        self.ctx.update({"n": 2})
        self.assertEqual(self.renders, [{"n": 2}])

    def test_refresh_keeps_state(self):
        self.ctx._set_phase("update")
        self.ctx.state = {"n": 3}
        self.ctx.refresh()
        self.assertEqual(self.renders, [{"n": 3}])

    def test_update_without_callback_is_a_noop(self):
        ctx = Context()
        ctx._set_phase("update")
        ctx.update({"n": 4})
        self.assertEqual(ctx.state, {"n": 4})

    def test_update_after_unmount_does_not_render(self):
        self.ctx._set_phase("unmount")
        self.ctx.update({"n": 5})
        self.assertEqual(self.renders, [])

    def test_locked_morph_defers_the_rerender(self):
        morph = FakeMorph(locked=True)
        ctx = Context(morph=morph)
        ctx._on_change = lambda: self.renders.append("render")
        ctx._set_phase("update")
        ctx.update({"n": 6})
        self.assertEqual(self.renders, [])
        self.assertEqual(morph.scheduled, [ctx._on_change])

    def test_unlocked_morph_renders_now(self):
        morph = FakeMorph(locked=False)
        ctx = Context(morph=morph)
        ctx._on_change = lambda: self.renders.append("render")
        ctx._set_phase("update")
        ctx.update({"n": 7})
        self.assertEqual(self.renders, ["render"])
        self.assertIs(ctx.morph, morph)

    def test_do_after_render(self):
        registered = []
        self.ctx._register_after_render = registered.append
        callback = lambda: None
        self.ctx.do_after_render(callback)
        self.assertEqual(registered, [callback])
        self.ctx._detach()
        self.ctx.do_after_render(callback)
        self.assertEqual(registered, [callback])


if __name__ == "__main__":
    unittest.main()
