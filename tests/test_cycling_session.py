import os
import sys
import unittest
from pathlib import Path

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))


def _session(host, items, **kw):
    from cyclekit.engine.cycling import CyclingSession
    from cyclekit.kernel.ring import CandidateRing

    kw.setdefault("forward_key", "right")
    kw.setdefault("backward_key", "left")
    return CyclingSession(
        command="cycle-test",
        ring=CandidateRing.from_items(items),
        host=host,
        history=host.snapshot_history("global"),
        **kw,
    )


class TestCycleController(unittest.TestCase):
    def test_moves_apply_without_recording(self) -> None:
        from cyclekit.engine.cycling import CycleController
        from session_fakes import FakeSessionHost

        host = FakeSessionHost()
        host.history.visit("seed")
        ctl = CycleController()
        ctl.start(_session(host, ["seed", "b", "c"]))

        self.assertTrue(ctl.handle_key("right"))
        self.assertTrue(ctl.handle_key("right"))
        self.assertTrue(ctl.handle_key("left"))
        self.assertEqual([c for c, _ in host.applied], ["b", "c", "b"])
        self.assertTrue(all(not ctx.record for _, ctx in host.applied))
        self.assertEqual(host.history.items(), ["seed"])

        ctl.exit()
        self.assertFalse(ctl.is_active)
        self.assertEqual(host.history.items(), ["b", "seed"])
        final, ctx = host.applied[-1]
        self.assertEqual(final, "b")
        self.assertTrue(ctx.record)

    def test_count_moves_several_steps(self) -> None:
        from cyclekit.engine.cycling import CycleController
        from session_fakes import FakeSessionHost

        host = FakeSessionHost()
        ctl = CycleController()
        session = _session(host, ["a", "b", "c", "d"])
        ctl.start(session)
        ctl.handle_key("right", 3)
        self.assertEqual(session.current, "d")
        ctl.handle_key("left", 5)
        self.assertEqual(session.current, "c")
        self.assertEqual(session.moves, 2)

    def test_other_key_ends_session_and_is_returned(self) -> None:
        from cyclekit.engine.cycling import CycleController
        from session_fakes import FakeSessionHost

        host = FakeSessionHost()
        ctl = CycleController()
        ctl.start(_session(host, ["a", "b"]))
        ctl.handle_key("right")

        self.assertFalse(ctl.handle_key("x"))
        self.assertEqual(ctl.unconsumed, ("x",))
        self.assertFalse(ctl.is_active)
        self.assertEqual(host.history.items(), ["b"])

    def test_multi_key_cycle_keys(self) -> None:
        from cyclekit.engine.cycling import CycleController
        from session_fakes import FakeSessionHost

        host = FakeSessionHost()
        ctl = CycleController()
        session = _session(host, ["a", "b", "c"], forward_key="c-x right", backward_key="c-x left")
        ctl.start(session)

        self.assertTrue(ctl.handle_key("c-x"))
        self.assertEqual(ctl.pending, ("c-x",))
        self.assertTrue(ctl.handle_key("right"))
        self.assertEqual(session.current, "b")
        self.assertEqual(ctl.pending, ())

        self.assertTrue(ctl.handle_key("c-x"))
        self.assertFalse(ctl.handle_key("b"))
        self.assertEqual(ctl.unconsumed, ("c-x", "b"))
        self.assertFalse(ctl.is_active)

    def test_failed_move_keeps_session_open(self) -> None:
        from cyclekit.engine.cycling import CycleController
        from cyclekit.kernel.errors import UserError
        from session_fakes import FakeSessionHost

        host = FakeSessionHost()

        def apply(candidate, ctx) -> None:
            if candidate == "broken":
                raise UserError("cannot show broken")
            host.apply_candidate(candidate, ctx)

        ctl = CycleController()
        ctl.start(_session(host, ["a", "broken", "c"], apply=apply))
        self.assertTrue(ctl.handle_key("right"))
        self.assertTrue(ctl.is_active)
        self.assertEqual(host.messages, ["cannot show broken"])
        self.assertEqual(ctl.active.current, "a")
        self.assertEqual(ctl.active.moves, 0)
        self.assertEqual(host.applied, [])
        self.assertTrue(ctl.handle_key("left"))
        self.assertEqual(ctl.active.current, "c")

    def test_exit_runs_once(self) -> None:
        from cyclekit.engine.cycling import CycleController
        from session_fakes import FakeSessionHost

        host = FakeSessionHost()
        exits = []
        ctl = CycleController()
        session = _session(host, ["a", "b"], on_exit=exits.append)
        ctl.start(session)
        ctl.exit()
        ctl.exit()
        session.finish()
        self.assertEqual(exits, [session])
        with self.assertRaises(RuntimeError):
            session.forward()

    def test_starting_a_session_finishes_the_open_one(self) -> None:
        from cyclekit.engine.cycling import CycleController
        from session_fakes import FakeSessionHost

        host = FakeSessionHost()
        ctl = CycleController()
        first = _session(host, ["a", "b"])
        ctl.start(first)
        ctl.handle_key("right")
        ctl.start(_session(host, ["x", "y"]))
        self.assertTrue(first.finished)
        self.assertEqual(host.history.items(), ["b"])


class TestHistoryIdempotence(unittest.TestCase):
    def _workspace(self):
        from cyclekit.kernel.siblings import ResourcePool
        from cyclekit.kernel.workspace import Workspace

        pool = ResourcePool()
        for _ in range(3):
            pool.add("draft", "text", Path("/tmp/draft"))
        pool.add("notes", "org", Path("/tmp/notes.org"))
        ws = Workspace(pool)
        ws.invoke_selection("switch-to-document", ["notes"])
        return ws

    def test_cycling_leaves_only_final_candidate(self) -> None:
        from cyclekit.engine.cycling import CycleController
        from cyclekit.engine.presets import document_variants
        from cyclekit.engine.variants import Invocation

        ws = self._workspace()
        notes = ws.pool.find("notes")
        d0 = ws.pool.find("draft")
        ctl = CycleController()
        variants = document_variants(ws, ws.pool, ctl)

        variants.handlers["cycle-switch-to-document"](
            Invocation(command="cycle-switch-to-document", args=("draft",))
        )
        ring = ctl.active.ring
        self.assertIs(ring.get(), d0)
        d1, d2 = ring.get(1), ring.get(2)

        ctl.handle_key("right")
        ctl.handle_key("right")
        ctl.handle_key("left")
        ctl.exit()

        self.assertEqual(ws.history.items(), [d1, notes])
        self.assertNotIn(d2, ws.history)
        self.assertNotIn(d0, ws.history)
        self.assertIs(ws.view("main").current, d1)
        self.assertEqual(ws.view("main").previous, [notes])

        direct = self._workspace()
        direct.invoke_selection("switch-to-document", [d1.name])
        self.assertEqual([r.name for r in direct.history.items()], [r.name for r in ws.history.items()])
        self.assertEqual([r.name for r in direct.pool.live()], [r.name for r in ws.pool.live()])

    def test_returning_to_seed_records_seed(self) -> None:
        from cyclekit.engine.cycling import CycleController
        from cyclekit.engine.presets import document_variants
        from cyclekit.engine.variants import Invocation

        ws = self._workspace()
        notes = ws.pool.find("notes")
        d0 = ws.pool.find("draft")
        ctl = CycleController()
        variants = document_variants(ws, ws.pool, ctl)
        variants.handlers["cycle-switch-to-document"](
            Invocation(command="cycle-switch-to-document", args=("draft",))
        )
        for key in ("right", "right", "right"):
            ctl.handle_key(key)
        ctl.exit()
        self.assertEqual(ws.history.items(), [d0, notes])


class TestRejectedCandidates(unittest.TestCase):
    def _dispatcher(self):
        from cyclekit.engine.dispatch import CommandDispatcher
        from cyclekit.engine.presets import document_variants
        from cyclekit.kernel.siblings import ResourcePool
        from cyclekit.kernel.workspace import Workspace

        pool = ResourcePool()
        for _ in range(3):
            pool.add("draft", "text", Path("/tmp/draft"))
        pool.add("notes", "org", Path("/tmp/notes.org"))
        ws = Workspace(pool)
        ws.invoke_selection("switch-to-document", ["notes"])
        d = CommandDispatcher()
        d.install(document_variants(ws, ws.pool, d.controller))
        ran = []
        d.register("mark", lambda inv: ran.append(ws.view().current), key="x")
        return ws, d, ran

    def test_key_after_rejected_move_still_runs(self) -> None:
        ws, d, ran = self._dispatcher()
        notes = ws.pool.find("notes")
        d0 = ws.pool.find("draft")

        d.run("switch-to-document", "draft")
        d1 = d.controller.active.ring.get(1)
        ws.pool.kill(d1)

        self.assertTrue(d.press("right"))
        self.assertTrue(d.controller.is_active)
        self.assertIs(d.controller.active.current, d0)
        self.assertTrue(ws.messages[-1].startswith("cannot select"))

        self.assertTrue(d.press("x"))
        self.assertFalse(d.controller.is_active)
        self.assertEqual(ran, [d0])
        self.assertEqual(ws.history.items(), [d0, notes])
        self.assertIs(ws.view("main").current, d0)
        self.assertTrue(ws.pool.is_live(d0))

    def test_candidate_killed_while_shown_falls_back(self) -> None:
        ws, d, ran = self._dispatcher()
        notes = ws.pool.find("notes")
        d0 = ws.pool.find("draft")

        d.run("switch-to-document", "draft")
        self.assertTrue(d.press("right"))
        shown = d.controller.active.current
        self.assertIsNot(shown, d0)
        ws.pool.kill(shown)

        with self.assertLogs("cyclekit.cycling", level="WARNING"):
            self.assertTrue(d.press("x"))
        self.assertEqual(ran, [d0])
        self.assertEqual(ws.history.items(), [d0, notes])
        self.assertIs(ws.view("main").current, d0)


if __name__ == "__main__":
    unittest.main()
