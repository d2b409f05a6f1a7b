import unittest
from pathlib import Path
from unittest.mock import patch


class FakeTmux:
    """Answers the tmux invocations TmuxHost makes from a table of windows."""

    def __init__(self, windows, *, commands=None, panes=None, flags=None) -> None:
        self.windows = list(windows)
        self.commands = dict(commands or {})
        self.panes = dict(panes or {})
        self.flags = dict(flags or {})
        self.calls = []

    def __call__(self, args, *, timeout_s: float = 3.0):
        self.calls.append(list(args))
        op = args[0]
        if op == "list-windows":
            return 0, "\n".join("\t".join(w) for w in self.windows) + "\n", ""
        if op == "display-message" and "-p" in args:
            window_id, fmt = args[3], args[4]
            if fmt == "#{pane_current_command}":
                return 0, self.commands.get(window_id, "bash") + "\n", ""
            if fmt == "#{pane_current_path}":
                return 0, "", ""
            return 0, self.flags.get((window_id, fmt), "0") + "\n", ""
        if op == "capture-pane":
            return 0, self.panes.get(args[3], ""), ""
        if op == "new-window":
            return 0, "@9\tshell\t/srv\t0\t0\t0\n", ""
        return 0, "", ""


def _window(wid, name, path="/home/u", activity="100", active="0", last="0"):
    return (wid, name, path, activity, active, last)


class TestTmuxHost(unittest.TestCase):
    def test_sessions_filtered_and_ordered(self) -> None:
        from cyclekit.runners.tmux import TmuxHost

        fake = FakeTmux(
            [
                _window("@1", "shell", activity="100"),
                _window("@2", "editor", activity="500"),
                _window("@3", "shell<2>", activity="300"),
                _window("@4", "shell<3>", activity="50", active="1"),
                _window("@5", "shellfish", activity="900"),
            ]
        )
        with patch("cyclekit.runners.tmux._run_tmux", fake):
            host = TmuxHost()
            names = [host.session_name(s) for s in host.sessions("shell")]
        self.assertEqual(names, ["shell<3>", "shell<2>", "shell"])

    def test_target_is_passed_to_list_windows(self) -> None:
        from cyclekit.runners.tmux import TmuxHost

        fake = FakeTmux([])
        with patch("cyclekit.runners.tmux._run_tmux", fake):
            TmuxHost(target="work").sessions("shell")
        self.assertEqual(fake.calls[0][:3], ["list-windows", "-t", "work"])

    def test_busy_probes(self) -> None:
        from cyclekit.kernel.sessions import busy_reason
        from cyclekit.runners.tmux import TmuxHost

        fake = FakeTmux(
            [_window("@1", "shell"), _window("@2", "shell<2>"), _window("@3", "shell<3>"), _window("@4", "shell<4>")],
            commands={"@1": "vim", "@4": "-zsh"},
            panes={"@3": "old output\nuser@box:~/src$ git status\n\n", "@4": "user@box:~$ \n"},
            flags={("@2", "#{pane_in_mode}"): "1"},
        )
        with patch("cyclekit.runners.tmux._run_tmux", fake):
            host = TmuxHost()
            s1, s2, s3, s4 = host.sessions("shell")
            self.assertEqual(busy_reason(host, s1, "strict"), "foreign-process")
            self.assertEqual(busy_reason(host, s2, "strict"), "narrowed")
            self.assertIsNone(busy_reason(host, s2, "tolerant"))
            self.assertEqual(host.pending_input(s3), "git status")
            self.assertEqual(busy_reason(host, s3, "interactive"), "pending-input")
            self.assertIsNone(busy_reason(host, s4, "interactive"))
            self.assertEqual(host.session_directory(s4), Path("/home/u"))

    def test_create_rename_and_cd(self) -> None:
        from cyclekit.kernel.errors import UserError
        from cyclekit.runners.tmux import TmuxHost

        fake = FakeTmux([_window("@1", "shell")], flags={("@1", "#{pane_dead}"): "0"})
        with patch("cyclekit.runners.tmux._run_tmux", fake):
            host = TmuxHost(target="work")
            (s1,) = host.sessions("shell")
            host.rename_session(s1, "shell<2>")
            created = host.create_session("shell", "shell", Path("/srv"))
            host.change_directory(s1, Path("/srv/my app"))

            fake.flags[("@1", "#{pane_dead}")] = "1"
            with self.assertRaises(UserError):
                host.change_directory(s1, Path("/srv"))

        self.assertEqual(created.window_id, "@9")
        self.assertIn(["rename-window", "-t", "@1", "shell<2>"], fake.calls)
        new_window = next(c for c in fake.calls if c[0] == "new-window")
        self.assertEqual(new_window[-4:], ["-t", "work:", "-c", "/srv"])
        self.assertIn(["send-keys", "-t", "@1", "-l", "cd -- '/srv/my app'"], fake.calls)

    def test_failed_new_window_is_a_user_error(self) -> None:
        from cyclekit.kernel.errors import UserError
        from cyclekit.runners.tmux import TmuxHost

        def failing(args, *, timeout_s: float = 3.0):
            return 1, "", "no server running"

        with patch("cyclekit.runners.tmux._run_tmux", failing):
            with self.assertRaises(UserError):
                TmuxHost().create_session("shell", "shell", None)
            self.assertEqual(TmuxHost().sessions("shell"), [])

    def test_history_snapshot_and_commit(self) -> None:
        from cyclekit.runners.tmux import TmuxHost

        fake = FakeTmux([_window("@1", "shell", last="1"), _window("@2", "editor", active="1")])
        with patch("cyclekit.runners.tmux._run_tmux", fake):
            host = TmuxHost()
            state = host.snapshot_history("global")
            fake.calls.clear()
            host.commit_history("global", state)
        self.assertEqual(state, ("@1", "@2"))
        self.assertEqual(fake.calls, [["select-window", "-t", "@1"], ["select-window", "-t", "@2"]])

    def test_notify_uses_callback(self) -> None:
        from cyclekit.runners.tmux import TmuxHost

        seen = []
        fake = FakeTmux([])
        with patch("cyclekit.runners.tmux._run_tmux", fake):
            TmuxHost(on_notify=seen.append).notify("Cycle with right and left")
            TmuxHost().notify("hello")
        self.assertEqual(seen, ["Cycle with right and left"])
        self.assertEqual(fake.calls, [["display-message", "hello"]])


if __name__ == "__main__":
    unittest.main()
