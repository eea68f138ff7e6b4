import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from engine.scheduler import RealtimeScheduler, Scheduler  # noqa: E402


class TestScheduler(unittest.TestCase):
    def test_fires_in_time_then_insertion_order(self):
        s = Scheduler()
        fired = []
        s.schedule(1.0, fired.append, "late")
        s.schedule(0.5, fired.append, "a")
        s.schedule(0.5, fired.append, "b")
        self.assertEqual(s.update(0.4), 0)
        self.assertEqual(s.update(0.1), 2)
        self.assertEqual(fired, ["a", "b"])
        s.update(1.0)
        self.assertEqual(fired, ["a", "b", "late"])

    def test_callbacks_may_schedule_follow_ups(self):
        s = Scheduler()
        fired = []

        def first():
            fired.append("first")
            s.schedule(0.5, fired.append, "second")

        s.schedule(1.0, first)
        self.assertEqual(s.run_until_idle(), 2)
        self.assertEqual(fired, ["first", "second"])
        self.assertAlmostEqual(s.current_time, 1.5)

    def test_run_until_idle_paces_with_sleep(self):
        s = Scheduler()
        waits = []
        s.schedule(0.25, lambda: None)
        s.schedule(1.0, lambda: None)
        s.run_until_idle(sleep=waits.append)
        self.assertEqual(len(waits), 2)
        self.assertAlmostEqual(sum(waits), 1.0)

    def test_cancel(self):
        s = Scheduler()
        fired = []
        s.schedule(0.1, fired.append, "keep")
        drop = s.schedule(0.1, fired.append, "drop")
        s.cancel(drop)
        self.assertEqual(s.pending, 1)
        s.update(1)
        self.assertEqual(fired, ["keep"])
        s.schedule(1, fired.append, "x")
        s.cancel_all()
        self.assertEqual(s.pending, 0)

    def test_callback_errors_propagate(self):
        s = Scheduler()

        def boom():
            raise RuntimeError("boom")

        s.schedule(0, boom)
        with self.assertRaises(RuntimeError):
            s.update(0)

    def test_realtime_scheduler_follows_clock(self):
        now = [100.0]
        s = RealtimeScheduler(clock=lambda: now[0])
        fired = []
        s.schedule(1.0, fired.append, 1)
        self.assertEqual(s.pump(), 0)
        now[0] = 101.0
        self.assertEqual(s.pump(), 1)
        self.assertEqual(fired, [1])

    def test_realtime_delay_counts_from_schedule_time(self):
        now = [100.0]
        s = RealtimeScheduler(clock=lambda: now[0])
        fired = []
        now[0] = 105.0
        s.schedule(1.2, fired.append, "intro")
        now[0] = 105.1
        self.assertEqual(s.pump(), 0)
        now[0] = 106.2
        self.assertEqual(s.pump(), 1)
        self.assertEqual(fired, ["intro"])

    def test_realtime_follow_ups_keep_event_time(self):
        now = [0.0]
        s = RealtimeScheduler(clock=lambda: now[0])
        fired = []

        def first():
            fired.append("first")
            s.schedule(0.5, fired.append, "second")

        s.schedule(1.0, first)
        now[0] = 2.0
        self.assertEqual(s.pump(), 2)
        self.assertEqual(fired, ["first", "second"])


if __name__ == "__main__":
    unittest.main()
