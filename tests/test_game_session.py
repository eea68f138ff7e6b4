import json
import sys
import threading
import unittest
from pathlib import Path
from unittest.mock import patch

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from engine.combat import CombatEngine  # noqa: E402
from engine.scheduler import RealtimeScheduler, Scheduler  # noqa: E402
from engine.state_store import RunStateStore  # noqa: E402
from game_session import COMBAT_INTRO_DELAY, GameSession  # noqa: E402


class ScriptedNarrator:
    def __init__(self, *replies):
        self.replies = [json.dumps(r, ensure_ascii=False) for r in replies]
        self.calls = 0

    def generate(self, prompt):
        self.calls += 1
        return self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]


CALM = {"story": "숲길이 이어진다.", "choices": ["앞으로", "쉬어간다"], "isCombat": False, "dangerLevel": "low"}
# No tier, so the supplied enemy level stands.
FIGHT = {"story": "늑대가 덤벼든다!", "choices": [], "isCombat": True, "enemyLevel": 1}


def types(events):
    return [e["type"] for e in events]


class TestGameSession(unittest.TestCase):
    def make_session(self, *replies, **state):
        self.scheduler = Scheduler()
        return GameSession(RunStateStore(state or None), narrator=ScriptedNarrator(*replies), scheduler=self.scheduler)

    def test_start_creates_character_and_first_turn(self):
        session = self.make_session(CALM)
        events = session.step({
            "action": "start",
            "name": "아린",
            "race": "엘프 (Elf)",
            "class_name": "로그 (Rogue)",
            "difficulty": "casual",
        })
        self.assertIn("character_update", types(events))
        update = [e for e in events if e["type"] == "character_update"][-1]["character"]
        self.assertEqual(update["name"], "아린")
        self.assertEqual(update["difficulty"], {"id": "casual", "label": "여유"})
        self.assertEqual(update["energy"]["current"], 116)
        story = [e for e in events if e["type"] == "story"][-1]
        self.assertEqual(story["choices"], ["앞으로", "쉬어간다"])

    def test_bad_start_reports_error(self):
        session = self.make_session(CALM)
        events = session.step({"action": "start", "name": ""})
        self.assertIn("error", types(events))
        self.assertEqual(session.progression.narrator.calls, 0)

    def test_choose_by_index_and_text(self):
        session = self.make_session(CALM, choices=["앞으로", "쉬어간다"])
        session.step({"action": "choose", "choice": 1})
        self.assertIn("선택: 쉬어간다", session.store.history)
        session.step({"action": "choose", "text": "앞으로"})
        self.assertIn("선택: 앞으로", session.store.history)
        events = session.step({"action": "choose", "choice": 7})
        self.assertIn("error", types(events))

    def test_unknown_action(self):
        session = self.make_session(CALM)
        self.assertEqual(types(session.step({"action": "dance"})), ["error"])

    def test_combat_turn_auto_enters_and_victory_continues(self):
        session = self.make_session(FIGHT, CALM, choices=["앞으로"], level=10, buffs={"strength": 20})
        session.step({"action": "choose", "choice": 0})
        self.assertTrue(session.store.get("pending_combat"))
        self.assertIsNone(session.combat)
        self.scheduler.update(1.2)
        self.assertIsNotNone(session.combat)
        events = session.step({"action": "choose", "choice": 0})
        self.assertIn("error", types(events))

        with patch("random.randint", side_effect=lambda a, b: b):
            session.step({"action": "attack"})
            self.scheduler.run_until_idle()
        self.assertIsNone(session.combat)
        state = session.store.snapshot()
        self.assertEqual(state["level"], 11)
        self.assertFalse(state["pending_combat"])
        self.assertEqual(state["story"], CALM["story"])
        self.assertIn("combat_result", types(session.events))

    def test_defeat_sets_game_over(self):
        session = self.make_session(FIGHT, choices=["앞으로"], hp=1)
        session.step({"action": "choose", "choice": 0})
        session.step({"action": "enter_combat"})
        with patch("random.randint", side_effect=lambda a, b: b):
            session.step({"action": "refocus"})
            self.scheduler.run_until_idle()
        self.assertTrue(session.store.get("game_over"))
        self.assertIn("game_over", types(session.events))
        events = session.step({"action": "choose", "choice": 0})
        self.assertIn("error", types(events))

    def test_attack_without_combat_is_error(self):
        session = self.make_session(CALM)
        self.assertIn("error", types(session.step({"action": "attack"})))

    def test_restart_clears_run_and_combat(self):
        session = self.make_session(FIGHT, choices=["앞으로"], level=4)
        session.step({"action": "choose", "choice": 0})
        session.step({"action": "enter_combat"})
        session.step({"action": "attack"})
        session.step({"action": "restart"})
        self.assertIsNone(session.combat)
        self.assertEqual(self.scheduler.pending, 0)
        self.assertEqual(session.store.level, 1)


class SlowNarrator(ScriptedNarrator):
    """Moves a fake clock forward while it 'thinks'."""

    def __init__(self, now, seconds, *replies):
        super().__init__(*replies)
        self.now = now
        self.seconds = seconds

    def generate(self, prompt):
        self.now[0] += self.seconds
        return super().generate(prompt)


class TestRealtimeSession(unittest.TestCase):
    def test_intro_waits_after_slow_story(self):
        now = [50.0]
        session = GameSession(
            RunStateStore({"choices": ["앞으로"]}),
            narrator=SlowNarrator(now, 5.0, FIGHT),
            scheduler=RealtimeScheduler(clock=lambda: now[0]),
        )
        session.step({"action": "choose", "choice": 0})
        now[0] += 0.1
        session.drain()
        self.assertIsNone(session.combat)
        now[0] += COMBAT_INTRO_DELAY
        events = session.drain()
        self.assertIsInstance(session.combat, CombatEngine)
        self.assertIn("combat_state", types(events))

    def test_step_events_are_not_drained_twice(self):
        session = GameSession(RunStateStore(), narrator=ScriptedNarrator(CALM), scheduler=Scheduler())
        self.assertTrue(session.step({"action": "state"}))
        self.assertEqual(session.drain(), [])

    def test_drain_waits_for_running_step(self):
        session = GameSession(RunStateStore(), narrator=ScriptedNarrator(CALM), scheduler=Scheduler())
        session.emit({"type": "system", "text": "hi"})
        drained = []
        with session.lock:
            worker = threading.Thread(target=lambda: drained.extend(session.drain()))
            worker.start()
            worker.join(timeout=0.1)
            self.assertTrue(worker.is_alive())
            self.assertEqual(drained, [])
        worker.join(timeout=2)
        self.assertFalse(worker.is_alive())
        self.assertEqual(types(drained), ["system"])


if __name__ == "__main__":
    unittest.main()
