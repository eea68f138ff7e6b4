import sys
import unittest
from pathlib import Path
from unittest.mock import patch

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from engine.combat import (  # noqa: E402
    ATTACK_COST,
    NOTICE_BUSY,
    NOTICE_LOW_ENERGY,
    NOTICE_OVER,
    REFOCUS_ENERGY,
    CombatEngine,
    resolve_enemy_attack,
    resolve_player_attack,
)
from engine.encounter import build_encounter  # noqa: E402
from engine.phases import CombatPhase  # noqa: E402
from engine.scheduler import Scheduler  # noqa: E402
from engine.state_store import RunStateStore  # noqa: E402
from engine.stats import derive_stats  # noqa: E402


def max_roll(a, b):
    return b


def min_roll(a, b):
    return a


class CombatHarness:
    def __init__(self, enemy_level=0, danger_level=None, **state):
        self.store = RunStateStore(state)
        self.scheduler = Scheduler()
        self.victories = []
        self.ends = []
        self.logs = []
        self.engine = CombatEngine(
            self.store,
            self.scheduler,
            enemy_level=enemy_level,
            danger_level=danger_level,
            on_victory=lambda: self.victories.append(True),
            on_end=self.ends.append,
            on_log=self.logs.append,
        )


class TestResolution(unittest.TestCase):
    def test_player_hit_uses_strength(self):
        enc = build_encounter(0, "medium")
        with patch("random.randint", side_effect=max_roll):
            result = resolve_player_attack(enc, derive_stats(10, {"strength": 20}))
        self.assertTrue(result["hit"])
        self.assertEqual(result["total"], 25)
        self.assertEqual(result["damage"], 8 + 20)

    def test_player_miss_deals_nothing(self):
        enc = build_encounter(0, "high")
        with patch("random.randint", side_effect=min_roll):
            result = resolve_player_attack(enc, derive_stats(1))
        self.assertFalse(result["hit"])
        self.assertEqual(result["damage"], 0)

    def test_player_damage_never_below_one(self):
        enc = build_encounter(0, "low")
        stats = derive_stats(1, {"strength": -40})
        with patch("random.randint", side_effect=[20, 1]):
            result = resolve_player_attack(enc, stats)
        self.assertEqual(result["damage"], 1)

    def test_enemy_damage_soaked_to_one_minimum(self):
        enc = build_encounter(10, "high")
        stats = derive_stats(30)
        self.assertGreater(stats["con_mod"], 10)
        with patch("random.randint", side_effect=max_roll):
            result = resolve_enemy_attack(enc, stats)
        self.assertTrue(result["hit"])
        self.assertEqual(result["damage"], 1)

    def test_enemy_checks_fixed_dc(self):
        enc = build_encounter(0, "low")
        with patch("random.randint", side_effect=[11, 4]):
            result = resolve_enemy_attack(enc, derive_stats(1))
        self.assertEqual(result["total"], 14)
        self.assertFalse(result["hit"])


class TestCombatEngine(unittest.TestCase):
    def test_max_rolls_defeat_weak_enemy_once(self):
        h = CombatHarness(enemy_level=0, level=10, buffs={"strength": 20})
        with patch("random.randint", side_effect=max_roll):
            self.assertTrue(h.engine.attack())
            self.assertEqual(h.engine.phase, CombatPhase.ROLLING_ATTACK)
            h.scheduler.run_until_idle()
        self.assertLessEqual(h.engine.enemy_hp, 0)
        self.assertGreaterEqual(h.engine.last_result["damage"], 9)
        self.assertEqual(h.engine.phase, CombatPhase.VICTORY)
        self.assertEqual(h.victories, [True])
        self.assertEqual(h.ends, ["victory"])
        self.assertFalse(h.engine.attack())
        self.assertEqual(h.engine.notice, NOTICE_OVER)
        self.assertEqual(h.victories, [True])

    def test_attack_without_energy_changes_nothing(self):
        h = CombatHarness(enemy_level=2, energy=5)
        before = h.engine.view()
        with patch("random.randint") as randint:
            self.assertFalse(h.engine.attack())
            randint.assert_not_called()
        self.assertEqual(h.store.energy, 5)
        self.assertEqual(h.engine.notice, NOTICE_LOW_ENERGY)
        self.assertEqual(h.scheduler.pending, 0)
        after = h.engine.view()
        self.assertEqual(after["enemy_hp"], before["enemy_hp"])
        self.assertEqual(after["phase"], "idle")

    def test_energy_spent_before_the_roll(self):
        h = CombatHarness(enemy_level=3)
        self.assertTrue(h.engine.attack())
        self.assertEqual(h.store.energy, 100 - ATTACK_COST)
        self.assertEqual(h.engine.last_result, None)

    def test_actions_locked_while_rolling(self):
        h = CombatHarness(enemy_level=3)
        self.assertTrue(h.engine.attack())
        self.assertEqual(h.engine.actions(), [])
        self.assertFalse(h.engine.attack())
        self.assertEqual(h.engine.notice, NOTICE_BUSY)
        self.assertFalse(h.engine.refocus())
        self.assertEqual(h.store.energy, 100 - ATTACK_COST)

    def test_counter_turn_after_player_miss(self):
        h = CombatHarness(enemy_level=0, danger_level="high")
        # player d20=1 misses; enemy d20=20 hits for d10=10 minus con_mod 0
        with patch("random.randint", side_effect=[1, 20, 10]):
            h.engine.attack()
            h.scheduler.update(1.0)
            self.assertEqual(h.engine.phase, CombatPhase.RESOLVING_PLAYER_MISS)
            h.scheduler.update(0.5)
        self.assertEqual(h.store.hp, 90)
        self.assertTrue(h.engine.player_hit)
        self.assertEqual(h.engine.phase, CombatPhase.IDLE)
        h.scheduler.update(0.3)
        self.assertFalse(h.engine.player_hit)

    def test_refocus_restores_energy_then_enemy_swings(self):
        h = CombatHarness(enemy_level=0, energy=30)
        self.assertTrue(h.engine.refocus())
        self.assertEqual(h.store.energy, 30 + REFOCUS_ENERGY)
        self.assertEqual(h.engine.phase, CombatPhase.ENEMY_TURN)
        self.assertEqual(h.engine.actions(), [])
        with patch("random.randint", side_effect=min_roll):
            h.scheduler.run_until_idle()
        self.assertEqual(h.engine.phase, CombatPhase.IDLE)
        self.assertEqual(h.engine.last_result["actor"], "enemy")

    def test_refocus_capped_at_ceiling(self):
        h = CombatHarness(enemy_level=0, energy=110)
        h.engine.refocus()
        self.assertEqual(h.store.energy, 120)

    def test_defeat_ends_once(self):
        h = CombatHarness(enemy_level=0, danger_level="high", hp=3)
        with patch("random.randint", side_effect=max_roll):
            h.engine.refocus()
            h.scheduler.run_until_idle()
        self.assertEqual(h.store.hp, 0)
        self.assertEqual(h.engine.phase, CombatPhase.DEFEAT)
        self.assertEqual(h.ends, ["defeat"])
        self.assertEqual(h.victories, [])
        self.assertEqual(h.engine.outcome, "defeat")

    def test_new_encounter_drops_own_timers_only(self):
        h = CombatHarness(enemy_level=1)
        other = []
        h.scheduler.schedule(5.0, other.append, "other")
        h.engine.attack()
        h.engine.set_enemy_level(4)
        self.assertEqual(h.engine.phase, CombatPhase.IDLE)
        self.assertEqual(h.engine.enemy_hp, 40)
        h.scheduler.run_until_idle()
        self.assertEqual(other, ["other"])
        self.assertIsNone(h.engine.last_result)

    def test_view_is_serializable_snapshot(self):
        h = CombatHarness(enemy_level=2, danger_level="low")
        view = h.engine.view()
        self.assertEqual(view["enemy_max_hp"], 30)
        self.assertEqual(view["danger_tier"], "low")
        self.assertEqual(view["actions"], ["attack", "refocus"])
        self.assertIsNone(view["outcome"])


if __name__ == "__main__":
    unittest.main()
