"""
Combat Turn Engine
------------------
One encounter between the player and a single enemy.

Resolution (`resolve_player_attack`, `resolve_enemy_attack`) is pure dice
arithmetic. `CombatEngine` sequences it: the rolling lock, the enemy
counter-turn and the hit flashes are timers on an injected Scheduler, so
pacing only changes when callbacks fire, never what they compute.
Player HP and energy live in the RunStateStore and are read at call time.
"""

from __future__ import annotations

import logging
import random
from typing import Any, Callable, Dict, Optional

from engine.dice import d20, roll_die
from engine.encounter import build_encounter, damage_enemy, enemy_alive
from engine.phases import CombatPhase, allowed_actions, is_terminal
from engine.scheduler import Scheduler
from engine.state_store import RunStateStore
from engine.stats import derive_stats

logger = logging.getLogger(__name__)

PLAYER_ATTACK_BONUS = 5
PLAYER_DAMAGE_DIE = 8
ENEMY_HIT_DC = 15
ATTACK_COST = 10
REFOCUS_ENERGY = 18

ROLL_DELAY = 1.0
COUNTER_DELAY = 0.5
REFOCUS_DELAY = 0.4
HIT_FLASH = 0.3

VICTORY = "victory"
DEFEAT = "defeat"

NOTICE_LOW_ENERGY = "에너지가 부족합니다. 재정비가 필요합니다."
NOTICE_REFOCUS = "숨을 고르고 힘을 비축했습니다."
NOTICE_BUSY = "주사위가 구르는 중입니다. 잠시 기다리세요."
NOTICE_OVER = "전투가 이미 끝났습니다."


def resolve_player_attack(
    encounter: Dict[str, Any],
    stats: Dict[str, int],
    rng: Optional[random.Random] = None,
) -> Dict[str, Any]:
    """d20 + 5 against the enemy AC; damage d8 + STR mod, never below 1."""
    roll = d20(rng)
    total = roll + PLAYER_ATTACK_BONUS
    hit = total >= encounter["enemy_ac"]
    damage = max(1, roll_die(PLAYER_DAMAGE_DIE, rng) + stats["str_mod"]) if hit else 0
    return {"roll": roll, "total": total, "target": encounter["enemy_ac"], "hit": hit, "damage": damage}


def resolve_enemy_attack(
    encounter: Dict[str, Any],
    stats: Dict[str, int],
    rng: Optional[random.Random] = None,
) -> Dict[str, Any]:
    """
    d20 + enemy attack bonus against a fixed DC 15.
    Constitution soaks damage down to a 1-point minimum, never to zero.
    """
    roll = d20(rng)
    total = roll + encounter["enemy_attack_bonus"]
    hit = total >= ENEMY_HIT_DC
    damage = max(1, roll_die(encounter["enemy_damage_die"], rng) - stats["con_mod"]) if hit else 0
    return {"roll": roll, "total": total, "target": ENEMY_HIT_DC, "hit": hit, "damage": damage}


class CombatEngine:
    def __init__(
        self,
        store: RunStateStore,
        scheduler: Scheduler,
        *,
        enemy_level: int,
        danger_level: str | None = None,
        on_victory: Optional[Callable[[], None]] = None,
        on_end: Optional[Callable[[str], None]] = None,
        on_log: Optional[Callable[[str], None]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.scheduler = scheduler
        self.on_victory = on_victory
        self.on_end = on_end
        self.on_log = on_log
        self.rng = rng
        self.danger_level = danger_level
        self.player_hit = False
        self.enemy_hit = False
        self.notice = ""
        self.last_result: Optional[Dict[str, Any]] = None
        self._ended = False
        self._timers: list = []
        self.set_enemy_level(enemy_level)

    # =========================
    # ENCOUNTER LIFECYCLE
    # =========================

    def set_enemy_level(self, enemy_level: int) -> None:
        """Start a fresh encounter; prior enemy HP and queued timers are dropped."""
        for event in self._timers:
            self.scheduler.cancel(event)
        self._timers = []
        self.encounter = build_encounter(enemy_level, self.danger_level)
        self.phase = CombatPhase.IDLE
        self.player_hit = False
        self.enemy_hit = False
        self.notice = ""
        self.last_result = None
        self._ended = False

    @property
    def enemy_hp(self) -> int:
        return int(self.encounter["enemy_hp"])

    @property
    def outcome(self) -> Optional[str]:
        if self.phase == CombatPhase.VICTORY:
            return VICTORY
        if self.phase == CombatPhase.DEFEAT:
            return DEFEAT
        return None

    def stats(self) -> Dict[str, int]:
        return derive_stats(self.store.level, self.store.buffs)

    def both_alive(self) -> bool:
        return self.store.hp > 0 and enemy_alive(self.encounter)

    def actions(self) -> list[str]:
        return allowed_actions(self.phase, player_alive=self.store.hp > 0, enemy_alive=enemy_alive(self.encounter))

    def _log(self, text: str) -> None:
        logger.debug(text)
        if self.on_log:
            self.on_log(text)

    def _reject_reason(self) -> Optional[str]:
        if is_terminal(self.phase) or not self.both_alive():
            return NOTICE_OVER
        if self.phase != CombatPhase.IDLE:
            return NOTICE_BUSY
        return None

    # =========================
    # PLAYER ACTIONS
    # =========================

    def attack(self) -> bool:
        """
        Begin a player attack. Returns False (with a notice) when the action is
        refused: locked, encounter over, or not enough energy.
        """
        reason = self._reject_reason()
        if reason:
            self.notice = reason
            return False
        if self.store.energy < ATTACK_COST:
            self.notice = NOTICE_LOW_ENERGY
            return False

        # Spent up front; a miss does not refund it.
        self.store.adjust_energy(-ATTACK_COST)
        self.notice = ""
        self.phase = CombatPhase.ROLLING_ATTACK
        self._schedule(ROLL_DELAY, self._resolve_player_turn)
        return True

    def refocus(self) -> bool:
        reason = self._reject_reason()
        if reason:
            self.notice = reason
            return False
        ceiling = self.store.get("energy_ceiling")
        self.store.set_energy(min(ceiling, self.store.energy + REFOCUS_ENERGY))
        self.notice = NOTICE_REFOCUS
        self._log(NOTICE_REFOCUS)
        # Refocusing does not grant immunity: the enemy still swings.
        self.phase = CombatPhase.ENEMY_TURN
        self._schedule(REFOCUS_DELAY, self._enemy_turn)
        return True

    # =========================
    # SCHEDULED STEPS
    # =========================

    def _schedule(self, delay: float, callback, *args) -> None:
        self._timers = [e for e in self._timers if e in self.scheduler.events]
        self._timers.append(self.scheduler.schedule(delay, callback, *args))

    def _flash(self, attr: str) -> None:
        setattr(self, attr, True)
        self._schedule(HIT_FLASH, setattr, self, attr, False)

    def _resolve_player_turn(self) -> None:
        if self.phase != CombatPhase.ROLLING_ATTACK:
            return
        result = resolve_player_attack(self.encounter, self.stats(), self.rng)
        self.last_result = {"actor": "player", **result}
        if result["hit"]:
            self.phase = CombatPhase.RESOLVING_PLAYER_HIT
            remaining = damage_enemy(self.encounter, result["damage"])
            self._flash("enemy_hit")
            self._log(f"명중! d20({result['roll']})+{PLAYER_ATTACK_BONUS}={result['total']} vs AC {result['target']}, 피해 {result['damage']}")
            if remaining <= 0:
                self._finish(CombatPhase.VICTORY)
                return
        else:
            self.phase = CombatPhase.RESOLVING_PLAYER_MISS
            self._log(f"빗나감. d20({result['roll']})+{PLAYER_ATTACK_BONUS}={result['total']} vs AC {result['target']}")
        self._schedule(COUNTER_DELAY, self._enemy_turn)

    def _enemy_turn(self) -> None:
        # State may have moved on while the timer waited.
        if is_terminal(self.phase) or not self.both_alive():
            return
        self.phase = CombatPhase.ENEMY_TURN
        result = resolve_enemy_attack(self.encounter, self.stats(), self.rng)
        self.last_result = {"actor": "enemy", **result}
        if not result["hit"]:
            self.phase = CombatPhase.RESOLVING_ENEMY_MISS
            self._log(f"적의 공격이 빗나갔습니다. ({result['total']} vs {ENEMY_HIT_DC})")
            self.phase = CombatPhase.IDLE
            return
        self.phase = CombatPhase.RESOLVING_ENEMY_HIT
        hp = self.store.adjust_hp(-result["damage"])
        self._flash("player_hit")
        self._log(f"적의 공격에 {result['damage']}의 피해를 입었습니다. ({result['total']} vs {ENEMY_HIT_DC})")
        if hp <= 0:
            self._finish(CombatPhase.DEFEAT)
            return
        self.phase = CombatPhase.IDLE

    def _finish(self, phase: CombatPhase) -> None:
        if self._ended:
            return
        self._ended = True
        self.phase = phase
        if phase == CombatPhase.VICTORY:
            self._log("적을 쓰러뜨렸습니다!")
            if self.on_victory:
                self.on_victory()
            if self.on_end:
                self.on_end(VICTORY)
        else:
            self._log("쓰러졌습니다...")
            if self.on_end:
                self.on_end(DEFEAT)

    def view(self) -> Dict[str, Any]:
        """Serializable snapshot for UIs."""
        stats = self.stats()
        return {
            "phase": self.phase.value,
            "enemy_level": self.encounter["enemy_level"],
            "enemy_hp": max(0, self.enemy_hp),
            "enemy_max_hp": self.encounter["enemy_max_hp"],
            "enemy_ac": self.encounter["enemy_ac"],
            "enemy_attack_bonus": self.encounter["enemy_attack_bonus"],
            "danger_tier": self.encounter["danger_tier"],
            "player_hp": self.store.hp,
            "energy": self.store.energy,
            "attack_cost": ATTACK_COST,
            "stats": stats,
            "player_hit": self.player_hit,
            "enemy_hit": self.enemy_hit,
            "notice": self.notice,
            "actions": self.actions(),
            "last_result": self.last_result,
            "outcome": self.outcome,
        }
