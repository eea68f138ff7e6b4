"""
One player's run: store, narrative progression, and the active encounter.
Every front end (web or terminal) drives the run through step().
"""

import logging
import threading
from typing import Any, Dict, List, Optional

from engine.combat import CombatEngine
from engine.progression import StoryProgression
from engine.scheduler import Scheduler
from engine.state_store import RunStateStore
from flow.character_creation import begin_run, create_character
from ui.events import (
    emit_character_update,
    emit_combat_log,
    emit_combat_state,
    emit_event,
    emit_story,
)
from ui.ui import UI
from ui.web_provider import WebProvider

logger = logging.getLogger(__name__)

COMBAT_INTRO_DELAY = 1.2
RESULT_CLOSE_DELAY = 1.5

ACTIONS = {"state", "start", "choose", "rest", "enter_combat", "attack", "refocus", "restart"}


class GameSession:
    def __init__(
        self,
        store: RunStateStore,
        narrator=None,
        scheduler: Optional[Scheduler] = None,
        ui: Optional[UI] = None,
        rng=None,
    ):
        self.events: List[Dict[str, Any]] = []
        self.store = store
        self.scheduler = scheduler or Scheduler()
        self.progression = StoryProgression(store, narrator)
        self.ui = ui or UI(WebProvider(self))
        self.rng = rng
        self.combat: Optional[CombatEngine] = None
        self._intro_timer = None
        # Web handlers run on a thread pool; one request drives a session at a time.
        self.lock = threading.RLock()

    def emit(self, event: Dict[str, Any]):
        self.events.append(event)

    def drain(self) -> List[Dict[str, Any]]:
        with self.lock:
            self.pump()
            evs = self.events[:]
            self.events = []
            return evs

    def pump(self) -> int:
        pump = getattr(self.scheduler, "pump", None)
        if not pump:
            return 0
        with self.lock:
            return pump()

    def step(self, player_input: Dict[str, Any]):
        with self.lock:
            events = self._step(player_input)
            # Handed to the caller; drain() only returns what comes after.
            self.events = []
            return events

    def _step(self, player_input: Dict[str, Any]):
        self.events = []
        self.pump()
        action = (player_input or {}).get("action") or "state"
        if action not in ACTIONS:
            self.ui.error(f"알 수 없는 행동입니다: {action}")
            return self.events
        handler = getattr(self, f"_do_{action}")
        try:
            handler(player_input)
        except ValueError as e:
            logger.warning("Rejected %s: %s", action, e)
            self.ui.error(str(e))
        self._emit_state()
        return self.events

    # =========================
    # STORY ACTIONS
    # =========================

    def _do_state(self, payload):
        pass

    def _do_start(self, payload):
        character = create_character(
            payload.get("name"),
            gender=payload.get("gender"),
            age=payload.get("age", 18),
            race=payload.get("race", ""),
            class_name=payload.get("class_name", ""),
        )
        self._drop_combat()
        begin_run(self.store, character, payload.get("difficulty", "standard"))
        logger.info("Starting run for %s", character["name"])
        self.progression.start()
        self._after_turn()

    def _do_choose(self, payload):
        state = self.store.snapshot()
        if state["game_over"]:
            raise ValueError("모험이 끝났습니다. 다시 시작하세요.")
        if self.combat or state["pending_combat"]:
            raise ValueError("전투 중에는 선택할 수 없습니다.")
        choices = state["choices"]
        choice = payload.get("choice")
        if isinstance(choice, int) and not isinstance(choice, bool):
            if not 0 <= choice < len(choices):
                raise ValueError(f"잘못된 선택입니다: {choice}")
            text = choices[choice]
        else:
            text = str(payload.get("text") or "").strip()
            if text not in choices:
                raise ValueError(f"잘못된 선택입니다: {text!r}")
        if self.progression.submit_turn(text) is None:
            self.ui.system("이야기를 불러오는 중입니다.")
            return
        self._after_turn()

    def _do_rest(self, payload):
        if self.combat:
            raise ValueError("전투 중에는 휴식할 수 없습니다.")
        if self.progression.rest() is None:
            self.ui.system("지금은 휴식할 수 없습니다.")
            return
        self._after_turn()

    def _do_restart(self, payload):
        self._drop_combat()
        self.store.restart()
        self.ui.system("새로운 모험을 준비합니다.")

    def _after_turn(self):
        state = self.store.snapshot()
        if state["error"]:
            self.ui.error(state["error"])
        if state["pending_combat"] and not self.combat:
            # Auto-enter after a short pause unless the player does it first.
            self._intro_timer = self.scheduler.schedule(COMBAT_INTRO_DELAY, self.begin_combat)
        elif not state["choices"] and not state["game_over"]:
            emit_event(self.ui, {"type": "adventure_complete", "story": state["story"]})

    # =========================
    # COMBAT ACTIONS
    # =========================

    def _do_enter_combat(self, payload):
        if not self.begin_combat():
            raise ValueError("지금은 전투를 시작할 수 없습니다.")

    def _do_attack(self, payload):
        # A refusal leaves its notice on the combat view.
        self._require_combat().attack()

    def _do_refocus(self, payload):
        self._require_combat().refocus()

    def _require_combat(self) -> CombatEngine:
        if not self.combat:
            raise ValueError("진행 중인 전투가 없습니다.")
        return self.combat

    def begin_combat(self) -> bool:
        self._cancel_intro()
        state = self.store.snapshot()
        if self.combat or not state["pending_combat"] or state["game_over"]:
            return False
        self.combat = CombatEngine(
            self.store,
            self.scheduler,
            enemy_level=state["enemy_level"],
            danger_level=state["danger_level"],
            on_victory=self.progression.record_victory,
            on_end=self._on_combat_end,
            on_log=lambda text: emit_combat_log(self.ui, text),
            rng=self.rng,
        )
        logger.info("Combat started: enemy level %d (%s)", state["enemy_level"], state["danger_level"])
        emit_combat_state(self.ui, True, self.combat.view())
        return True

    def _on_combat_end(self, outcome: str):
        emit_event(self.ui, {"type": "combat_result", "outcome": outcome})
        self.scheduler.schedule(RESULT_CLOSE_DELAY, self._close_combat, self.combat, outcome)

    def _close_combat(self, engine: CombatEngine, outcome: str):
        if self.combat is not engine:
            return
        self.combat = None
        emit_combat_state(self.ui, False)
        state = self.progression.record_combat_outcome(outcome)
        if state and state["game_over"]:
            emit_event(self.ui, {"type": "game_over", "story": state["story"]})
        else:
            self._after_turn()
        self._emit_state()

    def _cancel_intro(self):
        if self._intro_timer is not None:
            self.scheduler.cancel(self._intro_timer)
            self._intro_timer = None

    def _drop_combat(self):
        self._cancel_intro()
        # Owned timers only; a shared scheduler may hold other sessions' events.
        if self.combat:
            self.combat.set_enemy_level(self.combat.encounter["enemy_level"])
        self.combat = None

    def _emit_state(self):
        state = self.store.snapshot()
        emit_character_update(self.ui, state)
        if self.combat:
            emit_combat_state(self.ui, True, self.combat.view())
        else:
            emit_story(self.ui, state)
