"""
Story Progression
-----------------
Runs one narrative turn at a time: builds the request, calls the story
service, sanitizes the reply and applies it to the run state in a single
store update. Service failures never escape; they become a fallback turn
plus `state.error`.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Optional

from ai.narrator import NarratorError
from ai.prompts import build_story_prompt
from engine.narrative import (
    PARSE_FALLBACK,
    TRANSPORT_FALLBACK,
    adjust_enemy_level,
    parse_narrative,
    route_buffs,
    sanitize_turn,
    turn_history,
)
from engine.presets import difficulty_preset
from engine.state_store import CEILING_STEP, CHAPTER_GOAL, RunStateStore

logger = logging.getLogger(__name__)

MILESTONE_HP = 20
MILESTONE_ENERGY = 20
REST_HP = 8
REST_ENERGY = 25

REST_HISTORY = "휴식: 체력과 에너지를 회복했습니다."
REST_STORY = "당신은 잠시 숨을 고르며 휴식을 취했습니다."
REST_CHOICE = "휴식"


def milestone_marker(chapter: int) -> str:
    return f"✦ 챕터 {chapter} 완료! 새로운 여정이 시작됩니다. (체력 +{MILESTONE_HP}, 에너지 +{MILESTONE_ENERGY})"


class StoryProgression:
    def __init__(
        self,
        store: RunStateStore,
        narrator,
        prompt_builder: Callable[..., str] = build_story_prompt,
    ):
        """
        narrator: object exposing generate(prompt) -> str, or None when the
        story service is not configured.
        """
        self.store = store
        self.narrator = narrator
        self.prompt_builder = prompt_builder
        self._lock = threading.Lock()

    # =========================
    # NARRATIVE TURN
    # =========================

    def submit_turn(self, choice: str = "", combat_outcome: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """
        Resolve one narrative turn. Returns the new state snapshot, or None
        when another turn is still in flight.
        """
        if not self._lock.acquire(blocking=False):
            logger.warning("Narrative turn refused: another request is in flight")
            return None
        try:
            if self.store.loading:
                logger.warning("Narrative turn refused: store is loading")
                return None
            self.store.set_loading(True)
            try:
                payload, error = self._request(choice, combat_outcome)
                return self._apply(payload, choice, error)
            finally:
                self.store.set_loading(False)
        finally:
            self._lock.release()

    def _request(self, choice: str, combat_outcome: Optional[str]):
        try:
            if self.narrator is None:
                raise NarratorError("이야기 서비스가 설정되지 않았습니다.")
            prompt = self.prompt_builder(self.store.snapshot(), choice, combat_outcome)
            raw = self.narrator.generate(prompt)
        except Exception as e:
            logger.exception("Story service call failed")
            return dict(TRANSPORT_FALLBACK), str(e) or e.__class__.__name__
        parsed = parse_narrative(raw)
        if not parsed.ok:
            logger.warning("Unparsable story reply (%s): %.200r", parsed.error, raw)
            return dict(PARSE_FALLBACK), parsed.error
        return parsed.payload, None

    def _apply(self, payload: Dict[str, Any], choice: str, error: Optional[str]) -> Dict[str, Any]:
        state = self.store.snapshot()
        level = state["level"]
        turn = sanitize_turn(payload, level)
        hp_delta, energy_delta, stat_deltas = route_buffs(turn.buffs)
        enemy_level = adjust_enemy_level(turn.danger_level, turn.enemy_level, level, state["difficulty"])

        chapter = state["chapter"]
        progress = state["chapter_progress"]
        story = turn.story
        history = turn_history(choice, turn.story)
        ceiling_step = 0
        if not turn.is_combat:
            progress += 1
            if progress >= CHAPTER_GOAL:
                completed = chapter
                chapter += 1
                progress = 0
                ceiling_step = CEILING_STEP
                hp_delta += MILESTONE_HP
                energy_delta += MILESTONE_ENERGY
                story = f"{story}\n\n{milestone_marker(completed)}"
                history.append(f"이정표: 챕터 {completed} 완료, 챕터 {chapter} 시작")
                logger.info("Chapter %d complete; entering chapter %d", completed, chapter)

        return self.store.apply_turn(
            story=story,
            choices=turn.choices,
            danger_level=turn.danger_level,
            enemy_level=enemy_level,
            pending_combat=turn.is_combat,
            hp_delta=hp_delta,
            energy_delta=energy_delta,
            buff_deltas=stat_deltas,
            chapter=chapter,
            chapter_progress=progress,
            ceiling_step=ceiling_step,
            history=history,
            error=error,
        )

    # =========================
    # RUN EVENTS
    # =========================

    def start(self) -> Optional[Dict[str, Any]]:
        self.store.add_history("시작")
        return self.submit_turn("")

    def rest(self) -> Optional[Dict[str, Any]]:
        state = self.store.snapshot()
        if state["loading"] or state["pending_combat"] or state["game_over"]:
            return None
        scale = difficulty_preset(state["difficulty"]).recovery_scale
        self.store.adjust_hp(round(REST_HP * scale))
        self.store.adjust_energy(round(REST_ENERGY * scale))
        self.store.add_history(REST_HISTORY)
        self.store.set_story(f"{state['story']}\n\n{REST_STORY}".strip())
        return self.submit_turn(REST_CHOICE)

    def record_victory(self) -> int:
        return self.store.set_level(self.store.level + 1)

    def record_combat_outcome(self, outcome: str) -> Optional[Dict[str, Any]]:
        """Victory feeds a narrative turn; defeat ends the run."""
        self.store.set_pending_combat(False)
        if outcome == "victory":
            return self.submit_turn("", outcome)
        self.store.set_game_over(True)
        return self.store.snapshot()
