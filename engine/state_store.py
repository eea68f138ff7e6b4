"""
Persisted run state.

The store is the only owner of PlayerRunState. Every mutation goes through
`_mutate`, which works on a copy, re-applies the clamp invariants and then
swaps the copy in, so readers never observe a half-applied update.
"""

from __future__ import annotations

import logging
from copy import deepcopy
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from engine.presets import SCALAR_TARGETS, Difficulty, parse_difficulty, parse_stat_target
from engine.save_load import load_state, save_state, state_dir
from engine.validator import validate

logger = logging.getLogger(__name__)

STORE_NAME = "story-store"

DEFAULT_HP = 100
DEFAULT_ENERGY = 100
BASE_CEILING = 120
CEILING_STEP = 20
MAX_CEILING = 160
CHAPTER_GOAL = 3
HISTORY_LIMIT = 40


def default_state() -> Dict[str, Any]:
    return {
        "hp": DEFAULT_HP,
        "hp_ceiling": BASE_CEILING,
        "energy": DEFAULT_ENERGY,
        "energy_ceiling": BASE_CEILING,
        "level": 1,
        "buffs": {},
        "character": {},
        "race": "",
        "class_name": "",
        "traits": [],
        "background": "",
        "difficulty": Difficulty.STANDARD.value,
        "chapter": 1,
        "chapter_progress": 0,
        "history": [],
        "story": "",
        "choices": [],
        "danger_level": "",
        "enemy_level": 1,
        "pending_combat": False,
        "game_over": False,
        "error": None,
        "loading": False,
    }


def _clamp(value, low: int, high: int) -> int:
    return max(low, min(high, int(value)))


def _enforce_invariants(state: Dict[str, Any]) -> None:
    state["hp_ceiling"] = _clamp(state.get("hp_ceiling", BASE_CEILING), 1, MAX_CEILING)
    state["energy_ceiling"] = _clamp(state.get("energy_ceiling", BASE_CEILING), 1, MAX_CEILING)
    state["hp"] = _clamp(state.get("hp", 0), 0, state["hp_ceiling"])
    state["energy"] = _clamp(state.get("energy", 0), 0, state["energy_ceiling"])
    state["level"] = max(1, int(state.get("level", 1)))
    state["chapter"] = max(1, int(state.get("chapter", 1)))
    state["chapter_progress"] = _clamp(state.get("chapter_progress", 0), 0, CHAPTER_GOAL)
    history = list(state.get("history") or [])
    if len(history) > HISTORY_LIMIT:
        history = history[-HISTORY_LIMIT:]
    state["history"] = history


def _merge_buffs(current: Mapping[str, int], deltas: Mapping[str, int]) -> Dict[str, int]:
    merged = dict(current)
    for key, amount in deltas.items():
        target = parse_stat_target(key)
        validate(target not in SCALAR_TARGETS, f"{target.value} is not a buff stat")
        merged[target.value] = int(merged.get(target.value, 0)) + int(amount)
    return merged


class RunStateStore:
    def __init__(self, state: Optional[Dict[str, Any]] = None, path: str | Path | None = None):
        base = default_state()
        if isinstance(state, dict):
            base.update({k: deepcopy(v) for k, v in state.items() if k in base})
        for key in ("buffs", "character"):
            if not isinstance(base[key], dict):
                base[key] = {}
        for key in ("traits", "history", "choices"):
            if not isinstance(base[key], list):
                base[key] = []
        try:
            base["difficulty"] = parse_difficulty(base["difficulty"]).value
        except ValueError:
            logger.warning("Unknown difficulty %r, using %s", base["difficulty"], Difficulty.STANDARD.value)
            base["difficulty"] = Difficulty.STANDARD.value
        # Scalar targets never live in the buff mapping.
        base["buffs"] = {k: int(v) for k, v in base["buffs"].items() if k not in ("hp", "energy")}
        _enforce_invariants(base)
        self._state = base
        self.path = Path(path) if path is not None else None

    # =========================
    # PERSISTENCE
    # =========================

    @classmethod
    def open(cls, directory: str | Path | None = None) -> "RunStateStore":
        """Load the store from `<directory>/story-store.json`, or start fresh."""
        path = Path(directory if directory is not None else state_dir()) / f"{STORE_NAME}.json"
        if not path.exists():
            return cls(path=path)
        try:
            return cls(load_state(path), path=path)
        except (OSError, ValueError, TypeError) as e:
            logger.error("Failed to load %s, starting fresh: %s", path, e)
            return cls(path=path)

    def save(self) -> None:
        if self.path is None:
            return
        # loading is transient; a reload must never come back stuck.
        blob = deepcopy(self._state)
        blob["loading"] = False
        save_state(blob, self.path)

    def _mutate(self, fn: Callable[[Dict[str, Any]], None]) -> Dict[str, Any]:
        draft = deepcopy(self._state)
        fn(draft)
        _enforce_invariants(draft)
        self._state = draft
        self.save()
        return self.snapshot()

    # =========================
    # ACCESSORS
    # =========================

    def snapshot(self) -> Dict[str, Any]:
        return deepcopy(self._state)

    def get(self, key: str, default: Any = None) -> Any:
        return deepcopy(self._state.get(key, default))

    @property
    def hp(self) -> int:
        return self._state["hp"]

    @property
    def energy(self) -> int:
        return self._state["energy"]

    @property
    def level(self) -> int:
        return self._state["level"]

    @property
    def buffs(self) -> Dict[str, int]:
        return dict(self._state["buffs"])

    @property
    def loading(self) -> bool:
        return bool(self._state["loading"])

    @property
    def history(self) -> list[str]:
        return list(self._state["history"])

    # =========================
    # SETTERS
    # =========================

    def set_hp(self, hp: int) -> int:
        return self._mutate(lambda s: s.update(hp=int(hp)))["hp"]

    def adjust_hp(self, delta: int) -> int:
        return self._mutate(lambda s: s.update(hp=s["hp"] + int(delta)))["hp"]

    def set_energy(self, energy: int) -> int:
        return self._mutate(lambda s: s.update(energy=int(energy)))["energy"]

    def adjust_energy(self, delta: int) -> int:
        return self._mutate(lambda s: s.update(energy=s["energy"] + int(delta)))["energy"]

    def set_level(self, level: int) -> int:
        return self._mutate(lambda s: s.update(level=int(level)))["level"]

    def add_buffs(self, deltas: Mapping[str, int]) -> Dict[str, int]:
        return self._mutate(lambda s: s.update(buffs=_merge_buffs(s["buffs"], deltas)))["buffs"]

    def add_history(self, *lines: str) -> list[str]:
        return self._mutate(lambda s: s["history"].extend(str(line) for line in lines))["history"]

    def set_loading(self, flag: bool) -> None:
        self._mutate(lambda s: s.update(loading=bool(flag)))

    def set_story(self, story: str) -> None:
        self._mutate(lambda s: s.update(story=str(story)))

    def set_pending_combat(self, flag: bool) -> None:
        self._mutate(lambda s: s.update(pending_combat=bool(flag)))

    def set_game_over(self, flag: bool) -> None:
        self._mutate(lambda s: s.update(game_over=bool(flag)))

    def set_character(self, character: Mapping[str, Any], *, difficulty, background: str) -> None:
        diff = parse_difficulty(difficulty)

        def fn(s):
            s["character"] = dict(character)
            s["race"] = character.get("race", "")
            s["class_name"] = character.get("class_name", "")
            s["traits"] = list(character.get("traits", []))
            s["difficulty"] = diff.value
            s["background"] = background

        self._mutate(fn)

    def apply_turn(
        self,
        *,
        story: str,
        choices: Iterable[str],
        danger_level: str,
        enemy_level: int,
        pending_combat: bool,
        hp_delta: int = 0,
        energy_delta: int = 0,
        buff_deltas: Optional[Mapping[str, int]] = None,
        chapter: Optional[int] = None,
        chapter_progress: Optional[int] = None,
        ceiling_step: int = 0,
        history: Iterable[str] = (),
        error: Optional[str] = None,
    ) -> Dict[str, Any]:
        """One atomic update carrying everything a narrative turn changes."""
        choices = [str(c) for c in choices]
        history = [str(h) for h in history]

        def fn(s):
            if ceiling_step:
                s["hp_ceiling"] = min(MAX_CEILING, s["hp_ceiling"] + int(ceiling_step))
                s["energy_ceiling"] = min(MAX_CEILING, s["energy_ceiling"] + int(ceiling_step))
            s["hp"] = s["hp"] + int(hp_delta)
            s["energy"] = s["energy"] + int(energy_delta)
            if buff_deltas:
                s["buffs"] = _merge_buffs(s["buffs"], buff_deltas)
            s["story"] = story
            s["choices"] = choices
            s["danger_level"] = danger_level
            s["enemy_level"] = int(enemy_level)
            s["pending_combat"] = bool(pending_combat)
            if chapter is not None:
                s["chapter"] = int(chapter)
            if chapter_progress is not None:
                s["chapter_progress"] = int(chapter_progress)
            s["history"].extend(history)
            s["error"] = error or None

        return self._mutate(fn)

    def restart(self) -> Dict[str, Any]:
        return self._mutate(lambda s: (s.clear(), s.update(default_state())))
