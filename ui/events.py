"""
Payload builders for what the session shows, plus emit_event for one-off
notifications (combat_result, game_over) that only web sessions queue.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from engine.presets import difficulty_preset


_DEBUG_LOG_PATH = Path(__file__).resolve().parents[1] / "narration.log"


def _debug_log(line: str) -> None:
    try:
        ts = datetime.now().strftime("%H:%M:%S")
        _DEBUG_LOG_PATH.parent.mkdir(parents=True, exist_ok=True)
        with _DEBUG_LOG_PATH.open("a", encoding="utf-8") as f:
            f.write(f"{ts} {line}\n")
    except OSError:
        # debug trail only
        pass


def emit_event(ui, payload: Dict[str, Any]) -> None:
    """
    Best-effort emit of structured events for non-blocking UIs.
    Falls back silently for CLI.
    """
    provider = getattr(ui, "provider", None) or ui
    session = getattr(provider, "session", None)
    t = payload.get("type") if isinstance(payload, dict) else None
    if t in {"combat_result", "game_over", "adventure_complete"}:
        _debug_log(
            f"DEBUG: emit_event type={t} "
            f"(has_session={bool(session)}, has_emit={bool(session and hasattr(session, 'emit'))})"
        )
    if session and hasattr(session, "emit"):
        session.emit(payload)


def build_character_update(state: Dict[str, Any]) -> Dict[str, Any]:
    if not isinstance(state, dict):
        state = {}
    difficulty = state.get("difficulty") or "standard"
    return {
        "type": "character_update",
        "character": {
            "name": (state.get("character") or {}).get("name"),
            "race": state.get("race"),
            "className": state.get("class_name"),
            "traits": list(state.get("traits") or []),
            "hp": {"current": state.get("hp"), "max": state.get("hp_ceiling")},
            "energy": {"current": state.get("energy"), "max": state.get("energy_ceiling")},
            "level": state.get("level"),
            "buffs": {k: v for k, v in (state.get("buffs") or {}).items() if v},
            "difficulty": {"id": difficulty, "label": difficulty_preset(difficulty).label},
            "chapter": state.get("chapter"),
            "chapterProgress": state.get("chapter_progress"),
        },
    }


def emit_character_update(ui, state: Dict[str, Any]) -> None:
    ui.status(build_character_update(state))


def build_story(state: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": "story",
        "story": state.get("story", ""),
        "choices": list(state.get("choices") or []),
        "dangerLevel": state.get("danger_level", ""),
        "pendingCombat": bool(state.get("pending_combat")),
        "error": state.get("error"),
    }


def emit_story(ui, state: Dict[str, Any]) -> None:
    ui.story(build_story(state))


def build_combat_state(active: bool, view: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"type": "combat_state", "active": active}
    if view:
        payload["combat"] = view
    return payload


def emit_combat_state(ui, active: bool, view: Optional[Dict[str, Any]] = None) -> None:
    ui.combat(build_combat_state(active, view))


def emit_combat_log(ui, text: str) -> None:
    ui.combat_log(text)
