"""
Parsing and sanitizing of narrative service replies.

The service answers with free text that should contain one JSON object.
Nothing here raises on bad input: parsing yields a ParseResult, and
sanitizing is total, always producing a fully-defaulted NarrativeTurn.
"""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from engine.presets import SCALAR_TARGETS, StatTarget, difficulty_preset, is_stat_target, parse_stat_target

logger = logging.getLogger(__name__)

PREVIEW_LIMIT = 200
MIN_ENEMY_LEVEL = 1

# Tier offsets over the player's level; a recognized tier wins over the
# level the service supplied.
DANGER_LEVEL_OFFSETS = {"low": 0, "medium": 1, "high": 2}

BLANK_STORY = "새로운 이야기를 불러오는 데 문제가 발생했습니다. 안전하게 다음 선택으로 진행하세요."

PARSE_FALLBACK = {
    "story": "응답을 해석할 수 없었습니다. 잠시 숨을 고르고 다시 선택해 주세요.",
    "choices": ["계속 진행"],
    "isCombat": False,
    "dangerLevel": "low",
    "buffs": [],
}

TRANSPORT_FALLBACK = {
    "story": "이야기를 가져오는 동안 문제가 발생했습니다. 안전한 경로로 계속 진행하세요.",
    "choices": ["숨 고르기", "조심스럽게 계속 이동"],
    "isCombat": False,
    "dangerLevel": "low",
    "buffs": [],
}

_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")


class ParseResult(NamedTuple):
    payload: Optional[Dict[str, Any]]
    error: Optional[str]

    @property
    def ok(self) -> bool:
        return self.payload is not None


@dataclass
class NarrativeTurn:
    story: str
    choices: List[str] = field(default_factory=list)
    is_combat: bool = False
    danger_level: str = ""
    enemy_level: int = 1
    buffs: List[Tuple[StatTarget, int]] = field(default_factory=list)


def extract_json_object(text: str) -> Optional[str]:
    """Greedy brace match: from the first '{' to the last '}'."""
    if not isinstance(text, str):
        return None
    match = _JSON_BLOCK.search(text)
    return match.group(0) if match else None


def parse_narrative(text: str) -> ParseResult:
    block = extract_json_object(text)
    if block is None:
        return ParseResult(None, "AI 응답에 JSON 포맷이 없습니다.")
    try:
        payload = json.loads(block)
    except json.JSONDecodeError as e:
        return ParseResult(None, f"AI 응답 JSON 파싱 실패: {e.msg}")
    if not isinstance(payload, dict):
        return ParseResult(None, "AI 응답 JSON이 객체가 아닙니다.")
    return ParseResult(payload, None)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _sanitize_buffs(raw) -> List[Tuple[StatTarget, int]]:
    if not isinstance(raw, list):
        return []
    out = []
    for buff in raw:
        if not isinstance(buff, dict):
            continue
        target = buff.get("target")
        amount = buff.get("amount")
        if not isinstance(target, str) or not _is_number(amount):
            continue
        if not is_stat_target(target):
            logger.warning("Dropping buff with unknown target %r", target)
            continue
        out.append((parse_stat_target(target), int(amount)))
    return out


def sanitize_turn(raw: Any, player_level: int) -> NarrativeTurn:
    """Project an untrusted payload onto a NarrativeTurn with every field defaulted."""
    raw = raw if isinstance(raw, dict) else {}
    story = raw.get("story").strip() if isinstance(raw.get("story"), str) else ""
    is_combat = bool(raw.get("isCombat"))
    choices = []
    if not is_combat and isinstance(raw.get("choices"), list):
        choices = [c for c in raw["choices"] if isinstance(c, str) and c.strip()]
    danger = raw.get("dangerLevel") if isinstance(raw.get("dangerLevel"), str) else ""
    enemy_level = raw.get("enemyLevel")
    enemy_level = int(enemy_level) if _is_number(enemy_level) else int(player_level)
    return NarrativeTurn(
        story=story or BLANK_STORY,
        choices=choices,
        is_combat=is_combat,
        danger_level=danger,
        enemy_level=enemy_level,
        buffs=_sanitize_buffs(raw.get("buffs")),
    )


def route_buffs(buffs: List[Tuple[StatTarget, int]]) -> Tuple[int, int, Dict[str, int]]:
    """
    Split buff deltas into (hp_delta, energy_delta, stat_deltas).
    hp/energy are scalar fields; everything else accumulates per stat.
    """
    hp_delta = 0
    energy_delta = 0
    stat_deltas: Dict[str, int] = {}
    for target, amount in buffs:
        if target == StatTarget.HP:
            hp_delta += amount
        elif target == StatTarget.ENERGY:
            energy_delta += amount
        elif target not in SCALAR_TARGETS:
            stat_deltas[target.value] = stat_deltas.get(target.value, 0) + amount
    return hp_delta, energy_delta, stat_deltas


def adjust_enemy_level(danger_level: str, supplied_level: int, player_level: int, difficulty) -> int:
    offset = DANGER_LEVEL_OFFSETS.get(str(danger_level or "").strip().lower())
    level = int(player_level) + offset if offset is not None else int(supplied_level)
    level += difficulty_preset(difficulty).enemy_level_offset
    return max(MIN_ENEMY_LEVEL, level)


def story_preview(story: str, limit: int = PREVIEW_LIMIT) -> str:
    story = story or ""
    return story[:limit] + ("..." if len(story) > limit else "")


def turn_history(choice: str, story: str) -> List[str]:
    return [f"선택: {choice or '자동 진행'}", f"요약: {story_preview(story)}"]
