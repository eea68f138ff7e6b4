from __future__ import annotations

from typing import Any, Dict

BASE_ENEMY_HP = 20
HP_PER_LEVEL = 5
DEFAULT_DANGER = "medium"

# Non-decreasing in every column as the tier rises.
DANGER_TUNING = {
    "low": {"ac": 12, "atk": 3, "dmg": 6},
    "medium": {"ac": 13, "atk": 5, "dmg": 8},
    "high": {"ac": 14, "atk": 7, "dmg": 10},
}


def normalize_danger(danger_level) -> str:
    key = str(danger_level or "").strip().lower()
    return key if key in DANGER_TUNING else DEFAULT_DANGER


def enemy_max_hp(enemy_level: int) -> int:
    return BASE_ENEMY_HP + int(enemy_level) * HP_PER_LEVEL


def build_encounter(enemy_level: int, danger_level: str | None = None) -> Dict[str, Any]:
    """
    Fresh encounter keyed by (enemy_level, danger tier).
    Level scaling adds floor(level / 2) to AC and attack bonus.
    """
    enemy_level = int(enemy_level or 0)
    tier = normalize_danger(danger_level)
    tuning = DANGER_TUNING[tier]
    scaling = enemy_level // 2
    max_hp = enemy_max_hp(enemy_level)
    return {
        "enemy_level": enemy_level,
        "danger_tier": tier,
        "enemy_hp": max_hp,
        "enemy_max_hp": max_hp,
        "enemy_ac": tuning["ac"] + scaling,
        "enemy_attack_bonus": tuning["atk"] + scaling,
        "enemy_damage_die": tuning["dmg"],
    }


def damage_enemy(encounter: Dict[str, Any], amount: int) -> int:
    """Subtract damage and return the new enemy HP (may go below zero)."""
    encounter["enemy_hp"] = int(encounter.get("enemy_hp", 0)) - int(amount)
    return encounter["enemy_hp"]


def enemy_alive(encounter: Dict[str, Any]) -> bool:
    return int(encounter.get("enemy_hp", 0) or 0) > 0
