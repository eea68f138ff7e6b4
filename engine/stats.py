# engine/stats.py

from typing import Dict, Mapping, Optional

# Per-level growth of each ability score.
LEVEL_FACTORS = {
    "strength": 2,
    "dexterity": 1,
    "constitution": 3,
}

# Constitution resists damage more gradually than strength boosts it.
STRENGTH_DIVISOR = 2
CONSTITUTION_DIVISOR = 4


def ability_score(level: int, base_factor: int, buff_bonus: int = 0) -> int:
    return 10 + int(level) * int(base_factor) + int(buff_bonus or 0)


def modifier(score: int, divisor: int) -> int:
    """
    Floor-divided modifier around the 10 baseline.
      - STR 10 => +0, STR 13 => +1, STR 9 => -1 (divisor 2)
    """
    return (int(score) - 10) // int(divisor)


def derive_stats(level: int, buffs: Optional[Mapping[str, int]] = None) -> Dict[str, int]:
    """
    Recompute combat stats from (level, buffs). Nothing here is persisted;
    callers ask again whenever level or buffs change.
    """
    buffs = buffs or {}
    scores = {
        stat: ability_score(level, factor, buffs.get(stat, 0))
        for stat, factor in LEVEL_FACTORS.items()
    }
    return {
        **scores,
        "str_mod": modifier(scores["strength"], STRENGTH_DIVISOR),
        "con_mod": modifier(scores["constitution"], CONSTITUTION_DIVISOR),
    }
