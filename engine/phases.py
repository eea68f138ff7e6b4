from enum import Enum


class CombatPhase(str, Enum):
    IDLE = "idle"
    ROLLING_ATTACK = "rolling_attack"
    RESOLVING_PLAYER_HIT = "resolving_player_hit"
    RESOLVING_PLAYER_MISS = "resolving_player_miss"
    ENEMY_TURN = "enemy_turn"
    RESOLVING_ENEMY_HIT = "resolving_enemy_hit"
    RESOLVING_ENEMY_MISS = "resolving_enemy_miss"
    VICTORY = "victory"
    DEFEAT = "defeat"


TERMINAL_PHASES = {CombatPhase.VICTORY, CombatPhase.DEFEAT}


def is_terminal(phase: CombatPhase) -> bool:
    return phase in TERMINAL_PHASES


def allowed_actions(phase: CombatPhase, *, player_alive: bool, enemy_alive: bool) -> list[str]:
    """Actions the UI may offer; everything is locked outside idle."""
    if phase != CombatPhase.IDLE or not player_alive or not enemy_alive:
        return []
    return ["attack", "refocus"]
