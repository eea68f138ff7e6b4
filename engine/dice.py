from __future__ import annotations

import random
from typing import Optional

from engine.validator import validate


def roll_die(sides: int, rng: Optional[random.Random] = None) -> int:
    """
    Roll a single die with `sides` faces, uniform in [1, sides].

    `rng` lets callers pin the sequence (seeded random.Random); without it
    the module-level `random.randint` is used so tests can patch it.
    """
    validate(isinstance(sides, int) and not isinstance(sides, bool), "Die sides must be an integer")
    validate(sides >= 1, f"Die must have at least one side (got {sides})")
    if rng is not None:
        return int(rng.randint(1, sides))
    return int(random.randint(1, sides))


def d20(rng: Optional[random.Random] = None) -> int:
    return roll_die(20, rng)
