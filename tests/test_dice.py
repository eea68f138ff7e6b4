import random
import sys
import unittest
from pathlib import Path
from unittest.mock import patch

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from engine.dice import d20, roll_die  # noqa: E402


class TestRollDie(unittest.TestCase):
    def test_rolls_stay_in_range_and_cover_every_face(self):
        rng = random.Random(7)
        seen = {roll_die(6, rng) for _ in range(2000)}
        self.assertEqual(seen, {1, 2, 3, 4, 5, 6})

    def test_single_sided_die_always_one(self):
        for _ in range(20):
            self.assertEqual(roll_die(1), 1)

    def test_invalid_sides_rejected(self):
        for bad in (0, -3, 2.5, "6", True, None):
            with self.assertRaises(ValueError):
                roll_die(bad)

    def test_seeded_rng_is_reproducible(self):
        rng_a, rng_b = random.Random(42), random.Random(42)
        a = [d20(rng_a) for _ in range(5)]
        b = [d20(rng_b) for _ in range(5)]
        self.assertEqual(a, b)

    def test_module_random_can_be_patched(self):
        with patch("random.randint", side_effect=lambda a, b: b):
            self.assertEqual(d20(), 20)
            self.assertEqual(roll_die(8), 8)


if __name__ == "__main__":
    unittest.main()
