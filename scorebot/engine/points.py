"""
scorebot.engine.points — Points Calculator
============================================

Pure scoring function.  No Discord I/O, no DB I/O.

    deduction = Σ_{k=0}^{hints-1} (base_penalty + k × penalty_increase)
    raw       = max(starting − deduction, ceil(starting × 10%))
    points    = ceil(raw × difficulty_bonus)

Bonuses are kept as integer percentages so the result is exact
(``10 × 120% == 12``, never ``12.000000000000002``).
"""

from __future__ import annotations

from scorebot.config import PointsConfig
from scorebot.errors import ValidationError

MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 4

# difficulty → bonus multiplier as a percentage
DIFFICULTY_BONUS_PERCENT: dict[int, int] = {
    1: 100,
    2: 120,
    3: 150,
    4: 200,
}

# Score never drops below this share of starting points (before bonus).
FLOOR_PERCENT = 10


def _ceil_div(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


def validate_difficulty(difficulty: int) -> int:
    """Return *difficulty* if it is an integer in 1–4, else raise."""
    if isinstance(difficulty, bool) or not isinstance(difficulty, int):
        raise ValidationError(f"Difficulty must be a whole number, got {difficulty!r}.")
    if not MIN_DIFFICULTY <= difficulty <= MAX_DIFFICULTY:
        raise ValidationError(
            f"Difficulty must be between {MIN_DIFFICULTY} and {MAX_DIFFICULTY}."
        )
    return difficulty


class PointsCalculator:
    """Stateless scorer bound to a :class:`PointsConfig`.

    Usage::

        calc = PointsCalculator(cfg.points)
        calc.calculate_points(hints_used=2, difficulty=1)   # 75
        calc.cost_of_next_hint(2)                           # 20
    """

    def __init__(self, config: PointsConfig | None = None) -> None:
        config = config or PointsConfig()
        self.starting_points = config.starting_points
        self.hint_base_penalty = config.hint_base_penalty
        self.hint_penalty_increase = config.hint_penalty_increase

    @property
    def minimum_points(self) -> int:
        """The pre-bonus floor: 10% of starting points, rounded up."""
        return _ceil_div(self.starting_points * FLOOR_PERCENT, 100)

    def cost_of_next_hint(self, hints_used: int) -> int:
        """Marginal cost of the hint after *hints_used* — nothing is consumed."""
        self._check_hints(hints_used)
        return self.hint_base_penalty + hints_used * self.hint_penalty_increase

    def hint_deduction(self, hints_used: int) -> int:
        """Cumulative deduction for the first *hints_used* hints."""
        self._check_hints(hints_used)
        # Arithmetic series: n·base + increase·n(n−1)/2
        return (
            hints_used * self.hint_base_penalty
            + self.hint_penalty_increase * hints_used * (hints_used - 1) // 2
        )

    def raw_points(self, hints_used: int) -> int:
        """Score after hint deductions and the floor, before the bonus."""
        return max(self.starting_points - self.hint_deduction(hints_used), self.minimum_points)

    def calculate_points(self, hints_used: int, difficulty: int) -> int:
        """Points awarded for completing a challenge of *difficulty* after
        using *hints_used* hints.

        Raises
        ------
        ValidationError
            If *hints_used* is negative or *difficulty* is outside 1–4.
        """
        percent = DIFFICULTY_BONUS_PERCENT[validate_difficulty(difficulty)]
        return _ceil_div(self.raw_points(hints_used) * percent, 100)

    def max_possible_points(self, hints_used: int, difficulty: int) -> int:
        """Best score still reachable given hints already consumed."""
        return self.calculate_points(hints_used, difficulty)

    @staticmethod
    def difficulty_bonus_percent(difficulty: int) -> int:
        """Bonus over the base score, e.g. ``50`` for difficulty 3."""
        return DIFFICULTY_BONUS_PERCENT[validate_difficulty(difficulty)] - 100

    def format_points(self, points: int, difficulty: int) -> str:
        bonus = self.difficulty_bonus_percent(difficulty)
        if bonus == 0:
            return f"{points} points"
        return f"{points} points (includes {bonus}% difficulty bonus)"

    @staticmethod
    def _check_hints(hints_used: int) -> None:
        if isinstance(hints_used, bool) or not isinstance(hints_used, int) or hints_used < 0:
            raise ValidationError(f"Hints used must be a non-negative integer, got {hints_used!r}.")
