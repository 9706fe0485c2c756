"""Time-decayed scoring.

Points fall linearly with the seconds elapsed since the question was shown:
a correct answer is worth 10 at once and 0 after a minute, a wrong answer
costs 3 at once and nothing after a minute. Anything later scores 0.

Every value is rounded half-up to 2 decimal places as soon as it is produced,
and the running total is rounded again after each addition. Totals therefore
depend on the order of accumulation; that is intended.
"""
import math

import config


def round2(value: float) -> float:
    """Round half-up (towards +inf) to 2 decimal places."""
    return math.floor(value * 100 + 0.5) / 100


def calculate_points(correct: bool, elapsed: float) -> float:
    if elapsed > config.SCORING_WINDOW_SECONDS:
        return 0.0
    if correct:
        points = config.POINTS_PER_QUESTION - elapsed / config.CORRECT_DECAY_DIVISOR
    else:
        points = -config.INCORRECT_PENALTY + elapsed / config.INCORRECT_RECOVERY_DIVISOR
    return round2(points)


def accumulate_score(total: float, points: float) -> float:
    return round2(total + points)


def score_cap(questions_shown: int) -> int:
    """Best possible total after `questions_shown` questions."""
    return max(0, questions_shown) * config.POINTS_PER_QUESTION
