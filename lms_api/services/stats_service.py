"""Tryout statistics over completed attempts."""
from collections.abc import Iterable

from lms_api.models.db.attempt import Attempt


def _round(value: float) -> float:
    return round(value * 100) / 100


def tryout_statistics(attempts: Iterable[Attempt]) -> dict[str, float | int]:
    """
    Aggregate attempts of one tryout.

    Scores are percentages of each attempt's max score, rounded to two
    decimals; attempts with a zero max score count as 0%.
    """
    attempts = list(attempts)
    completed = [attempt for attempt in attempts if attempt.is_completed]
    percents = [attempt.percent for attempt in completed]

    return {
        "total_attempts": len(attempts),
        "completed_attempts": len(completed),
        "average_score": _round(sum(percents) / len(percents)) if percents else 0.0,
        "highest_score": _round(max(percents)) if percents else 0.0,
        "lowest_score": _round(min(percents)) if percents else 0.0,
    }
