"""
Answer scoring.

All-or-nothing per question: an answer either earns the question's full
points or none. Long answers, and short answers without an answer key,
earn nothing automatically and are flagged for manual review.
"""
import json
from typing import NamedTuple

from lms_api.models.db.tryout import Question, QuestionType
from lms_api.utils.json_utils import json_load


class ScoredAnswer(NamedTuple):
    points: int
    needs_review: bool


def normalize_short_answer(value: str) -> str:
    return value.strip().lower()


def parse_option_id(value: str) -> int | None:
    """Option ids travel as strings; anything non-numeric selects nothing."""
    try:
        return int(value.strip())
    except (AttributeError, ValueError):
        return None


def parse_multi_choice(raw: str) -> set[int] | None:
    """Decode a JSON array of option ids into a set; None when malformed.

    Ids may be encoded as strings or as integers.
    """
    try:
        values = json_load(raw)
    except (json.JSONDecodeError, TypeError):
        return None
    if not isinstance(values, list):
        return None
    selected = set()
    for value in values:
        if isinstance(value, int) and not isinstance(value, bool):
            option_id = value
        elif isinstance(value, str):
            option_id = parse_option_id(value)
        else:
            option_id = None
        if option_id is None:
            return None
        selected.add(option_id)
    return selected


def score_answer(question: Question, raw: str | None) -> ScoredAnswer:
    """Score one stored answer against the question's answer key."""
    question_type = question.question_type

    if question_type == QuestionType.LONG_ANSWER:
        return ScoredAnswer(0, raw is not None)

    if raw is None:
        return ScoredAnswer(0, False)

    if question_type == QuestionType.MULTIPLE_CHOICE_SINGLE:
        correct = question.correct_option_ids
        selected = parse_option_id(raw)
        if len(correct) == 1 and selected in correct:
            return ScoredAnswer(question.points, False)
        return ScoredAnswer(0, False)

    if question_type == QuestionType.MULTIPLE_CHOICE_MULTIPLE:
        selected = parse_multi_choice(raw)
        correct = question.correct_option_ids
        if selected is not None and correct and selected == correct:
            return ScoredAnswer(question.points, False)
        return ScoredAnswer(0, False)

    # SHORT_ANSWER
    accepted = {normalize_short_answer(value) for value in question.short_answers}
    accepted.discard("")
    if not accepted:
        return ScoredAnswer(0, True)
    if normalize_short_answer(raw) in accepted:
        return ScoredAnswer(question.points, False)
    return ScoredAnswer(0, False)
