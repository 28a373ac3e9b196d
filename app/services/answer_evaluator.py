# app/services/answer_evaluator.py
"""
Per-question answer checking.

Each question type maps to one checker in ``EVALUATORS``. A checker takes the
question and the raw submitted string and returns ``(is_correct,
correct_answer)`` where ``correct_answer`` is what the learner is shown as the
expected value. Checkers never raise: anything unparseable is just wrong.
"""

import json
import logging
from typing import Any, Callable, Dict, Optional, Tuple

from app.models.quiz import QuestionType

logger = logging.getLogger(__name__)

ESSAY_PLACEHOLDER = "Manual grading required."

Evaluation = Tuple[bool, Optional[str]]
Evaluator = Callable[[Any, Optional[str]], Evaluation]


def _option_value(option: Any, key: str) -> Any:
    if isinstance(option, dict):
        return option.get(key)
    return getattr(option, key, None)


def _evaluate_multiple_choice(question, submitted: Optional[str]) -> Evaluation:
    options = question.options
    if options and isinstance(options, (list, tuple)):
        correct_option = next(
            (option for option in options if _option_value(option, "is_correct")),
            None,
        )
        if correct_option is not None:
            correct_id = str(_option_value(correct_option, "id"))
            return submitted is not None and submitted == correct_id, correct_id

    return _evaluate_exact(question, submitted)


def _evaluate_exact(question, submitted: Optional[str]) -> Evaluation:
    expected = question.correct_answer
    if submitted is None or expected is None:
        return False, expected
    return submitted == expected, expected


def _evaluate_text(question, submitted: Optional[str]) -> Evaluation:
    expected = question.correct_answer
    if not submitted or not expected:
        return False, expected
    return submitted.strip().lower() == expected.strip().lower(), expected


def _canonical_json(raw: str) -> str:
    return json.dumps(json.loads(raw), sort_keys=True, separators=(",", ":"))


def _evaluate_matching(question, submitted: Optional[str]) -> Evaluation:
    expected = question.correct_answer
    if not submitted or not expected:
        return False, expected
    try:
        return _canonical_json(submitted) == _canonical_json(expected), expected
    except (TypeError, ValueError, RecursionError):
        logger.debug(f"Unparseable MATCHING answer for question {question.id}")
        return False, expected


def _evaluate_essay(question, submitted: Optional[str]) -> Evaluation:
    return False, ESSAY_PLACEHOLDER


EVALUATORS: Dict[str, Evaluator] = {
    QuestionType.MULTIPLE_CHOICE.value: _evaluate_multiple_choice,
    QuestionType.TRUE_FALSE.value: _evaluate_exact,
    QuestionType.SHORT_ANSWER.value: _evaluate_text,
    QuestionType.FILL_BLANK.value: _evaluate_text,
    QuestionType.MATCHING.value: _evaluate_matching,
    QuestionType.ESSAY.value: _evaluate_essay,
}


def register_evaluator(question_type: str, evaluator: Evaluator) -> None:
    """Plug in a checker for a new question type."""
    EVALUATORS[question_type] = evaluator


def evaluate_answer(question, submitted: Optional[str]) -> Evaluation:
    """
    Judge one submitted value against a question.

    Args:
        question: anything exposing ``id``, ``question_type``, ``options`` and
            ``correct_answer`` (an ORM ``Question`` or a ``QuestionSnapshot``)
        submitted: the raw submitted value, ``None`` when unanswered

    Returns:
        ``(is_correct, correct_answer)``; unknown types are never correct
    """
    question_type = question.question_type
    if isinstance(question_type, QuestionType):
        question_type = question_type.value

    evaluator = EVALUATORS.get(question_type)
    if evaluator is None:
        logger.warning(
            f"No evaluator for question type '{question_type}' (question {question.id})"
        )
        return False, question.correct_answer

    return evaluator(question, submitted)
