import pytest

from app.models.quiz import QuestionType
from app.schemas.quiz import QuestionSnapshot
from app.services.answer_evaluator import (
    ESSAY_PLACEHOLDER,
    EVALUATORS,
    evaluate_answer,
    register_evaluator,
)


def question(question_type, correct_answer=None, options=None, question_id=1):
    return QuestionSnapshot(
        id=question_id,
        question_text="Q",
        question_type=question_type,
        points=1,
        options=options,
        correct_answer=correct_answer,
    )


MC_OPTIONS = [
    {"id": 1, "text": "one", "is_correct": True},
    {"id": 2, "text": "two", "is_correct": False},
]


def test_multiple_choice_matches_flagged_option_id_as_string():
    mc = question("MULTIPLE_CHOICE", options=MC_OPTIONS)

    assert evaluate_answer(mc, "1") == (True, "1")
    assert evaluate_answer(mc, "2") == (False, "1")
    assert evaluate_answer(mc, None) == (False, "1")


def test_multiple_choice_without_flagged_option_falls_back_to_recorded_answer():
    options = [{"id": "a", "text": "A", "is_correct": False}]
    mc = question("MULTIPLE_CHOICE", correct_answer="a", options=options)

    assert evaluate_answer(mc, "a") == (True, "a")
    assert evaluate_answer(question("MULTIPLE_CHOICE", correct_answer="b"), "B")[0] is False


def test_true_false_is_exact():
    tf = question("TRUE_FALSE", correct_answer="false")

    assert evaluate_answer(tf, "false")[0] is True
    assert evaluate_answer(tf, "False")[0] is False
    assert evaluate_answer(tf, "true")[0] is False


@pytest.mark.parametrize("question_type", ["SHORT_ANSWER", "FILL_BLANK"])
def test_text_answers_ignore_case_and_surrounding_whitespace(question_type):
    q = question(question_type, correct_answer="Photosynthesis")

    assert evaluate_answer(q, "  photosynthesis ")[0] is True
    assert evaluate_answer(q, "photo synthesis")[0] is False
    assert evaluate_answer(q, "")[0] is False


def test_matching_compares_structure_not_key_order():
    q = question("MATCHING", correct_answer='{"a": "1", "b": "2"}')

    assert evaluate_answer(q, '{"b":"2","a":"1"}')[0] is True
    assert evaluate_answer(q, '{"a": "2", "b": "1"}')[0] is False


def test_matching_with_unparseable_submission_is_incorrect():
    q = question("MATCHING", correct_answer='{"a": "1"}')

    assert evaluate_answer(q, "{not json") == (False, '{"a": "1"}')


def test_matching_with_deeply_nested_submission_is_incorrect():
    q = question("MATCHING", correct_answer='{"a": "1"}')
    nested = "[" * 100000 + "]" * 100000

    assert evaluate_answer(q, nested) == (False, '{"a": "1"}')


def test_essay_is_never_auto_correct():
    q = question("ESSAY", correct_answer="anything")

    assert evaluate_answer(q, "anything") == (False, ESSAY_PLACEHOLDER)


def test_unknown_type_is_incorrect():
    assert evaluate_answer(question("HOTSPOT", correct_answer="x"), "x")[0] is False


def test_missing_correct_answer_is_incorrect():
    assert evaluate_answer(question("SHORT_ANSWER"), "anything")[0] is False
    assert evaluate_answer(question("TRUE_FALSE"), "true")[0] is False


def test_registered_evaluator_is_used(monkeypatch):
    monkeypatch.setitem(EVALUATORS, "NUMERIC", None)

    def numeric(q, submitted):
        return float(submitted) == float(q.correct_answer), q.correct_answer

    register_evaluator("NUMERIC", numeric)

    assert evaluate_answer(question("NUMERIC", correct_answer="2.50"), "2.5")[0] is True


def test_every_question_type_has_an_evaluator():
    assert {t.value for t in QuestionType} <= set(EVALUATORS)
