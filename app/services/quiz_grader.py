# app/services/quiz_grader.py
from typing import Dict, Iterable, Mapping, Optional

from app.schemas.quiz_attempt import QuestionResult, QuizGradeResult
from app.services.answer_evaluator import evaluate_answer
from app.utils.scoring import percentage

NO_ANSWER = "No answer provided"


def answers_to_map(answers: Iterable) -> Dict[int, Optional[str]]:
    """Turn ``[{question_id, selected_answer}, ...]`` into ``{question_id: answer}``."""
    answer_map = {}
    for answer in answers:
        if isinstance(answer, Mapping):
            answer_map[int(answer["question_id"])] = answer.get("selected_answer")
        else:
            answer_map[int(answer.question_id)] = answer.selected_answer
    return answer_map


def grade_quiz(
    questions: Iterable,
    answers: Mapping[int, Optional[str]],
    passing_score: int,
) -> QuizGradeResult:
    """
    Score a full submission.

    Pure function of its inputs: questions are walked in the order given,
    unanswered questions earn nothing, and the percentage is rounded half up
    (0 for a quiz worth 0 points).
    """
    total_points = 0
    earned_points = 0
    correct_count = 0
    detailed_results = []

    for question in questions:
        points = question.points or 0
        total_points += points

        submitted = answers.get(question.id)
        is_correct, correct_answer = evaluate_answer(question, submitted)

        if is_correct:
            earned_points += points
            correct_count += 1

        detailed_results.append(
            QuestionResult(
                question_id=question.id,
                question_text=question.question_text,
                user_answer=submitted if submitted else NO_ANSWER,
                correct_answer=correct_answer,
                is_correct=is_correct,
                points=points,
                earned_points=points if is_correct else 0,
                explanation=question.explanation,
            )
        )

    score = percentage(earned_points, total_points)

    return QuizGradeResult(
        total_points=total_points,
        earned_points=earned_points,
        percentage=score,
        passed=score >= passing_score,
        passing_score=passing_score,
        correct_count=correct_count,
        total_questions=len(detailed_results),
        detailed_results=detailed_results,
    )
