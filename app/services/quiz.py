# app/services/quiz.py
import logging
import random
from typing import List

from sqlalchemy.orm import Session, selectinload

from app.core.decorator import db_exception
from app.core.exceptions import ConflictError, NotFoundError
from app.models.lesson import Lesson
from app.models.quiz import Question, Quiz
from app.models.quiz_attempt import QuizAttempt
from app.schemas.quiz import (
    QuestionCreate,
    QuestionForAttempt,
    QuestionOptionForAttempt,
    QuestionUpdate,
    QuizCreate,
    QuizForAttemptResponse,
    QuizResponse,
    QuizUpdate,
)

logger = logging.getLogger(__name__)


def _question_values(question_in) -> dict:
    data = question_in.model_dump(exclude_unset=True)
    if "question_type" in data and data["question_type"] is not None:
        data["question_type"] = question_in.question_type.value
    if "options" in data and question_in.options is not None:
        data["options"] = [option.model_dump() for option in question_in.options]
    return data


class QuizService:
    def __init__(self, db: Session):
        self.db = db

    # ==================== Quizzes ====================

    @db_exception
    def create_quiz(self, quiz_in: QuizCreate) -> Quiz:
        """Create a quiz on a lesson together with its questions"""
        lesson = self.db.query(Lesson).filter(Lesson.id == quiz_in.lesson_id).first()
        if not lesson:
            raise NotFoundError("Lesson not found")

        quiz = Quiz(
            course_id=lesson.course_id,
            **quiz_in.model_dump(exclude={"questions"}),
        )
        self.db.add(quiz)
        self.db.flush()

        for index, question_in in enumerate(quiz_in.questions):
            values = _question_values(question_in)
            values["position"] = question_in.position or index
            self.db.add(Question(quiz_id=quiz.id, **values))

        self.db.commit()
        self.db.refresh(quiz)

        logger.info(
            f"Created quiz {quiz.id} on lesson {lesson.id} "
            f"with {len(quiz_in.questions)} questions"
        )
        return quiz

    def get_quiz(self, quiz_id: int) -> Quiz:
        """Get a quiz with its questions (answer keys included)"""
        quiz = (
            self.db.query(Quiz)
            .options(selectinload(Quiz.questions))
            .filter(Quiz.id == quiz_id)
            .first()
        )
        if not quiz:
            raise NotFoundError("Quiz not found")
        return quiz

    def get_quiz_for_learner(self, quiz_id: int) -> QuizForAttemptResponse:
        """Quiz as served to a learner: no correct answers, shuffled if configured"""
        quiz = self.get_quiz(quiz_id)

        questions = list(quiz.questions)
        if quiz.randomize_questions:
            random.shuffle(questions)

        return QuizForAttemptResponse(
            **QuizResponse.model_validate(quiz).model_dump(),
            questions=[
                QuestionForAttempt(
                    id=question.id,
                    question_text=question.question_text,
                    question_type=question.question_type,
                    points=question.points,
                    options=(
                        [
                            QuestionOptionForAttempt(id=option["id"], text=option["text"])
                            for option in question.options
                        ]
                        if question.options
                        else None
                    ),
                )
                for question in questions
            ],
        )

    def get_lesson_quizzes(self, lesson_id: int) -> List[Quiz]:
        return (
            self.db.query(Quiz)
            .filter(Quiz.lesson_id == lesson_id)
            .order_by(Quiz.id.asc())
            .all()
        )

    def update_quiz(self, quiz_id: int, quiz_in: QuizUpdate) -> Quiz:
        quiz = self.get_quiz(quiz_id)

        for field, value in quiz_in.model_dump(exclude_unset=True).items():
            setattr(quiz, field, value)

        self.db.commit()
        self.db.refresh(quiz)
        return quiz

    @db_exception
    def delete_quiz(self, quiz_id: int) -> bool:
        quiz = self.get_quiz(quiz_id)
        self._ensure_no_attempts(quiz.id)

        self.db.delete(quiz)
        self.db.commit()
        return True

    # ==================== Questions ====================

    def add_question(self, quiz_id: int, question_in: QuestionCreate) -> Question:
        quiz = self.get_quiz(quiz_id)
        self._ensure_no_attempts(quiz.id)

        question = Question(quiz_id=quiz.id, **_question_values(question_in))
        self.db.add(question)
        self.db.commit()
        self.db.refresh(question)
        return question

    def update_question(
        self, quiz_id: int, question_id: int, question_in: QuestionUpdate
    ) -> Question:
        question = self._get_question(quiz_id, question_id)
        self._ensure_no_attempts(quiz_id)

        for field, value in _question_values(question_in).items():
            setattr(question, field, value)

        self.db.commit()
        self.db.refresh(question)
        return question

    def delete_question(self, quiz_id: int, question_id: int) -> bool:
        question = self._get_question(quiz_id, question_id)
        self._ensure_no_attempts(quiz_id)

        self.db.delete(question)
        self.db.commit()
        return True

    def _get_question(self, quiz_id: int, question_id: int) -> Question:
        question = (
            self.db.query(Question)
            .filter(Question.id == question_id, Question.quiz_id == quiz_id)
            .first()
        )
        if not question:
            raise NotFoundError("Question not found")
        return question

    def _ensure_no_attempts(self, quiz_id: int):
        # Questions are immutable once attempted
        attempted = (
            self.db.query(QuizAttempt.id).filter(QuizAttempt.quiz_id == quiz_id).first()
        )
        if attempted:
            raise ConflictError("Questions cannot be changed once the quiz has attempts")
