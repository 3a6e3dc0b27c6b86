"""Quiz grading.

Pure functions over a loaded quiz graph; no I/O.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol
from uuid import UUID

from .schemas import SubmittedAnswer


DEFAULT_PASSING_SCORE = 70


class _Answer(Protocol):
    id: UUID
    is_correct: Any


class _Question(Protocol):
    id: UUID
    question_type: str
    answers: Sequence[_Answer]


class GradableQuiz(Protocol):
    passing_score: int | None
    questions: Sequence[_Question]


@dataclass(frozen=True)
class GradeResult:
    total_questions: int
    correct_answers: int
    score: float
    passed: bool


def correct_answer_id(question: _Question) -> UUID | None:
    """Id of the first answer flagged correct, if any."""
    return next((answer.id for answer in question.answers if answer.is_correct), None)


def grade_submission(quiz: GradableQuiz, answers: Iterable[SubmittedAnswer]) -> GradeResult:
    """Grade a submission against the quiz's answer key.

    A question counts as correct when the first submitted entry for it names
    the question's first correct answer. Text questions are counted in the
    total but never scored. Every question weighs the same regardless of
    ``points``.
    """
    submitted: dict[UUID, SubmittedAnswer] = {}
    for answer in answers:
        submitted.setdefault(answer.question_id, answer)

    correct = 0
    for question in quiz.questions:
        if question.question_type == "text":
            continue
        entry = submitted.get(question.id)
        expected = correct_answer_id(question)
        if entry is not None and expected is not None and entry.answer_id == expected:
            correct += 1

    total = len(quiz.questions)
    score = round(correct / total * 100, 2) if total else 0.0
    passing_score = DEFAULT_PASSING_SCORE if quiz.passing_score is None else quiz.passing_score

    return GradeResult(
        total_questions=total,
        correct_answers=correct,
        score=score,
        passed=score >= passing_score,
    )
