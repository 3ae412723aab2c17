"""
Quiz Grading - one-shot scoring of a quiz submission.

Pure logic: maps submitted answers onto the quiz questions, counts correct
ones and applies the passing threshold. No database access.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from ....core.error_handlers import NotFoundError, ValidationError


@dataclass
class GradedAnswer:
    question_id: int
    selected_answer: int
    is_correct: bool


@dataclass
class GradeResult:
    score: int
    total_questions: int
    passed: bool
    answers: List[GradedAnswer] = field(default_factory=list)

    @property
    def percentage(self) -> float:
        return self.score / self.total_questions * 100 if self.total_questions else 0.0


def is_passing(score: int, total_questions: int, passing_score: int) -> bool:
    """score/total as a percentage must reach ``passing_score``, an empty quiz never passes."""
    if total_questions <= 0:
        return False
    return score * 100.0 / total_questions >= passing_score


def grade_submission(questions: Iterable, submitted: Iterable[Dict], passing_score: int) -> GradeResult:
    """
    Grade ``submitted`` answers (``{'questionId', 'selectedAnswer'}`` dicts)
    against ``questions`` (objects with ``question_id`` and ``correct_answer``).

    Unanswered questions count as wrong; an id that is not one of this quiz's
    questions raises NotFoundError.
    """
    by_id = {q.question_id: q for q in questions}
    graded: List[GradedAnswer] = []
    seen = set()

    for answer in submitted:
        question_id = answer.get('questionId')
        question = by_id.get(question_id)
        if question is None:
            raise NotFoundError('Question not found', resource='question')
        if question_id in seen:
            raise ValidationError('Each question can be answered only once', {'questionId': question_id})
        seen.add(question_id)

        selected = answer.get('selectedAnswer')
        graded.append(GradedAnswer(
            question_id=question_id,
            selected_answer=selected,
            is_correct=selected == question.correct_answer,
        ))

    score = sum(1 for a in graded if a.is_correct)
    total = len(by_id)
    return GradeResult(
        score=score,
        total_questions=total,
        passed=is_passing(score, total, passing_score),
        answers=graded,
    )
