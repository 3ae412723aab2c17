"""
Challenge Scoring - bounded attempts with a halved second chance.

Pure logic: decides the outcome of one answer from the attempt state and the
challenge parameters. No database access.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ....models.challenge import ChallengeDifficulty
from ....utils.rounding import round_half_up

MAX_ATTEMPTS = 2

DIFFICULTY_MULTIPLIERS = {
    ChallengeDifficulty.EASY: 1.0,
    ChallengeDifficulty.MEDIUM: 1.5,
    ChallengeDifficulty.HARD: 2.0,
}


@dataclass
class AnswerOutcome:
    """Result of grading one challenge answer."""
    is_correct: bool
    attempt_number: int
    is_final_attempt: bool
    points_earned: int
    # Only revealed once the student has no retry left
    correct_answer: Optional[int]


class ChallengeScoring:
    """
    Stateless scoring rules for challenge attempts.
    All methods are static and use only provided inputs.
    """

    @staticmethod
    def calculate_points(base_points: int, difficulty, attempt_number: int) -> int:
        """
        Points for a correct answer.

        Attempt 1 earns round(base x multiplier), attempt 2 earns half of
        that (rounded again), any later attempt earns nothing.
        """
        multiplier = DIFFICULTY_MULTIPLIERS[ChallengeDifficulty(difficulty)]
        total = round_half_up(base_points * multiplier)
        if attempt_number == 1:
            return total
        if attempt_number == 2:
            return round_half_up(total / 2.0)
        return 0

    @staticmethod
    def grade(
        selected_answer: int,
        correct_answer: int,
        previous_attempts: int,
        base_points: int,
        difficulty,
    ) -> AnswerOutcome:
        """Grade the answer that follows ``previous_attempts`` recorded tries."""
        attempt_number = previous_attempts + 1
        is_correct = selected_answer == correct_answer
        is_final = attempt_number >= MAX_ATTEMPTS or is_correct

        points = 0
        if is_correct:
            points = ChallengeScoring.calculate_points(base_points, difficulty, attempt_number)

        return AnswerOutcome(
            is_correct=is_correct,
            attempt_number=attempt_number,
            is_final_attempt=is_final,
            points_earned=points,
            correct_answer=correct_answer if is_final else None,
        )
