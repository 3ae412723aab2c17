from dataclasses import dataclass
from typing import List, Optional

from ...core.error_handlers import ValidationError
from ...models import Challenge, ChallengeDifficulty
from ...utils.time_utils import isoformat
from .config import ChallengesModuleDefaultConfig as Cfg


def _int_in_range(payload, key, low, high, errors):
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        errors[key] = 'Must be an integer'
        return None
    if not low <= value <= high:
        errors[key] = f'Must be between {low} and {high}'
        return None
    return value


@dataclass
class ChallengeCreateDTO:
    subject: str
    difficulty: ChallengeDifficulty
    title: str
    question: str
    options: List[str]
    correct_answer: int
    base_points: int
    expires_in: int
    image_url: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: dict) -> 'ChallengeCreateDTO':
        errors = {}

        subject = payload.get('subject')
        if subject not in Challenge.SUBJECTS:
            errors['subject'] = f'One of {", ".join(Challenge.SUBJECTS)}'

        difficulty = None
        try:
            difficulty = ChallengeDifficulty(str(payload.get('difficulty') or '').lower())
        except ValueError:
            errors['difficulty'] = 'One of easy, medium, hard'

        for key in ('title', 'question'):
            if not str(payload.get(key) or '').strip():
                errors[key] = 'This field is required'

        options = payload.get('options')
        if (
            not isinstance(options, list)
            or len(options) != Challenge.OPTION_COUNT
            or not all(isinstance(o, str) and o.strip() for o in options)
        ):
            errors['options'] = f'Exactly {Challenge.OPTION_COUNT} non-empty options are required'

        correct_answer = _int_in_range(payload, 'correctAnswer', 0, Challenge.OPTION_COUNT - 1, errors)
        base_points = _int_in_range(payload, 'basePoints', Cfg.MIN_BASE_POINTS, Cfg.MAX_BASE_POINTS, errors)
        expires_in = _int_in_range(payload, 'expiresIn', Cfg.MIN_EXPIRES_IN, Cfg.MAX_EXPIRES_IN, errors)

        if errors:
            raise ValidationError('Invalid challenge data', errors)

        return cls(
            subject=subject,
            difficulty=difficulty,
            title=payload['title'].strip(),
            question=payload['question'].strip(),
            options=[o.strip() for o in options],
            correct_answer=correct_answer,
            base_points=base_points,
            expires_in=expires_in,
            image_url=payload.get('imageUrl'),
        )


def challenge_to_dict(challenge, participant_count=None, include_answer=True) -> dict:
    professor = challenge.professor
    data = {
        'id': challenge.challenge_id,
        'professorId': challenge.professor_id,
        'professorName': professor.name if professor else None,
        'subject': challenge.subject,
        'difficulty': challenge.difficulty.value,
        'title': challenge.title,
        'question': challenge.question,
        'options': list(challenge.options or []),
        'basePoints': challenge.base_points,
        'imageUrl': challenge.image_url,
        'expiresAt': isoformat(challenge.expires_at),
        'isActive': challenge.is_active,
        'createdAt': isoformat(challenge.created_at),
    }
    if include_answer:
        data['correctAnswer'] = challenge.correct_answer
        data['updatedAt'] = isoformat(challenge.updated_at)
    if participant_count is not None:
        data['participantCount'] = participant_count
    return data


def attempt_to_dict(attempt) -> dict:
    student = attempt.student
    return {
        'id': attempt.attempt_id,
        'studentId': attempt.student_id,
        'studentName': student.name if student else None,
        'studentAvatar': student.user.avatar if student and student.user else None,
        'challengeId': attempt.challenge_id,
        'attempts': attempt.attempts,
        'pointsEarned': attempt.points_earned,
        'isCorrect': attempt.is_correct,
        'completedAt': isoformat(attempt.completed_at),
        'createdAt': isoformat(attempt.created_at),
    }


def outcome_to_dict(outcome) -> dict:
    return {
        'isCorrect': outcome.is_correct,
        'correctAnswer': outcome.correct_answer,
        'pointsEarned': outcome.points_earned,
        'attemptNumber': outcome.attempt_number,
        'isFinalAttempt': outcome.is_final_attempt,
    }
