"""
Challenge Service - timed challenges and per-student attempts.

Attempt rows are guarded twice: a unique (challenge, student) key stops two
first attempts from both inserting, and a version counter stops two retries
from both updating. Either race is reported like the rule it tried to break.
"""
import logging
from dataclasses import replace
from datetime import timedelta

from flask import current_app
from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from ....core.error_handlers import AuthorizationError, InvalidStateError, NotFoundError
from ....core.signals import challenge_answered
from ....models import Challenge, ChallengeAttempt, Student, User, db
from ....utils.db_errors import is_unique_violation
from ....utils.rounding import round_half_up
from ....utils.time_utils import ensure_utc, utcnow
from ...auth.services.identity_service import IdentityService
from ..config import ChallengesModuleDefaultConfig
from ..logics.scoring import MAX_ATTEMPTS, ChallengeScoring

logger = logging.getLogger(__name__)


class ChallengeService:

    # ========== Helpers ==========

    @staticmethod
    def get_challenge(challenge_id) -> Challenge:
        challenge = db.session.get(Challenge, challenge_id)
        if challenge is None:
            raise NotFoundError('Challenge not found', resource='challenge')
        return challenge

    @staticmethod
    def is_open(challenge, now=None) -> bool:
        now = now or utcnow()
        return bool(challenge.is_active) and ensure_utc(challenge.expires_at) > now

    @staticmethod
    def _owned_challenge(user, challenge_id, message) -> Challenge:
        challenge = ChallengeService.get_challenge(challenge_id)
        professor = IdentityService.professor_for_user(user)
        if challenge.professor_id != professor.professor_id:
            raise AuthorizationError(message)
        return challenge

    @staticmethod
    def _ensure_can_attempt(attempt) -> None:
        if attempt.is_correct:
            raise InvalidStateError('You already answered this challenge correctly')
        if attempt.attempts >= MAX_ATTEMPTS:
            raise InvalidStateError('Maximum attempts reached for this challenge')

    @staticmethod
    def _reject_concurrent_answer(challenge_id, student_id) -> None:
        """Report a lost commit race as the rule the winning write established."""
        logger.info("Concurrent answer on challenge %s by student %s rejected", challenge_id, student_id)
        winner = ChallengeAttempt.query.filter_by(challenge_id=challenge_id, student_id=student_id).first()
        if winner is not None:
            ChallengeService._ensure_can_attempt(winner)
        raise InvalidStateError('Another answer to this challenge was recorded first, please retry')

    @staticmethod
    def _participant_counts(challenge_ids) -> dict:
        if not challenge_ids:
            return {}
        rows = (
            db.session.query(ChallengeAttempt.challenge_id, func.count(ChallengeAttempt.attempt_id))
            .filter(ChallengeAttempt.challenge_id.in_(challenge_ids))
            .group_by(ChallengeAttempt.challenge_id)
            .all()
        )
        return dict(rows)

    # ========== Professor ==========

    @staticmethod
    def create(user, dto) -> Challenge:
        professor = IdentityService.professor_for_user(user)
        challenge = Challenge(
            professor_id=professor.professor_id,
            subject=dto.subject,
            difficulty=dto.difficulty,
            title=dto.title,
            question=dto.question,
            options=dto.options,
            correct_answer=dto.correct_answer,
            base_points=dto.base_points,
            image_url=dto.image_url,
            expires_at=utcnow() + timedelta(hours=dto.expires_in),
            is_active=True,
        )
        db.session.add(challenge)
        db.session.commit()
        logger.info("Challenge %s created by professor %s", challenge.challenge_id, professor.professor_id)
        return challenge

    @staticmethod
    def my_challenges(user):
        """The professor's challenges with how many students attempted each."""
        professor = IdentityService.professor_for_user(user)
        challenges = (
            Challenge.query
            .filter_by(professor_id=professor.professor_id)
            .order_by(Challenge.created_at.desc(), Challenge.challenge_id.desc())
            .all()
        )
        counts = ChallengeService._participant_counts([c.challenge_id for c in challenges])
        return [(c, counts.get(c.challenge_id, 0)) for c in challenges]

    @staticmethod
    def delete(user, challenge_id) -> None:
        challenge = ChallengeService._owned_challenge(
            user, challenge_id, 'You can only delete your own challenges'
        )
        ChallengeAttempt.query.filter_by(challenge_id=challenge.challenge_id).delete(synchronize_session=False)
        db.session.delete(challenge)
        db.session.commit()
        logger.info("Challenge %s deleted", challenge_id)

    @staticmethod
    def attempts(user, challenge_id):
        challenge = ChallengeService._owned_challenge(
            user, challenge_id, 'You can only view attempts on your own challenges'
        )
        return (
            ChallengeAttempt.query
            .filter_by(challenge_id=challenge.challenge_id)
            .order_by(ChallengeAttempt.points_earned.desc(), ChallengeAttempt.attempt_id.asc())
            .all()
        )

    @staticmethod
    def stats(user) -> dict:
        professor = IdentityService.professor_for_user(user)
        challenges = Challenge.query.filter_by(professor_id=professor.professor_id).all()
        now = utcnow()

        owned = ChallengeAttempt.query.join(Challenge).filter(
            Challenge.professor_id == professor.professor_id
        )
        total_attempts = owned.count()
        correct = owned.filter(ChallengeAttempt.is_correct.is_(True)).count()
        participants = owned.with_entities(func.count(func.distinct(ChallengeAttempt.student_id))).scalar()
        average = owned.with_entities(func.avg(ChallengeAttempt.points_earned)).scalar()

        return {
            'totalChallenges': len(challenges),
            'activeChallenges': sum(1 for c in challenges if ChallengeService.is_open(c, now)),
            'totalParticipants': participants or 0,
            'averageScore': round_half_up(float(average)) if average is not None else 0,
            'successRate': round_half_up(correct / total_attempts * 100) if total_attempts else 0,
        }

    # ========== Student ==========

    @staticmethod
    def active_challenges():
        return (
            Challenge.query
            .filter(Challenge.is_active.is_(True), Challenge.expires_at > utcnow())
            .order_by(Challenge.created_at.desc(), Challenge.challenge_id.desc())
            .all()
        )

    @staticmethod
    def submit_answer(user, challenge_id, selected_answer):
        """Record one answer and return its ``AnswerOutcome``."""
        student = IdentityService.student_for_user(user)
        challenge = ChallengeService.get_challenge(challenge_id)

        if not ChallengeService.is_open(challenge):
            raise InvalidStateError('This challenge is no longer active')

        attempt = ChallengeAttempt.query.filter_by(
            challenge_id=challenge.challenge_id, student_id=student.student_id
        ).first()
        if attempt is None:
            attempt = ChallengeAttempt(
                challenge_id=challenge.challenge_id,
                student_id=student.student_id,
                attempts=0,
                points_earned=0,
                is_correct=False,
            )
            db.session.add(attempt)

        ChallengeService._ensure_can_attempt(attempt)

        outcome = ChallengeScoring.grade(
            selected_answer,
            challenge.correct_answer,
            attempt.attempts,
            challenge.base_points,
            challenge.difficulty,
        )
        attempt.attempts = outcome.attempt_number
        if outcome.is_correct:
            attempt.is_correct = True
            attempt.points_earned = outcome.points_earned
            attempt.completed_at = utcnow()
        elif outcome.is_final_attempt:
            attempt.completed_at = utcnow()

        try:
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            if not is_unique_violation(
                e, 'uq_challenge_attempt', 'challenge_attempts', ('challenge_id', 'student_id')
            ):
                raise
            ChallengeService._reject_concurrent_answer(challenge_id, student.student_id)
        except StaleDataError:
            db.session.rollback()
            ChallengeService._reject_concurrent_answer(challenge_id, student.student_id)

        challenge_answered.send(
            current_app._get_current_object(),
            challenge_id=challenge.challenge_id,
            student_id=student.student_id,
            attempt_number=outcome.attempt_number,
            is_correct=outcome.is_correct,
            points_earned=attempt.points_earned,
        )
        return replace(outcome, points_earned=attempt.points_earned)

    @staticmethod
    def my_attempts(user):
        student = IdentityService.student_for_user(user)
        return (
            ChallengeAttempt.query
            .filter_by(student_id=student.student_id)
            .order_by(ChallengeAttempt.created_at.desc(), ChallengeAttempt.attempt_id.desc())
            .all()
        )

    # ========== Common ==========

    @staticmethod
    def leaderboard(limit=None):
        """
        Students ranked by points from correctly answered challenges.

        Equal totals keep first-come order: the student whose first correct
        attempt row was created earlier ranks higher.
        """
        limit = limit or ChallengesModuleDefaultConfig.LEADERBOARD_LIMIT
        total_points = func.sum(ChallengeAttempt.points_earned)
        perfect = func.sum(case((ChallengeAttempt.attempts == 1, 1), else_=0))
        rows = (
            db.session.query(
                Student.student_id,
                User.name,
                User.avatar,
                total_points,
                func.count(ChallengeAttempt.attempt_id),
                perfect,
            )
            .select_from(ChallengeAttempt)
            .join(Student, ChallengeAttempt.student_id == Student.student_id)
            .join(User, Student.user_id == User.user_id)
            .filter(ChallengeAttempt.is_correct.is_(True))
            .group_by(Student.student_id, User.name, User.avatar)
            .order_by(total_points.desc(), func.min(ChallengeAttempt.attempt_id).asc())
            .limit(limit)
            .all()
        )

        return [
            {
                'rank': rank,
                'studentId': student_id,
                'studentName': name,
                'studentAvatar': avatar,
                'totalPoints': int(points or 0),
                'challengesCompleted': completed,
                'perfectAnswers': int(perfect_count or 0),
            }
            for rank, (student_id, name, avatar, points, completed, perfect_count) in enumerate(rows, start=1)
        ]
