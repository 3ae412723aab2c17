"""
Stats Service - read-only dashboard rollups.

Nothing here writes. Each method answers one dashboard with plain counts
over rooms, quizzes, challenges and evaluations.
"""
import logging

from sqlalchemy import func

from ....models import (
    AccessToken,
    Challenge,
    ChallengeAttempt,
    Evaluation,
    Quiz,
    QuizResult,
    Role,
    Room,
    RoomParticipant,
    RoomStatus,
    Student,
    User,
    db,
)
from ....utils.time_utils import utcnow
from ...auth.services.identity_service import IdentityService

logger = logging.getLogger(__name__)


def _status_counts(query) -> dict:
    counts = {status.value: 0 for status in RoomStatus}
    for room in query.all():
        counts[room.status.value] += 1
    return counts


def _average(value):
    return round(float(value), 2) if value is not None else 0.0


class StatsService:

    @staticmethod
    def admin_stats() -> dict:
        logger.info("Computing admin statistics")
        users_by_role = {role.value: 0 for role in Role}
        for role, count in db.session.query(User.role, func.count(User.user_id)).group_by(User.role).all():
            users_by_role[role.value] = count

        level_rows = (
            db.session.query(Student.level, func.count(Student.student_id))
            .group_by(Student.level)
            .order_by(Student.level)
            .all()
        )

        return {
            'usersByRole': users_by_role,
            'roomsByStatus': _status_counts(Room.query),
            'totalQuizzes': Quiz.query.count(),
            'publishedQuizzes': Quiz.query.filter(Quiz.is_published.is_(True)).count(),
            'totalChallenges': Challenge.query.count(),
            'availableAccessTokens': AccessToken.query.filter(
                AccessToken.is_used.is_(False), AccessToken.expires_at > utcnow()
            ).count(),
            'totalEvaluations': Evaluation.query.count(),
            'averageEvaluationScore': _average(db.session.query(func.avg(Evaluation.overall_score)).scalar()),
            'levelDistribution': [{'level': level, 'count': count} for level, count in level_rows],
        }

    @staticmethod
    def professor_stats(user) -> dict:
        professor = IdentityService.professor_for_user(user)
        rooms = Room.query.filter_by(professor_id=professor.professor_id)

        students_taught = (
            db.session.query(func.count(func.distinct(RoomParticipant.student_id)))
            .join(Room, RoomParticipant.room_id == Room.room_id)
            .filter(Room.professor_id == professor.professor_id)
            .scalar()
        )

        results = QuizResult.query.join(Quiz).filter(Quiz.created_by_id == professor.professor_id)
        total_results = results.count()
        passed_results = results.filter(QuizResult.passed.is_(True)).count()

        return {
            'roomsByStatus': _status_counts(rooms),
            'studentsTaught': students_taught or 0,
            'quizzesCreated': Quiz.query.filter_by(created_by_id=professor.professor_id).count(),
            'averageQuizPassRate': round(passed_results / total_results * 100, 2) if total_results else 0.0,
            'challengesCreated': Challenge.query.filter_by(professor_id=professor.professor_id).count(),
            'totalEvaluations': Evaluation.query.filter_by(professor_id=professor.professor_id).count(),
            'averageEvaluationScore': _average(
                db.session.query(func.avg(Evaluation.overall_score))
                .filter(Evaluation.professor_id == professor.professor_id)
                .scalar()
            ),
        }

    @staticmethod
    def student_stats(user) -> dict:
        student = IdentityService.student_for_user(user)
        participations = RoomParticipant.query.filter_by(student_id=student.student_id)

        results = QuizResult.query.filter_by(student_id=student.student_id).all()
        percentages = [r.percentage for r in results]

        challenge_points = (
            db.session.query(func.coalesce(func.sum(ChallengeAttempt.points_earned), 0))
            .filter(ChallengeAttempt.student_id == student.student_id)
            .scalar()
        )
        challenges_completed = ChallengeAttempt.query.filter(
            ChallengeAttempt.student_id == student.student_id,
            ChallengeAttempt.completed_at.isnot(None),
        ).count()

        return {
            'level': student.level,
            'roomsInvited': participations.filter(RoomParticipant.invited.is_(True)).count(),
            'roomsAttended': participations.filter(RoomParticipant.joined_at.isnot(None)).count(),
            'quizzesTaken': len(results),
            'quizzesPassed': sum(1 for r in results if r.passed),
            'averageQuizScore': round(sum(percentages) / len(percentages), 2) if percentages else 0.0,
            'challengePoints': int(challenge_points or 0),
            'challengesCompleted': challenges_completed,
        }
