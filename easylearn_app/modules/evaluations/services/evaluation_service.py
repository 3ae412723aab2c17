"""
Evaluation Service - professors grade student skills.

An evaluation can assign a new level; the student's current level is updated
in the same transaction and the old one kept on the evaluation.
"""
import logging

from ....core.error_handlers import NotFoundError
from ....models import Evaluation, Room, Student, db
from ....utils.rounding import round_half_up
from ...auth.services.identity_service import IdentityService

logger = logging.getLogger(__name__)


class EvaluationService:

    @staticmethod
    def overall_score(scores: dict) -> int:
        """Equal-weight average of the skill scores."""
        return round_half_up(sum(scores[skill] for skill in Evaluation.SKILLS) / len(Evaluation.SKILLS))

    @staticmethod
    def create(user, dto) -> Evaluation:
        professor = IdentityService.professor_for_user(user)
        student = IdentityService.get_student(dto.student_id)
        if dto.room_id is not None and db.session.get(Room, dto.room_id) is None:
            raise NotFoundError('Room not found', resource='room')

        previous_level = student.level
        evaluation = Evaluation(
            student_id=student.student_id,
            professor_id=professor.professor_id,
            room_id=dto.room_id,
            language=dto.language,
            overall_score=EvaluationService.overall_score(dto.scores),
            assigned_level=dto.assigned_level,
            previous_level=previous_level,
            feedback=dto.feedback,
            strengths=dto.strengths,
            areas_to_improve=dto.areas_to_improve,
            **dto.scores,
        )
        db.session.add(evaluation)

        if dto.assigned_level and dto.assigned_level != previous_level:
            student.level = dto.assigned_level
            logger.info("Student %s moved from %s to %s", student.student_id, previous_level, dto.assigned_level)

        db.session.commit()
        return evaluation

    @staticmethod
    def for_professor(user):
        professor = IdentityService.professor_for_user(user)
        return (
            Evaluation.query
            .filter_by(professor_id=professor.professor_id)
            .order_by(Evaluation.created_at.desc(), Evaluation.evaluation_id.desc())
            .all()
        )

    @staticmethod
    def for_student(user, language=None):
        student = IdentityService.student_for_user(user)
        query = Evaluation.query.filter_by(student_id=student.student_id)
        if language:
            query = query.filter_by(language=language)
        return query.order_by(Evaluation.created_at.desc(), Evaluation.evaluation_id.desc()).all()

    @staticmethod
    def update_student_level(user, student_id, level) -> Student:
        IdentityService.professor_for_user(user)
        student = IdentityService.get_student(student_id)
        student.level = level
        db.session.commit()
        logger.info("Student %s level set to %s", student_id, level)
        return student

    @staticmethod
    def all_students():
        return Student.query.order_by(Student.student_id).all()
