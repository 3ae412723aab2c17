"""
Profile Service - student and professor profiles after sign-up.

Deleting a profile deletes its account. Rows that cannot exist without the
profile are removed first with explicit bulk deletes, and references that
may outlive it are cleared.
"""
import logging

from ....core.error_handlers import AuthorizationError, NotFoundError
from ....models import (
    AccessToken,
    Challenge,
    ChallengeAttempt,
    Evaluation,
    Professor,
    ProviderToken,
    Quiz,
    QuizAnswer,
    QuizResult,
    Role,
    Room,
    RoomParticipant,
    SessionSummary,
    Student,
    User,
    db,
)
from ....utils.pagination import apply_sort, get_pagination_data
from ...access_control.logics.policies import RoleDispatch, allow
from ...auth.services.identity_service import IdentityService
from ...auth.services.registration_service import RegistrationService
from ...rooms.services import RoomService
from ..config import ProfilesModuleDefaultConfig

logger = logging.getLogger(__name__)


def _own_student_profile(student, user):
    if student.user_id != user.user_id:
        raise AuthorizationError('You can only update your own profile')
    return True


def _own_professor_profile(professor, user):
    if professor.user_id != user.user_id:
        raise AuthorizationError('You can only update your own profile')
    return True


def _not_allowed(profile, user):
    raise AuthorizationError('You cannot update this profile')


UPDATE_STUDENT_POLICY = RoleDispatch('update_student', {
    Role.ADMIN: allow,
    Role.PROFESSOR: _not_allowed,
    Role.STUDENT: _own_student_profile,
})

UPDATE_PROFESSOR_POLICY = RoleDispatch('update_professor', {
    Role.ADMIN: allow,
    Role.PROFESSOR: _own_professor_profile,
    Role.STUDENT: _not_allowed,
})


def _paginate(query, model, fields, page, size, sort_by, sort_order):
    column = fields.get(sort_by or ProfilesModuleDefaultConfig.DEFAULT_SORT_BY)
    query = apply_sort(
        query,
        model,
        column,
        sort_order or ProfilesModuleDefaultConfig.DEFAULT_SORT_ORDER,
        allowed=set(fields.values()),
        default='created_at',
    )
    return get_pagination_data(query, page, size)


def _delete_account(user_id) -> None:
    """Remove a user row once its profile is gone."""
    ProviderToken.query.filter_by(user_id=user_id).delete(synchronize_session=False)
    AccessToken.query.filter_by(used_by_id=user_id).update(
        {AccessToken.used_by_id: None}, synchronize_session=False
    )
    AccessToken.query.filter_by(created_by_id=user_id).update(
        {AccessToken.created_by_id: None}, synchronize_session=False
    )
    User.query.filter_by(created_by_id=user_id).update({User.created_by_id: None}, synchronize_session=False)
    User.query.filter_by(user_id=user_id).delete(synchronize_session=False)


class ProfileService:

    # ========== Students ==========

    @staticmethod
    def create_student(dto, created_by) -> Student:
        return RegistrationService.create_student(dto, created_by).student_profile

    @staticmethod
    def update_student(student_id, dto, user) -> Student:
        student = IdentityService.get_student(student_id)
        UPDATE_STUDENT_POLICY(user.role, student, user)

        if dto.name is not None:
            student.user.name = dto.name
        if dto.avatar is not None:
            student.user.avatar = dto.avatar
        for attr in ('nickname', 'level', 'bio'):
            value = getattr(dto, attr)
            if value is not None:
                setattr(student, attr, value)
        db.session.commit()
        return student

    @staticmethod
    def delete_student(student_id) -> None:
        student = IdentityService.get_student(student_id)
        user_id = student.user_id

        result_ids = db.session.query(QuizResult.result_id).filter(QuizResult.student_id == student_id)
        QuizAnswer.query.filter(QuizAnswer.result_id.in_(result_ids.scalar_subquery())).delete(
            synchronize_session=False
        )
        QuizResult.query.filter_by(student_id=student_id).delete(synchronize_session=False)
        ChallengeAttempt.query.filter_by(student_id=student_id).delete(synchronize_session=False)
        Evaluation.query.filter_by(student_id=student_id).delete(synchronize_session=False)
        RoomParticipant.query.filter_by(student_id=student_id).delete(synchronize_session=False)
        Student.query.filter_by(student_id=student_id).delete(synchronize_session=False)
        _delete_account(user_id)
        db.session.commit()
        logger.info("Student %s deleted with user %s", student_id, user_id)

    @staticmethod
    def get_student(student_id) -> Student:
        return IdentityService.get_student(student_id)

    @staticmethod
    def my_student_profile(user) -> Student:
        return IdentityService.student_for_user(user)

    @staticmethod
    def list_students(page=0, size=None, sort_by=None, sort_order=None, created_by_id=None):
        query = Student.query
        if created_by_id is not None:
            query = query.join(User, Student.user_id == User.user_id).filter(User.created_by_id == created_by_id)
        return _paginate(
            query, Student, ProfilesModuleDefaultConfig.STUDENT_SORT_FIELDS, page, size, sort_by, sort_order
        )

    @staticmethod
    def students_by_ids(student_ids):
        if not student_ids:
            return []
        return Student.query.filter(Student.student_id.in_(student_ids)).order_by(Student.student_id).all()

    # ========== Professors ==========

    @staticmethod
    def create_professor(dto, created_by) -> Professor:
        return RegistrationService.create_professor(dto, created_by).professor_profile

    @staticmethod
    def update_professor(professor_id, dto, user) -> Professor:
        professor = IdentityService.get_professor(professor_id)
        UPDATE_PROFESSOR_POLICY(user.role, professor, user)

        if dto.name is not None:
            professor.user.name = dto.name
        if dto.avatar is not None:
            professor.user.avatar = dto.avatar
        for attr in ('bio', 'specialization', 'languages'):
            value = getattr(dto, attr)
            if value is not None:
                setattr(professor, attr, value)
        db.session.commit()
        return professor

    @staticmethod
    def delete_professor(professor_id) -> None:
        """Rooms and quizzes stay without a professor, authored records go."""
        professor = IdentityService.get_professor(professor_id)
        user_id = professor.user_id

        challenge_ids = db.session.query(Challenge.challenge_id).filter(Challenge.professor_id == professor_id)
        ChallengeAttempt.query.filter(ChallengeAttempt.challenge_id.in_(challenge_ids.scalar_subquery())).delete(
            synchronize_session=False
        )
        Challenge.query.filter_by(professor_id=professor_id).delete(synchronize_session=False)
        Evaluation.query.filter_by(professor_id=professor_id).delete(synchronize_session=False)
        SessionSummary.query.filter_by(professor_id=professor_id).delete(synchronize_session=False)
        Room.query.filter_by(professor_id=professor_id).update({Room.professor_id: None}, synchronize_session=False)
        Quiz.query.filter_by(created_by_id=professor_id).update({Quiz.created_by_id: None}, synchronize_session=False)
        Professor.query.filter_by(professor_id=professor_id).delete(synchronize_session=False)
        _delete_account(user_id)
        db.session.commit()
        logger.info("Professor %s deleted with user %s", professor_id, user_id)

    @staticmethod
    def get_professor(professor_id) -> Professor:
        return IdentityService.get_professor(professor_id)

    @staticmethod
    def my_professor_profile(user) -> Professor:
        return IdentityService.professor_for_user(user)

    @staticmethod
    def list_professors(page=0, size=None, sort_by=None, sort_order=None, created_by_id=None):
        query = Professor.query
        if created_by_id is not None:
            query = query.join(User, Professor.user_id == User.user_id).filter(
                User.created_by_id == created_by_id
            )
        return _paginate(
            query, Professor, ProfilesModuleDefaultConfig.PROFESSOR_SORT_FIELDS, page, size, sort_by, sort_order
        )

    @staticmethod
    def professor_sessions(professor_id, page=0, size=None, sort_by=None, sort_order=None):
        IdentityService.get_professor(professor_id)
        return RoomService.rooms_of_professor(professor_id, page, size, sort_by, sort_order)
