"""
Registration Service - turns an invitation code into an account.

The code, the user row and the role profile are written in one commit so
a failed sign-up never burns the invitation. Admins can also create student
and professor accounts directly, without a code.
"""
import logging

from sqlalchemy.exc import IntegrityError

from ....core.error_handlers import InvalidStateError
from ....models import Professor, Role, Student, User, db
from ....utils.time_utils import utcnow
from .access_token_service import AccessTokenService

logger = logging.getLogger(__name__)


class RegistrationService:

    @staticmethod
    def _new_user(role: Role, name, password, email=None, avatar=None, created_by_id=None) -> User:
        user = User(
            name=name,
            email=email,
            role=role,
            avatar=avatar,
            is_active=True,
            created_by_id=created_by_id,
        )
        user.set_password(password)
        db.session.add(user)
        return user

    @staticmethod
    def _commit(duplicate_message: str) -> None:
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            logger.info("Registration lost a uniqueness race: %s", duplicate_message)
            raise InvalidStateError(duplicate_message)

    @staticmethod
    def _add_student(dto, created_by_id) -> User:
        if Student.query.filter_by(unique_code=dto.unique_code).first() is not None:
            raise InvalidStateError('Unique code already in use')

        user = RegistrationService._new_user(
            Role.STUDENT, dto.name, dto.password, avatar=dto.avatar, created_by_id=created_by_id
        )
        db.session.add(Student(
            user=user,
            nickname=dto.nickname,
            bio=dto.bio,
            level=dto.level,
            unique_code=dto.unique_code,
            joined_at=utcnow(),
        ))
        return user

    @staticmethod
    def _add_professor(dto, created_by_id) -> User:
        if User.query.filter_by(email=dto.email).first() is not None:
            raise InvalidStateError('Email already in use')

        user = RegistrationService._new_user(
            Role.PROFESSOR, dto.name, dto.password,
            email=dto.email, avatar=dto.avatar, created_by_id=created_by_id,
        )
        db.session.add(Professor(
            user=user,
            bio=dto.bio,
            languages=dto.languages,
            specialization=dto.specialization,
            joined_at=utcnow(),
        ))
        return user

    @staticmethod
    def register_student(dto) -> User:
        token = AccessTokenService.validate(dto.access_token, Role.STUDENT)
        user = RegistrationService._add_student(dto, token.created_by_id)
        AccessTokenService.consume(token, user)
        RegistrationService._commit('Unique code already in use')
        logger.info("Student registered: %s (user %s)", dto.unique_code, user.user_id)
        return user

    @staticmethod
    def register_professor(dto) -> User:
        token = AccessTokenService.validate(dto.access_token, Role.PROFESSOR)
        user = RegistrationService._add_professor(dto, token.created_by_id)
        AccessTokenService.consume(token, user)
        RegistrationService._commit('Email already in use')
        logger.info("Professor registered: %s (user %s)", dto.email, user.user_id)
        return user

    @staticmethod
    def register_admin(dto) -> User:
        token = AccessTokenService.validate(dto.access_token, Role.ADMIN)
        if User.query.filter_by(email=dto.email).first() is not None:
            raise InvalidStateError('Email already in use')

        user = RegistrationService._new_user(
            Role.ADMIN, dto.name, dto.password, email=dto.email, created_by_id=token.created_by_id
        )
        AccessTokenService.consume(token, user)
        RegistrationService._commit('Email already in use')
        logger.info("Admin registered: %s (user %s)", dto.email, user.user_id)
        return user

    @staticmethod
    def create_student(dto, created_by) -> User:
        """Admin path: no invitation code is checked or consumed."""
        user = RegistrationService._add_student(dto, created_by.user_id)
        RegistrationService._commit('Unique code already in use')
        logger.info("Student %s created by admin %s", dto.unique_code, created_by.user_id)
        return user

    @staticmethod
    def create_professor(dto, created_by) -> User:
        user = RegistrationService._add_professor(dto, created_by.user_id)
        RegistrationService._commit('Email already in use')
        logger.info("Professor %s created by admin %s", dto.email, created_by.user_id)
        return user
