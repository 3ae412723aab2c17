"""
Identity Service - resolves accounts and their role profiles.

Login identifiers are looked up by email first and by student unique code
second, in one place for every caller.
"""
from ....core.error_handlers import NotFoundError
from ....models import Professor, Student, User, db


class IdentityService:

    @staticmethod
    def resolve_login_identity(identifier) -> User:
        identifier = (identifier or '').strip()
        if identifier:
            user = User.query.filter_by(email=identifier).first()
            if user is not None:
                return user

            student = Student.query.filter_by(unique_code=identifier).first()
            if student is not None:
                return student.user

        raise NotFoundError('User not found', resource='user')

    @staticmethod
    def student_for_user(user) -> Student:
        student = Student.query.filter_by(user_id=user.user_id).first()
        if student is None:
            raise NotFoundError('Student profile not found', resource='student')
        return student

    @staticmethod
    def professor_for_user(user) -> Professor:
        professor = Professor.query.filter_by(user_id=user.user_id).first()
        if professor is None:
            raise NotFoundError('Professor profile not found', resource='professor')
        return professor

    @staticmethod
    def get_student(student_id) -> Student:
        student = db.session.get(Student, student_id)
        if student is None:
            raise NotFoundError('Student not found', resource='student')
        return student

    @staticmethod
    def get_professor(professor_id) -> Professor:
        professor = db.session.get(Professor, professor_id)
        if professor is None:
            raise NotFoundError('Professor not found', resource='professor')
        return professor

    @staticmethod
    def user_payload(user: User) -> dict:
        """Public view of an account, with its profile id when it has one."""
        data = {
            'userId': user.user_id,
            'name': user.name,
            'email': user.email,
            'role': user.role.value,
            'avatar': user.avatar,
        }
        if user.student_profile is not None:
            data['studentId'] = user.student_profile.student_id
            data['uniqueCode'] = user.student_profile.unique_code
            data['level'] = user.student_profile.level
        if user.professor_profile is not None:
            data['professorId'] = user.professor_profile.professor_id
        return data
