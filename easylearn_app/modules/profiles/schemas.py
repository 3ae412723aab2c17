from dataclasses import dataclass
from typing import List, Optional

from ...core.error_handlers import ValidationError
from ...models import Professor, Student
from ...utils.time_utils import isoformat


def _optional_text(payload, key, errors) -> Optional[str]:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        errors[key] = 'Must be a string'
        return None
    return value.strip()


@dataclass
class StudentUpdateDTO:
    """Partial update: None leaves the field unchanged."""

    name: Optional[str] = None
    avatar: Optional[str] = None
    nickname: Optional[str] = None
    level: Optional[str] = None
    bio: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: dict) -> 'StudentUpdateDTO':
        errors = {}
        dto = cls(
            name=_optional_text(payload, 'name', errors),
            avatar=_optional_text(payload, 'avatar', errors),
            nickname=_optional_text(payload, 'nickname', errors),
            level=_optional_text(payload, 'level', errors),
            bio=_optional_text(payload, 'bio', errors),
        )
        if dto.name == '':
            errors['name'] = 'Must not be blank'
        if dto.nickname == '':
            errors['nickname'] = 'Must not be blank'
        if dto.level is not None:
            dto.level = dto.level.upper()
            if dto.level not in Student.LEVELS:
                errors['level'] = f'One of {", ".join(Student.LEVELS)}'
        if errors:
            raise ValidationError('Invalid student data', errors)
        return dto


@dataclass
class ProfessorUpdateDTO:
    name: Optional[str] = None
    avatar: Optional[str] = None
    bio: Optional[str] = None
    specialization: Optional[str] = None
    languages: Optional[List[str]] = None

    @classmethod
    def from_payload(cls, payload: dict) -> 'ProfessorUpdateDTO':
        errors = {}
        languages = payload.get('languages')
        if languages is not None and (
            not isinstance(languages, list) or not all(isinstance(v, str) for v in languages)
        ):
            errors['languages'] = 'Must be a list of strings'
            languages = None
        dto = cls(
            name=_optional_text(payload, 'name', errors),
            avatar=_optional_text(payload, 'avatar', errors),
            bio=_optional_text(payload, 'bio', errors),
            specialization=_optional_text(payload, 'specialization', errors),
            languages=languages,
        )
        if dto.name == '':
            errors['name'] = 'Must not be blank'
        if errors:
            raise ValidationError('Invalid professor data', errors)
        return dto


def parse_id_list(payload, key) -> List[int]:
    """Accept either a bare JSON list or ``{key: [...]}``."""
    ids = payload.get(key) if isinstance(payload, dict) else payload
    if not isinstance(ids, list) or not all(isinstance(i, int) and not isinstance(i, bool) for i in ids):
        raise ValidationError('Invalid ids', {key: 'Must be a list of ids'})
    return ids


def student_to_dict(student: Student) -> dict:
    user = student.user
    return {
        'id': student.student_id,
        'userId': student.user_id,
        'name': student.name,
        'email': user.email if user else None,
        'avatar': user.avatar if user else None,
        'nickname': student.nickname,
        'bio': student.bio,
        'level': student.level,
        'uniqueCode': student.unique_code,
        'totalSessions': student.total_sessions,
        'joinedAt': isoformat(student.joined_at),
        'createdAt': isoformat(student.created_at),
    }


def professor_to_dict(professor: Professor) -> dict:
    user = professor.user
    return {
        'id': professor.professor_id,
        'userId': professor.user_id,
        'name': professor.name,
        'email': user.email if user else None,
        'avatar': user.avatar if user else None,
        'bio': professor.bio,
        'languages': professor.languages or [],
        'specialization': professor.specialization,
        'joinedAt': isoformat(professor.joined_at),
        'createdAt': isoformat(professor.created_at),
    }
