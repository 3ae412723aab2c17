from dataclasses import dataclass, field
from typing import List, Optional

from ...core.error_handlers import ValidationError
from ...models import Student
from .config import AuthModuleDefaultConfig


def _require(payload: dict, keys) -> None:
    errors = {key: 'This field is required' for key in keys if not str(payload.get(key) or '').strip()}
    if errors:
        raise ValidationError('Missing required fields', errors)


def _check_password(password: str) -> None:
    if len(password) < AuthModuleDefaultConfig.MIN_PASSWORD_LENGTH:
        raise ValidationError(
            'Password is too short',
            {'password': f'At least {AuthModuleDefaultConfig.MIN_PASSWORD_LENGTH} characters'},
        )


def _token(payload: dict) -> Optional[str]:
    token = str(payload.get('accessToken') or '').strip()
    return token or None


@dataclass
class StudentRegistrationDTO:
    access_token: Optional[str]
    name: str
    password: str
    nickname: str
    level: str
    unique_code: str
    bio: Optional[str] = None
    avatar: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: dict, require_token: bool = True) -> 'StudentRegistrationDTO':
        """Admins create accounts directly and pass require_token=False."""
        required = ('name', 'password', 'nickname', 'level', 'uniqueCode')
        _require(payload, (('accessToken',) + required) if require_token else required)
        _check_password(payload['password'])
        level = str(payload['level']).strip().upper()
        if level not in Student.LEVELS:
            raise ValidationError('Unknown level', {'level': f'One of {", ".join(Student.LEVELS)}'})
        return cls(
            access_token=_token(payload),
            name=payload['name'].strip(),
            password=payload['password'],
            nickname=payload['nickname'].strip(),
            level=level,
            unique_code=payload['uniqueCode'].strip(),
            bio=payload.get('bio'),
            avatar=payload.get('avatar'),
        )


@dataclass
class StaffRegistrationDTO:
    """Professor or admin sign-up: both log in with an email."""

    access_token: Optional[str]
    name: str
    email: str
    password: str
    bio: Optional[str] = None
    avatar: Optional[str] = None
    specialization: Optional[str] = None
    languages: List[str] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: dict, require_token: bool = True) -> 'StaffRegistrationDTO':
        required = ('name', 'email', 'password')
        _require(payload, (('accessToken',) + required) if require_token else required)
        _check_password(payload['password'])
        email = payload['email'].strip().lower()
        if '@' not in email:
            raise ValidationError('Invalid email', {'email': 'Not an email address'})
        return cls(
            access_token=_token(payload),
            name=payload['name'].strip(),
            email=email,
            password=payload['password'],
            bio=payload.get('bio'),
            avatar=payload.get('avatar'),
            specialization=payload.get('specialization'),
            languages=list(payload.get('languages') or []),
        )
