from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from ...core.error_handlers import ValidationError
from ...models import Room, RoomStatus
from ...utils.time_utils import isoformat, parse_datetime


def _positive_int(payload, key, errors, required=True):
    value = payload.get(key)
    if value is None:
        if required:
            errors[key] = 'This field is required'
        return None
    try:
        value = int(value)
    except (TypeError, ValueError):
        errors[key] = 'Must be an integer'
        return None
    if value <= 0:
        errors[key] = 'Must be greater than 0'
        return None
    return value


def _datetime(payload, key, errors, required=True):
    value = payload.get(key)
    if value in (None, ''):
        if required:
            errors[key] = 'This field is required'
        return None
    try:
        return parse_datetime(value)
    except ValueError:
        errors[key] = 'Must be an ISO-8601 timestamp'
        return None


@dataclass
class RoomCreateDTO:
    name: str
    language: str
    scheduled_at: datetime
    duration: int
    max_students: int
    level: Optional[str] = None
    objective: Optional[str] = None
    animator_type: str = Room.ANIMATOR_HUMAN
    professor_id: Optional[int] = None
    invited_students: List[int] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: dict) -> 'RoomCreateDTO':
        errors = {}
        for key in ('name', 'language'):
            if not str(payload.get(key) or '').strip():
                errors[key] = 'This field is required'
        scheduled_at = _datetime(payload, 'scheduledAt', errors)
        duration = _positive_int(payload, 'duration', errors)
        max_students = _positive_int(payload, 'maxStudents', errors)

        invited = payload.get('invitedStudents') or []
        if not isinstance(invited, list) or not all(isinstance(i, int) for i in invited):
            errors['invitedStudents'] = 'Must be a list of student ids'
        elif max_students is not None and len(set(invited)) > max_students:
            errors['invitedStudents'] = f'Cannot invite more than {max_students} students'

        animator_type = str(payload.get('animatorType') or Room.ANIMATOR_HUMAN).upper()
        if animator_type not in (Room.ANIMATOR_HUMAN, Room.ANIMATOR_AI):
            errors['animatorType'] = 'Must be HUMAN or AI'

        if errors:
            raise ValidationError('Invalid room data', errors)

        return cls(
            name=payload['name'].strip(),
            language=payload['language'].strip(),
            scheduled_at=scheduled_at,
            duration=duration,
            max_students=max_students,
            level=payload.get('level'),
            objective=payload.get('objective'),
            animator_type=animator_type,
            professor_id=payload.get('professorId'),
            # Duplicate ids would violate the per-room uniqueness of participants
            invited_students=list(dict.fromkeys(invited)),
        )


@dataclass
class RoomUpdateDTO:
    """Partial update: only the fields present in the payload are applied."""

    name: Optional[str] = None
    objective: Optional[str] = None
    scheduled_at: Optional[datetime] = None
    duration: Optional[int] = None
    max_students: Optional[int] = None
    status: Optional[RoomStatus] = None

    @classmethod
    def from_payload(cls, payload: dict) -> 'RoomUpdateDTO':
        errors = {}
        status = None
        if payload.get('status') is not None:
            try:
                status = RoomStatus(str(payload['status']).upper())
            except ValueError:
                errors['status'] = 'Must be SCHEDULED, LIVE or COMPLETED'

        dto = cls(
            name=payload.get('name'),
            objective=payload.get('objective'),
            scheduled_at=_datetime(payload, 'scheduledAt', errors, required=False),
            duration=_positive_int(payload, 'duration', errors, required=False),
            max_students=_positive_int(payload, 'maxStudents', errors, required=False),
            status=status,
        )
        if errors:
            raise ValidationError('Invalid room data', errors)
        return dto


def room_to_dict(room: Room) -> dict:
    invited = [p.student_id for p in room.participants if p.invited]
    joined = [p.student_id for p in room.participants if p.joined_at is not None]
    professor = room.professor
    return {
        'id': room.room_id,
        'name': room.name,
        'language': room.language,
        'level': room.level,
        'objective': room.objective,
        'scheduledAt': isoformat(room.scheduled_at),
        'duration': room.duration,
        'maxStudents': room.max_students,
        'status': room.status.value,
        'animatorType': room.animator_type,
        'professorId': professor.professor_id if professor else None,
        'professorName': professor.name if professor else None,
        'externalRoomName': room.external_room_name,
        'invitedStudents': invited,
        'joinedStudents': joined,
        'participantsCount': len(joined),
        'createdAt': isoformat(room.created_at),
        'updatedAt': isoformat(room.updated_at),
    }


def participant_to_dict(participant) -> dict:
    student = participant.student
    return {
        'id': participant.participant_id,
        'roomId': participant.room_id,
        'studentId': participant.student_id,
        'studentName': student.name if student else None,
        'studentAvatar': student.user.avatar if student and student.user else None,
        'invited': participant.invited,
        'joinedAt': isoformat(participant.joined_at),
        'leftAt': isoformat(participant.left_at),
        'isActive': participant.is_active,
        'isMuted': participant.is_muted,
        'isCameraOn': participant.is_camera_on,
        'isScreenSharing': participant.is_screen_sharing,
        'handRaised': participant.hand_raised,
        'isPinged': participant.is_pinged,
        'pingedAt': isoformat(participant.pinged_at),
    }
