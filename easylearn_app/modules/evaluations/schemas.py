from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ...core.error_handlers import ValidationError
from ...models import Evaluation, Student
from ...utils.time_utils import isoformat


def _level(value, key, errors) -> Optional[str]:
    if value in (None, ''):
        return None
    level = str(value).strip().upper()
    if level not in Student.LEVELS:
        errors[key] = f'One of {", ".join(Student.LEVELS)}'
        return None
    return level


def _string_list(value, key, errors) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        errors[key] = 'Must be a list of strings'
        return []
    return value


@dataclass
class EvaluationCreateDTO:
    student_id: int
    language: str
    scores: Dict[str, int]
    room_id: Optional[int] = None
    assigned_level: Optional[str] = None
    feedback: Optional[str] = None
    strengths: List[str] = field(default_factory=list)
    areas_to_improve: List[str] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: dict) -> 'EvaluationCreateDTO':
        errors = {}
        student_id = payload.get('studentId')
        if not isinstance(student_id, int) or isinstance(student_id, bool):
            errors['studentId'] = 'Student ID is required'
        room_id = payload.get('roomId')
        if room_id is not None and (not isinstance(room_id, int) or isinstance(room_id, bool)):
            errors['roomId'] = 'Must be an integer'
        if not str(payload.get('language') or '').strip():
            errors['language'] = 'Language is required'

        scores = {}
        for skill in Evaluation.SKILLS:
            value = payload.get(skill)
            if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 100:
                errors[skill] = 'Must be an integer between 0 and 100'
            else:
                scores[skill] = value

        dto = cls(
            student_id=student_id,
            language=str(payload.get('language') or '').strip(),
            scores=scores,
            room_id=room_id,
            assigned_level=_level(payload.get('assignedLevel'), 'assignedLevel', errors),
            feedback=payload.get('feedback'),
            strengths=_string_list(payload.get('strengths'), 'strengths', errors),
            areas_to_improve=_string_list(payload.get('areasToImprove'), 'areasToImprove', errors),
        )
        if errors:
            raise ValidationError('Invalid evaluation data', errors)
        return dto


def parse_level_update(payload: dict):
    errors = {}
    student_id = payload.get('studentId')
    if not isinstance(student_id, int) or isinstance(student_id, bool):
        errors['studentId'] = 'Student ID is required'
    level = _level(payload.get('newLevel'), 'newLevel', errors)
    if level is None and 'newLevel' not in errors:
        errors['newLevel'] = 'This field is required'
    if errors:
        raise ValidationError('Invalid level update', errors)
    return student_id, level


def evaluation_to_dict(evaluation) -> dict:
    student = evaluation.student
    professor = evaluation.professor
    data = {
        'id': evaluation.evaluation_id,
        'studentId': evaluation.student_id,
        'studentName': student.name if student else None,
        'studentAvatar': student.user.avatar if student and student.user else None,
        'professorId': evaluation.professor_id,
        'professorName': professor.name if professor else None,
        'roomId': evaluation.room_id,
        'language': evaluation.language,
        'overallScore': evaluation.overall_score,
        'assignedLevel': evaluation.assigned_level,
        'previousLevel': evaluation.previous_level,
        'feedback': evaluation.feedback,
        'strengths': evaluation.strengths or [],
        'areasToImprove': evaluation.areas_to_improve or [],
        'createdAt': isoformat(evaluation.created_at),
        'updatedAt': isoformat(evaluation.updated_at),
    }
    for skill in Evaluation.SKILLS:
        data[skill] = getattr(evaluation, skill)
    return data
