from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ...core.error_handlers import ValidationError
from ...models import SessionSummary
from ...utils.time_utils import isoformat

# Public payload keys of the list and score columns
LIST_KEYS = {
    'keyTopics': 'key_topics',
    'vocabularyCovered': 'vocabulary_covered',
    'grammarPoints': 'grammar_points',
    'strengths': 'strengths',
    'areasToImprove': 'areas_to_improve',
    'recommendations': 'recommendations',
}
SCORE_KEYS = {
    'overallScore': 'overall_score',
    'pronunciationScore': 'pronunciation_score',
    'grammarScore': 'grammar_score',
    'vocabularyScore': 'vocabulary_score',
    'fluencyScore': 'fluency_score',
    'participationScore': 'participation_score',
}


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass
class SummaryDTO:
    room_id: int
    summary: str
    lists: Dict[str, List[str]] = field(default_factory=dict)
    scores: Dict[str, Optional[int]] = field(default_factory=dict)
    next_session_focus: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: dict) -> 'SummaryDTO':
        errors = {}
        room_id = payload.get('roomId')
        if not _is_int(room_id):
            errors['roomId'] = 'Room ID is required'
        text = str(payload.get('summary') or '').strip()
        if not text:
            errors['summary'] = 'Summary is required'

        lists = {}
        for key, column in LIST_KEYS.items():
            value = payload.get(key)
            if value is None:
                lists[column] = []
            elif isinstance(value, list) and all(isinstance(v, str) for v in value):
                lists[column] = value
            else:
                errors[key] = 'Must be a list of strings'

        scores = {}
        for key, column in SCORE_KEYS.items():
            value = payload.get(key)
            if value is None:
                scores[column] = None
            elif _is_int(value) and 0 <= value <= 100:
                scores[column] = value
            else:
                errors[key] = 'Must be an integer between 0 and 100'

        if errors:
            raise ValidationError('Invalid session summary', errors)
        return cls(
            room_id=room_id,
            summary=text,
            lists=lists,
            scores=scores,
            next_session_focus=payload.get('nextSessionFocus'),
        )


def parse_room_ids(payload) -> List[int]:
    """Accept either a bare JSON list or ``{"roomIds": [...]}``."""
    room_ids = payload.get('roomIds') if isinstance(payload, dict) else payload
    if not isinstance(room_ids, list) or not all(_is_int(i) for i in room_ids):
        raise ValidationError('Invalid room ids', {'roomIds': 'Must be a list of room ids'})
    return room_ids


def summary_to_dict(summary: SessionSummary) -> dict:
    room = summary.room
    professor = summary.professor
    data = {
        'id': summary.summary_id,
        'roomId': summary.room_id,
        'roomName': room.name if room else None,
        'professorId': summary.professor_id,
        'professorName': professor.name if professor else None,
        'summary': summary.summary,
        'nextSessionFocus': summary.next_session_focus,
        'createdAt': isoformat(summary.created_at),
        'updatedAt': isoformat(summary.updated_at),
    }
    for key, column in LIST_KEYS.items():
        data[key] = getattr(summary, column) or []
    for key, column in SCORE_KEYS.items():
        data[key] = getattr(summary, column)
    return data
