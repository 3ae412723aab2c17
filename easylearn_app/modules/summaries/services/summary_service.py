"""
Summary Service - the professor's recap of a room.

There is at most one summary per room. Writing again replaces the previous
text, lists and scores instead of adding a second row.
"""
import logging

from sqlalchemy.exc import IntegrityError

from ....core.error_handlers import AuthorizationError, InvalidStateError, NotFoundError
from ....models import Room, RoomParticipant, SessionSummary, db
from ....utils.db_errors import is_unique_violation
from ...auth.services.identity_service import IdentityService

logger = logging.getLogger(__name__)


def _newest_first(query):
    return query.order_by(SessionSummary.created_at.desc(), SessionSummary.summary_id.desc())


class SummaryService:

    @staticmethod
    def create_or_update(user, dto) -> SessionSummary:
        room = db.session.get(Room, dto.room_id)
        if room is None:
            raise NotFoundError('Room not found', resource='room')
        professor = IdentityService.professor_for_user(user)
        if room.professor_id is not None and room.professor_id != professor.professor_id:
            raise AuthorizationError('You are not the professor of this session')

        summary = SessionSummary.query.filter_by(room_id=room.room_id).first()
        created = summary is None
        if created:
            summary = SessionSummary(room_id=room.room_id)
            db.session.add(summary)

        summary.professor_id = professor.professor_id
        summary.summary = dto.summary
        summary.next_session_focus = dto.next_session_focus
        for column, value in dto.lists.items():
            setattr(summary, column, value)
        for column, value in dto.scores.items():
            setattr(summary, column, value)

        try:
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            if not is_unique_violation(e, 'uq_session_summary_room', 'session_summaries', ('room_id',)):
                raise
            raise InvalidStateError('Another summary for this room was saved first, please retry')

        logger.info(
            "Session summary %s for room %s %s by professor %s",
            summary.summary_id, room.room_id, 'created' if created else 'updated', professor.professor_id,
        )
        return summary

    @staticmethod
    def for_room(room_id) -> SessionSummary:
        summary = SessionSummary.query.filter_by(room_id=room_id).first()
        if summary is None:
            raise NotFoundError('Summary not found for room', resource='summary')
        return summary

    @staticmethod
    def for_rooms(room_ids):
        if not room_ids:
            return []
        return _newest_first(SessionSummary.query.filter(SessionSummary.room_id.in_(room_ids))).all()

    @staticmethod
    def for_professor(user):
        professor = IdentityService.professor_for_user(user)
        return _newest_first(SessionSummary.query.filter_by(professor_id=professor.professor_id)).all()

    @staticmethod
    def for_student(user):
        """Summaries of the rooms the student was invited to."""
        student = IdentityService.student_for_user(user)
        query = SessionSummary.query.join(
            RoomParticipant, RoomParticipant.room_id == SessionSummary.room_id
        ).filter(
            RoomParticipant.student_id == student.student_id,
            RoomParticipant.invited.is_(True),
        )
        return _newest_first(query).all()

    @staticmethod
    def is_pending(room_id) -> bool:
        return SessionSummary.query.filter_by(room_id=room_id).first() is None
