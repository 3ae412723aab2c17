"""
Room Service - the room lifecycle and participant bookkeeping.

A room moves SCHEDULED -> LIVE -> COMPLETED and never backwards. Every status
write goes through ``_advance``, a conditional UPDATE on the expected current
status, so two requests racing on the same room cannot both win a transition.
"""
import logging
import uuid

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ....core.error_handlers import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    ProviderError,
)
from ....core.signals import room_ended, room_started
from ....models import (
    Evaluation,
    ProviderToken,
    Quiz,
    Role,
    Room,
    RoomParticipant,
    RoomStatus,
    SessionSummary,
    Student,
    db,
)
from ....utils.pagination import apply_sort, get_pagination_data
from ....utils.time_utils import isoformat, utcnow
from ...access_control.logics.policies import RoleDispatch, allow, ignore
from ...auth.services.identity_service import IdentityService
from ..config import RoomsModuleDefaultConfig
from ..logics.room_state import (
    is_forward_transition,
    is_join_window_open,
    should_auto_complete,
)
from .video_provider import get_video_provider

logger = logging.getLogger(__name__)


def _window_minutes() -> int:
    return current_app.config.get('ROOM_JOIN_WINDOW_MINUTES', 15)


# --- Role handlers -------------------------------------------------------

def _professor_is_assigned(room, user):
    professor = IdentityService.professor_for_user(user)
    if room.professor_id is None or room.professor_id != professor.professor_id:
        raise AuthorizationError('You are not assigned to this room')
    return True


def _student_is_invited(room, user):
    student = IdentityService.student_for_user(user)
    participant = RoomService.find_participant(room.room_id, student.student_id)
    if participant is None or not participant.invited:
        raise AuthorizationError('You are not invited to this room')
    return True


def _student_may_not_manage(room, user):
    raise AuthorizationError('Students cannot manage rooms')


def _mark_joined(room, user):
    student = IdentityService.student_for_user(user)
    participant = RoomService.find_participant(room.room_id, student.student_id)
    if participant is None:
        raise NotFoundError('Participant not found', resource='participant')
    if participant.joined_at is None:
        participant.joined_at = utcnow()
        student.total_sessions = (student.total_sessions or 0) + 1
        logger.info("Student %s joined room %s", student.student_id, room.room_id)


def _mark_left(room, user):
    student = IdentityService.student_for_user(user)
    participant = RoomService.find_participant(room.room_id, student.student_id)
    if participant is not None and participant.left_at is None:
        participant.left_at = utcnow()
        logger.info("Student %s left room %s", student.student_id, room.room_id)


def _rooms_of_professor(user):
    professor = IdentityService.professor_for_user(user)
    return Room.query.filter(Room.professor_id == professor.professor_id)


def _rooms_of_student(user):
    student = IdentityService.student_for_user(user)
    return Room.query.join(RoomParticipant, RoomParticipant.room_id == Room.room_id).filter(
        RoomParticipant.student_id == student.student_id,
        RoomParticipant.invited.is_(True),
    )


# Membership check of canJoin, after the window and status checks
JOIN_POLICY = RoleDispatch('can_join', {
    Role.ADMIN: allow,
    Role.PROFESSOR: _professor_is_assigned,
    Role.STUDENT: _student_is_invited,
})

# Only students are tracked as participants
RECORD_JOIN = RoleDispatch('record_join', {
    Role.ADMIN: ignore,
    Role.PROFESSOR: ignore,
    Role.STUDENT: _mark_joined,
})

# Only members may leave, so an outsider cannot complete a room
LEAVE_POLICY = RoleDispatch('can_leave', {
    Role.ADMIN: allow,
    Role.PROFESSOR: _professor_is_assigned,
    Role.STUDENT: _student_is_invited,
})

RECORD_LEAVE = RoleDispatch('record_leave', {
    Role.ADMIN: ignore,
    Role.PROFESSOR: ignore,
    Role.STUDENT: _mark_left,
})

MANAGE_POLICY = RoleDispatch('manage_room', {
    Role.ADMIN: allow,
    Role.PROFESSOR: _professor_is_assigned,
    Role.STUDENT: _student_may_not_manage,
})

CAN_PUBLISH = RoleDispatch('can_publish', {
    Role.ADMIN: lambda: True,
    Role.PROFESSOR: lambda: True,
    Role.STUDENT: lambda: False,
})

MY_ROOMS = RoleDispatch('my_rooms', {
    Role.ADMIN: lambda user: Room.query,
    Role.PROFESSOR: _rooms_of_professor,
    Role.STUDENT: _rooms_of_student,
})


class RoomService:
    """Room lifecycle operations. Each public method is one transaction."""

    # --- Lookups ---------------------------------------------------------

    @staticmethod
    def get_room(room_id) -> Room:
        room = db.session.get(Room, room_id)
        if room is None:
            raise NotFoundError('Room not found', resource='room')
        return room

    @staticmethod
    def find_participant(room_id, student_id):
        return RoomParticipant.query.filter_by(room_id=room_id, student_id=student_id).first()

    @staticmethod
    def get_participant(room_id, student_id) -> RoomParticipant:
        participant = RoomService.find_participant(room_id, student_id)
        if participant is None:
            raise NotFoundError('Participant not found', resource='participant')
        return participant

    @staticmethod
    def active_participant_count(room_id) -> int:
        return RoomParticipant.query.filter(
            RoomParticipant.room_id == room_id,
            RoomParticipant.joined_at.isnot(None),
            RoomParticipant.left_at.is_(None),
        ).count()

    @staticmethod
    def ensure_can_manage(room, user) -> None:
        MANAGE_POLICY(user.role, room, user)

    # --- Status writes ---------------------------------------------------

    @staticmethod
    def _advance(room, expected: RoomStatus, target: RoomStatus) -> bool:
        """Move ``room`` from ``expected`` to ``target`` if nobody beat us to it."""
        if not is_forward_transition(expected, target):
            raise InvalidStateError(f'Room cannot move from {expected.value} to {target.value}')
        changed = (
            Room.query
            .filter(Room.room_id == room.room_id, Room.status == expected)
            .update({Room.status: target}, synchronize_session=False)
        )
        db.session.expire(room, ['status'])
        return changed == 1

    @staticmethod
    def _ensure_external_name(room) -> str:
        # Assigned once, then stable for the life of the room
        if not room.external_room_name:
            room.external_room_name = f"room-{uuid.uuid4()}"
        return room.external_room_name

    @staticmethod
    def _provision(room) -> None:
        name = RoomService._ensure_external_name(room)
        try:
            get_video_provider().create_room(name, room.max_students)
        except ProviderError:
            db.session.rollback()
            logger.error("Provisioning video room %s failed, room %s unchanged", name, room.room_id)
            raise

    # --- CRUD ------------------------------------------------------------

    @staticmethod
    def create(dto, created_by=None) -> Room:
        professor_id = dto.professor_id
        if professor_id is not None:
            IdentityService.get_professor(professor_id)
        elif created_by is not None and created_by.role == Role.PROFESSOR:
            professor_id = IdentityService.professor_for_user(created_by).professor_id

        if len(dto.invited_students) > dto.max_students:
            raise InvalidStateError(f'Room is full. Max students: {dto.max_students}')

        room = Room(
            name=dto.name,
            language=dto.language,
            level=dto.level,
            objective=dto.objective,
            scheduled_at=dto.scheduled_at,
            duration=dto.duration,
            max_students=dto.max_students,
            status=RoomStatus.SCHEDULED,
            animator_type=dto.animator_type,
            professor_id=professor_id,
        )
        RoomService._ensure_external_name(room)
        db.session.add(room)

        for student_id in dto.invited_students:
            if db.session.get(Student, student_id) is None:
                db.session.rollback()
                raise NotFoundError(f'Student not found: {student_id}', resource='student')
            db.session.add(RoomParticipant(room=room, student_id=student_id, invited=True))

        db.session.commit()
        logger.info("Room %s created (%d invited)", room.room_id, len(dto.invited_students))
        return room

    @staticmethod
    def update(room_id, dto, user) -> Room:
        room = RoomService.get_room(room_id)
        RoomService.ensure_can_manage(room, user)

        previous = room.status
        status_change = dto.status is not None and dto.status != previous
        if status_change and not is_forward_transition(previous, dto.status):
            raise InvalidStateError(f'Room cannot move from {previous.value} to {dto.status.value}')

        for attr in ('name', 'objective', 'scheduled_at', 'duration', 'max_students'):
            value = getattr(dto, attr)
            if value is not None:
                setattr(room, attr, value)

        if status_change:
            if dto.status == RoomStatus.LIVE:
                RoomService._provision(room)
            if not RoomService._advance(room, previous, dto.status):
                db.session.rollback()
                raise InvalidStateError('Room status changed concurrently, reload and retry')

        db.session.commit()
        if status_change:
            RoomService._announce(room, previous, reason='update')
        return room

    @staticmethod
    def delete(room_id, user) -> None:
        room = RoomService.get_room(room_id)
        RoomService.ensure_can_manage(room, user)

        if room.external_room_name:
            try:
                get_video_provider().delete_room(room.external_room_name)
            except ProviderError as e:
                logger.warning("Could not delete video room %s: %s", room.external_room_name, e.message)

        ProviderToken.query.filter_by(room_id=room.room_id).delete(synchronize_session=False)
        RoomParticipant.query.filter_by(room_id=room.room_id).delete(synchronize_session=False)
        SessionSummary.query.filter_by(room_id=room.room_id).delete(synchronize_session=False)
        Quiz.query.filter_by(session_id=room.room_id).update({Quiz.session_id: None}, synchronize_session=False)
        Evaluation.query.filter_by(room_id=room.room_id).update(
            {Evaluation.room_id: None}, synchronize_session=False
        )
        db.session.delete(room)
        db.session.commit()
        logger.info("Room %s deleted", room_id)

    @staticmethod
    def list_rooms(page=0, size=None, sort_by=None, sort_order=None):
        return RoomService._paginate(Room.query, page, size, sort_by, sort_order)

    @staticmethod
    def my_rooms(user, page=0, size=None, sort_by=None, sort_order=None):
        return RoomService._paginate(MY_ROOMS(user.role, user), page, size, sort_by, sort_order)

    @staticmethod
    def rooms_of_professor(professor_id, page=0, size=None, sort_by=None, sort_order=None):
        query = Room.query.filter(Room.professor_id == professor_id)
        return RoomService._paginate(query, page, size, sort_by, sort_order)

    @staticmethod
    def _paginate(query, page, size, sort_by, sort_order):
        fields = RoomsModuleDefaultConfig.SORT_FIELDS
        column = fields.get(sort_by or RoomsModuleDefaultConfig.DEFAULT_SORT_BY)
        query = apply_sort(
            query,
            Room,
            column,
            sort_order or RoomsModuleDefaultConfig.DEFAULT_SORT_ORDER,
            allowed=set(fields.values()),
            default='scheduled_at',
        )
        return get_pagination_data(query, page, size)

    @staticmethod
    def participants(room_id):
        RoomService.get_room(room_id)
        return (
            RoomParticipant.query
            .filter_by(room_id=room_id)
            .order_by(RoomParticipant.participant_id)
            .all()
        )

    # --- Lifecycle -------------------------------------------------------

    @staticmethod
    def start(room_id, user=None) -> Room:
        room = RoomService.get_room(room_id)
        if user is not None:
            RoomService.ensure_can_manage(room, user)

        if room.status != RoomStatus.SCHEDULED:
            raise InvalidStateError('Room is already LIVE or COMPLETED')
        if not is_join_window_open(room.scheduled_at, utcnow(), _window_minutes()):
            raise InvalidStateError(
                f'Cannot start room before scheduled time. Scheduled at: {isoformat(room.scheduled_at)}'
            )

        # No retry: a provider failure leaves the room SCHEDULED
        RoomService._provision(room)

        if not RoomService._advance(room, RoomStatus.SCHEDULED, RoomStatus.LIVE):
            db.session.rollback()
            raise InvalidStateError('Room is already LIVE or COMPLETED')
        db.session.commit()

        logger.info("Room %s is LIVE (explicit start)", room.room_id)
        room_started.send(current_app._get_current_object(), room_id=room.room_id, trigger='start')
        return room

    @staticmethod
    def can_join(room_id, user) -> bool:
        """Raise unless ``user`` may enter the room now, True otherwise."""
        room = RoomService.get_room(room_id)

        if not is_join_window_open(room.scheduled_at, utcnow(), _window_minutes()):
            raise InvalidStateError(
                f'Cannot join room before scheduled time. Scheduled at: {isoformat(room.scheduled_at)}'
            )
        if room.status == RoomStatus.COMPLETED:
            raise InvalidStateError(f'Room is not available. Status: {room.status.value}')

        return JOIN_POLICY(user.role, room, user)

    @staticmethod
    def record_join(room_id, user) -> None:
        room = RoomService.get_room(room_id)
        RECORD_JOIN(user.role, room, user)
        db.session.commit()

    @staticmethod
    def join(room_id, user) -> None:
        RoomService.can_join(room_id, user)
        RoomService.record_join(room_id, user)

    @staticmethod
    def issue_join_token(room_id, user) -> dict:
        """Provision the video room if needed and hand ``user`` a credential for it.

        The first credential issued for a SCHEDULED room takes it LIVE.
        """
        RoomService.can_join(room_id, user)
        room = RoomService.get_room(room_id)
        provider = get_video_provider()

        RoomService._provision(room)

        went_live = False
        if room.status == RoomStatus.SCHEDULED:
            went_live = RoomService._advance(room, RoomStatus.SCHEDULED, RoomStatus.LIVE)

        identity = f"{user.role.value.lower()}-{user.user_id}"
        try:
            credential = provider.issue_join_token(
                room.external_room_name, identity, user.name, CAN_PUBLISH(user.role)
            )
        except ProviderError:
            db.session.rollback()
            raise

        db.session.add(ProviderToken(
            user_id=user.user_id,
            room_id=room.room_id,
            token=credential.token,
            identity=credential.identity,
            expires_at=credential.expires_at,
        ))
        db.session.commit()

        if went_live:
            logger.info("Room %s is LIVE (first join token)", room.room_id)
            room_started.send(current_app._get_current_object(), room_id=room.room_id, trigger='join_token')

        return {
            'token': credential.token,
            'identity': credential.identity,
            'roomName': room.external_room_name,
            'serverUrl': provider.server_url,
            'expiresAt': isoformat(credential.expires_at),
        }

    @staticmethod
    def end(room_id, user=None) -> Room:
        room = RoomService.get_room(room_id)
        if user is not None:
            RoomService.ensure_can_manage(room, user)

        if room.status != RoomStatus.LIVE or not RoomService._advance(room, RoomStatus.LIVE, RoomStatus.COMPLETED):
            db.session.rollback()
            raise InvalidStateError('Room is not live')
        db.session.commit()

        logger.info("Room %s COMPLETED (explicit end)", room.room_id)
        RoomService._send_ended(room, reason='explicit')
        return room

    @staticmethod
    def leave(room_id, user) -> Room:
        room = RoomService.get_room(room_id)
        LEAVE_POLICY(user.role, room, user)
        RECORD_LEAVE(user.role, room, user)
        # Applies whoever left, professors included
        RoomService.recompute_room_status(room.room_id)
        return room

    @staticmethod
    def recompute_room_status(room_id) -> bool:
        """Complete a LIVE room that has no active participant left.

        Idempotent: returns True only for the call that made the transition.
        """
        room = RoomService.get_room(room_id)
        active = RoomService.active_participant_count(room_id)
        completed = False
        if should_auto_complete(room.status, active):
            completed = RoomService._advance(room, RoomStatus.LIVE, RoomStatus.COMPLETED)
        db.session.commit()

        if completed:
            logger.info("Room %s COMPLETED automatically, no active participants left", room_id)
            RoomService._send_ended(room, reason='last_participant_left')
        return completed

    @staticmethod
    def _send_ended(room, reason) -> None:
        room_ended.send(
            current_app._get_current_object(),
            room_id=room.room_id,
            professor_id=room.professor_id,
            reason=reason,
        )

    @staticmethod
    def _announce(room, previous, reason) -> None:
        if previous == RoomStatus.SCHEDULED and room.status == RoomStatus.LIVE:
            room_started.send(current_app._get_current_object(), room_id=room.room_id, trigger=reason)
        elif room.status == RoomStatus.COMPLETED:
            RoomService._send_ended(room, reason=reason)

    # --- Participant flags -----------------------------------------------

    @staticmethod
    def mute(room_id, student_id, muted, user) -> RoomParticipant:
        room = RoomService.get_room(room_id)
        RoomService.ensure_can_manage(room, user)
        participant = RoomService.get_participant(room_id, student_id)
        participant.is_muted = bool(muted)
        db.session.commit()
        return participant

    @staticmethod
    def ping(room_id, student_id, user) -> RoomParticipant:
        room = RoomService.get_room(room_id)
        RoomService.ensure_can_manage(room, user)
        participant = RoomService.get_participant(room_id, student_id)
        participant.is_pinged = True
        participant.pinged_at = utcnow()
        db.session.commit()
        return participant

    @staticmethod
    def clear_ping(room_id, student_id, user) -> RoomParticipant:
        room = RoomService.get_room(room_id)
        if user.role == Role.STUDENT:
            if IdentityService.student_for_user(user).student_id != student_id:
                raise AuthorizationError('You can only clear your own ping')
        else:
            RoomService.ensure_can_manage(room, user)
        participant = RoomService.get_participant(room_id, student_id)
        participant.is_pinged = False
        participant.pinged_at = None
        db.session.commit()
        return participant

    @staticmethod
    def invite(room_id, student_id, user) -> RoomParticipant:
        """Add a student to a room after creation."""
        room = RoomService.get_room(room_id)
        RoomService.ensure_can_manage(room, user)
        IdentityService.get_student(student_id)
        participant = RoomService.find_participant(room_id, student_id)
        if participant is not None:
            participant.invited = True
            db.session.commit()
            return participant

        invited = RoomParticipant.query.filter(
            RoomParticipant.room_id == room_id,
            RoomParticipant.invited.is_(True),
        ).count()
        if invited >= room.max_students:
            raise InvalidStateError(f'Room is full. Max students: {room.max_students}')

        participant = RoomParticipant(room_id=room_id, student_id=student_id, invited=True)
        db.session.add(participant)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            participant = RoomService.get_participant(room_id, student_id)
        return participant
