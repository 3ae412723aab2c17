"""
Tests for the room lifecycle

Tests cover:
- Explicit start guards (double start, too early, provider failure)
- canJoin window, status and membership checks
- Automatic completion when the last participant leaves
- Monotonic status updates
"""

from datetime import timedelta

import pytest

from easylearn_app import db
from easylearn_app.core.error_handlers import AuthorizationError, InvalidStateError, ProviderError
from easylearn_app.core.signals import room_ended, room_started
from easylearn_app.models import ProviderToken, Room, RoomParticipant, RoomStatus
from easylearn_app.modules.rooms.logics.room_state import (
    is_forward_transition,
    is_join_window_open,
    next_status,
    should_auto_complete,
)
from easylearn_app.modules.rooms.schemas import RoomCreateDTO, RoomUpdateDTO
from easylearn_app.modules.rooms.services import RoomService
from easylearn_app.modules.rooms.tasks import delete_expired_provider_tokens
from easylearn_app.utils.time_utils import utcnow


@pytest.fixture
def captured_signals(app):
    events = []

    def _started(sender, **extra):
        events.append(('started', extra))

    def _ended(sender, **extra):
        events.append(('ended', extra))

    room_started.connect(_started, app)
    room_ended.connect(_ended, app)
    yield events
    room_started.disconnect(_started, app)
    room_ended.disconnect(_ended, app)


class TestRoomStateRules:
    """Pure status and window rules."""

    def test_next_status_walks_forward(self):
        assert next_status(RoomStatus.SCHEDULED) == RoomStatus.LIVE
        assert next_status(RoomStatus.LIVE) == RoomStatus.COMPLETED
        assert next_status(RoomStatus.COMPLETED) is None

    def test_only_immediate_next_is_forward(self):
        assert is_forward_transition(RoomStatus.SCHEDULED, RoomStatus.LIVE)
        assert not is_forward_transition(RoomStatus.SCHEDULED, RoomStatus.COMPLETED)
        assert not is_forward_transition(RoomStatus.LIVE, RoomStatus.SCHEDULED)
        assert not is_forward_transition(RoomStatus.COMPLETED, RoomStatus.LIVE)

    def test_join_window_opens_fifteen_minutes_early(self):
        now = utcnow()
        assert is_join_window_open(now + timedelta(minutes=14), now, 15)
        assert is_join_window_open(now + timedelta(minutes=15), now, 15)
        assert not is_join_window_open(now + timedelta(minutes=16), now, 15)
        assert is_join_window_open(now - timedelta(hours=3), now, 15)

    def test_auto_complete_only_live_and_empty(self):
        assert should_auto_complete(RoomStatus.LIVE, 0)
        assert not should_auto_complete(RoomStatus.LIVE, 1)
        assert not should_auto_complete(RoomStatus.SCHEDULED, 0)
        assert not should_auto_complete(RoomStatus.COMPLETED, 0)


class TestStartRoom:

    def test_start_moves_room_live_and_provisions(self, app, video, make_professor, make_room, captured_signals):
        prof = make_professor()
        room = make_room(prof)

        RoomService.start(room.room_id, prof)

        room = db.session.get(Room, room.room_id)
        assert room.status == RoomStatus.LIVE
        assert room.external_room_name.startswith('room-')
        assert ('create_room', room.external_room_name, room.max_students) in video.calls
        assert captured_signals == [('started', {'room_id': room.room_id, 'trigger': 'start'})]

    def test_double_start_is_rejected(self, app, video, make_professor, make_room):
        prof = make_professor()
        room = make_room(prof)
        RoomService.start(room.room_id, prof)

        with pytest.raises(InvalidStateError) as excinfo:
            RoomService.start(room.room_id, prof)
        assert excinfo.value.message == 'Room is already LIVE or COMPLETED'
        assert [call[0] for call in video.calls].count('create_room') == 1

    def test_start_too_early_is_rejected(self, app, make_professor, make_room):
        prof = make_professor()
        room = make_room(prof, starts_in=timedelta(hours=2))

        with pytest.raises(InvalidStateError) as excinfo:
            RoomService.start(room.room_id, prof)
        assert excinfo.value.message.startswith('Cannot start room before scheduled time')
        assert db.session.get(Room, room.room_id).status == RoomStatus.SCHEDULED

    def test_provider_failure_leaves_room_scheduled(self, app, video, make_professor, make_room):
        prof = make_professor()
        room = make_room(prof)
        video.fail_on.add('create_room')

        with pytest.raises(ProviderError):
            RoomService.start(room.room_id, prof)

        db.session.expire_all()
        assert db.session.get(Room, room.room_id).status == RoomStatus.SCHEDULED

    def test_unassigned_professor_cannot_start(self, app, make_professor, make_room):
        owner = make_professor('Owner')
        other = make_professor('Other')
        room = make_room(owner)

        with pytest.raises(AuthorizationError):
            RoomService.start(room.room_id, other)


class TestCanJoin:

    def test_invited_student_can_join_inside_window(self, app, make_professor, make_student, make_room):
        student = make_student()
        room = make_room(make_professor(), students=[student])
        assert RoomService.can_join(room.room_id, student) is True

    def test_join_before_window_is_rejected(self, app, make_professor, make_student, make_room):
        student = make_student()
        room = make_room(make_professor(), students=[student], starts_in=timedelta(minutes=30))

        with pytest.raises(InvalidStateError) as excinfo:
            RoomService.can_join(room.room_id, student)
        assert 'Cannot join room before scheduled time' in excinfo.value.message

    def test_completed_room_is_not_available(self, app, make_professor, make_student, make_room):
        student = make_student()
        room = make_room(make_professor(), students=[student], status=RoomStatus.COMPLETED)

        with pytest.raises(InvalidStateError) as excinfo:
            RoomService.can_join(room.room_id, student)
        assert excinfo.value.message == 'Room is not available. Status: COMPLETED'

    def test_uninvited_student_is_unauthorized(self, app, make_professor, make_student, make_room):
        room = make_room(make_professor(), students=[make_student('Invited')])
        outsider = make_student('Outsider')

        with pytest.raises(AuthorizationError) as excinfo:
            RoomService.can_join(room.room_id, outsider)
        assert excinfo.value.message == 'You are not invited to this room'

    def test_other_professor_is_unauthorized(self, app, make_professor, make_room):
        room = make_room(make_professor('Owner'))

        with pytest.raises(AuthorizationError) as excinfo:
            RoomService.can_join(room.room_id, make_professor('Other'))
        assert excinfo.value.message == 'You are not assigned to this room'

    def test_admin_can_always_join(self, app, make_admin, make_room):
        room = make_room()
        assert RoomService.can_join(room.room_id, make_admin()) is True


class TestJoinAndLeave:

    def test_first_join_stamps_and_counts_session(self, app, make_professor, make_student, make_room):
        student = make_student()
        room = make_room(make_professor(), students=[student])

        RoomService.join(room.room_id, student)
        first = RoomService.get_participant(room.room_id, student.student_profile.student_id).joined_at
        RoomService.join(room.room_id, student)

        participant = RoomService.get_participant(room.room_id, student.student_profile.student_id)
        assert participant.joined_at == first
        assert student.student_profile.total_sessions == 1

    def test_last_participant_leaving_completes_room(self, app, make_professor, make_student, make_room,
                                                     captured_signals):
        prof = make_professor()
        alice = make_student('Alice')
        bob = make_student('Bob')
        room = make_room(prof, students=[alice, bob])
        RoomService.start(room.room_id, prof)
        RoomService.join(room.room_id, alice)
        RoomService.join(room.room_id, bob)

        RoomService.leave(room.room_id, alice)
        assert db.session.get(Room, room.room_id).status == RoomStatus.LIVE

        RoomService.leave(room.room_id, bob)
        assert db.session.get(Room, room.room_id).status == RoomStatus.COMPLETED
        assert captured_signals[-1] == ('ended', {
            'room_id': room.room_id,
            'professor_id': prof.professor_profile.professor_id,
            'reason': 'last_participant_left',
        })

    def test_uninvited_student_cannot_leave_and_complete_room(self, app, make_professor, make_student,
                                                              make_room, captured_signals):
        prof = make_professor()
        room = make_room(prof)
        RoomService.start(room.room_id, prof)
        outsider = make_student('Outsider')

        with pytest.raises(AuthorizationError) as excinfo:
            RoomService.leave(room.room_id, outsider)
        assert excinfo.value.message == 'You are not invited to this room'
        assert db.session.get(Room, room.room_id).status == RoomStatus.LIVE
        assert [name for name, _ in captured_signals] == ['started']

    def test_unassigned_professor_cannot_leave_and_complete_room(self, app, make_professor, make_room):
        owner = make_professor('Owner')
        room = make_room(owner)
        RoomService.start(room.room_id, owner)

        with pytest.raises(AuthorizationError) as excinfo:
            RoomService.leave(room.room_id, make_professor('Other'))
        assert excinfo.value.message == 'You are not assigned to this room'
        assert db.session.get(Room, room.room_id).status == RoomStatus.LIVE

    def test_recompute_is_idempotent(self, app, make_professor, make_room, captured_signals):
        prof = make_professor()
        room = make_room(prof)
        RoomService.start(room.room_id, prof)

        assert RoomService.recompute_room_status(room.room_id) is True
        assert RoomService.recompute_room_status(room.room_id) is False
        assert [name for name, _ in captured_signals] == ['started', 'ended']

    def test_end_requires_live_room(self, app, make_professor, make_room):
        prof = make_professor()
        room = make_room(prof)

        with pytest.raises(InvalidStateError) as excinfo:
            RoomService.end(room.room_id, prof)
        assert excinfo.value.message == 'Room is not live'

        RoomService.start(room.room_id, prof)
        RoomService.end(room.room_id, prof)
        assert db.session.get(Room, room.room_id).status == RoomStatus.COMPLETED


class TestJoinToken:

    def test_first_token_takes_room_live(self, app, video, make_professor, make_student, make_room,
                                         captured_signals):
        student = make_student()
        room = make_room(make_professor(), students=[student])

        credential = RoomService.issue_join_token(room.room_id, student)

        room = db.session.get(Room, room.room_id)
        assert room.status == RoomStatus.LIVE
        assert credential['roomName'] == room.external_room_name
        assert credential['identity'] == f'student-{student.user_id}'
        assert credential['serverUrl'] == 'wss://video.test'
        assert video.calls[-1] == ('issue_join_token', room.external_room_name, credential['identity'], False)
        assert ProviderToken.query.filter_by(room_id=room.room_id).count() == 1
        assert captured_signals == [('started', {'room_id': room.room_id, 'trigger': 'join_token'})]

    def test_professor_token_can_publish(self, app, video, make_professor, make_room):
        prof = make_professor()
        room = make_room(prof)

        RoomService.issue_join_token(room.room_id, prof)
        assert video.calls[-1][-1] is True

    def test_provider_failure_aborts_token(self, app, video, make_professor, make_room):
        prof = make_professor()
        room = make_room(prof)
        video.fail_on.add('issue_join_token')

        with pytest.raises(ProviderError):
            RoomService.issue_join_token(room.room_id, prof)

        db.session.expire_all()
        assert db.session.get(Room, room.room_id).status == RoomStatus.SCHEDULED
        assert ProviderToken.query.count() == 0


class TestUpdateAndDelete:

    def test_status_only_moves_forward(self, app, make_professor, make_room):
        prof = make_professor()
        room = make_room(prof, status=RoomStatus.LIVE)

        with pytest.raises(InvalidStateError):
            RoomService.update(room.room_id, RoomUpdateDTO(status=RoomStatus.SCHEDULED), prof)
        assert db.session.get(Room, room.room_id).status == RoomStatus.LIVE

    def test_skipping_live_is_rejected(self, app, make_professor, make_room):
        prof = make_professor()
        room = make_room(prof)

        with pytest.raises(InvalidStateError):
            RoomService.update(room.room_id, RoomUpdateDTO(status=RoomStatus.COMPLETED), prof)

    def test_update_fields(self, app, make_professor, make_room):
        prof = make_professor()
        room = make_room(prof)

        RoomService.update(room.room_id, RoomUpdateDTO(name='Renamed', max_students=4), prof)
        room = db.session.get(Room, room.room_id)
        assert room.name == 'Renamed'
        assert room.max_students == 4

    def test_delete_removes_children_even_if_provider_fails(self, app, video, make_professor, make_student,
                                                           make_room):
        prof = make_professor()
        student = make_student()
        room = make_room(prof, students=[student])
        RoomService.issue_join_token(room.room_id, student)
        video.fail_on.add('delete_room')
        room_id = room.room_id

        RoomService.delete(room_id, prof)

        assert db.session.get(Room, room_id) is None
        assert RoomParticipant.query.filter_by(room_id=room_id).count() == 0
        assert ProviderToken.query.filter_by(room_id=room_id).count() == 0

    def test_invite_respects_capacity(self, app, make_professor, make_student, make_room):
        prof = make_professor()
        room = make_room(prof, students=[make_student('First')], max_students=1)

        with pytest.raises(InvalidStateError):
            RoomService.invite(room.room_id, make_student('Second').student_profile.student_id, prof)

    def test_create_rejects_more_invitations_than_seats(self, app, make_professor, make_student):
        prof = make_professor()
        students = [make_student(name).student_profile.student_id for name in ('One', 'Two', 'Three')]
        dto = RoomCreateDTO(
            name='Small group',
            language='French',
            scheduled_at=utcnow() + timedelta(minutes=5),
            duration=30,
            max_students=2,
            invited_students=students,
        )

        with pytest.raises(InvalidStateError) as excinfo:
            RoomService.create(dto, created_by=prof)
        assert excinfo.value.message == 'Room is full. Max students: 2'
        assert Room.query.count() == 0
        assert RoomParticipant.query.count() == 0


def test_expired_provider_tokens_are_cleaned_up(app, make_professor, make_room):
    prof = make_professor()
    room = make_room(prof)
    db.session.add_all([
        ProviderToken(user_id=prof.user_id, room_id=room.room_id, token='old', identity='professor-1',
                      expires_at=utcnow() - timedelta(minutes=1)),
        ProviderToken(user_id=prof.user_id, room_id=room.room_id, token='new', identity='professor-1',
                      expires_at=utcnow() + timedelta(hours=1)),
    ])
    db.session.commit()

    assert delete_expired_provider_tokens() == 1
    assert [t.token for t in ProviderToken.query.all()] == ['new']
