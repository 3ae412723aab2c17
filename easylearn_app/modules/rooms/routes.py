from flask import request
from flask_login import current_user, login_required

from ...core.error_handlers import ValidationError, success_response
from ...models import Role
from ...utils.pagination import page_response
from ..access_control import require_roles
from . import rooms_bp
from .schemas import RoomCreateDTO, RoomUpdateDTO, participant_to_dict, room_to_dict
from .services import RoomService


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be a JSON object')
    return payload


def _participant_target(payload):
    try:
        return int(payload['roomId']), int(payload['studentId'])
    except (KeyError, TypeError, ValueError):
        raise ValidationError('roomId and studentId are required', {'roomId': 'int', 'studentId': 'int'})


def _list_args():
    return dict(
        page=request.args.get('page', 0, type=int),
        size=request.args.get('size', None, type=int),
        sort_by=request.args.get('sortBy'),
        sort_order=request.args.get('sortOrder'),
    )


@rooms_bp.route('', methods=['POST'])
@require_roles(Role.ADMIN, Role.PROFESSOR)
def create_room():
    room = RoomService.create(RoomCreateDTO.from_payload(_json_body()), created_by=current_user)
    return success_response(room_to_dict(room), 'Room created successfully'), 201


@rooms_bp.route('', methods=['GET'])
@login_required
def list_rooms():
    args = _list_args()
    pagination = RoomService.list_rooms(**args)
    return success_response(page_response(pagination, room_to_dict, args['page']))


@rooms_bp.route('/my-sessions', methods=['GET'])
@login_required
def my_sessions():
    args = _list_args()
    pagination = RoomService.my_rooms(current_user, **args)
    return success_response(page_response(pagination, room_to_dict, args['page']))


@rooms_bp.route('/<int:room_id>', methods=['GET'])
@login_required
def get_room(room_id):
    return success_response(room_to_dict(RoomService.get_room(room_id)))


@rooms_bp.route('/<int:room_id>', methods=['PUT'])
@require_roles(Role.ADMIN, Role.PROFESSOR)
def update_room(room_id):
    room = RoomService.update(room_id, RoomUpdateDTO.from_payload(_json_body()), current_user)
    return success_response(room_to_dict(room), 'Room updated successfully')


@rooms_bp.route('/<int:room_id>', methods=['DELETE'])
@require_roles(Role.ADMIN, Role.PROFESSOR)
def delete_room(room_id):
    RoomService.delete(room_id, current_user)
    return success_response(message='Room deleted successfully')


@rooms_bp.route('/<int:room_id>/start', methods=['POST'])
@require_roles(Role.ADMIN, Role.PROFESSOR)
def start_room(room_id):
    room = RoomService.start(room_id, current_user)
    return success_response(room_to_dict(room), 'Room started')


@rooms_bp.route('/<int:room_id>/can-join', methods=['GET'])
@login_required
def can_join_room(room_id):
    return success_response(RoomService.can_join(room_id, current_user))


@rooms_bp.route('/<int:room_id>/join', methods=['POST'])
@login_required
def join_room(room_id):
    RoomService.join(room_id, current_user)
    return success_response(message='Joined room successfully')


@rooms_bp.route('/<int:room_id>/token', methods=['POST'])
@login_required
def join_token(room_id):
    return success_response(RoomService.issue_join_token(room_id, current_user))


@rooms_bp.route('/<int:room_id>/end', methods=['POST'])
@require_roles(Role.ADMIN, Role.PROFESSOR)
def end_room(room_id):
    room = RoomService.end(room_id, current_user)
    return success_response(room_to_dict(room), 'Room ended')


@rooms_bp.route('/<int:room_id>/leave', methods=['POST'])
@login_required
def leave_room(room_id):
    RoomService.leave(room_id, current_user)
    return success_response(message='Left room successfully')


@rooms_bp.route('/<int:room_id>/participants', methods=['GET'])
@login_required
def room_participants(room_id):
    return success_response([participant_to_dict(p) for p in RoomService.participants(room_id)])


@rooms_bp.route('/<int:room_id>/participants', methods=['POST'])
@require_roles(Role.ADMIN, Role.PROFESSOR)
def invite_participant(room_id):
    student_id = _json_body().get('studentId')
    if not isinstance(student_id, int):
        raise ValidationError('studentId is required', {'studentId': 'int'})
    participant = RoomService.invite(room_id, student_id, current_user)
    return success_response(participant_to_dict(participant), 'Student invited'), 201


@rooms_bp.route('/participants/mute', methods=['POST'])
@require_roles(Role.ADMIN, Role.PROFESSOR)
def mute_participant():
    payload = _json_body()
    room_id, student_id = _participant_target(payload)
    participant = RoomService.mute(room_id, student_id, payload.get('muted', True), current_user)
    return success_response(participant_to_dict(participant))


@rooms_bp.route('/participants/ping', methods=['POST'])
@require_roles(Role.ADMIN, Role.PROFESSOR)
def ping_participant():
    room_id, student_id = _participant_target(_json_body())
    participant = RoomService.ping(room_id, student_id, current_user)
    return success_response(participant_to_dict(participant), 'Participant pinged')


@rooms_bp.route('/participants/ping', methods=['DELETE'])
@login_required
def clear_ping():
    room_id = request.args.get('roomId', type=int)
    student_id = request.args.get('studentId', type=int)
    if room_id is None or student_id is None:
        raise ValidationError('roomId and studentId are required', {'roomId': 'int', 'studentId': 'int'})
    participant = RoomService.clear_ping(room_id, student_id, current_user)
    return success_response(participant_to_dict(participant), 'Ping cleared')
