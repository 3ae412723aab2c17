from flask import request
from flask_login import current_user, login_required

from ...core.error_handlers import ValidationError, success_response
from ...models import Role
from ..access_control import require_roles
from . import summaries_bp
from .schemas import SummaryDTO, parse_room_ids, summary_to_dict
from .services import SummaryService


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be a JSON object')
    return payload


@summaries_bp.route('', methods=['POST'])
@require_roles(Role.PROFESSOR)
def save_summary():
    summary = SummaryService.create_or_update(current_user, SummaryDTO.from_payload(_json_body()))
    return success_response(summary_to_dict(summary), 'Session summary saved')


@summaries_bp.route('/room/<int:room_id>', methods=['GET'])
@login_required
def summary_for_room(room_id):
    return success_response(summary_to_dict(SummaryService.for_room(room_id)))


@summaries_bp.route('/by-rooms', methods=['POST'])
@login_required
def summaries_for_rooms():
    room_ids = parse_room_ids(request.get_json(silent=True))
    return success_response([summary_to_dict(s) for s in SummaryService.for_rooms(room_ids)])


@summaries_bp.route('/my-summaries', methods=['GET'])
@require_roles(Role.PROFESSOR)
def my_summaries():
    return success_response([summary_to_dict(s) for s in SummaryService.for_professor(current_user)])


@summaries_bp.route('/my-sessions', methods=['GET'])
@require_roles(Role.STUDENT)
def my_session_summaries():
    return success_response([summary_to_dict(s) for s in SummaryService.for_student(current_user)])
