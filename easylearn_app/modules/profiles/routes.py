from flask import request
from flask_login import current_user, login_required

from ...core.error_handlers import ValidationError, success_response
from ...models import Role
from ...utils.pagination import page_response
from ..access_control import require_roles
from ..auth.schemas import StaffRegistrationDTO, StudentRegistrationDTO
from ..rooms.schemas import room_to_dict
from . import professors_bp, students_bp
from .schemas import (
    ProfessorUpdateDTO,
    StudentUpdateDTO,
    parse_id_list,
    professor_to_dict,
    student_to_dict,
)
from .services import ProfileService


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be a JSON object')
    return payload


def _list_args():
    return dict(
        page=request.args.get('page', 0, type=int),
        size=request.args.get('size', None, type=int),
        sort_by=request.args.get('sortBy'),
        sort_order=request.args.get('sortOrder'),
    )


# ---------------------------------------------------------------------------
# Students
# ---------------------------------------------------------------------------

@students_bp.route('/me', methods=['GET'])
@require_roles(Role.STUDENT)
def my_student_profile():
    student = ProfileService.my_student_profile(current_user)
    return success_response(student_to_dict(student), 'Student profile retrieved')


@students_bp.route('', methods=['POST'])
@require_roles(Role.ADMIN)
def create_student():
    dto = StudentRegistrationDTO.from_payload(_json_body(), require_token=False)
    student = ProfileService.create_student(dto, current_user)
    return success_response(student_to_dict(student), 'Student created successfully'), 201


@students_bp.route('/<int:student_id>', methods=['PUT'])
@require_roles(Role.ADMIN, Role.STUDENT)
def update_student(student_id):
    student = ProfileService.update_student(student_id, StudentUpdateDTO.from_payload(_json_body()), current_user)
    return success_response(student_to_dict(student), 'Student updated successfully')


@students_bp.route('/<int:student_id>', methods=['DELETE'])
@require_roles(Role.ADMIN)
def delete_student(student_id):
    ProfileService.delete_student(student_id)
    return success_response(message='Student deleted successfully')


@students_bp.route('/<int:student_id>', methods=['GET'])
@login_required
def get_student(student_id):
    return success_response(student_to_dict(ProfileService.get_student(student_id)))


@students_bp.route('', methods=['GET'])
@login_required
def list_students():
    args = _list_args()
    pagination = ProfileService.list_students(**args)
    return success_response(page_response(pagination, student_to_dict, args['page']))


@students_bp.route('/created-by/<int:user_id>', methods=['GET'])
@require_roles(Role.ADMIN)
def students_created_by(user_id):
    args = _list_args()
    pagination = ProfileService.list_students(created_by_id=user_id, **args)
    return success_response(page_response(pagination, student_to_dict, args['page']))


@students_bp.route('/batch', methods=['POST'])
@login_required
def students_batch():
    student_ids = parse_id_list(request.get_json(silent=True), 'studentIds')
    return success_response([student_to_dict(s) for s in ProfileService.students_by_ids(student_ids)])


# ---------------------------------------------------------------------------
# Professors
# ---------------------------------------------------------------------------

@professors_bp.route('/me', methods=['GET'])
@require_roles(Role.PROFESSOR)
def my_professor_profile():
    professor = ProfileService.my_professor_profile(current_user)
    return success_response(professor_to_dict(professor), 'Professor profile retrieved')


@professors_bp.route('', methods=['POST'])
@require_roles(Role.ADMIN)
def create_professor():
    dto = StaffRegistrationDTO.from_payload(_json_body(), require_token=False)
    professor = ProfileService.create_professor(dto, current_user)
    return success_response(professor_to_dict(professor), 'Professor created successfully'), 201


@professors_bp.route('/<int:professor_id>', methods=['PUT'])
@require_roles(Role.ADMIN, Role.PROFESSOR)
def update_professor(professor_id):
    dto = ProfessorUpdateDTO.from_payload(_json_body())
    professor = ProfileService.update_professor(professor_id, dto, current_user)
    return success_response(professor_to_dict(professor), 'Professor updated successfully')


@professors_bp.route('/<int:professor_id>', methods=['DELETE'])
@require_roles(Role.ADMIN)
def delete_professor(professor_id):
    ProfileService.delete_professor(professor_id)
    return success_response(message='Professor deleted successfully')


@professors_bp.route('/<int:professor_id>', methods=['GET'])
@login_required
def get_professor(professor_id):
    return success_response(professor_to_dict(ProfileService.get_professor(professor_id)))


@professors_bp.route('', methods=['GET'])
@login_required
def list_professors():
    args = _list_args()
    pagination = ProfileService.list_professors(**args)
    return success_response(page_response(pagination, professor_to_dict, args['page']))


@professors_bp.route('/created-by/<int:user_id>', methods=['GET'])
@login_required
def professors_created_by(user_id):
    args = _list_args()
    pagination = ProfileService.list_professors(created_by_id=user_id, **args)
    return success_response(page_response(pagination, professor_to_dict, args['page']))


@professors_bp.route('/<int:professor_id>/sessions', methods=['GET'])
@login_required
def professor_sessions(professor_id):
    args = _list_args()
    pagination = ProfileService.professor_sessions(professor_id, **args)
    return success_response(page_response(pagination, room_to_dict, args['page']))
