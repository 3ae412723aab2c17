from flask import request
from flask_login import current_user

from ...core.error_handlers import ValidationError, success_response
from ...models import Role
from ..access_control import require_roles
from ..profiles.schemas import student_to_dict
from . import evaluations_bp
from .schemas import EvaluationCreateDTO, evaluation_to_dict, parse_level_update
from .services import EvaluationService


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be a JSON object')
    return payload


@evaluations_bp.route('', methods=['POST'])
@require_roles(Role.PROFESSOR)
def create_evaluation():
    evaluation = EvaluationService.create(current_user, EvaluationCreateDTO.from_payload(_json_body()))
    return success_response(evaluation_to_dict(evaluation), 'Evaluation created'), 201


@evaluations_bp.route('/professor', methods=['GET'])
@require_roles(Role.PROFESSOR)
def professor_evaluations():
    return success_response([evaluation_to_dict(e) for e in EvaluationService.for_professor(current_user)])


@evaluations_bp.route('/student', methods=['GET'])
@require_roles(Role.STUDENT)
def student_evaluations():
    evaluations = EvaluationService.for_student(current_user, request.args.get('language'))
    return success_response([evaluation_to_dict(e) for e in evaluations])


@evaluations_bp.route('/student-level', methods=['PUT'])
@require_roles(Role.PROFESSOR)
def update_student_level():
    student_id, level = parse_level_update(_json_body())
    student = EvaluationService.update_student_level(current_user, student_id, level)
    return success_response(student_to_dict(student), 'Student level updated')


@evaluations_bp.route('/students', methods=['GET'])
@require_roles(Role.ADMIN, Role.PROFESSOR)
def list_students():
    return success_response([student_to_dict(s) for s in EvaluationService.all_students()])
