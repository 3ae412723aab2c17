from flask import request
from flask_login import current_user, login_required

from ...core.error_handlers import AuthorizationError, NotFoundError, ValidationError, success_response
from ...models import Role
from ...utils.pagination import page_response
from ..access_control import require_roles
from ..auth.services import IdentityService
from . import quizzes_bp
from .schemas import QuizCreateDTO, parse_answers, quiz_to_dict, result_to_dict
from .services import QuizService


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be a JSON object')
    return payload


def _bool_arg(name):
    value = request.args.get(name)
    if value is None or value == '':
        return None
    return value.strip().lower() in ('1', 'true', 'yes')


def _is_student() -> bool:
    return current_user.role == Role.STUDENT


@quizzes_bp.route('', methods=['POST'])
@require_roles(Role.PROFESSOR)
def create_quiz():
    professor = IdentityService.professor_for_user(current_user)
    quiz = QuizService.create(QuizCreateDTO.from_payload(_json_body()), professor)
    return success_response(quiz_to_dict(quiz), 'Quiz created successfully'), 201


@quizzes_bp.route('', methods=['GET'])
@login_required
def list_quizzes():
    page = request.args.get('page', 0, type=int)
    is_published = _bool_arg('isPublished')
    if _is_student():
        # Drafts stay with their authors
        is_published = True

    pagination = QuizService.list_quizzes(
        session_id=request.args.get('sessionId', None, type=int),
        language=request.args.get('language'),
        is_published=is_published,
        created_by=request.args.get('createdBy', None, type=int),
        search=request.args.get('search'),
        page=page,
        size=request.args.get('size', None, type=int),
        sort_by=request.args.get('sortBy'),
        sort_order=request.args.get('sortOrder'),
    )
    include_answers = not _is_student()
    return success_response(
        page_response(pagination, lambda q: quiz_to_dict(q, include_answers=include_answers), page)
    )


@quizzes_bp.route('/<int:quiz_id>', methods=['GET'])
@login_required
def get_quiz(quiz_id):
    quiz = QuizService.get_quiz(quiz_id)
    if _is_student() and not quiz.is_published:
        raise NotFoundError('Quiz not found', resource='quiz')
    return success_response(quiz_to_dict(quiz, include_answers=not _is_student()))


@quizzes_bp.route('/<int:quiz_id>/publish', methods=['POST'])
@require_roles(Role.ADMIN, Role.PROFESSOR)
def publish_quiz(quiz_id):
    quiz = QuizService.publish(quiz_id, current_user)
    return success_response(quiz_to_dict(quiz), 'Quiz published')


@quizzes_bp.route('/<int:quiz_id>/submit', methods=['POST'])
@require_roles(Role.STUDENT)
def submit_quiz(quiz_id):
    answers = parse_answers(_json_body())
    student = IdentityService.student_for_user(current_user)
    result = QuizService.submit(quiz_id, student, answers)
    return success_response(result_to_dict(result), 'Quiz submitted'), 201


@quizzes_bp.route('/<int:quiz_id>/results', methods=['GET'])
@require_roles(Role.ADMIN, Role.PROFESSOR)
def quiz_results(quiz_id):
    return success_response([result_to_dict(r) for r in QuizService.results(quiz_id, current_user)])


@quizzes_bp.route('/student/<int:student_id>/results', methods=['GET'])
@login_required
def student_results(student_id):
    if _is_student() and IdentityService.student_for_user(current_user).student_id != student_id:
        raise AuthorizationError('You can only view your own results')
    return success_response([result_to_dict(r) for r in QuizService.student_results(student_id)])


@quizzes_bp.route('/my-results', methods=['GET'])
@require_roles(Role.STUDENT)
def my_results():
    student = IdentityService.student_for_user(current_user)
    return success_response([result_to_dict(r) for r in QuizService.student_results(student.student_id)])


@quizzes_bp.route('/<int:quiz_id>', methods=['DELETE'])
@require_roles(Role.ADMIN, Role.PROFESSOR)
def delete_quiz(quiz_id):
    QuizService.delete(quiz_id, current_user)
    return success_response(message='Quiz deleted')
