from flask_login import current_user

from ...core.error_handlers import success_response
from ...models import Role
from ..access_control import require_roles
from . import stats_bp
from .services import StatsService


@stats_bp.route('/admin', methods=['GET'])
@require_roles(Role.ADMIN)
def admin_stats():
    return success_response(StatsService.admin_stats())


@stats_bp.route('/professor', methods=['GET'])
@require_roles(Role.PROFESSOR)
def professor_stats():
    return success_response(StatsService.professor_stats(current_user))


@stats_bp.route('/student', methods=['GET'])
@require_roles(Role.STUDENT)
def student_stats():
    return success_response(StatsService.student_stats(current_user))
