from flask import abort, current_app, request
from flask_login import current_user, login_required, login_user, logout_user

from ...core.error_handlers import AuthorizationError, ValidationError, success_response
from ...models import Role
from ..access_control import require_roles
from . import auth_bp
from .schemas import StaffRegistrationDTO, StudentRegistrationDTO
from .services import AccessTokenService, IdentityService, RegistrationService


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be a JSON object')
    return payload


@auth_bp.route('/login', methods=['POST'])
def login():
    payload = _json_body()
    user = IdentityService.resolve_login_identity(payload.get('username'))
    if not user.check_password(payload.get('password') or ''):
        abort(401)
    if not user.is_active:
        raise AuthorizationError('Account is disabled')

    login_user(user, remember=bool(payload.get('remember')))
    current_app.logger.info("User logged in: %s (%s)", user.user_id, user.role.value)
    return success_response(IdentityService.user_payload(user), 'Login successful')


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return success_response(message='Logged out')


@auth_bp.route('/me', methods=['GET'])
@login_required
def me():
    return success_response(IdentityService.user_payload(current_user))


@auth_bp.route('/register/student', methods=['POST'])
def register_student():
    dto = StudentRegistrationDTO.from_payload(_json_body())
    user = RegistrationService.register_student(dto)
    login_user(user)
    return success_response(IdentityService.user_payload(user), 'Student registered successfully'), 201


@auth_bp.route('/register/professor', methods=['POST'])
def register_professor():
    dto = StaffRegistrationDTO.from_payload(_json_body())
    user = RegistrationService.register_professor(dto)
    login_user(user)
    return success_response(IdentityService.user_payload(user), 'Professor registered successfully'), 201


@auth_bp.route('/register/admin', methods=['POST'])
def register_admin():
    dto = StaffRegistrationDTO.from_payload(_json_body())
    user = RegistrationService.register_admin(dto)
    login_user(user)
    return success_response(IdentityService.user_payload(user), 'Admin registered successfully'), 201


def _role_arg(value) -> Role:
    try:
        return Role(str(value or '').upper())
    except ValueError:
        raise ValidationError('Unknown role', {'role': ', '.join(r.value for r in Role)})


@auth_bp.route('/access-tokens', methods=['POST'])
@require_roles(Role.ADMIN)
def generate_access_token():
    role = _role_arg(_json_body().get('role'))
    token = AccessTokenService.generate(role, created_by=current_user)
    return success_response(token.to_dict(), 'Access token generated'), 201


@auth_bp.route('/access-tokens', methods=['GET'])
@require_roles(Role.ADMIN)
def list_access_tokens():
    role = _role_arg(request.args.get('role'))
    return success_response([t.to_dict() for t in AccessTokenService.available(role)])
