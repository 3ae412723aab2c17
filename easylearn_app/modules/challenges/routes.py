from flask import request
from flask_login import current_user, login_required

from ...core.error_handlers import ValidationError, success_response
from ...models import Role
from ..access_control import require_roles
from . import challenges_bp
from .schemas import ChallengeCreateDTO, attempt_to_dict, challenge_to_dict, outcome_to_dict
from .services import ChallengeService


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be a JSON object')
    return payload


# ========== Professor ==========

@challenges_bp.route('', methods=['POST'])
@require_roles(Role.PROFESSOR)
def create_challenge():
    challenge = ChallengeService.create(current_user, ChallengeCreateDTO.from_payload(_json_body()))
    return success_response(challenge_to_dict(challenge, participant_count=0), 'Challenge created'), 201


@challenges_bp.route('/my-challenges', methods=['GET'])
@require_roles(Role.PROFESSOR)
def my_challenges():
    return success_response([
        challenge_to_dict(challenge, participant_count=count)
        for challenge, count in ChallengeService.my_challenges(current_user)
    ])


@challenges_bp.route('/<int:challenge_id>', methods=['DELETE'])
@require_roles(Role.PROFESSOR)
def delete_challenge(challenge_id):
    ChallengeService.delete(current_user, challenge_id)
    return success_response(message='Challenge deleted')


@challenges_bp.route('/stats', methods=['GET'])
@require_roles(Role.PROFESSOR)
def challenge_stats():
    return success_response(ChallengeService.stats(current_user))


@challenges_bp.route('/<int:challenge_id>/attempts', methods=['GET'])
@require_roles(Role.PROFESSOR)
def challenge_attempts(challenge_id):
    return success_response([attempt_to_dict(a) for a in ChallengeService.attempts(current_user, challenge_id)])


# ========== Student ==========

@challenges_bp.route('/active', methods=['GET'])
@login_required
def active_challenges():
    return success_response([
        challenge_to_dict(challenge, include_answer=False)
        for challenge in ChallengeService.active_challenges()
    ])


@challenges_bp.route('/submit', methods=['POST'])
@require_roles(Role.STUDENT)
def submit_answer():
    payload = _json_body()
    challenge_id = payload.get('challengeId')
    selected = payload.get('selectedAnswer')
    errors = {}
    if not isinstance(challenge_id, int):
        errors['challengeId'] = 'Must be an integer'
    if isinstance(selected, bool) or not isinstance(selected, int):
        errors['selectedAnswer'] = 'Must be an integer'
    if errors:
        raise ValidationError('Invalid answer', errors)

    outcome = ChallengeService.submit_answer(current_user, challenge_id, selected)
    return success_response(outcome_to_dict(outcome))


@challenges_bp.route('/my-attempts', methods=['GET'])
@require_roles(Role.STUDENT)
def my_attempts():
    return success_response([attempt_to_dict(a) for a in ChallengeService.my_attempts(current_user)])


# ========== Common ==========

@challenges_bp.route('/leaderboard', methods=['GET'])
@login_required
def leaderboard():
    limit = request.args.get('limit', None, type=int)
    return success_response(ChallengeService.leaderboard(limit))
