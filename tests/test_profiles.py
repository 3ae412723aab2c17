"""
Tests for student and professor profiles

Tests cover:
- Admin-created accounts without an invitation code
- Self-service updates and their ownership checks
- Deletion of a profile together with its account and history
- Paginated listings, batch lookup and "my profile"
"""

import pytest

from easylearn_app import db
from easylearn_app.core.error_handlers import AuthorizationError, InvalidStateError, NotFoundError, ValidationError
from easylearn_app.models import (
    Challenge,
    ChallengeAttempt,
    Evaluation,
    Professor,
    ProviderToken,
    Quiz,
    Room,
    RoomParticipant,
    SessionSummary,
    Student,
    User,
)
from easylearn_app.modules.auth.schemas import StaffRegistrationDTO, StudentRegistrationDTO
from easylearn_app.modules.challenges.schemas import ChallengeCreateDTO
from easylearn_app.modules.challenges.services import ChallengeService
from easylearn_app.modules.evaluations.schemas import EvaluationCreateDTO
from easylearn_app.modules.evaluations.services import EvaluationService
from easylearn_app.modules.profiles.schemas import ProfessorUpdateDTO, StudentUpdateDTO
from easylearn_app.modules.profiles.services import ProfileService
from easylearn_app.modules.quizzes.schemas import QuizCreateDTO
from easylearn_app.modules.quizzes.services import QuizService
from easylearn_app.modules.rooms.services import RoomService
from easylearn_app.modules.summaries.schemas import SummaryDTO
from easylearn_app.modules.summaries.services import SummaryService


def _student_payload(**overrides):
    payload = {
        'name': 'Lea Martin',
        'password': 'secret123',
        'nickname': 'lea',
        'level': 'a2',
        'uniqueCode': 'LEA-001',
    }
    payload.update(overrides)
    return payload


def _professor_payload(**overrides):
    payload = {
        'name': 'Marc Dubois',
        'email': 'Marc@Example.com',
        'password': 'secret123',
        'languages': ['French'],
        'specialization': 'Phonetics',
    }
    payload.update(overrides)
    return payload


def _challenge(professor_user):
    return ChallengeService.create(professor_user, ChallengeCreateDTO.from_payload({
        'subject': 'French',
        'difficulty': 'easy',
        'title': 'Articles',
        'question': 'Which article goes with "table"?',
        'options': ['la', 'le', 'les', "l'"],
        'correctAnswer': 0,
        'basePoints': 50,
        'expiresIn': 24,
    }))


def _evaluation(professor_user, student_id):
    return EvaluationService.create(professor_user, EvaluationCreateDTO.from_payload({
        'studentId': student_id,
        'language': 'French',
        'pronunciation': 60,
        'grammar': 60,
        'vocabulary': 60,
        'fluency': 60,
    }))


class TestAdminCreatedAccounts:

    def test_student_needs_no_access_token(self, app, make_admin):
        admin = make_admin()
        dto = StudentRegistrationDTO.from_payload(_student_payload(), require_token=False)

        student = ProfileService.create_student(dto, admin)

        assert student.unique_code == 'LEA-001'
        assert student.level == 'A2'
        assert student.user.created_by_id == admin.user_id
        assert student.user.check_password('secret123')

    def test_self_registration_still_needs_a_token(self):
        with pytest.raises(ValidationError) as excinfo:
            StudentRegistrationDTO.from_payload(_student_payload())
        assert 'accessToken' in excinfo.value.details['errors']

    def test_duplicate_unique_code_is_rejected(self, app, make_admin, make_student):
        make_student('Taken', unique_code='LEA-001')
        dto = StudentRegistrationDTO.from_payload(_student_payload(), require_token=False)

        with pytest.raises(InvalidStateError) as excinfo:
            ProfileService.create_student(dto, make_admin())
        assert excinfo.value.message == 'Unique code already in use'

    def test_professor_email_is_normalised(self, app, make_admin):
        dto = StaffRegistrationDTO.from_payload(_professor_payload(), require_token=False)

        professor = ProfileService.create_professor(dto, make_admin())

        assert professor.user.email == 'marc@example.com'
        assert professor.languages == ['French']


class TestUpdates:

    def test_student_updates_own_profile(self, app, make_student):
        user = make_student()
        student = user.student_profile

        ProfileService.update_student(
            student.student_id, StudentUpdateDTO(name='Renamed', nickname='ren', level='B1'), user
        )

        assert user.name == 'Renamed'
        assert student.nickname == 'ren'
        assert student.level == 'B1'
        assert student.bio is None

    def test_student_cannot_update_someone_else(self, app, make_student):
        target = make_student('Target').student_profile

        with pytest.raises(AuthorizationError) as excinfo:
            ProfileService.update_student(target.student_id, StudentUpdateDTO(nickname='x'), make_student('Other'))
        assert excinfo.value.message == 'You can only update your own profile'
        assert target.nickname == 'target'

    def test_professor_cannot_update_students(self, app, make_professor, make_student):
        target = make_student().student_profile

        with pytest.raises(AuthorizationError):
            ProfileService.update_student(target.student_id, StudentUpdateDTO(nickname='x'), make_professor())

    def test_admin_updates_any_professor(self, app, make_admin, make_professor):
        professor = make_professor().professor_profile

        ProfileService.update_professor(
            professor.professor_id, ProfessorUpdateDTO(languages=['French', 'Arabic'], bio='Hello'), make_admin()
        )

        assert professor.languages == ['French', 'Arabic']
        assert professor.bio == 'Hello'

    def test_professor_cannot_update_colleague(self, app, make_professor):
        colleague = make_professor('Colleague').professor_profile

        with pytest.raises(AuthorizationError):
            ProfileService.update_professor(colleague.professor_id, ProfessorUpdateDTO(bio='x'), make_professor())

    def test_unknown_level_is_rejected(self):
        with pytest.raises(ValidationError) as excinfo:
            StudentUpdateDTO.from_payload({'level': 'Z9'})
        assert 'level' in excinfo.value.details['errors']


class TestDeletion:

    def test_student_is_deleted_with_history(self, app, make_professor, make_student, make_room):
        prof = make_professor()
        user = make_student()
        student_id = user.student_profile.student_id
        user_id = user.user_id
        room = make_room(prof, students=[user])
        room_id = room.room_id
        RoomService.issue_join_token(room_id, user)
        ChallengeService.submit_answer(user, _challenge(prof).challenge_id, 0)
        _evaluation(prof, student_id)

        ProfileService.delete_student(student_id)

        assert Student.query.filter_by(student_id=student_id).count() == 0
        assert User.query.filter_by(user_id=user_id).count() == 0
        assert RoomParticipant.query.filter_by(student_id=student_id).count() == 0
        assert ChallengeAttempt.query.count() == 0
        assert Evaluation.query.count() == 0
        assert ProviderToken.query.filter_by(user_id=user_id).count() == 0
        assert Room.query.filter_by(room_id=room_id).count() == 1

    def test_professor_is_deleted_and_rooms_are_kept(self, app, make_professor, make_student, make_room):
        prof = make_professor()
        professor_id = prof.professor_profile.professor_id
        user_id = prof.user_id
        student = make_student()
        room = make_room(prof, students=[student])
        room_id = room.room_id
        ChallengeService.submit_answer(student, _challenge(prof).challenge_id, 1)
        _evaluation(prof, student.student_profile.student_id)
        SummaryService.create_or_update(prof, SummaryDTO.from_payload({'roomId': room_id, 'summary': 'Recap'}))
        quiz = QuizService.create(QuizCreateDTO.from_payload({
            'title': 'Numbers',
            'language': 'French',
            'questions': [{'question': 'Un?', 'options': ['1', '2'], 'correctAnswer': 0}],
        }), prof.professor_profile)
        quiz_id = quiz.quiz_id

        ProfileService.delete_professor(professor_id)

        assert Professor.query.filter_by(professor_id=professor_id).count() == 0
        assert User.query.filter_by(user_id=user_id).count() == 0
        assert Challenge.query.count() == 0
        assert ChallengeAttempt.query.count() == 0
        assert Evaluation.query.count() == 0
        assert SessionSummary.query.count() == 0
        db.session.expire_all()
        assert db.session.get(Room, room_id).professor_id is None
        assert db.session.get(Quiz, quiz_id).created_by_id is None

    def test_unknown_student_is_not_found(self, app):
        with pytest.raises(NotFoundError):
            ProfileService.delete_student(999)


def test_student_profile_routes(app, login, make_admin, make_student):
    admin = make_admin()
    client = login(admin)

    created = client.post('/api/students', json=_student_payload())
    assert created.status_code == 201
    lea = created.get_json()['data']
    assert lea['uniqueCode'] == 'LEA-001'
    assert lea['level'] == 'A2'
    other = make_student('Zoe')

    page = client.get('/api/students?size=1&sortBy=nickname&sortOrder=asc').get_json()['data']
    assert page['total'] == 2
    assert page['totalPages'] == 2
    assert [s['nickname'] for s in page['data']] == ['lea']

    mine = client.get(f'/api/students/created-by/{admin.user_id}').get_json()['data']
    assert [s['id'] for s in mine['data']] == [lea['id']]

    batch = client.post('/api/students/batch', json=[other.student_profile.student_id, lea['id']])
    assert sorted(s['id'] for s in batch.get_json()['data']) == sorted([lea['id'], other.student_profile.student_id])
    assert client.get('/api/students/999').status_code == 404

    client = login(other)
    assert client.get('/api/students/me').get_json()['data']['uniqueCode'] == 'STU-ZOE'
    assert client.put(f'/api/students/{lea["id"]}', json={'nickname': 'x'}).status_code == 403
    assert client.delete(f'/api/students/{lea["id"]}').status_code == 403

    client = login(admin)
    assert client.delete(f'/api/students/{lea["id"]}').status_code == 200
    assert client.get(f'/api/students/{lea["id"]}').status_code == 404


def test_professor_profile_routes(app, login, make_admin, make_professor, make_room):
    admin = make_admin()
    client = login(admin)

    created = client.post('/api/professors', json=_professor_payload())
    assert created.status_code == 201
    marc = created.get_json()['data']
    assert marc['email'] == 'marc@example.com'
    assert client.post('/api/professors', json=_professor_payload()).status_code == 400

    prof = make_professor('Claire')
    make_room(prof)
    make_room(prof, name='Second')
    professor_id = prof.professor_profile.professor_id

    listing = client.get('/api/professors').get_json()['data']
    assert listing['total'] == 2
    sessions = client.get(f'/api/professors/{professor_id}/sessions').get_json()['data']
    assert sessions['total'] == 2

    client = login(prof)
    me = client.get('/api/professors/me').get_json()['data']
    assert me['id'] == professor_id
    updated = client.put(f'/api/professors/{professor_id}', json={'specialization': 'Grammar'})
    assert updated.get_json()['data']['specialization'] == 'Grammar'
    assert client.put(f'/api/professors/{marc["id"]}', json={'bio': 'x'}).status_code == 403
    assert client.get('/api/students/me').status_code == 403
