import pytest

from easylearn_app.core.error_handlers import ValidationError
from easylearn_app.modules.evaluations.schemas import EvaluationCreateDTO
from easylearn_app.modules.evaluations.services import EvaluationService


def _evaluation(student_id, **overrides):
    payload = {
        'studentId': student_id,
        'language': 'French',
        'pronunciation': 70,
        'grammar': 80,
        'vocabulary': 65,
        'fluency': 90,
        'assignedLevel': 'B1',
        'feedback': 'Good progress',
        'strengths': ['listening'],
        'areasToImprove': ['accents'],
    }
    payload.update(overrides)
    return payload


def test_overall_score_is_rounded_mean():
    # (70 + 80 + 65 + 90) / 4 = 76.25
    assert EvaluationService.overall_score({'pronunciation': 70, 'grammar': 80, 'vocabulary': 65, 'fluency': 90}) == 76
    assert EvaluationService.overall_score({'pronunciation': 1, 'grammar': 2, 'vocabulary': 2, 'fluency': 1}) == 2


def test_scores_must_be_in_range():
    with pytest.raises(ValidationError) as excinfo:
        EvaluationCreateDTO.from_payload(_evaluation(1, grammar=120))
    assert 'grammar' in excinfo.value.details['errors']


def test_create_moves_student_level(app, make_professor, make_student):
    prof = make_professor()
    student = make_student(level='A2').student_profile

    evaluation = EvaluationService.create(prof, EvaluationCreateDTO.from_payload(_evaluation(student.student_id)))

    assert evaluation.overall_score == 76
    assert evaluation.previous_level == 'A2'
    assert evaluation.assigned_level == 'B1'
    assert student.level == 'B1'


def test_student_sees_own_evaluations_by_language(app, make_professor, make_student):
    prof = make_professor()
    user = make_student()
    student_id = user.student_profile.student_id
    EvaluationService.create(prof, EvaluationCreateDTO.from_payload(_evaluation(student_id)))
    EvaluationService.create(prof, EvaluationCreateDTO.from_payload(_evaluation(student_id, language='English')))

    assert len(EvaluationService.for_student(user)) == 2
    assert [e.language for e in EvaluationService.for_student(user, 'English')] == ['English']
    assert len(EvaluationService.for_professor(prof)) == 2


def test_evaluation_routes(app, login, make_professor, make_student):
    prof = make_professor()
    student = make_student()
    student_id = student.student_profile.student_id
    client = login(prof)

    created = client.post('/api/evaluations', json=_evaluation(student_id))
    assert created.status_code == 201
    assert created.get_json()['data']['overallScore'] == 76

    updated = client.put('/api/evaluations/student-level', json={'studentId': student_id, 'newLevel': 'c1'})
    assert updated.get_json()['data']['level'] == 'C1'

    client = login(student)
    mine = client.get('/api/evaluations/student').get_json()['data']
    assert [e['assignedLevel'] for e in mine] == ['B1']
    assert client.get('/api/evaluations/students').status_code == 403
