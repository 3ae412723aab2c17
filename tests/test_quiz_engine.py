"""
Tests for the quiz engine

Tests cover:
- Publication rules
- One-shot grading and the passing threshold
- Duplicate submissions, including the storage-level guard
- Delete cascade and student visibility
"""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import IntegrityError

from easylearn_app import db
from easylearn_app.core.error_handlers import InvalidStateError, NotFoundError, ValidationError
from easylearn_app.models import Quiz, QuizAnswer, QuizQuestion, QuizResult
from easylearn_app.modules.quizzes.logics.grading import grade_submission, is_passing
from easylearn_app.modules.quizzes.schemas import QuizCreateDTO
from easylearn_app.modules.quizzes.services import QuizService


def _quiz_payload(question_count=5, **overrides):
    payload = {
        'title': 'Numbers',
        'language': 'French',
        'passingScore': 60,
        'questions': [
            {'question': f'Question {i}', 'options': ['a', 'b', 'c'], 'correctAnswer': 0}
            for i in range(question_count)
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def published_quiz(app, make_professor):
    prof = make_professor()
    quiz = QuizService.create(QuizCreateDTO.from_payload(_quiz_payload()), prof.professor_profile)
    QuizService.publish(quiz.quiz_id)
    return quiz


def _answers(quiz, correct):
    """Answer every question, the first ``correct`` of them right."""
    return [
        {'questionId': q.question_id, 'selectedAnswer': 0 if index < correct else 1}
        for index, q in enumerate(quiz.questions)
    ]


class TestPassingThreshold:

    def test_exact_threshold_passes(self):
        assert is_passing(3, 5, 60)

    def test_below_threshold_fails(self):
        assert not is_passing(2, 5, 60)

    def test_empty_quiz_never_passes(self):
        assert not is_passing(0, 0, 0)

    def test_unanswered_questions_count_as_wrong(self, app, published_quiz):
        graded = grade_submission(published_quiz.questions, _answers(published_quiz, 3)[:3], 60)
        assert graded.score == 3
        assert graded.total_questions == 5
        assert graded.passed is True


class TestPublish:

    def test_publish_without_questions_is_rejected(self, app, make_professor):
        prof = make_professor()
        quiz = Quiz(title='Empty', language='French', created_by_id=prof.professor_profile.professor_id)
        db.session.add(quiz)
        db.session.commit()

        with pytest.raises(InvalidStateError) as excinfo:
            QuizService.publish(quiz.quiz_id)
        assert excinfo.value.message == 'Cannot publish quiz without questions'
        assert db.session.get(Quiz, quiz.quiz_id).is_published is False

    def test_publish_is_idempotent(self, app, published_quiz):
        QuizService.publish(published_quiz.quiz_id)
        assert db.session.get(Quiz, published_quiz.quiz_id).is_published is True

    def test_create_requires_questions(self):
        with pytest.raises(ValidationError):
            QuizCreateDTO.from_payload(_quiz_payload(question_count=0))

    def test_create_with_unknown_room_is_404(self, app, make_professor):
        prof = make_professor()
        with pytest.raises(NotFoundError):
            QuizService.create(QuizCreateDTO.from_payload(_quiz_payload(sessionId=42)), prof.professor_profile)


class TestSubmit:

    def test_three_of_five_passes(self, app, published_quiz, make_student):
        student = make_student().student_profile

        result = QuizService.submit(published_quiz.quiz_id, student, _answers(published_quiz, 3))

        assert result.score == 3
        assert result.total_questions == 5
        assert result.passed is True
        assert len(result.answers) == 5

    def test_two_of_five_fails(self, app, published_quiz, make_student):
        student = make_student().student_profile

        result = QuizService.submit(published_quiz.quiz_id, student, _answers(published_quiz, 2))

        assert result.score == 2
        assert result.passed is False

    def test_unpublished_quiz_is_rejected(self, app, make_professor, make_student):
        quiz = QuizService.create(QuizCreateDTO.from_payload(_quiz_payload()), make_professor().professor_profile)

        with pytest.raises(InvalidStateError) as excinfo:
            QuizService.submit(quiz.quiz_id, make_student().student_profile, [])
        assert excinfo.value.message == 'Quiz is not published'

    def test_second_submission_is_rejected(self, app, published_quiz, make_student):
        student = make_student().student_profile
        QuizService.submit(published_quiz.quiz_id, student, _answers(published_quiz, 5))

        with pytest.raises(InvalidStateError) as excinfo:
            QuizService.submit(published_quiz.quiz_id, student, _answers(published_quiz, 5))
        assert excinfo.value.message == 'You have already taken this quiz'
        assert QuizResult.query.count() == 1

    def test_storage_race_maps_to_already_taken(self, app, published_quiz, make_student):
        student = make_student().student_profile
        error = IntegrityError(
            'INSERT INTO quiz_results', {},
            Exception('UNIQUE constraint failed: quiz_results.quiz_id, quiz_results.student_id'),
        )

        with patch.object(db.session, 'commit', side_effect=error):
            with pytest.raises(InvalidStateError) as excinfo:
                QuizService.submit(published_quiz.quiz_id, student, _answers(published_quiz, 5))

        assert excinfo.value.message == 'You have already taken this quiz'
        assert QuizResult.query.count() == 0

    def test_other_integrity_errors_are_not_reported_as_already_taken(self, app, published_quiz, make_student):
        student = make_student().student_profile
        error = IntegrityError('INSERT INTO quiz_answers', {}, Exception('FOREIGN KEY constraint failed'))

        with patch.object(db.session, 'commit', side_effect=error):
            with pytest.raises(IntegrityError):
                QuizService.submit(published_quiz.quiz_id, student, _answers(published_quiz, 5))

        assert QuizResult.query.count() == 0

    def test_foreign_question_is_not_found(self, app, published_quiz, make_student):
        with pytest.raises(NotFoundError):
            QuizService.submit(
                published_quiz.quiz_id,
                make_student().student_profile,
                [{'questionId': 9999, 'selectedAnswer': 0}],
            )


class TestDelete:

    def test_delete_removes_everything(self, app, published_quiz, make_student):
        QuizService.submit(published_quiz.quiz_id, make_student().student_profile, _answers(published_quiz, 4))
        quiz_id = published_quiz.quiz_id

        QuizService.delete(quiz_id)

        assert db.session.get(Quiz, quiz_id) is None
        assert QuizQuestion.query.count() == 0
        assert QuizResult.query.count() == 0
        assert QuizAnswer.query.count() == 0


class TestQuizRoutes:

    def test_student_sees_published_without_answers(self, app, login, published_quiz, make_professor,
                                                      make_student):
        QuizService.create(QuizCreateDTO.from_payload(_quiz_payload(title='Draft')), make_professor('Other')
                           .professor_profile)
        client = login(make_student())

        body = client.get('/api/quizzes').get_json()['data']

        assert body['total'] == 1
        assert body['data'][0]['title'] == 'Numbers'
        assert 'correctAnswer' not in body['data'][0]['questions'][0]

    def test_submit_over_http(self, app, login, published_quiz, make_student):
        client = login(make_student())

        response = client.post(f'/api/quizzes/{published_quiz.quiz_id}/submit',
                               json={'answers': _answers(published_quiz, 3)})

        assert response.status_code == 201
        data = response.get_json()['data']
        assert data['passed'] is True
        assert data['percentage'] == 60.0

        again = client.post(f'/api/quizzes/{published_quiz.quiz_id}/submit',
                            json={'answers': _answers(published_quiz, 3)})
        assert again.status_code == 400

    def test_professor_cannot_delete_foreign_quiz(self, app, login, published_quiz, make_professor):
        client = login(make_professor('Intruder'))

        response = client.delete(f'/api/quizzes/{published_quiz.quiz_id}')

        assert response.status_code == 403
