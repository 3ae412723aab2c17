from easylearn_app.models import RoomStatus
from easylearn_app.modules.auth.services import AccessTokenService
from easylearn_app.modules.challenges.schemas import ChallengeCreateDTO
from easylearn_app.modules.challenges.services import ChallengeService
from easylearn_app.modules.quizzes.schemas import QuizCreateDTO
from easylearn_app.modules.quizzes.services import QuizService
from easylearn_app.modules.rooms.services import RoomService
from easylearn_app.modules.stats.services import StatsService


def _seed(prof, student):
    quiz = QuizService.create(QuizCreateDTO.from_payload({
        'title': 'Colours',
        'language': 'French',
        'questions': [
            {'question': 'Rouge?', 'options': ['red', 'blue'], 'correctAnswer': 0},
            {'question': 'Bleu?', 'options': ['red', 'blue'], 'correctAnswer': 1},
        ],
    }), prof.professor_profile)
    QuizService.publish(quiz.quiz_id)
    QuizService.submit(quiz.quiz_id, student.student_profile, [
        {'questionId': q.question_id, 'selectedAnswer': q.correct_answer} for q in quiz.questions
    ])

    challenge = ChallengeService.create(prof, ChallengeCreateDTO.from_payload({
        'subject': 'French',
        'difficulty': 'medium',
        'title': 'Articles',
        'question': 'Le or la: ___ maison?',
        'options': ['le', 'la', 'les', "l'"],
        'correctAnswer': 1,
        'basePoints': 20,
        'expiresIn': 2,
    }))
    ChallengeService.submit_answer(student, challenge.challenge_id, 1)


def test_admin_stats(app, make_admin, make_professor, make_student, make_room):
    admin = make_admin()
    prof = make_professor()
    student = make_student(level='B2')
    make_room(prof, students=[student])
    make_room(prof, status=RoomStatus.COMPLETED)
    AccessTokenService.generate('STUDENT', created_by=admin)
    _seed(prof, student)

    stats = StatsService.admin_stats()

    assert stats['usersByRole'] == {'ADMIN': 1, 'PROFESSOR': 1, 'STUDENT': 1}
    assert stats['roomsByStatus'] == {'SCHEDULED': 1, 'LIVE': 0, 'COMPLETED': 1}
    assert stats['totalQuizzes'] == 1
    assert stats['publishedQuizzes'] == 1
    assert stats['totalChallenges'] == 1
    assert stats['availableAccessTokens'] == 1
    assert stats['levelDistribution'] == [{'level': 'B2', 'count': 1}]


def test_professor_stats(app, make_professor, make_student, make_room):
    prof = make_professor()
    alice = make_student('Alice')
    bob = make_student('Bob')
    make_room(prof, students=[alice, bob])
    make_room(prof, students=[alice])
    _seed(prof, alice)

    stats = StatsService.professor_stats(prof)

    assert stats['roomsByStatus']['SCHEDULED'] == 2
    assert stats['studentsTaught'] == 2
    assert stats['quizzesCreated'] == 1
    assert stats['averageQuizPassRate'] == 100.0
    assert stats['challengesCreated'] == 1


def test_student_stats(app, make_professor, make_student, make_room):
    prof = make_professor()
    student = make_student()
    room = make_room(prof, students=[student])
    RoomService.join(room.room_id, student)
    _seed(prof, student)

    stats = StatsService.student_stats(student)

    assert stats['roomsInvited'] == 1
    assert stats['roomsAttended'] == 1
    assert stats['quizzesTaken'] == 1
    assert stats['quizzesPassed'] == 1
    assert stats['averageQuizScore'] == 100.0
    # medium x1.5 on 20 base points, first attempt
    assert stats['challengePoints'] == 30
    assert stats['challengesCompleted'] == 1


def test_stats_routes_are_role_scoped(app, login, make_admin, make_student):
    client = login(make_student())
    assert client.get('/api/stats/student').status_code == 200
    assert client.get('/api/stats/admin').status_code == 403

    client = login(make_admin())
    assert client.get('/api/stats/admin').get_json()['success'] is True
