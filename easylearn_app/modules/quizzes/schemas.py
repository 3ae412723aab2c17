from dataclasses import dataclass, field
from typing import List, Optional

from ...core.error_handlers import ValidationError
from ...utils.time_utils import isoformat
from .config import QuizzesModuleDefaultConfig as Cfg


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass
class QuestionDTO:
    question: str
    options: List[str]
    correct_answer: int
    points: int = Cfg.DEFAULT_QUESTION_POINTS


@dataclass
class QuizCreateDTO:
    title: str
    language: str
    questions: List[QuestionDTO] = field(default_factory=list)
    description: Optional[str] = None
    time_limit: Optional[int] = None
    passing_score: int = Cfg.DEFAULT_PASSING_SCORE
    session_id: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: dict) -> 'QuizCreateDTO':
        errors = {}
        for key in ('title', 'language'):
            if not str(payload.get(key) or '').strip():
                errors[key] = 'This field is required'

        passing_score = payload.get('passingScore', Cfg.DEFAULT_PASSING_SCORE)
        if passing_score is None:
            passing_score = Cfg.DEFAULT_PASSING_SCORE
        if not _is_int(passing_score) or not 0 <= passing_score <= 100:
            errors['passingScore'] = 'Must be an integer between 0 and 100'

        time_limit = payload.get('timeLimit')
        if time_limit is not None and (not _is_int(time_limit) or time_limit <= 0):
            errors['timeLimit'] = 'Must be a positive integer'

        session_id = payload.get('sessionId')
        if session_id is not None and not _is_int(session_id):
            errors['sessionId'] = 'Must be an integer'

        raw_questions = payload.get('questions')
        questions = []
        if not isinstance(raw_questions, list) or not raw_questions:
            errors['questions'] = 'At least one question is required'
        else:
            for index, raw in enumerate(raw_questions):
                question, problem = cls._parse_question(raw)
                if problem:
                    errors[f'questions[{index}]'] = problem
                else:
                    questions.append(question)

        if errors:
            raise ValidationError('Invalid quiz data', errors)

        return cls(
            title=payload['title'].strip(),
            language=payload['language'].strip(),
            questions=questions,
            description=payload.get('description'),
            time_limit=time_limit,
            passing_score=passing_score,
            session_id=session_id,
        )

    @staticmethod
    def _parse_question(raw):
        if not isinstance(raw, dict) or not str(raw.get('question') or '').strip():
            return None, 'Question text is required'
        options = raw.get('options')
        if not isinstance(options, list) or len(options) < Cfg.MIN_OPTIONS:
            return None, f'At least {Cfg.MIN_OPTIONS} options are required'
        correct = raw.get('correctAnswer')
        if not _is_int(correct) or not 0 <= correct < len(options):
            return None, 'correctAnswer must index one of the options'
        points = raw.get('points')
        if points is None:
            points = Cfg.DEFAULT_QUESTION_POINTS
        if not _is_int(points) or points <= 0:
            return None, 'points must be a positive integer'
        return QuestionDTO(raw['question'].strip(), [str(o) for o in options], correct, points), None


def parse_answers(payload: dict) -> list:
    answers = payload.get('answers')
    if not isinstance(answers, list):
        raise ValidationError('answers must be a list', {'answers': 'list of {questionId, selectedAnswer}'})
    for answer in answers:
        if not isinstance(answer, dict) or not _is_int(answer.get('questionId')) \
                or not _is_int(answer.get('selectedAnswer')):
            raise ValidationError(
                'Each answer needs an integer questionId and selectedAnswer',
                {'answers': 'list of {questionId, selectedAnswer}'},
            )
    return answers


def quiz_to_dict(quiz, include_answers=True) -> dict:
    questions = []
    for q in quiz.questions:
        item = {
            'id': q.question_id,
            'question': q.question,
            'options': list(q.options or []),
            'points': q.points,
            'orderIndex': q.order_index,
        }
        if include_answers:
            item['correctAnswer'] = q.correct_answer
        questions.append(item)

    creator = quiz.created_by
    return {
        'id': quiz.quiz_id,
        'title': quiz.title,
        'description': quiz.description,
        'language': quiz.language,
        'timeLimit': quiz.time_limit,
        'passingScore': quiz.passing_score,
        'isPublished': quiz.is_published,
        'sessionId': quiz.session_id,
        'createdBy': quiz.created_by_id,
        'createdByName': creator.name if creator else None,
        'questions': questions,
        'createdAt': isoformat(quiz.created_at),
    }


def result_to_dict(result) -> dict:
    return {
        'id': result.result_id,
        'quizId': result.quiz_id,
        'quizTitle': result.quiz.title if result.quiz else None,
        'studentId': result.student_id,
        'studentName': result.student.name if result.student else None,
        'score': result.score,
        'totalQuestions': result.total_questions,
        'percentage': round(result.percentage, 2),
        'passed': result.passed,
        'completedAt': isoformat(result.completed_at),
        'answers': [
            {
                'questionId': a.question_id,
                'selectedAnswer': a.selected_answer,
                'isCorrect': a.is_correct,
            }
            for a in sorted(result.answers, key=lambda a: a.answer_id or 0)
        ],
    }
