"""
Quiz Service - authoring, publication and one-shot grading.

A result is unique per (quiz, student) at the storage layer; a duplicate that
slips past the fast-path check surfaces as the same "already taken" error.
"""
import logging

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ....core.error_handlers import AuthorizationError, InvalidStateError, NotFoundError
from ....core.signals import quiz_submitted
from ....models import Quiz, QuizAnswer, QuizQuestion, QuizResult, Role, Room, db
from ....utils.db_errors import is_unique_violation
from ....utils.pagination import apply_sort, get_pagination_data
from ....utils.time_utils import utcnow
from ...auth.services.identity_service import IdentityService
from ..config import QuizzesModuleDefaultConfig
from ..logics.grading import grade_submission

logger = logging.getLogger(__name__)

ALREADY_TAKEN = 'You have already taken this quiz'


class QuizService:

    @staticmethod
    def get_quiz(quiz_id) -> Quiz:
        quiz = db.session.get(Quiz, quiz_id)
        if quiz is None:
            raise NotFoundError('Quiz not found', resource='quiz')
        return quiz

    @staticmethod
    def _ensure_can_manage(quiz, user) -> None:
        """Admins manage every quiz, professors only their own."""
        if user.role == Role.ADMIN:
            return
        professor = IdentityService.professor_for_user(user)
        if quiz.created_by_id != professor.professor_id:
            raise AuthorizationError('You can only manage your own quizzes')

    @staticmethod
    def create(dto, professor) -> Quiz:
        if dto.session_id is not None and db.session.get(Room, dto.session_id) is None:
            raise NotFoundError('Room not found', resource='room')

        quiz = Quiz(
            title=dto.title,
            description=dto.description,
            language=dto.language,
            time_limit=dto.time_limit,
            passing_score=dto.passing_score,
            is_published=False,
            session_id=dto.session_id,
            created_by_id=professor.professor_id,
        )
        db.session.add(quiz)
        for index, question in enumerate(dto.questions):
            db.session.add(QuizQuestion(
                quiz=quiz,
                question=question.question,
                options=question.options,
                correct_answer=question.correct_answer,
                points=question.points,
                order_index=index,
            ))
        db.session.commit()
        logger.info("Quiz %s created with %d questions", quiz.quiz_id, len(dto.questions))
        return quiz

    @staticmethod
    def publish(quiz_id, user=None) -> Quiz:
        """One-way: a second publish leaves the quiz published."""
        quiz = QuizService.get_quiz(quiz_id)
        if user is not None:
            QuizService._ensure_can_manage(quiz, user)

        question_count = QuizQuestion.query.filter_by(quiz_id=quiz.quiz_id).count()
        if question_count == 0:
            raise InvalidStateError('Cannot publish quiz without questions')

        quiz.is_published = True
        db.session.commit()
        logger.info("Quiz %s published", quiz.quiz_id)
        return quiz

    @staticmethod
    def submit(quiz_id, student, answers) -> QuizResult:
        quiz = QuizService.get_quiz(quiz_id)

        if not quiz.is_published:
            raise InvalidStateError('Quiz is not published')

        # Fast path, the unique key below is the real guard
        if QuizResult.query.filter_by(quiz_id=quiz.quiz_id, student_id=student.student_id).first():
            raise InvalidStateError(ALREADY_TAKEN)

        graded = grade_submission(quiz.questions, answers, quiz.passing_score)

        result = QuizResult(
            quiz_id=quiz.quiz_id,
            student_id=student.student_id,
            score=graded.score,
            total_questions=graded.total_questions,
            passed=graded.passed,
            completed_at=utcnow(),
        )
        for answer in graded.answers:
            result.answers.append(QuizAnswer(
                question_id=answer.question_id,
                selected_answer=answer.selected_answer,
                is_correct=answer.is_correct,
            ))
        db.session.add(result)

        try:
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            if not is_unique_violation(e, 'uq_quiz_result', 'quiz_results', ('quiz_id', 'student_id')):
                raise
            logger.info("Duplicate submission of quiz %s by student %s rejected", quiz_id, student.student_id)
            raise InvalidStateError(ALREADY_TAKEN)

        quiz_submitted.send(
            current_app._get_current_object(),
            quiz_id=result.quiz_id,
            student_id=result.student_id,
            score=result.score,
            total_questions=result.total_questions,
            passed=result.passed,
        )
        return result

    @staticmethod
    def list_quizzes(session_id=None, language=None, is_published=None, created_by=None, search=None,
                     page=0, size=None, sort_by=None, sort_order=None):
        query = Quiz.query
        if session_id is not None:
            query = query.filter(Quiz.session_id == session_id)
        if language:
            query = query.filter(Quiz.language == language)
        if is_published is not None:
            query = query.filter(Quiz.is_published.is_(is_published))
        if created_by is not None:
            query = query.filter(Quiz.created_by_id == created_by)
        if search and search.strip():
            pattern = f"%{search.strip().lower()}%"
            query = query.filter(or_(
                db.func.lower(Quiz.title).like(pattern),
                db.func.lower(Quiz.description).like(pattern),
            ))

        fields = QuizzesModuleDefaultConfig.SORT_FIELDS
        query = apply_sort(
            query,
            Quiz,
            fields.get(sort_by or QuizzesModuleDefaultConfig.DEFAULT_SORT_BY),
            sort_order or QuizzesModuleDefaultConfig.DEFAULT_SORT_ORDER,
            allowed=set(fields.values()),
            default='created_at',
        )
        return get_pagination_data(query, page, size)

    @staticmethod
    def results(quiz_id, user=None):
        quiz = QuizService.get_quiz(quiz_id)
        if user is not None:
            QuizService._ensure_can_manage(quiz, user)
        return (
            QuizResult.query
            .filter_by(quiz_id=quiz.quiz_id)
            .order_by(QuizResult.score.desc(), QuizResult.completed_at.asc())
            .all()
        )

    @staticmethod
    def student_results(student_id):
        IdentityService.get_student(student_id)
        return (
            QuizResult.query
            .filter_by(student_id=student_id)
            .order_by(QuizResult.completed_at.desc())
            .all()
        )

    @staticmethod
    def delete(quiz_id, user=None) -> None:
        quiz = QuizService.get_quiz(quiz_id)
        if user is not None:
            QuizService._ensure_can_manage(quiz, user)

        result_ids = db.session.query(QuizResult.result_id).filter(QuizResult.quiz_id == quiz.quiz_id)
        QuizAnswer.query.filter(QuizAnswer.result_id.in_(result_ids.scalar_subquery())).delete(
            synchronize_session=False
        )
        QuizResult.query.filter_by(quiz_id=quiz.quiz_id).delete(synchronize_session=False)
        QuizQuestion.query.filter_by(quiz_id=quiz.quiz_id).delete(synchronize_session=False)
        db.session.delete(quiz)
        db.session.commit()
        logger.info("Quiz %s deleted", quiz_id)
