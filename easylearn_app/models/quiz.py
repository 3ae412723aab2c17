"""Database models for authored quizzes and one-shot student results."""

from __future__ import annotations

from sqlalchemy.sql import func
from sqlalchemy.types import JSON

from ..db_instance import db


class Quiz(db.Model):
    """Ordered multiple-choice assessment, optionally bound to a room."""

    __tablename__ = 'quizzes'

    DEFAULT_PASSING_SCORE = 60

    quiz_id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    language = db.Column(db.String(40), nullable=False)
    time_limit = db.Column(db.Integer, nullable=True)
    passing_score = db.Column(db.Integer, default=DEFAULT_PASSING_SCORE, nullable=False)
    is_published = db.Column(db.Boolean, default=False, nullable=False)
    session_id = db.Column(db.Integer, db.ForeignKey('rooms.room_id'), nullable=True)
    created_by_id = db.Column(db.Integer, db.ForeignKey('professors.professor_id'), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), onupdate=func.now())

    session = db.relationship('Room', backref='quizzes')
    created_by = db.relationship('Professor', backref='quizzes')
    questions = db.relationship(
        'QuizQuestion',
        back_populates='quiz',
        order_by='QuizQuestion.order_index',
        passive_deletes='all',
        lazy=True,
    )
    results = db.relationship('QuizResult', back_populates='quiz', passive_deletes='all', lazy=True)


class QuizQuestion(db.Model):
    __tablename__ = 'quiz_questions'

    question_id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey('quizzes.quiz_id'), nullable=False)
    question = db.Column(db.Text, nullable=False)
    options = db.Column(JSON, nullable=False)
    correct_answer = db.Column(db.Integer, nullable=False)
    points = db.Column(db.Integer, default=1, nullable=False)
    order_index = db.Column(db.Integer, nullable=False)

    quiz = db.relationship('Quiz', back_populates='questions')


class QuizResult(db.Model):
    """A student's single graded submission of a quiz."""

    __tablename__ = 'quiz_results'

    result_id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey('quizzes.quiz_id'), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey('students.student_id'), nullable=False)
    score = db.Column(db.Integer, nullable=False)
    total_questions = db.Column(db.Integer, nullable=False)
    passed = db.Column(db.Boolean, nullable=False)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=False)

    quiz = db.relationship('Quiz', back_populates='results')
    student = db.relationship('Student', backref='quiz_results')
    # Answers are written in the same flush as their result
    answers = db.relationship(
        'QuizAnswer',
        back_populates='result',
        cascade='save-update, merge',
        passive_deletes='all',
        lazy=True,
    )

    __table_args__ = (db.UniqueConstraint('quiz_id', 'student_id', name='uq_quiz_result'),)

    @property
    def percentage(self) -> float:
        if not self.total_questions:
            return 0.0
        return self.score / self.total_questions * 100


class QuizAnswer(db.Model):
    __tablename__ = 'quiz_answers'

    answer_id = db.Column(db.Integer, primary_key=True)
    result_id = db.Column(db.Integer, db.ForeignKey('quiz_results.result_id'), nullable=False)
    question_id = db.Column(db.Integer, db.ForeignKey('quiz_questions.question_id'), nullable=False)
    selected_answer = db.Column(db.Integer, nullable=False)
    is_correct = db.Column(db.Boolean, nullable=False)

    result = db.relationship('QuizResult', back_populates='answers')
    question = db.relationship('QuizQuestion')
