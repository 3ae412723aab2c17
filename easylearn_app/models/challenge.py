"""Database models for timed challenges and per-student attempts."""

from __future__ import annotations

from enum import Enum

from sqlalchemy.sql import func
from sqlalchemy.types import JSON

from ..db_instance import db


class ChallengeDifficulty(str, Enum):
    EASY = 'easy'
    MEDIUM = 'medium'
    HARD = 'hard'


class Challenge(db.Model):
    """A timed four-option question published by a professor."""

    __tablename__ = 'challenges'

    SUBJECTS = (
        'Mathematics', 'Physics', 'Chemistry', 'Biology',
        'EarthScience', 'French', 'English', 'Arabic',
    )
    OPTION_COUNT = 4

    challenge_id = db.Column(db.Integer, primary_key=True)
    professor_id = db.Column(db.Integer, db.ForeignKey('professors.professor_id'), nullable=False)
    subject = db.Column(db.String(40), nullable=False)
    difficulty = db.Column(
        db.Enum(ChallengeDifficulty, native_enum=False, length=10,
                values_callable=lambda members: [m.value for m in members]),
        nullable=False,
    )
    title = db.Column(db.String(255), nullable=False)
    question = db.Column(db.Text, nullable=False)
    options = db.Column(JSON, nullable=False)
    correct_answer = db.Column(db.Integer, nullable=False)
    base_points = db.Column(db.Integer, nullable=False)
    image_url = db.Column(db.Text, nullable=True)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), onupdate=func.now())

    professor = db.relationship('Professor', backref='challenges')
    attempts = db.relationship('ChallengeAttempt', back_populates='challenge', passive_deletes='all', lazy=True)

    __table_args__ = (
        db.CheckConstraint('correct_answer >= 0 AND correct_answer <= 3', name='ck_challenge_answer_index'),
        db.CheckConstraint('base_points >= 10 AND base_points <= 200', name='ck_challenge_base_points'),
    )


class ChallengeAttempt(db.Model):
    """Progress of one student on one challenge."""

    __tablename__ = 'challenge_attempts'

    attempt_id = db.Column(db.Integer, primary_key=True)
    challenge_id = db.Column(db.Integer, db.ForeignKey('challenges.challenge_id'), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey('students.student_id'), nullable=False)
    attempts = db.Column(db.Integer, default=0, nullable=False)
    points_earned = db.Column(db.Integer, default=0, nullable=False)
    is_correct = db.Column(db.Boolean, default=False, nullable=False)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())
    # Optimistic lock: concurrent increments of the same row fail with StaleDataError
    version_id = db.Column(db.Integer, nullable=False)

    challenge = db.relationship('Challenge', back_populates='attempts')
    student = db.relationship('Student', backref='challenge_attempts')

    __table_args__ = (
        db.UniqueConstraint('challenge_id', 'student_id', name='uq_challenge_attempt'),
        db.CheckConstraint('attempts <= 2', name='ck_challenge_attempt_limit'),
    )
    __mapper_args__ = {'version_id_col': version_id}
