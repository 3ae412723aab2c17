"""Professor-written recap of a finished room."""

from __future__ import annotations

from sqlalchemy.sql import func
from sqlalchemy.types import JSON

from ..db_instance import db


class SessionSummary(db.Model):
    """One recap per room, rewritten in place when the professor edits it."""

    __tablename__ = 'session_summaries'

    LIST_FIELDS = (
        'key_topics',
        'vocabulary_covered',
        'grammar_points',
        'strengths',
        'areas_to_improve',
        'recommendations',
    )
    SCORE_FIELDS = (
        'overall_score',
        'pronunciation_score',
        'grammar_score',
        'vocabulary_score',
        'fluency_score',
        'participation_score',
    )

    summary_id = db.Column(db.Integer, primary_key=True)
    room_id = db.Column(db.Integer, db.ForeignKey('rooms.room_id'), nullable=False)
    professor_id = db.Column(db.Integer, db.ForeignKey('professors.professor_id'), nullable=False)
    summary = db.Column(db.Text, nullable=False)
    key_topics = db.Column(JSON, nullable=True)
    vocabulary_covered = db.Column(JSON, nullable=True)
    grammar_points = db.Column(JSON, nullable=True)
    strengths = db.Column(JSON, nullable=True)
    areas_to_improve = db.Column(JSON, nullable=True)
    recommendations = db.Column(JSON, nullable=True)
    next_session_focus = db.Column(db.Text, nullable=True)
    overall_score = db.Column(db.Integer, nullable=True)
    pronunciation_score = db.Column(db.Integer, nullable=True)
    grammar_score = db.Column(db.Integer, nullable=True)
    vocabulary_score = db.Column(db.Integer, nullable=True)
    fluency_score = db.Column(db.Integer, nullable=True)
    participation_score = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), onupdate=func.now())

    room = db.relationship('Room', backref=db.backref('summary', uselist=False, passive_deletes='all'))
    professor = db.relationship('Professor', backref='session_summaries')

    __table_args__ = (db.UniqueConstraint('room_id', name='uq_session_summary_room'),)
