"""Professor-written skill evaluations of students."""

from __future__ import annotations

from sqlalchemy.sql import func
from sqlalchemy.types import JSON

from ..db_instance import db


class Evaluation(db.Model):
    __tablename__ = 'evaluations'

    SKILLS = ('pronunciation', 'grammar', 'vocabulary', 'fluency')

    evaluation_id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('students.student_id'), nullable=False)
    professor_id = db.Column(db.Integer, db.ForeignKey('professors.professor_id'), nullable=False)
    room_id = db.Column(db.Integer, db.ForeignKey('rooms.room_id'), nullable=True)
    language = db.Column(db.String(40), nullable=False)
    pronunciation = db.Column(db.Integer, nullable=False)
    grammar = db.Column(db.Integer, nullable=False)
    vocabulary = db.Column(db.Integer, nullable=False)
    fluency = db.Column(db.Integer, nullable=False)
    overall_score = db.Column(db.Integer, nullable=False)
    assigned_level = db.Column(db.String(10), nullable=True)
    # Student level before this evaluation, kept for progress history
    previous_level = db.Column(db.String(10), nullable=True)
    feedback = db.Column(db.Text, nullable=True)
    strengths = db.Column(JSON, nullable=True)
    areas_to_improve = db.Column(JSON, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), onupdate=func.now())

    student = db.relationship('Student', backref='evaluations')
    professor = db.relationship('Professor', backref='evaluations')
    room = db.relationship('Room', backref='evaluations')
