"""Database models for scheduled live rooms and their participants."""

from __future__ import annotations

from enum import Enum

from sqlalchemy.sql import func

from ..db_instance import db


class RoomStatus(str, Enum):
    """Room lifecycle states, declared in their only allowed order."""

    SCHEDULED = 'SCHEDULED'
    LIVE = 'LIVE'
    COMPLETED = 'COMPLETED'

    @property
    def rank(self) -> int:
        return list(RoomStatus).index(self)


class Room(db.Model):
    """A scheduled teaching session backed by an external video room."""

    __tablename__ = 'rooms'

    ANIMATOR_HUMAN = 'HUMAN'
    ANIMATOR_AI = 'AI'

    room_id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    language = db.Column(db.String(40), nullable=False)
    level = db.Column(db.String(10), nullable=True)
    objective = db.Column(db.Text, nullable=True)
    scheduled_at = db.Column(db.DateTime(timezone=True), nullable=False)
    duration = db.Column(db.Integer, nullable=False)
    max_students = db.Column(db.Integer, nullable=False)
    status = db.Column(
        db.Enum(RoomStatus, native_enum=False, length=20),
        default=RoomStatus.SCHEDULED,
        nullable=False,
    )
    animator_type = db.Column(db.String(20), default=ANIMATOR_HUMAN, nullable=False)
    external_room_name = db.Column(db.String(120), unique=True, nullable=True)
    professor_id = db.Column(db.Integer, db.ForeignKey('professors.professor_id'), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), onupdate=func.now())

    professor = db.relationship('Professor', backref='rooms')
    # Children are removed explicitly by the room service, never by the ORM
    participants = db.relationship(
        'RoomParticipant',
        back_populates='room',
        passive_deletes='all',
        order_by='RoomParticipant.participant_id',
        lazy=True,
    )


class RoomParticipant(db.Model):
    """Invitation and attendance record of one student in one room."""

    __tablename__ = 'room_participants'

    participant_id = db.Column(db.Integer, primary_key=True)
    room_id = db.Column(db.Integer, db.ForeignKey('rooms.room_id'), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey('students.student_id'), nullable=False)
    invited = db.Column(db.Boolean, default=True, nullable=False)
    joined_at = db.Column(db.DateTime(timezone=True), nullable=True)
    left_at = db.Column(db.DateTime(timezone=True), nullable=True)
    is_muted = db.Column(db.Boolean, default=False, nullable=False)
    is_camera_on = db.Column(db.Boolean, default=False, nullable=False)
    is_screen_sharing = db.Column(db.Boolean, default=False, nullable=False)
    hand_raised = db.Column(db.Boolean, default=False, nullable=False)
    is_pinged = db.Column(db.Boolean, default=False, nullable=False)
    pinged_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())

    room = db.relationship('Room', back_populates='participants')
    student = db.relationship('Student', backref='room_participations')

    __table_args__ = (db.UniqueConstraint('room_id', 'student_id', name='uq_room_participant'),)

    @property
    def is_active(self) -> bool:
        return self.joined_at is not None and self.left_at is None


class ProviderToken(db.Model):
    """Join credential issued by the video provider for one user and room."""

    __tablename__ = 'provider_tokens'

    token_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.user_id'), nullable=False)
    room_id = db.Column(db.Integer, db.ForeignKey('rooms.room_id'), nullable=False)
    token = db.Column(db.Text, nullable=False)
    identity = db.Column(db.String(200), nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())

    user = db.relationship('User')
    room = db.relationship('Room')
