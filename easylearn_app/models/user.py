"""Identity models: base accounts and their role profiles."""

from __future__ import annotations

from enum import Enum

from flask_login import UserMixin
from sqlalchemy.sql import func
from sqlalchemy.types import JSON
from werkzeug.security import check_password_hash, generate_password_hash

from ..db_instance import db


class Role(str, Enum):
    """Closed set of principal roles."""

    ADMIN = 'ADMIN'
    PROFESSOR = 'PROFESSOR'
    STUDENT = 'STUDENT'


class User(UserMixin, db.Model):
    """Base account shared by admins, professors and students."""

    __tablename__ = 'users'

    user_id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    # Students sign in with their unique code and have no email
    email = db.Column(db.String(120), unique=True, nullable=True)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.Enum(Role, native_enum=False, length=20), nullable=False)
    avatar = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_by_id = db.Column(db.Integer, db.ForeignKey('users.user_id'), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), onupdate=func.now())

    created_by = db.relationship('User', remote_side=[user_id], foreign_keys=[created_by_id])
    student_profile = db.relationship('Student', uselist=False, back_populates='user')
    professor_profile = db.relationship('Professor', uselist=False, back_populates='user')

    def get_id(self):
        return str(self.user_id)

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)


class Student(db.Model):
    """Student profile linked 1:1 to a user account."""

    __tablename__ = 'students'

    LEVELS = (
        'A1', 'A2', 'B1', 'B2', 'C1', 'C2',
        'YEAR1', 'YEAR2', 'YEAR3', 'YEAR4', 'YEAR5', 'YEAR6', 'YEAR7', 'YEAR8', 'YEAR9',
    )

    student_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.user_id'), unique=True, nullable=False)
    nickname = db.Column(db.String(80), nullable=False)
    bio = db.Column(db.Text, nullable=True)
    level = db.Column(db.String(10), nullable=False)
    unique_code = db.Column(db.String(50), unique=True, nullable=False)
    joined_at = db.Column(db.DateTime(timezone=True), nullable=True)
    total_sessions = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())

    user = db.relationship('User', back_populates='student_profile')

    @property
    def name(self) -> str:
        return self.user.name if self.user else self.nickname


class Professor(db.Model):
    """Professor profile linked 1:1 to a user account."""

    __tablename__ = 'professors'

    professor_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.user_id'), unique=True, nullable=False)
    bio = db.Column(db.Text, nullable=True)
    languages = db.Column(JSON, nullable=True)
    specialization = db.Column(db.String(120), nullable=True)
    joined_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())

    user = db.relationship('User', back_populates='professor_profile')

    @property
    def name(self) -> str:
        return self.user.name if self.user else ''
