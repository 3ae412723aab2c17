"""One-time, role-scoped invitation codes."""

from __future__ import annotations

from sqlalchemy.sql import func

from ..db_instance import db
from .user import Role


class AccessToken(db.Model):
    """Invitation code an admin hands out so someone can register with a role."""

    __tablename__ = 'access_tokens'

    token_id = db.Column(db.Integer, primary_key=True)
    token = db.Column(db.String(40), unique=True, nullable=False)
    role = db.Column(db.Enum(Role, native_enum=False, length=20), nullable=False)
    is_used = db.Column(db.Boolean, default=False, nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    created_by_id = db.Column(db.Integer, db.ForeignKey('users.user_id'), nullable=True)
    used_by_id = db.Column(db.Integer, db.ForeignKey('users.user_id'), unique=True, nullable=True)
    used_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())

    created_by = db.relationship('User', foreign_keys=[created_by_id])
    used_by = db.relationship('User', foreign_keys=[used_by_id])

    def to_dict(self) -> dict[str, object]:
        from ..utils.time_utils import isoformat

        return {
            'id': self.token_id,
            'token': self.token,
            'role': self.role.value,
            'isUsed': self.is_used,
            'expiresAt': isoformat(self.expires_at),
            'usedAt': isoformat(self.used_at),
            'createdBy': self.created_by_id,
            'usedBy': self.used_by_id,
        }
