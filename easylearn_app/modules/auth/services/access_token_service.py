"""
Access Token Service - one-time, role-scoped invitation codes.

Admins generate codes, registration consumes them, and a periodic job
removes the ones that expired unused.
"""
import logging
import uuid
from datetime import timedelta

from flask import current_app

from ....core.error_handlers import InvalidStateError
from ....models import AccessToken, Role, db
from ....utils.time_utils import ensure_utc, utcnow
from ..config import AuthModuleDefaultConfig

logger = logging.getLogger(__name__)


class AccessTokenService:
    """Issue, check and consume invitation codes."""

    @staticmethod
    def _new_code(role: Role) -> str:
        random_part = uuid.uuid4().hex.upper()[:AuthModuleDefaultConfig.TOKEN_RANDOM_LENGTH]
        return f"{role.value}_{random_part}"

    @staticmethod
    def generate(role, created_by=None) -> AccessToken:
        """Create a fresh code for ``role`` valid for ACCESS_TOKEN_TTL_DAYS."""
        role = Role(role)
        code = AccessTokenService._new_code(role)
        while AccessToken.query.filter_by(token=code).first() is not None:
            code = AccessTokenService._new_code(role)

        ttl_days = current_app.config.get('ACCESS_TOKEN_TTL_DAYS', 30)
        token = AccessToken(
            token=code,
            role=role,
            is_used=False,
            expires_at=utcnow() + timedelta(days=ttl_days),
            created_by_id=created_by.user_id if created_by is not None else None,
        )
        db.session.add(token)
        db.session.commit()
        logger.info("Generated %s access token %s", role.value, code)
        return token

    @staticmethod
    def available(role):
        """Unused codes of ``role`` that have not expired yet."""
        return (
            AccessToken.query
            .filter_by(role=Role(role), is_used=False)
            .filter(AccessToken.expires_at > utcnow())
            .order_by(AccessToken.created_at.desc(), AccessToken.token_id.desc())
            .all()
        )

    @staticmethod
    def validate(code, role) -> AccessToken:
        """Return the code row if it can register a ``role`` account right now."""
        token = AccessToken.query.filter_by(token=(code or '').strip()).first()
        if token is None:
            raise InvalidStateError('Invalid access token')

        if token.is_used or ensure_utc(token.expires_at) <= utcnow() or token.role != Role(role):
            raise InvalidStateError('Invalid or expired access token')
        return token

    @staticmethod
    def consume(token: AccessToken, user) -> None:
        """Mark ``token`` used by ``user``. The caller commits."""
        token.is_used = True
        token.used_at = utcnow()
        token.used_by = user

    @staticmethod
    def sweep_expired() -> int:
        """Delete expired codes nobody used. Returns how many were removed."""
        removed = (
            AccessToken.query
            .filter(AccessToken.is_used.is_(False), AccessToken.expires_at <= utcnow())
            .delete(synchronize_session=False)
        )
        db.session.commit()
        if removed:
            logger.info("Swept %d expired access tokens", removed)
        return removed
