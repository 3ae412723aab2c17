"""Scheduled jobs of the auth module."""
import logging

from ...extensions import scheduler
from .services.access_token_service import AccessTokenService

logger = logging.getLogger(__name__)


def sweep_expired_access_tokens():
    """Job executed by the scheduler: drop invitation codes that expired unused."""
    with scheduler.app.app_context():
        try:
            removed = AccessTokenService.sweep_expired()
            logger.info("Access token sweep finished, %d removed.", removed)
        except Exception as e:
            logger.error(f"Access token sweep failed: {e}", exc_info=True)
