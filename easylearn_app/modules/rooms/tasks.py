"""Scheduled jobs of the rooms module."""
import logging

from ...extensions import scheduler
from ...models import ProviderToken, db
from ...utils.time_utils import utcnow

logger = logging.getLogger(__name__)


def delete_expired_provider_tokens() -> int:
    """Remove video join credentials past their expiry. Returns the count."""
    removed = (
        ProviderToken.query
        .filter(ProviderToken.expires_at <= utcnow())
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return removed


def cleanup_expired_provider_tokens():
    """Job executed by the scheduler every hour."""
    with scheduler.app.app_context():
        try:
            removed = delete_expired_provider_tokens()
            logger.info("Provider token cleanup finished, %d removed.", removed)
        except Exception as e:
            logger.error(f"Provider token cleanup failed: {e}", exc_info=True)
