"""
Event handlers for the summaries module.

A finished room is where the professor's recap is expected. The listener
notes rooms that ended without one so the hand-off shows up in the logs.
"""
import logging

from ...core.signals import room_ended
from .services import SummaryService

logger = logging.getLogger(__name__)


@room_ended.connect
def on_room_ended(sender, **kwargs):
    """
    Expected kwargs:
        - room_id: int
        - professor_id: int or None
        - reason: str ('explicit', 'last_participant_left' or 'update')
    """
    room_id = kwargs.get('room_id')
    if SummaryService.is_pending(room_id):
        logger.info(
            "Room %s ended (%s), awaiting session summary from professor %s",
            room_id,
            kwargs.get('reason'),
            kwargs.get('professor_id'),
        )
    else:
        logger.info("Room %s ended (%s), session summary already recorded", room_id, kwargs.get('reason'))
