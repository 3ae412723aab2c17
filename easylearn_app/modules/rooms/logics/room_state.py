"""
Room state rules.

Pure functions over statuses and timestamps, with no database access, so the
lifecycle rules can be tested without a request or a session.
"""
from datetime import datetime, timedelta
from typing import Optional

from ....models.room import RoomStatus
from ....utils.time_utils import ensure_utc


def next_status(current: RoomStatus) -> Optional[RoomStatus]:
    """The only status ``current`` may move to, None once terminal."""
    order = list(RoomStatus)
    index = order.index(RoomStatus(current))
    return order[index + 1] if index + 1 < len(order) else None


def is_forward_transition(current: RoomStatus, target: RoomStatus) -> bool:
    return next_status(current) == RoomStatus(target)


def join_window_opens_at(scheduled_at: datetime, window_minutes: int) -> datetime:
    return ensure_utc(scheduled_at) - timedelta(minutes=window_minutes)


def is_join_window_open(scheduled_at: datetime, now: datetime, window_minutes: int) -> bool:
    """True from ``window_minutes`` before the scheduled start onwards."""
    return ensure_utc(now) >= join_window_opens_at(scheduled_at, window_minutes)


def should_auto_complete(status: RoomStatus, active_participants: int) -> bool:
    """A live room with nobody left in it is over."""
    return RoomStatus(status) == RoomStatus.LIVE and active_participants == 0
