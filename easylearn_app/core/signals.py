"""
Central Signal Registry for Event-Driven Architecture.

Uses blinker namespaces so that modules can react to each other's events
without importing each other.

Usage:
    # Publisher (sender)
    from easylearn_app.core.signals import room_ended
    room_ended.send(None, room_id=1, professor_id=2, reason='explicit')

    # Subscriber (receiver) - in a module's events.py
    @room_ended.connect
    def on_room_ended(sender, **kwargs):
        ...
"""
from blinker import Namespace

# ============================================
# Room Lifecycle Signals
# ============================================
room_signals = Namespace()

# Signal: Fired when a room transitions SCHEDULED -> LIVE
# Payload: room_id, trigger ('start', 'join_token' or 'update')
room_started = room_signals.signal('room_started')

# Signal: Fired when a room transitions LIVE -> COMPLETED
# Payload: room_id, professor_id (may be None), reason ('explicit', 'last_participant_left' or 'update')
room_ended = room_signals.signal('room_ended')

# ============================================
# Assessment Signals
# ============================================
assessment_signals = Namespace()

# Signal: Fired after a challenge attempt is stored
# Payload: challenge_id, student_id, attempt_number, is_correct, points_earned
challenge_answered = assessment_signals.signal('challenge_answered')

# Signal: Fired after a quiz result is stored
# Payload: quiz_id, student_id, score, total_questions, passed
quiz_submitted = assessment_signals.signal('quiz_submitted')
