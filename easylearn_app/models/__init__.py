"""Central model registry: importing this module registers every table."""

from ..db_instance import db
from .access_token import AccessToken
from .challenge import Challenge, ChallengeAttempt, ChallengeDifficulty
from .evaluation import Evaluation
from .quiz import Quiz, QuizAnswer, QuizQuestion, QuizResult
from .room import ProviderToken, Room, RoomParticipant, RoomStatus
from .summary import SessionSummary
from .user import Professor, Role, Student, User

__all__ = [
    'db',
    'AccessToken',
    'Challenge',
    'ChallengeAttempt',
    'ChallengeDifficulty',
    'Evaluation',
    'Professor',
    'ProviderToken',
    'Quiz',
    'QuizAnswer',
    'QuizQuestion',
    'QuizResult',
    'Role',
    'Room',
    'RoomParticipant',
    'RoomStatus',
    'SessionSummary',
    'Student',
    'User',
]
