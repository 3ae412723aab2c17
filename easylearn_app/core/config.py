# File: easylearn_app/core/config.py
# Infrastructure layer: application configuration read from the environment.

import os

from dotenv import load_dotenv

load_dotenv()

# This file lives in easylearn_app/core/, the project root is two levels up.
BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))

DATABASE_PATH = os.path.join(BASE_DIR, "database", "easylearn.db")


def _env_bool(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """EasyLearn application configuration."""

    SECRET_KEY = os.environ.get('SECRET_KEY')
    if not SECRET_KEY:
        # Development fallback, set SECRET_KEY in production
        SECRET_KEY = 'dev-secret-key-replace-in-production'

    SQLALCHEMY_DATABASE_URI = os.environ.get('SQLALCHEMY_DATABASE_URI') or f'sqlite:///{DATABASE_PATH}'
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'connect_args': {'timeout': 30},
    }
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    ITEMS_PER_PAGE = int(os.environ.get('ITEMS_PER_PAGE', 10))

    # Rooms may be started or joined this many minutes before scheduled_at
    ROOM_JOIN_WINDOW_MINUTES = int(os.environ.get('ROOM_JOIN_WINDOW_MINUTES', 15))

    ACCESS_TOKEN_TTL_DAYS = int(os.environ.get('ACCESS_TOKEN_TTL_DAYS', 30))

    # Video provider (LiveKit)
    VIDEO_PROVIDER = None
    LIVEKIT_URL = os.environ.get('LIVEKIT_URL', '')
    LIVEKIT_API_KEY = os.environ.get('LIVEKIT_API_KEY', '')
    LIVEKIT_API_SECRET = os.environ.get('LIVEKIT_API_SECRET', '')
    LIVEKIT_TOKEN_TTL_SECONDS = int(os.environ.get('LIVEKIT_TOKEN_TTL_SECONDS', 6 * 3600))
    LIVEKIT_REQUEST_TIMEOUT_SECONDS = float(os.environ.get('LIVEKIT_REQUEST_TIMEOUT_SECONDS', 10))

    # Background jobs
    SCHEDULER_ENABLED = _env_bool('SCHEDULER_ENABLED', True)
    SCHEDULER_API_ENABLED = False
    TOKEN_SWEEP_INTERVAL_MINUTES = int(os.environ.get('TOKEN_SWEEP_INTERVAL_MINUTES', 60))

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_DIR = os.environ.get('LOG_DIR') or os.path.join(BASE_DIR, 'logs')
    LOG_JSON = _env_bool('LOG_JSON', False)

    @classmethod
    def init_app(cls, app):
        """Create the directories the configuration points at."""
        if app.config['SQLALCHEMY_DATABASE_URI'] == f'sqlite:///{DATABASE_PATH}':
            os.makedirs(os.path.dirname(DATABASE_PATH), exist_ok=True)
