"""
Video provider adapter.

Rooms never talk to the video backend directly: they go through the
``VideoProvider`` stored in ``app.extensions['video_provider']``. The default
implementation speaks the LiveKit server API over HTTP (Twirp) and signs
access tokens locally with PyJWT.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

import jwt
import requests
from flask import current_app

from ....core.error_handlers import ProviderError
from ....utils.time_utils import utcnow

logger = logging.getLogger(__name__)


@dataclass
class JoinCredential:
    token: str
    identity: str
    expires_at: datetime


class VideoProvider:
    """Operations the room lifecycle needs from the video backend."""

    server_url = ''

    def create_room(self, name: str, max_participants: int) -> None:
        """Ensure the room exists. Creating an existing room is a success."""
        raise NotImplementedError

    def delete_room(self, name: str) -> None:
        raise NotImplementedError

    def issue_join_token(self, room_name: str, identity: str, display_name: str,
                         can_publish: bool) -> JoinCredential:
        raise NotImplementedError


class LiveKitProvider(VideoProvider):
    """LiveKit RoomService client with an explicit deadline on every call."""

    SERVICE_PATH = '/twirp/livekit.RoomService/'
    ADMIN_TOKEN_TTL_SECONDS = 600

    def __init__(self, url, api_key, api_secret, token_ttl_seconds=6 * 3600, timeout=10):
        self.server_url = url or ''
        self.api_key = api_key
        self.api_secret = api_secret
        self.token_ttl_seconds = token_ttl_seconds
        self.timeout = timeout

    @classmethod
    def from_config(cls, config):
        return cls(
            url=config.get('LIVEKIT_URL'),
            api_key=config.get('LIVEKIT_API_KEY'),
            api_secret=config.get('LIVEKIT_API_SECRET'),
            token_ttl_seconds=config.get('LIVEKIT_TOKEN_TTL_SECONDS', 6 * 3600),
            timeout=config.get('LIVEKIT_REQUEST_TIMEOUT_SECONDS', 10),
        )

    @property
    def api_url(self) -> str:
        # The websocket URL handed to clients doubles as the HTTP API host
        if self.server_url.startswith('wss://'):
            return 'https://' + self.server_url[len('wss://'):]
        if self.server_url.startswith('ws://'):
            return 'http://' + self.server_url[len('ws://'):]
        return self.server_url

    def _sign(self, claims: dict, ttl_seconds: int) -> str:
        if not (self.api_key and self.api_secret):
            raise ProviderError('Video provider is not configured', operation='sign_token')
        now = utcnow()
        payload = {
            'iss': self.api_key,
            'nbf': now,
            'exp': now + timedelta(seconds=ttl_seconds),
            'jti': str(uuid.uuid4()),
        }
        payload.update(claims)
        return jwt.encode(payload, self.api_secret, algorithm='HS256')

    def _call(self, method: str, body: dict, grants: dict) -> dict:
        if not self.server_url:
            raise ProviderError('Video provider is not configured', operation=method)

        token = self._sign({'video': grants}, self.ADMIN_TOKEN_TTL_SECONDS)
        url = self.api_url.rstrip('/') + self.SERVICE_PATH + method
        try:
            response = requests.post(
                url,
                json=body,
                headers={'Authorization': f'Bearer {token}'},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"LiveKit {method} request failed: {e}")
            raise ProviderError(f'Video provider request failed: {e}', operation=method)

        if response.status_code >= 400:
            logger.error("LiveKit %s returned %s: %s", method, response.status_code, response.text[:200])
            raise ProviderError(
                f'Video provider returned HTTP {response.status_code}',
                operation=method,
            )
        try:
            return response.json() if response.content else {}
        except ValueError:
            return {}

    def create_room(self, name, max_participants):
        self._call(
            'CreateRoom',
            {'name': name, 'max_participants': max_participants},
            {'roomCreate': True},
        )
        logger.info("LiveKit room ensured: %s", name)

    def delete_room(self, name):
        self._call('DeleteRoom', {'room': name}, {'roomCreate': True})
        logger.info("LiveKit room deleted: %s", name)

    def issue_join_token(self, room_name, identity, display_name, can_publish):
        token = self._sign(
            {
                'sub': identity,
                'name': display_name,
                'video': {
                    'roomJoin': True,
                    'room': room_name,
                    'canPublish': can_publish,
                    'canSubscribe': True,
                    'canPublishData': True,
                },
            },
            self.token_ttl_seconds,
        )
        return JoinCredential(
            token=token,
            identity=identity,
            expires_at=utcnow() + timedelta(seconds=self.token_ttl_seconds),
        )


def init_video_provider(app) -> VideoProvider:
    """Build the provider named by ``VIDEO_PROVIDER`` (LiveKit by default)."""
    factory = app.config.get('VIDEO_PROVIDER') or LiveKitProvider.from_config
    provider = factory(app.config)
    app.extensions['video_provider'] = provider
    return provider


def get_video_provider() -> VideoProvider:
    return current_app.extensions['video_provider']
