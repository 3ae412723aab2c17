from unittest.mock import MagicMock, patch

import jwt
import pytest
import requests

from easylearn_app.core.error_handlers import ProviderError
from easylearn_app.modules.rooms.services.video_provider import LiveKitProvider


def _provider(**overrides):
    options = dict(
        url='wss://live.example.com',
        api_key='key',
        api_secret='a-secret-long-enough-for-hs256-signing',
        token_ttl_seconds=3600,
        timeout=7,
    )
    options.update(overrides)
    return LiveKitProvider(**options)


def _response(status_code=200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.content = b'{}'
    response.text = '{}'
    response.json.return_value = payload or {}
    return response


def test_api_url_follows_websocket_scheme():
    assert _provider().api_url == 'https://live.example.com'
    assert _provider(url='ws://localhost:7880').api_url == 'http://localhost:7880'


@patch('easylearn_app.modules.rooms.services.video_provider.requests.post')
def test_create_room_posts_with_timeout_and_admin_token(mock_post):
    mock_post.return_value = _response()

    _provider().create_room('room-1', 12)

    args, kwargs = mock_post.call_args
    assert args[0] == 'https://live.example.com/twirp/livekit.RoomService/CreateRoom'
    assert kwargs['json'] == {'name': 'room-1', 'max_participants': 12}
    assert kwargs['timeout'] == 7

    token = kwargs['headers']['Authorization'].split(' ', 1)[1]
    claims = jwt.decode(token, 'a-secret-long-enough-for-hs256-signing', algorithms=['HS256'])
    assert claims['iss'] == 'key'
    assert claims['video'] == {'roomCreate': True}


@patch('easylearn_app.modules.rooms.services.video_provider.requests.post')
def test_http_error_becomes_provider_error(mock_post):
    mock_post.return_value = _response(status_code=500)

    with pytest.raises(ProviderError) as excinfo:
        _provider().create_room('room-1', 12)
    assert excinfo.value.details == {'operation': 'CreateRoom'}


@patch('easylearn_app.modules.rooms.services.video_provider.requests.post')
def test_timeout_becomes_provider_error(mock_post):
    mock_post.side_effect = requests.Timeout('read timed out')

    with pytest.raises(ProviderError):
        _provider().delete_room('room-1')


def test_join_token_grants():
    credential = _provider().issue_join_token('room-1', 'student-3', 'Lea', False)

    claims = jwt.decode(credential.token, 'a-secret-long-enough-for-hs256-signing', algorithms=['HS256'])
    assert claims['sub'] == 'student-3'
    assert claims['name'] == 'Lea'
    assert claims['video']['room'] == 'room-1'
    assert claims['video']['roomJoin'] is True
    assert claims['video']['canPublish'] is False
    assert claims['exp'] - claims['nbf'] == 3600
    assert credential.identity == 'student-3'


def test_unconfigured_provider_fails_fast():
    with pytest.raises(ProviderError):
        _provider(api_key='', api_secret='').issue_join_token('room-1', 'admin-1', 'Admin', True)

    with pytest.raises(ProviderError):
        _provider(url='').create_room('room-1', 5)
