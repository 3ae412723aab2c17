import pytest

from easylearn_app.models import Role
from easylearn_app.modules.access_control import RoleDispatch


def test_dispatch_requires_every_role():
    with pytest.raises(TypeError) as excinfo:
        RoleDispatch('partial', {Role.ADMIN: lambda: 'admin'})
    assert 'PROFESSOR' in str(excinfo.value)
    assert 'STUDENT' in str(excinfo.value)


def test_dispatch_routes_by_role_value():
    table = RoleDispatch('greeting', {
        Role.ADMIN: lambda name: f'admin {name}',
        Role.PROFESSOR: lambda name: f'professor {name}',
        Role.STUDENT: lambda name: f'student {name}',
    })
    assert table(Role.PROFESSOR, 'Ana') == 'professor Ana'
    assert table('STUDENT', 'Ben') == 'student Ben'


def test_role_guard_over_http(app, login, client, make_professor):
    assert client.get('/api/stats/professor').status_code == 401

    login(make_professor())
    assert client.get('/api/stats/professor').status_code == 200
    assert client.get('/api/stats/student').status_code == 403
