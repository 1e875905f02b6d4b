import base64
import logging
from types import SimpleNamespace

import pytest
from fastapi.security import HTTPBasicCredentials

from courses_api.auth.dependencies import get_current_user, parse_basic_credentials
from courses_api.auth.passwords import hash_password, verify_password
from courses_api.core.errors import ApiError, ErrorKind


def test_hash_password_is_salted() -> None:
    first = hash_password('joepassword')
    second = hash_password('joepassword')

    assert first != second
    assert verify_password('joepassword', first)
    assert verify_password('joepassword', second)
    assert not verify_password('janepassword', first)


def test_verify_password_treats_malformed_hash_as_mismatch() -> None:
    assert not verify_password('joepassword', 'joepassword')


def test_get_current_user_resolves_matching_credentials(make_user, course_db) -> None:
    user = make_user(email_address='ada@lovelace.org', password='analytical')

    resolved = get_current_user(
        credentials=HTTPBasicCredentials(username=' ADA@lovelace.org ', password='analytical'),
        db=course_db,
    )

    assert resolved.id == user.id


@pytest.mark.parametrize(
    ('credentials', 'log_fragment'),
    [
        (None, 'Auth header not found'),
        (HTTPBasicCredentials(username='nobody@lovelace.org', password='analytical'), 'User not found'),
        (HTTPBasicCredentials(username='ada@lovelace.org', password='wrong'), 'Authentication failure'),
    ],
)
def test_get_current_user_denies_access_with_generic_message(
    make_user,
    course_db,
    caplog: pytest.LogCaptureFixture,
    credentials,
    log_fragment: str,
) -> None:
    make_user(email_address='ada@lovelace.org', password='analytical')

    with caplog.at_level(logging.WARNING, logger='courses_api.auth.dependencies'):
        with pytest.raises(ApiError) as exception_info:
            get_current_user(credentials=credentials, db=course_db)

    assert exception_info.value.kind is ErrorKind.UNAUTHORIZED
    assert exception_info.value.status_code == 401
    assert exception_info.value.message == 'Access Denied'
    assert log_fragment in caplog.text


def _basic_request(pair: bytes):
    return SimpleNamespace(headers={'Authorization': 'Basic ' + base64.b64encode(pair).decode('ascii')})


def test_parse_basic_credentials_decodes_utf8() -> None:
    credentials = parse_basic_credentials(_basic_request('josé@smith.com:contraseña'.encode('utf-8')))

    assert credentials.username == 'josé@smith.com'
    assert credentials.password == 'contraseña'


def test_parse_basic_credentials_keeps_colons_in_password() -> None:
    credentials = parse_basic_credentials(_basic_request(b'ada@lovelace.org:a:b'))

    assert credentials.password == 'a:b'


@pytest.mark.parametrize('headers', [{}, {'Authorization': 'Bearer abc'}])
def test_parse_basic_credentials_without_basic_header_returns_none(headers: dict) -> None:
    assert parse_basic_credentials(SimpleNamespace(headers=headers)) is None


@pytest.mark.parametrize(
    'header',
    [
        'Basic !!!not-base64',
        'Basic ' + base64.b64encode(b'\xff\xfe:secret').decode('ascii'),
        'Basic ' + base64.b64encode(b'nocolon').decode('ascii'),
    ],
)
def test_parse_basic_credentials_rejects_malformed_header(header: str) -> None:
    with pytest.raises(ApiError) as exception_info:
        parse_basic_credentials(SimpleNamespace(headers={'Authorization': header}))

    assert exception_info.value.kind is ErrorKind.UNAUTHORIZED
    assert exception_info.value.message == 'Access Denied'
