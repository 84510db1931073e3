from datetime import timedelta

import pytest
from jose import jwt

from royaldrive.core.config import settings
from royaldrive.core.dependencies import can_view_internal
from royaldrive.core.security import decode_access_token

from tokens import create_access_token


def test_token_round_trip():
    claims = decode_access_token(create_access_token("u-42", "manager", ["sales:write"]))
    assert claims["sub"] == "u-42"
    assert claims["role"] == "manager"
    assert claims["permissions"] == ["sales:write"]


def test_expired_token_is_rejected():
    token = create_access_token("u-42", "admin", expires_delta=timedelta(seconds=-5))
    assert decode_access_token(token) is None


def test_token_signed_with_other_key_is_rejected():
    token = jwt.encode({"sub": "u-42", "role": "admin"}, "another-key", algorithm=settings.ALGORITHM)
    assert decode_access_token(token) is None


def test_refresh_token_is_not_an_access_token():
    token = jwt.encode(
        {"sub": "u-42", "role": "admin", "type": "refresh"},
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
    )
    assert decode_access_token(token) is None


def test_empty_subject_is_refused():
    with pytest.raises(ValueError):
        create_access_token("", "admin")


@pytest.mark.parametrize(
    "claims, expected",
    [
        (None, False),
        ({"role": "superAdmin"}, True),
        ({"role": "admin"}, True),
        ({"role": "manager"}, True),
        ({"role": "salesperson"}, False),
        ({"role": "salesperson", "permissions": ["vehicles:view:internal"]}, True),
        ({"role": "viewer", "permissions": None}, False),
    ],
)
def test_can_view_internal(claims, expected):
    assert can_view_internal(claims) is expected
