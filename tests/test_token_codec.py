from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from teamboard.auth.identity import IdentityClaim
from teamboard.core import config as app_config
from teamboard.core.security import (
    InvalidTokenError,
    hash_password,
    issue_access_token,
    issue_refresh_token,
    peek_identity,
    verify,
    verify_access_token,
    verify_password,
    verify_refresh_token,
)

IDENTITY = IdentityClaim(user_id="42", username="alice", email="alice@example.com")


def test_access_token_round_trip():
    token = issue_access_token(IDENTITY)
    assert verify_access_token(token) == IDENTITY


def test_refresh_token_round_trip():
    token = issue_refresh_token(IDENTITY)
    assert verify_refresh_token(token) == IDENTITY


def test_tokens_carry_identity_only():
    payload = jwt.get_unverified_claims(issue_access_token(IDENTITY))
    assert payload["userId"] == "42"
    assert payload["username"] == "alice"
    assert payload["email"] == "alice@example.com"
    assert payload["purpose"] == "access"
    assert payload["exp"] > payload["iat"]


def test_two_tokens_for_same_identity_differ():
    assert issue_access_token(IDENTITY) != issue_access_token(IDENTITY)


def test_access_token_rejected_by_refresh_secret():
    token = issue_access_token(IDENTITY)
    with pytest.raises(InvalidTokenError):
        verify_refresh_token(token)


def test_refresh_token_rejected_as_access_token():
    token = issue_refresh_token(IDENTITY)
    with pytest.raises(InvalidTokenError):
        verify_access_token(token)


def test_wrong_purpose_rejected_even_with_right_secret():
    token = issue_refresh_token(IDENTITY)
    with pytest.raises(InvalidTokenError):
        verify(token, app_config.settings.REFRESH_TOKEN_SECRET, expected_purpose="access")


def test_expired_token_rejected():
    issued = datetime.now(timezone.utc) - timedelta(hours=1)
    token = issue_access_token(IDENTITY, now=issued)
    with pytest.raises(InvalidTokenError):
        verify_access_token(token)


def test_tampered_token_rejected():
    token = issue_access_token(IDENTITY)
    header, payload, signature = token.split(".")
    flipped = "A" if signature[10] != "A" else "B"
    tampered = ".".join([header, payload, signature[:10] + flipped + signature[11:]])
    with pytest.raises(InvalidTokenError):
        verify_access_token(tampered)


@pytest.mark.parametrize("garbage", ["", "not-a-jwt", "a.b.c"])
def test_garbage_rejected(garbage):
    with pytest.raises(InvalidTokenError):
        verify_access_token(garbage)


def test_failure_messages_are_uniform():
    expired = issue_access_token(IDENTITY, now=datetime.now(timezone.utc) - timedelta(hours=1))
    messages = set()
    for bad in (expired, "junk", issue_refresh_token(IDENTITY)):
        with pytest.raises(InvalidTokenError) as exc:
            verify_access_token(bad)
        messages.add(str(exc.value))
    assert len(messages) == 1


def test_token_without_user_id_rejected():
    token = jwt.encode(
        {"username": "x", "purpose": "access", "exp": int(datetime.now(timezone.utc).timestamp()) + 60},
        app_config.settings.ACCESS_TOKEN_SECRET,
        algorithm=app_config.settings.JWT_ALGORITHM,
    )
    with pytest.raises(InvalidTokenError):
        verify_access_token(token)


def test_peek_identity_ignores_expiry_but_not_signature():
    expired = issue_access_token(IDENTITY, now=datetime.now(timezone.utc) - timedelta(hours=1))
    assert peek_identity(expired, None) == IDENTITY
    assert peek_identity("junk", None) is None
    assert peek_identity(None, None) is None


def test_peek_identity_falls_back_to_refresh_token():
    assert peek_identity("junk", issue_refresh_token(IDENTITY)) == IDENTITY


def test_identity_from_claims_normalizes_and_requires_user_id():
    claim = IdentityClaim.from_claims({"userId": 7, "username": "bob", "email": " Bob@Example.com "})
    assert claim == IdentityClaim(user_id="7", username="bob", email="bob@example.com")

    with pytest.raises(ValueError):
        IdentityClaim.from_claims({"username": "nobody"})


def test_password_hashing():
    hashed = hash_password("Password_12345")
    assert hashed != "Password_12345"
    assert verify_password("Password_12345", hashed)
    assert not verify_password("wrong", hashed)
