"""
Tests for password hashing, signed tokens and the user service.
"""
import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from expense_tracker.errors import (  # noqa: E402
    IncorrectInputError,
    UnauthorizedError,
    UserAlreadyExistsError,
    UserNotFoundError,
    WrongPasswordError,
)
from expense_tracker.repositories.users import SqlUserRepository  # noqa: E402
from expense_tracker.security.crypto import AppCrypto  # noqa: E402
from expense_tracker.services.users import UserService  # noqa: E402
from tests.support import TEST_SECRET, make_session_factory  # noqa: E402


class FakeClock:
    def __init__(self, now: float = 1_600_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _crypto(clock=None) -> AppCrypto:
    return AppCrypto(TEST_SECRET, token_ttl_hours=1, refresh_ttl_hours=2, bcrypt_rounds=4, clock=clock or FakeClock())


def _service() -> UserService:
    return UserService(SqlUserRepository(make_session_factory()()), _crypto())


def test_password_hash_round_trip() -> None:
    crypto = _crypto()
    hashed = crypto.hash_password("s3cret")

    assert hashed != "s3cret"
    assert crypto.verify_password(hashed, "s3cret")
    assert not crypto.verify_password(hashed, "wrong")
    assert not crypto.verify_password("not-a-hash", "s3cret")


def test_password_limits() -> None:
    crypto = _crypto()
    with pytest.raises(IncorrectInputError):
        crypto.hash_password("")
    with pytest.raises(IncorrectInputError):
        crypto.hash_password("x" * 73)


def test_tokens_carry_claims_and_expire() -> None:
    clock = FakeClock()
    crypto = _crypto(clock)

    token, refresh_token = crypto.generate_tokens("u1", "alice")

    assert token != refresh_token
    claims = crypto.validate_token(token)
    assert (claims.user_id, claims.username) == ("u1", "alice")
    assert claims.expires_at == int(clock.now) + 3600
    assert crypto.validate_refresh_token(refresh_token).expires_at == int(clock.now) + 7200

    clock.now += 3600
    with pytest.raises(UnauthorizedError):
        crypto.validate_token(token)
    crypto.validate_refresh_token(refresh_token)


def test_tokens_are_not_interchangeable_or_forgeable() -> None:
    crypto = _crypto()
    token, refresh_token = crypto.generate_tokens("u1", "alice")

    with pytest.raises(UnauthorizedError):
        crypto.validate_token(refresh_token)
    with pytest.raises(UnauthorizedError):
        crypto.validate_refresh_token(token)
    with pytest.raises(UnauthorizedError):
        AppCrypto("another-secret", bcrypt_rounds=4).validate_token(token)
    with pytest.raises(UnauthorizedError):
        crypto.validate_token(token[:-2] + "xx")


def test_each_pair_is_distinct() -> None:
    crypto = _crypto()
    assert crypto.generate_tokens("u1", "alice") != crypto.generate_tokens("u1", "alice")


def test_signup_then_login() -> None:
    service = _service()

    user = service.signup("alice", "pw")
    assert user.token and user.refresh_token
    assert user.password_hash != "pw"

    logged_in = service.login("alice", "pw")
    assert logged_in.id == user.id
    assert logged_in.token != user.token
    assert service.crypto.validate_token(logged_in.token).username == "alice"


def test_signup_rejects_duplicates_and_blank_names() -> None:
    service = _service()
    service.signup("alice", "pw")

    with pytest.raises(UserAlreadyExistsError):
        service.signup("alice", "other")
    with pytest.raises(IncorrectInputError):
        service.signup("  ", "pw")


def test_login_failures() -> None:
    service = _service()
    service.signup("alice", "pw")

    with pytest.raises(UserNotFoundError):
        service.login("bob", "pw")
    with pytest.raises(WrongPasswordError):
        service.login("alice", "nope")


def test_refresh_accepts_only_latest_refresh_token() -> None:
    service = _service()
    user = service.signup("alice", "pw")
    first_refresh = user.refresh_token

    refreshed = service.refresh(first_refresh)
    assert refreshed.refresh_token != first_refresh

    with pytest.raises(UnauthorizedError):
        service.refresh(first_refresh)
    with pytest.raises(UnauthorizedError):
        service.refresh(refreshed.token)
