import logging
from datetime import datetime
from typing import Callable

from expense_tracker.domain.user import User
from expense_tracker.errors import (
    IncorrectInputError,
    UnauthorizedError,
    UserAlreadyExistsError,
    UserNotFoundError,
    WrongPasswordError,
)
from expense_tracker.models import utcnow
from expense_tracker.repositories.base import UserRepository
from expense_tracker.security.crypto import AppCrypto
from expense_tracker.services.categories import new_id

logger = logging.getLogger(__name__)


class UserService:
    """Signup, login and token refresh."""

    def __init__(
        self,
        repo: UserRepository,
        crypto: AppCrypto,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repo = repo
        self.crypto = crypto
        self.clock = clock

    def signup(self, username: str, password: str) -> User:
        username = (username or "").strip()
        if not username:
            raise IncorrectInputError("username should not be empty")
        if self.repo.get_by_username(username) is not None:
            raise UserAlreadyExistsError("user already exists")

        now = self.clock()
        user = User(
            id=new_id(),
            username=username,
            password_hash=self.crypto.hash_password(password),
            created_at=now,
        )
        user.set_tokens(*self.crypto.generate_tokens(user.id, user.username), at=now)
        self.repo.insert(user)
        logger.info(f"[AUTH] Signed up user {user.id}")
        return user

    def login(self, username: str, password: str) -> User:
        """
        Authenticate and issue a new token pair.

        Raises:
            UserNotFoundError: If no such user exists
            WrongPasswordError: If the password does not match
        """
        user = self.repo.get_by_username((username or "").strip())
        if user is None:
            raise UserNotFoundError("user not found")
        if not self.crypto.verify_password(user.password_hash, password):
            logger.info(f"[AUTH] Wrong password for user {user.id}")
            raise WrongPasswordError("wrong password")

        return self._reissue(user)

    def refresh(self, refresh_token: str) -> User:
        claims = self.crypto.validate_refresh_token(refresh_token)
        user = self.repo.get(claims.user_id)
        # Only the most recently issued refresh token is accepted.
        if user is None or user.refresh_token != refresh_token:
            raise UnauthorizedError("invalid token")
        return self._reissue(user)

    def _reissue(self, user: User) -> User:
        user.set_tokens(*self.crypto.generate_tokens(user.id, user.username), at=self.clock())
        self.repo.update(user)
        logger.info(f"[AUTH] Issued new tokens for user {user.id}")
        return user
