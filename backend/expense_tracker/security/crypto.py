"""
Password hashing and signed session tokens.

Passwords are hashed with bcrypt. Tokens are itsdangerous URL-safe signed
payloads carrying the user id, username and an ``exp`` unix timestamp;
access and refresh tokens use different salts so one cannot stand in for
the other.
"""
import secrets
import time
from dataclasses import dataclass
from typing import Callable, Tuple

import bcrypt
from itsdangerous import BadData, URLSafeSerializer

from expense_tracker.config import SecuritySettings
from expense_tracker.errors import IncorrectInputError, UnauthorizedError

# bcrypt ignores (newer releases reject) anything past 72 bytes.
MAX_PASSWORD_BYTES = 72


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    username: str
    expires_at: int


class AppCrypto:
    ACCESS_SALT = "access-token"
    REFRESH_SALT = "refresh-token"

    def __init__(
        self,
        secret_key: str,
        token_ttl_hours: int = 24,
        refresh_ttl_hours: int = 168,
        bcrypt_rounds: int = 12,
        clock: Callable[[], float] = time.time,
    ):
        if not secret_key:
            raise ValueError("token secret key must not be empty")
        self.token_ttl_hours = token_ttl_hours
        self.refresh_ttl_hours = refresh_ttl_hours
        self.bcrypt_rounds = bcrypt_rounds
        self.clock = clock
        self._access = URLSafeSerializer(secret_key, salt=self.ACCESS_SALT)
        self._refresh = URLSafeSerializer(secret_key, salt=self.REFRESH_SALT)

    @classmethod
    def from_settings(cls, settings: SecuritySettings) -> "AppCrypto":
        return cls(
            secret_key=settings.jwt.secret_key,
            token_ttl_hours=settings.jwt.token_ttl_hours,
            refresh_ttl_hours=settings.jwt.refresh_ttl_hours,
            bcrypt_rounds=settings.bcrypt_rounds,
        )

    def hash_password(self, password: str) -> str:
        raw = password.encode("utf-8")
        if not raw:
            raise IncorrectInputError("password should not be empty")
        if len(raw) > MAX_PASSWORD_BYTES:
            raise IncorrectInputError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
        return bcrypt.hashpw(raw, bcrypt.gensalt(rounds=self.bcrypt_rounds)).decode("utf-8")

    def verify_password(self, password_hash: str, password: str) -> bool:
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            return False

    def generate_tokens(self, user_id: str, username: str) -> Tuple[str, str]:
        """Return a fresh (token, refresh_token) pair."""
        now = int(self.clock())
        token = self._access.dumps(self._payload(user_id, username, now + self.token_ttl_hours * 3600))
        refresh_token = self._refresh.dumps(
            self._payload(user_id, username, now + self.refresh_ttl_hours * 3600)
        )
        return token, refresh_token

    @staticmethod
    def _payload(user_id: str, username: str, expires_at: int) -> dict:
        # jti keeps two pairs minted within the same second distinct.
        return {"id": user_id, "username": username, "exp": expires_at, "jti": secrets.token_hex(8)}

    def validate_token(self, token: str) -> TokenClaims:
        return self._validate(self._access, token)

    def validate_refresh_token(self, token: str) -> TokenClaims:
        return self._validate(self._refresh, token)

    def _validate(self, serializer: URLSafeSerializer, token: str) -> TokenClaims:
        try:
            data = serializer.loads(token)
        except BadData:
            raise UnauthorizedError("invalid token")

        if not isinstance(data, dict):
            raise UnauthorizedError("invalid token")
        expires_at = data.get("exp")
        if not isinstance(expires_at, int) or int(self.clock()) >= expires_at:
            raise UnauthorizedError("invalid token")
        user_id = data.get("id")
        username = data.get("username")
        if not user_id or not username:
            raise UnauthorizedError("invalid token")

        return TokenClaims(user_id=user_id, username=username, expires_at=expires_at)
