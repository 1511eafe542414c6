from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from expense_tracker.errors import IncorrectInputError


@dataclass
class User:
    id: str
    username: str
    password_hash: str
    token: str = ""
    refresh_token: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        username = (self.username or "").strip()
        if not username:
            raise IncorrectInputError("username should not be empty")
        self.username = username

    def set_tokens(self, token: str, refresh_token: str, at: datetime) -> None:
        self.token = token
        self.refresh_token = refresh_token
        self.updated_at = at
