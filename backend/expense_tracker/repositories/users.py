from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from expense_tracker import models
from expense_tracker.domain.user import User
from expense_tracker.errors import UserAlreadyExistsError
from expense_tracker.repositories.base import UserRepository
from expense_tracker.repositories.common import store_errors


def user_from_row(row: models.User) -> User:
    return User(
        id=row.id,
        username=row.username,
        password_hash=row.password_hash,
        token=row.token or "",
        refresh_token=row.refresh_token or "",
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlUserRepository(UserRepository):
    def __init__(self, db: Session):
        self.db = db

    def get_by_username(self, username: str) -> Optional[User]:
        with store_errors(self.db, "find user"):
            row = self.db.query(models.User).filter(models.User.username == username).first()
        return user_from_row(row) if row else None

    def get(self, user_id: str) -> Optional[User]:
        with store_errors(self.db, "get user"):
            row = self.db.query(models.User).filter(models.User.id == user_id).first()
        return user_from_row(row) if row else None

    def insert(self, user: User) -> str:
        row = models.User(
            id=user.id,
            username=user.username,
            password_hash=user.password_hash,
            token=user.token,
            refresh_token=user.refresh_token,
            created_at=user.created_at,
        )
        with store_errors(self.db, "insert user"):
            try:
                self.db.add(row)
                self.db.commit()
            except IntegrityError as e:
                self.db.rollback()
                raise UserAlreadyExistsError("user already exists", cause=e)
        return user.id

    def update(self, user: User) -> int:
        with store_errors(self.db, "update user"):
            count = (
                self.db.query(models.User)
                .filter(models.User.id == user.id)
                .update(
                    {
                        models.User.token: user.token,
                        models.User.refresh_token: user.refresh_token,
                        models.User.updated_at: user.updated_at,
                    },
                    synchronize_session=False,
                )
            )
            self.db.commit()
        return count
