from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from models.db_storage import DBStorage
from models.user import User
from utils.exceptions import EmailTaken


class IdentityStore:
    """Registered users. Creates and reads; never updates or deletes."""

    def __init__(self, storage: DBStorage):
        self.storage = storage

    def find_by_email(self, email: str) -> User | None:
        with self.storage.transaction() as session:
            return session.query(User).filter(User.email == email).first()

    def find_by_id(self, user_id: str) -> User | None:
        with self.storage.transaction() as session:
            return session.get(User, user_id)

    def create(self, name: str, email: str, password_hash: str) -> User:
        user = User(name=name, email=email, password_hash=password_hash)
        try:
            with self.storage.transaction() as session:
                session.add(user)
        except IntegrityError as exc:
            # users.email is unique; a concurrent signup for the same email loses here
            raise EmailTaken() from exc
        return user
