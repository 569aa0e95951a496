"""
Refresh-token persistence.

Every mutation of refresh_tokens goes through one of the atomic statements
below; callers never read a row and then write it back.

- upsert: conditional insert on the token primary key, so re-asserting an
  existing token (two issuances in the same second for the same user) is a
  no-op instead of a conflict.
- delete_by_token: remove-and-return in one statement. Of any number of
  concurrent callers for the same token exactly one gets the row, the rest
  get RecordNotFound.
- delete_expired_before: bulk delete for the sweeper.
"""
from __future__ import annotations

from datetime import datetime
import logging

from sqlalchemy import delete
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError

from models.db_storage import DBStorage
from models.refresh_token import RefreshToken
from utils.exceptions import RecordNotFound

logger = logging.getLogger(__name__)

_CONDITIONAL_INSERTS = {
    "sqlite": sqlite_insert,
    "postgresql": pg_insert,
}


class TokenStore:
    def __init__(self, storage: DBStorage):
        self.storage = storage

    def upsert(self, token: str, user_id: str, expires_at: datetime) -> bool:
        """Insert the record unless the token already exists. Returns True if a row was written."""
        with self.storage.transaction() as session:
            insert = _CONDITIONAL_INSERTS.get(session.get_bind().dialect.name)
            if insert is not None:
                stmt = (
                    insert(RefreshToken)
                    .values(token=token, user_id=user_id, expires_at=expires_at)
                    .on_conflict_do_nothing(index_elements=[RefreshToken.token])
                )
                inserted = session.connection().execute(stmt).rowcount == 1
            else:
                try:
                    with session.begin_nested():
                        session.add(RefreshToken(token=token, user_id=user_id, expires_at=expires_at))
                    inserted = True
                except IntegrityError:
                    inserted = False
        if not inserted:
            logger.debug("Refresh token for user %s already stored", user_id)
        return inserted

    def find_by_token(self, token: str) -> RefreshToken | None:
        with self.storage.transaction() as session:
            return session.query(RefreshToken).filter(RefreshToken.token == token).first()

    def delete_by_token(self, token: str) -> RefreshToken:
        """Consume a token: delete its row and return a detached copy of it."""
        with self.storage.transaction() as session:
            if getattr(session.get_bind().dialect, "delete_returning", False):
                stmt = (
                    delete(RefreshToken)
                    .where(RefreshToken.token == token)
                    .returning(
                        RefreshToken.token,
                        RefreshToken.user_id,
                        RefreshToken.expires_at,
                        RefreshToken.created_at,
                    )
                )
                row = session.connection().execute(stmt).first()
                if row is None:
                    raise RecordNotFound(token)
                return RefreshToken(
                    token=row.token,
                    user_id=row.user_id,
                    expires_at=row.expires_at,
                    created_at=row.created_at,
                )

            record = session.query(RefreshToken).filter(RefreshToken.token == token).first()
            if record is None:
                raise RecordNotFound(token)
            session.expunge(record)
            # The rowcount decides the winner when two consumers read the same row
            deleted = (
                session.query(RefreshToken)
                .filter(RefreshToken.token == token)
                .delete(synchronize_session=False)
            )
            if deleted != 1:
                raise RecordNotFound(token)
            return record

    def delete_expired_before(self, instant: datetime) -> int:
        with self.storage.transaction() as session:
            return (
                session.query(RefreshToken)
                .filter(RefreshToken.expires_at < instant)
                .delete(synchronize_session=False)
            )

    def count_for_user(self, user_id: str) -> int:
        with self.storage.transaction() as session:
            return session.query(RefreshToken).filter(RefreshToken.user_id == user_id).count()
