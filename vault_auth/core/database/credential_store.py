"""
Durable user storage.

The store enforces email and username uniqueness itself: insert and update
raise ConflictError when a unique constraint rejects the write, even if the
caller's pre-check missed a concurrent duplicate.
"""

import threading
import uuid
from datetime import datetime, timezone
from typing import Dict, Optional
import logging

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import IntegrityError

from ..auth.models import UserRecord
from ..errors import ConflictError
from .connection import Database
from .models import User

logger = logging.getLogger(__name__)

DUPLICATE_USER_MESSAGE = "User with this email or username already exists"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CredentialStore:
    """Interface for durable user storage."""

    async def get_by_id(self, user_id: str) -> Optional[UserRecord]:
        raise NotImplementedError

    async def get_by_email(self, email: str) -> Optional[UserRecord]:
        raise NotImplementedError

    async def find_conflict(
        self,
        email: Optional[str] = None,
        username: Optional[str] = None,
        exclude_id: Optional[str] = None,
    ) -> Optional[UserRecord]:
        """Return any user (other than exclude_id) holding the email or username."""
        raise NotImplementedError

    async def insert(self, email: str, username: str, password_hash: str) -> UserRecord:
        raise NotImplementedError

    async def update(self, user_id: str, **fields) -> Optional[UserRecord]:
        """Apply field changes and touch updated_at. Returns None if the user is gone."""
        raise NotImplementedError

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None


def _record_from_row(row: User) -> UserRecord:
    return UserRecord(
        id=row.id,
        email=row.email,
        username=row.username,
        password_hash=row.password_hash,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlCredentialStore(CredentialStore):
    """SQLAlchemy-backed store. Uniqueness comes from the users table constraints."""

    def __init__(self, database: Database):
        self.database = database

    async def get_by_id(self, user_id: str) -> Optional[UserRecord]:
        async with self.database.session() as session:
            row = await session.get(User, user_id)
            return _record_from_row(row) if row else None

    async def get_by_email(self, email: str) -> Optional[UserRecord]:
        async with self.database.session() as session:
            result = await session.execute(select(User).where(User.email == email).limit(1))
            row = result.scalar_one_or_none()
            return _record_from_row(row) if row else None

    async def find_conflict(self, email=None, username=None, exclude_id=None):
        conditions = []
        if email:
            conditions.append(User.email == email)
        if username:
            conditions.append(User.username == username)
        if not conditions:
            return None

        clause = or_(*conditions)
        if exclude_id:
            clause = and_(User.id != exclude_id, clause)

        async with self.database.session() as session:
            result = await session.execute(select(User).where(clause).limit(1))
            row = result.scalars().first()
            return _record_from_row(row) if row else None

    async def insert(self, email: str, username: str, password_hash: str) -> UserRecord:
        now = _utcnow()
        row = User(
            id=str(uuid.uuid4()),
            email=email,
            username=username,
            password_hash=password_hash,
            created_at=now,
            updated_at=now,
        )
        async with self.database.session() as session:
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                logger.warning(f"Unique constraint rejected insert: {e.orig}")
                raise ConflictError(DUPLICATE_USER_MESSAGE) from e
            return _record_from_row(row)

    async def update(self, user_id: str, **fields) -> Optional[UserRecord]:
        async with self.database.session() as session:
            row = await session.get(User, user_id)
            if row is None:
                return None
            for name, value in fields.items():
                setattr(row, name, value)
            row.updated_at = _utcnow()
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                logger.warning(f"Unique constraint rejected update: {e.orig}")
                raise ConflictError("Email or username already taken") from e
            return _record_from_row(row)

    async def ping(self) -> bool:
        return await self.database.check_connection()

    async def close(self) -> None:
        await self.database.dispose()


class InMemoryCredentialStore(CredentialStore):
    """Dict-backed store for development and tests."""

    def __init__(self):
        self._users: Dict[str, UserRecord] = {}
        self._lock = threading.Lock()

    def _taken(self, email, username, exclude_id) -> Optional[UserRecord]:
        for user in self._users.values():
            if user.id == exclude_id:
                continue
            if (email and user.email == email) or (username and user.username == username):
                return user
        return None

    async def get_by_id(self, user_id: str) -> Optional[UserRecord]:
        return self._users.get(user_id)

    async def get_by_email(self, email: str) -> Optional[UserRecord]:
        for user in self._users.values():
            if user.email == email:
                return user
        return None

    async def find_conflict(self, email=None, username=None, exclude_id=None):
        with self._lock:
            return self._taken(email, username, exclude_id)

    async def insert(self, email: str, username: str, password_hash: str) -> UserRecord:
        with self._lock:
            if self._taken(email, username, None):
                raise ConflictError(DUPLICATE_USER_MESSAGE)
            now = _utcnow()
            record = UserRecord(
                id=str(uuid.uuid4()),
                email=email,
                username=username,
                password_hash=password_hash,
                created_at=now,
                updated_at=now,
            )
            self._users[record.id] = record
            return record

    async def update(self, user_id: str, **fields) -> Optional[UserRecord]:
        with self._lock:
            current = self._users.get(user_id)
            if current is None:
                return None
            if self._taken(fields.get("email"), fields.get("username"), user_id):
                raise ConflictError("Email or username already taken")
            updated = current.model_copy(update={**fields, "updated_at": _utcnow()})
            self._users[user_id] = updated
            return updated

    def remove(self, user_id: str) -> None:
        """Drop a user row. Used to simulate deletion by another system."""
        with self._lock:
            self._users.pop(user_id, None)
