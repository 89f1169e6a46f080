"""
Profile lookups and updates for registered users.
"""

from typing import Optional
import logging

from ..auth.models import PublicProfile, PublicUser
from ..database.credential_store import CredentialStore
from ..errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class UsersService:
    """Read and update user profiles. Password hashes never leave this layer."""

    def __init__(self, credential_store: CredentialStore):
        self.credential_store = credential_store

    async def get_public_profile(self, user_id: str) -> PublicProfile:
        """
        Raises:
            NotFoundError: If no user has this id
        """
        user = await self.credential_store.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return PublicProfile(id=user.id, username=user.username, created_at=user.created_at)

    async def update_profile(
        self,
        user_id: str,
        email: Optional[str] = None,
        username: Optional[str] = None,
    ) -> PublicUser:
        """
        Change the caller's email and/or username.

        Raises:
            ValidationError: If neither field is given
            ConflictError: If another user already holds the email or username
            NotFoundError: If the user no longer exists
        """
        updates = {}
        if email:
            updates["email"] = email.lower()
        if username:
            updates["username"] = username
        if not updates:
            raise ValidationError("At least one of email or username is required")

        conflict = await self.credential_store.find_conflict(
            email=updates.get("email"),
            username=updates.get("username"),
            exclude_id=user_id,
        )
        if conflict:
            raise ConflictError("Email or username already taken")

        user = await self.credential_store.update(user_id, **updates)
        if user is None:
            raise NotFoundError("User not found")

        logger.info(f"Profile updated for user: {user_id}")
        return user.to_public()
